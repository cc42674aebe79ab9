"""
Step Advancement Orchestrator - Move tickets through their workflow

Algorithm for every transition:
1. Load the ticket and its validated workflow definition
2. Navigate to the destination (step, route step or closure)
3. Resolve assignees and compute the SLA due date
4. Commit the new state with one version-checked update
5. Create parallel instances when the destination is a parallel step
   (the ticket update is compensated if this fails)
6. Discard the instances of the step that was left
7. Write assignment history and enqueue notifications

Steps 6 and 7 run after the commit; their failures are logged and never
undo the advancement.
"""
from typing import Any, Dict, List, Optional

from ..domain.models import (
    AdvancementResult, AssignmentResult, DecisionPrompt, ParallelInstance,
    ParallelTaskResult, RoutePosition, Step, Ticket, WorkflowDefinition,
)
from ..domain.enums import AssignmentStrategy, TicketStatus
from ..domain.errors import (
    ConcurrentAdvancementConflictError, InvalidArgumentError, InvalidStateError,
    ManualSelectionRequiredError,
    TicketNotFoundError, UnresolvableAssignmentError, WorkflowNotFoundError,
)
from ..repositories.protocols import (
    FieldValueLookup, OrgChart, ParallelInstanceStore, TicketStore, UserDirectory,
    WorkflowStore,
)
from ..repositories.ticket_repo import TicketRepository
from ..repositories.workflow_repo import WorkflowRepository
from ..repositories.parallel_repo import ParallelInstanceRepository
from ..repositories.history_repo import AssignmentHistoryRepository
from ..repositories.directory_repo import (
    FieldValueRepository, OrgChartRepository, UserDirectoryRepository
)
from ..services.notification_service import NotificationService
from ..utils.time import utc_now, sla_status
from ..utils.logger import get_logger
from .assignment_resolver import AssignmentResolver, unique_ids
from .business_calendar import BusinessCalendar
from .history_writer import AssignmentHistoryWriter
from .parallel_coordinator import ParallelStepCoordinator
from .workflow_navigator import WorkflowNavigator

logger = get_logger(__name__)


class StepAdvancementOrchestrator:
    """
    Orchestrate ticket transitions

    At most one advancement succeeds per ticket version; a lost race raises
    ConcurrentAdvancementConflictError and leaves no partial state behind.
    """

    def __init__(
        self,
        workflows: Optional[WorkflowStore] = None,
        tickets: Optional[TicketStore] = None,
        parallel_store: Optional[ParallelInstanceStore] = None,
        directory: Optional[UserDirectory] = None,
        org_chart: Optional[OrgChart] = None,
        field_values: Optional[FieldValueLookup] = None,
        history: Optional[AssignmentHistoryWriter] = None,
        notifications: Optional[NotificationService] = None,
        calendar: Optional[BusinessCalendar] = None
    ):
        self.workflows = workflows or WorkflowRepository()
        self.tickets = tickets or TicketRepository()
        self.directory = directory or UserDirectoryRepository()
        self.parallel = ParallelStepCoordinator(parallel_store or ParallelInstanceRepository())
        self.resolver = AssignmentResolver(
            directory=self.directory,
            org_chart=org_chart or OrgChartRepository(),
            field_values=field_values or FieldValueRepository()
        )
        self.history = history or AssignmentHistoryWriter(AssignmentHistoryRepository())
        self.notifications = notifications or NotificationService()
        self.calendar = calendar or BusinessCalendar.from_settings()

    # =========================================================================
    # Public operations
    # =========================================================================

    def start_ticket(
        self,
        ticket_id: int,
        actor_id: int,
        selected_assignee_ids: Optional[List[int]] = None,
        comment: Optional[str] = None
    ) -> AdvancementResult:
        """Enter the initial step of the flow attached to the ticket's subcategory"""
        ticket = self._get_ticket(ticket_id)
        if ticket.status == TicketStatus.CLOSED:
            raise InvalidStateError(
                f"Ticket {ticket_id} is closed",
                details={"ticket_id": ticket_id, "status": ticket.status.value}
            )
        if ticket.current_step_id is not None:
            raise InvalidStateError(
                f"Ticket {ticket_id} already entered its workflow",
                details={"ticket_id": ticket_id, "current_step_id": ticket.current_step_id}
            )

        if ticket.flow_id is not None:
            definition = self._get_definition(ticket)
        else:
            definition = self.workflows.get_definition_for_subcategory(ticket.subcategory_id)
            if definition is None:
                raise WorkflowNotFoundError(
                    f"No active workflow for subcategory {ticket.subcategory_id}",
                    details={"ticket_id": ticket_id, "subcategory_id": ticket.subcategory_id}
                )

        initial = WorkflowNavigator(definition).initial_step()
        logger.info(
            f"Starting ticket {ticket_id} at step {initial.id}",
            extra={"ticket_id": ticket_id, "step_id": initial.id, "flow_id": definition.flow.id}
        )
        return self._enter_step(
            ticket, definition, initial, None, actor_id, selected_assignee_ids, comment
        )

    def advance(
        self,
        ticket_id: int,
        actor_id: int,
        decision_key: Optional[str] = None,
        selected_assignee_ids: Optional[List[int]] = None,
        comment: Optional[str] = None
    ) -> AdvancementResult:
        """
        Apply a decision to the ticket's current step

        Raises:
            InvalidStateError: Ticket closed, not started, or parallel work outstanding
            UnknownDecisionError / DecisionRequiredError: Decision not applicable
            ManualSelectionRequiredError: Next step needs hand-picked assignees
            UnresolvableAssignmentError: No assignee for the next step
            ConcurrentAdvancementConflictError: Ticket changed meanwhile
        """
        return self._advance(ticket_id, actor_id, decision_key, selected_assignee_ids, comment)

    def complete_parallel_task(
        self,
        ticket_id: int,
        user_id: int,
        decision_key: Optional[str] = None,
        selected_assignee_ids: Optional[List[int]] = None,
        comment: Optional[str] = None
    ) -> ParallelTaskResult:
        """
        Complete the caller's share of the current parallel step

        The caller completing the last share advances the ticket with the
        given decision. A supplied decision is checked before the share is
        marked, so an unknown key leaves the step untouched. When every share is
        complete but the ticket is still on the step (the advancement
        failed, e.g. no assignee for the next step), completing again
        retries the advancement.
        """
        ticket = self._get_ticket(ticket_id)
        self._ensure_open(ticket)
        definition = self._get_definition(ticket)
        navigator = WorkflowNavigator(definition)
        current = navigator.get_step(ticket.current_step_id)
        if not current.is_parallel:
            raise InvalidStateError(
                f"Step {current.id} of ticket {ticket_id} is not a parallel step",
                details={"ticket_id": ticket_id, "step_id": current.id}
            )
        if decision_key:
            navigator.next_step(current.id, decision_key, ticket.route_position)

        completion = self.parallel.mark_complete(ticket.id, current.id, user_id)
        if completion.already_completed:
            if completion.outstanding > 0:
                return ParallelTaskResult(completion=completion)
            logger.info(
                f"Retrying advancement of completed parallel step {current.id}",
                extra={"ticket_id": ticket_id, "step_id": current.id, "user_id": user_id}
            )
        else:
            self.notifications.notify_parallel_task_completed(
                ticket, current.id, user_id, completion.outstanding,
                observer_id=definition.flow.observer_user_id
            )
            if not completion.all_complete:
                return ParallelTaskResult(completion=completion)
            logger.info(
                f"All parallel tasks of step {current.id} complete",
                extra={"ticket_id": ticket_id, "step_id": current.id, "user_id": user_id}
            )

        advancement = self._advance(
            ticket.id, user_id, decision_key, selected_assignee_ids, comment,
            expected_step_id=current.id
        )
        return ParallelTaskResult(completion=completion, advancement=advancement)

    def available_decisions(self, ticket_id: int) -> DecisionPrompt:
        """Current step, offered transitions and SLA status of a ticket"""
        ticket = self._get_ticket(ticket_id)
        if ticket.status == TicketStatus.CLOSED or ticket.current_step_id is None:
            return DecisionPrompt(ticket_id=ticket.id, step_id=ticket.current_step_id)

        navigator = WorkflowNavigator(self._get_definition(ticket))
        step = navigator.get_step(ticket.current_step_id)
        return DecisionPrompt(
            ticket_id=ticket.id,
            step_id=step.id,
            step_name=step.name,
            transitions=navigator.available_transitions(step.id),
            sla_status=sla_status(ticket.step_due_at),
            step_due_at=ticket.step_due_at
        )

    # =========================================================================
    # Transition internals
    # =========================================================================

    def _advance(
        self,
        ticket_id: int,
        actor_id: int,
        decision_key: Optional[str],
        selected_assignee_ids: Optional[List[int]],
        comment: Optional[str],
        expected_step_id: Optional[int] = None
    ) -> AdvancementResult:
        ticket = self._get_ticket(ticket_id)
        self._ensure_open(ticket)
        if expected_step_id is not None and ticket.current_step_id != expected_step_id:
            raise ConcurrentAdvancementConflictError(
                f"Ticket {ticket_id} already left step {expected_step_id}",
                details={"ticket_id": ticket_id, "step_id": expected_step_id}
            )

        definition = self._get_definition(ticket)
        navigator = WorkflowNavigator(definition)
        current = navigator.get_step(ticket.current_step_id)

        if current.is_parallel:
            outstanding = self.parallel.outstanding(ticket.id, current.id)
            if outstanding > 0:
                raise InvalidStateError(
                    f"Parallel step {current.id} still has {outstanding} open task(s)",
                    details={"ticket_id": ticket.id, "step_id": current.id, "outstanding": outstanding}
                )

        navigation = navigator.next_step(current.id, decision_key, ticket.route_position)
        logger.info(
            f"Advancing ticket {ticket_id} from step {current.id}",
            extra={
                "ticket_id": ticket_id,
                "step_id": current.id,
                "actor_id": actor_id,
                "decision_key": decision_key
            }
        )

        if navigation.closes_ticket:
            return self._close(ticket, definition, actor_id, comment)
        return self._enter_step(
            ticket, definition, navigation.step, navigation.route_position,
            actor_id, selected_assignee_ids, comment
        )

    def _enter_step(
        self,
        ticket: Ticket,
        definition: WorkflowDefinition,
        step: Step,
        route_position: Optional[RoutePosition],
        actor_id: int,
        selected_assignee_ids: Optional[List[int]],
        comment: Optional[str]
    ) -> AdvancementResult:
        assignment = self._resolve_assignment(ticket, step, selected_assignee_ids)

        now = utc_now()
        updates: Dict[str, Any] = {
            "flow_id": definition.flow.id,
            "current_step_id": step.id,
            "route_position": route_position,
            "assignee_ids": assignment.user_ids,
            "assigned_by_id": actor_id,
            "status": TicketStatus.OPEN,
            "step_started_at": now,
            "step_due_at": self.calendar.add_business_hours(now, step.sla_hours),
        }
        updated = self.tickets.update_workflow_state(ticket.id, updates, ticket.version)

        instances: List[ParallelInstance] = []
        if step.is_parallel:
            try:
                instances = self.parallel.enter_parallel_step(ticket.id, step, assignment.user_ids)
            except Exception:
                self._compensate(ticket, updated)
                raise

        self._after_commit(ticket.current_step_id, step.id, updated, comment, actor_id)
        self.notifications.notify_step_assigned(
            updated, step, assignment.user_ids, observer_id=definition.flow.observer_user_id
        )

        logger.info(
            f"Ticket {ticket.id} entered step {step.id}",
            extra={
                "ticket_id": ticket.id,
                "step_id": step.id,
                "assignee_ids": assignment.user_ids,
                "strategy": assignment.strategy.value
            }
        )
        return AdvancementResult(
            ticket=updated,
            previous_step_id=ticket.current_step_id,
            step=step,
            assignment=assignment,
            parallel_instances=instances
        )

    def _close(
        self,
        ticket: Ticket,
        definition: WorkflowDefinition,
        actor_id: int,
        comment: Optional[str]
    ) -> AdvancementResult:
        updates: Dict[str, Any] = {
            "status": TicketStatus.CLOSED,
            "closed_at": utc_now(),
            "route_position": None,
            "step_due_at": None,
        }
        updated = self.tickets.update_workflow_state(ticket.id, updates, ticket.version)
        self._discard_previous(ticket.id, ticket.current_step_id)
        self.notifications.notify_ticket_closed(
            updated, actor_id, observer_id=definition.flow.observer_user_id
        )

        logger.info(
            f"Ticket {ticket.id} closed",
            extra={"ticket_id": ticket.id, "step_id": ticket.current_step_id, "actor_id": actor_id}
        )
        return AdvancementResult(ticket=updated, previous_step_id=ticket.current_step_id, closed=True)

    def _resolve_assignment(
        self,
        ticket: Ticket,
        step: Step,
        selected_assignee_ids: Optional[List[int]]
    ) -> AssignmentResult:
        if step.assignment_strategy == AssignmentStrategy.MANUAL_SELECTION:
            if not selected_assignee_ids:
                raise ManualSelectionRequiredError(
                    f"Step {step.id} requires selecting the assignees",
                    details={"ticket_id": ticket.id, "step_id": step.id}
                )
            user_ids = unique_ids(selected_assignee_ids)
            active = {u.id for u in self.directory.get_users(user_ids) if u.active}
            unknown = [user_id for user_id in user_ids if user_id not in active]
            if unknown:
                raise InvalidArgumentError(
                    "Selected assignees are unknown or inactive",
                    details={"step_id": step.id, "user_ids": unknown}
                )
            return AssignmentResult(strategy=AssignmentStrategy.MANUAL_SELECTION, user_ids=user_ids)

        requester = self.directory.get_user(ticket.creator_id)
        if requester is None:
            raise UnresolvableAssignmentError(
                f"Creator {ticket.creator_id} of ticket {ticket.id} is not in the directory",
                details={"ticket_id": ticket.id, "user_id": ticket.creator_id}
            )
        return self.resolver.resolve_assignees(step, requester, ticket)

    def _compensate(self, original: Ticket, updated: Ticket) -> None:
        """Put back the workflow fields of the ticket as they were before the commit"""
        restore = original.model_dump(
            include={
                "flow_id", "current_step_id", "route_position", "assignee_ids",
                "assigned_by_id", "status", "step_started_at", "step_due_at",
            }
        )
        restore["status"] = original.status
        restore["route_position"] = original.route_position
        self.tickets.update_workflow_state(original.id, restore, updated.version)
        logger.warning(
            f"Rolled back ticket {original.id} after a failed parallel fan-out",
            extra={"ticket_id": original.id, "step_id": updated.current_step_id}
        )

    def _after_commit(
        self,
        previous_step_id: Optional[int],
        step_id: int,
        ticket: Ticket,
        comment: Optional[str],
        actor_id: int
    ) -> None:
        if previous_step_id != step_id:
            self._discard_previous(ticket.id, previous_step_id)
        try:
            self.history.write_assignment(
                ticket_id=ticket.id,
                step_id=step_id,
                assignee_ids=ticket.assignee_ids,
                assigned_by_id=actor_id,
                comment=comment
            )
        except Exception as e:
            logger.error(
                f"Failed to write assignment history: {e}",
                extra={"ticket_id": ticket.id, "step_id": step_id},
                exc_info=True
            )

    def _discard_previous(self, ticket_id: int, step_id: Optional[int]) -> None:
        if step_id is None:
            return
        try:
            self.parallel.discard(ticket_id, step_id)
        except Exception as e:
            logger.error(
                f"Failed to discard parallel instances: {e}",
                extra={"ticket_id": ticket_id, "step_id": step_id},
                exc_info=True
            )

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get_ticket(self, ticket_id: int) -> Ticket:
        ticket = self.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticket_id": ticket_id})
        return ticket

    def _get_definition(self, ticket: Ticket) -> WorkflowDefinition:
        definition = self.workflows.get_definition(ticket.flow_id) if ticket.flow_id is not None else None
        if definition is None:
            raise WorkflowNotFoundError(
                f"No active workflow {ticket.flow_id} for ticket {ticket.id}",
                details={"ticket_id": ticket.id, "flow_id": ticket.flow_id}
            )
        return definition

    def _ensure_open(self, ticket: Ticket) -> None:
        if ticket.status == TicketStatus.CLOSED:
            raise InvalidStateError(
                f"Ticket {ticket.id} is closed",
                details={"ticket_id": ticket.id, "status": ticket.status.value}
            )
        if ticket.current_step_id is None:
            raise InvalidStateError(
                f"Ticket {ticket.id} has not entered its workflow",
                details={"ticket_id": ticket.id}
            )
