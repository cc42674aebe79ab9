"""Ticket Workflow Service - Actor-facing workflow operations"""
from typing import List, Optional

from ..domain.models import (
    ActorContext, AdvancementResult, AssignmentRecord, DecisionPrompt, ParallelTaskResult
)
from ..domain.errors import PermissionDeniedError, TicketNotFoundError
from ..engine.orchestrator import StepAdvancementOrchestrator
from ..engine.history_writer import AssignmentHistoryWriter
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TicketWorkflowService:
    """
    Service for moving tickets on behalf of an authenticated actor

    Only the current assignees may decide on a ticket; callers holding the
    override permission (checked at the API layer) may act on any ticket.
    """

    def __init__(self, orchestrator: Optional[StepAdvancementOrchestrator] = None):
        self.orchestrator = orchestrator or StepAdvancementOrchestrator()

    @property
    def history(self) -> AssignmentHistoryWriter:
        return self.orchestrator.history

    def get_decisions(self, ticket_id: int) -> DecisionPrompt:
        return self.orchestrator.available_decisions(ticket_id)

    def start(self, ticket_id: int, actor: ActorContext, comment: Optional[str] = None,
              selected_assignee_ids: Optional[List[int]] = None) -> AdvancementResult:
        return self.orchestrator.start_ticket(
            ticket_id, actor.user_id,
            selected_assignee_ids=selected_assignee_ids,
            comment=comment
        )

    def advance(
        self,
        ticket_id: int,
        actor: ActorContext,
        decision_key: Optional[str] = None,
        selected_assignee_ids: Optional[List[int]] = None,
        comment: Optional[str] = None,
        can_override: bool = False
    ) -> AdvancementResult:
        if not can_override:
            self._ensure_assignee(ticket_id, actor)
        return self.orchestrator.advance(
            ticket_id,
            actor.user_id,
            decision_key=decision_key,
            selected_assignee_ids=selected_assignee_ids,
            comment=comment
        )

    def complete_parallel_task(
        self,
        ticket_id: int,
        actor: ActorContext,
        decision_key: Optional[str] = None,
        selected_assignee_ids: Optional[List[int]] = None,
        comment: Optional[str] = None
    ) -> ParallelTaskResult:
        return self.orchestrator.complete_parallel_task(
            ticket_id,
            actor.user_id,
            decision_key=decision_key,
            selected_assignee_ids=selected_assignee_ids,
            comment=comment
        )

    def assignment_history(self, ticket_id: int) -> List[AssignmentRecord]:
        return self.history.history(ticket_id)

    def _ensure_assignee(self, ticket_id: int, actor: ActorContext) -> None:
        ticket = self.orchestrator.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticket_id": ticket_id})
        if actor.user_id not in ticket.assignee_ids:
            logger.warning(
                f"User {actor.user_id} tried to act on ticket {ticket_id} without being assigned",
                extra={"ticket_id": ticket_id, "user_id": actor.user_id}
            )
            raise PermissionDeniedError(
                "Only the current assignees can decide on this ticket",
                details={"ticket_id": ticket_id, "user_id": actor.user_id}
            )
