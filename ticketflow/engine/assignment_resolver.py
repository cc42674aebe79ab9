"""Assignment Resolver - Decide who must act on a step"""
from typing import Iterable, List

from ..domain.models import AssignmentResult, Step, Ticket, UserProfile
from ..domain.enums import AssignmentStrategy
from ..domain.errors import (
    MissingBossReferenceError, NoEligibleAssigneeError, NoSuperiorDefinedError
)
from ..repositories.protocols import FieldValueLookup, OrgChart, UserDirectory
from ..utils.logger import get_logger

logger = get_logger(__name__)


def unique_ids(user_ids: Iterable[int]) -> List[int]:
    """Drop duplicates, keeping first occurrence order"""
    seen = set()
    result = []
    for user_id in user_ids:
        if user_id not in seen:
            seen.add(user_id)
            result.append(user_id)
    return result


class AssignmentResolver:
    """
    Resolve the assignees of a step for a requester

    The requester is the ticket creator. Every strategy except
    MANUAL_SELECTION yields at least one user or raises an
    UnresolvableAssignmentError subclass. Lookup failures from the
    directory, org chart or field store propagate as ExternalLookupError.
    """

    def __init__(
        self,
        directory: UserDirectory,
        org_chart: OrgChart,
        field_values: FieldValueLookup
    ):
        self.directory = directory
        self.org_chart = org_chart
        self.field_values = field_values

    def resolve_assignees(
        self,
        step: Step,
        requester: UserProfile,
        ticket: Ticket
    ) -> AssignmentResult:
        """
        Resolve assignees according to the step's single strategy

        Args:
            step: Step being entered
            requester: Directory profile of the ticket creator
            ticket: Ticket being routed (used for dynamic field lookups)

        Returns:
            AssignmentResult with ordered, de-duplicated user ids

        Raises:
            InvalidWorkflowConfigurationError: Zero or several strategies on the step
            UnresolvableAssignmentError: No assignee could be found
        """
        strategy = step.assignment_strategy

        if strategy == AssignmentStrategy.MANUAL_SELECTION:
            return AssignmentResult(strategy=strategy, user_ids=[])

        if strategy == AssignmentStrategy.CREATOR_AUTO:
            user_ids = [requester.id]
        elif strategy == AssignmentStrategy.BOSS_REFERENCE:
            user_ids = [self._resolve_boss_reference(step, ticket)]
        elif strategy == AssignmentStrategy.ROLE_BASED:
            user_ids = self._resolve_role(step, requester)
        elif strategy == AssignmentStrategy.HIERARCHICAL:
            user_ids = self._resolve_superior(step, requester)
        else:
            user_ids = self._resolve_explicit(step)

        logger.info(
            f"Resolved {len(user_ids)} assignee(s) for step {step.id} via {strategy.value}",
            extra={
                "ticket_id": ticket.id,
                "step_id": step.id,
                "strategy": strategy.value,
                "assignee_ids": user_ids
            }
        )
        return AssignmentResult(strategy=strategy, user_ids=unique_ids(user_ids))

    # =========================================================================
    # Strategies
    # =========================================================================

    def _resolve_boss_reference(self, step: Step, ticket: Ticket) -> int:
        raw = self.field_values.get_field_value(ticket.id, step.boss_reference_field_id)
        if raw is None or not str(raw).strip():
            raise MissingBossReferenceError(
                f"Ticket {ticket.id} has no boss in field {step.boss_reference_field_id}",
                details={"ticket_id": ticket.id, "field_id": step.boss_reference_field_id}
            )
        try:
            return int(str(raw).strip())
        except ValueError:
            raise MissingBossReferenceError(
                f"Field {step.boss_reference_field_id} of ticket {ticket.id} is not a user id",
                details={
                    "ticket_id": ticket.id,
                    "field_id": step.boss_reference_field_id,
                    "value": raw
                }
            )

    def _resolve_role(self, step: Step, requester: UserProfile) -> List[int]:
        candidates = [u for u in self.directory.find_users_by_role(step.assigned_role_id) if u.active]
        if not step.is_national_task:
            candidates = [
                u for u in candidates
                if u.is_national or (
                    requester.region_id is not None and u.region_id == requester.region_id
                )
            ]
        if not candidates:
            raise NoEligibleAssigneeError(
                f"No active user holds role {step.assigned_role_id} in scope",
                details={
                    "step_id": step.id,
                    "role_id": step.assigned_role_id,
                    "region_id": None if step.is_national_task else requester.region_id
                }
            )
        return [u.id for u in candidates]

    def _resolve_superior(self, step: Step, requester: UserProfile) -> List[int]:
        superior = None
        if requester.position_id is not None:
            superior = self.org_chart.superior_of(requester.position_id)
        if superior is None:
            raise NoSuperiorDefinedError(
                f"User {requester.id} has no superior in the org chart",
                details={"user_id": requester.id, "position_id": requester.position_id}
            )

        holders = [u for u in self.org_chart.holders_of(superior) if u.active]
        same_region = [u for u in holders if u.region_id == requester.region_id]
        chosen = same_region or holders
        if not chosen:
            raise NoEligibleAssigneeError(
                f"Position {superior} has no active holder",
                details={"step_id": step.id, "position_id": superior}
            )
        return [u.id for u in chosen]

    def _resolve_explicit(self, step: Step) -> List[int]:
        active = {u.id for u in self.directory.get_users(step.explicit_user_ids) if u.active}
        user_ids = [user_id for user_id in step.explicit_user_ids if user_id in active]
        if not user_ids:
            raise NoEligibleAssigneeError(
                f"None of the users listed on step {step.id} is active",
                details={"step_id": step.id, "user_ids": step.explicit_user_ids}
            )
        return user_ids
