"""Parallel Step Coordinator - Track per-assignee completion of parallel steps"""
from typing import List

from ..domain.models import ParallelCompletion, ParallelInstance, Step
from ..domain.errors import InvalidArgumentError, ParallelInstanceNotFoundError
from ..repositories.protocols import ParallelInstanceStore
from ..utils.time import utc_now
from ..utils.logger import get_logger
from .assignment_resolver import unique_ids

logger = get_logger(__name__)


class ParallelStepCoordinator:
    """
    Fan a parallel step out to its assignees and detect the last completion

    mark_complete flips the instance flag atomically and only a caller that
    actually flipped it decrements the outstanding counter, so exactly one
    caller sees the counter reach zero.
    """

    def __init__(self, store: ParallelInstanceStore):
        self.store = store

    def enter_parallel_step(
        self,
        ticket_id: int,
        step: Step,
        assignee_ids: List[int]
    ) -> List[ParallelInstance]:
        """Create one instance per assignee and reset the outstanding counter"""
        if not step.is_parallel:
            raise InvalidArgumentError(
                f"Step {step.id} is not a parallel step",
                details={"step_id": step.id}
            )
        user_ids = unique_ids(assignee_ids)
        if not user_ids:
            raise InvalidArgumentError(
                f"Parallel step {step.id} needs at least one assignee",
                details={"step_id": step.id}
            )

        now = utc_now()
        instances = [
            ParallelInstance(ticket_id=ticket_id, step_id=step.id, user_id=user_id, created_at=now)
            for user_id in user_ids
        ]
        self.store.replace_instances(ticket_id, step.id, instances)

        logger.info(
            f"Created {len(instances)} parallel instance(s) for ticket {ticket_id}",
            extra={"ticket_id": ticket_id, "step_id": step.id, "assignee_ids": user_ids}
        )
        return instances

    def mark_complete(self, ticket_id: int, step_id: int, user_id: int) -> ParallelCompletion:
        """
        Complete one assignee's instance

        Returns:
            ParallelCompletion; all_complete is True only for the call that
            completed the last outstanding instance

        Raises:
            ParallelInstanceNotFoundError: No instance for (ticket, step, user)
        """
        flipped = self.store.mark_instance_complete(ticket_id, step_id, user_id, utc_now())
        if flipped is None:
            raise ParallelInstanceNotFoundError(
                f"No parallel instance for user {user_id} on step {step_id} of ticket {ticket_id}",
                details={"ticket_id": ticket_id, "step_id": step_id, "user_id": user_id}
            )
        if not flipped:
            return ParallelCompletion(
                all_complete=False,
                already_completed=True,
                outstanding=self.store.count_outstanding(ticket_id, step_id)
            )

        remaining = self.store.decrement_outstanding(ticket_id, step_id)
        logger.info(
            f"Parallel instance completed, {remaining} outstanding",
            extra={"ticket_id": ticket_id, "step_id": step_id, "user_id": user_id}
        )
        return ParallelCompletion(all_complete=remaining == 0, outstanding=max(remaining, 0))

    def outstanding(self, ticket_id: int, step_id: int) -> int:
        return self.store.count_outstanding(ticket_id, step_id)

    def instances(self, ticket_id: int, step_id: int) -> List[ParallelInstance]:
        return self.store.list_instances(ticket_id, step_id)

    def discard(self, ticket_id: int, step_id: int) -> int:
        """Remove the instances of a step the ticket has left"""
        removed = self.store.delete_instances(ticket_id, step_id)
        if removed:
            logger.debug(
                f"Discarded {removed} parallel instance(s)",
                extra={"ticket_id": ticket_id, "step_id": step_id}
            )
        return removed
