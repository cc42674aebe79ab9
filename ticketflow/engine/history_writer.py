"""Assignment History Writer - Append-only record of step assignments"""
from typing import List, Optional

from ..domain.models import AssignmentRecord
from ..repositories.protocols import HistoryStore
from ..utils.idgen import generate_assignment_record_id
from ..utils.time import utc_now


class AssignmentHistoryWriter:
    """Write one assignment record each time a ticket enters a step"""

    def __init__(self, store: HistoryStore):
        self.store = store

    def write_assignment(
        self,
        ticket_id: int,
        step_id: Optional[int],
        assignee_ids: List[int],
        assigned_by_id: Optional[int],
        comment: Optional[str] = None
    ) -> AssignmentRecord:
        record = AssignmentRecord(
            record_id=generate_assignment_record_id(),
            ticket_id=ticket_id,
            step_id=step_id,
            assignee_ids=list(assignee_ids),
            assigned_by_id=assigned_by_id,
            comment=comment,
            created_at=utc_now()
        )
        return self.store.append(record)

    def history(self, ticket_id: int) -> List[AssignmentRecord]:
        return self.store.list_for_ticket(ticket_id)
