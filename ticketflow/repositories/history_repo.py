"""History Repository - Append-only assignment history"""
from typing import List
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import AssignmentRecord
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AssignmentHistoryRepository:
    """Repository for assignment history (insert-only)"""

    def __init__(self):
        self._history: Collection = get_collection("assignment_history")

    def append(self, record: AssignmentRecord) -> AssignmentRecord:
        doc = record.model_dump()
        doc["_id"] = record.record_id
        self._history.insert_one(doc)
        logger.debug(
            f"Recorded assignment: {record.record_id}",
            extra={"ticket_id": record.ticket_id, "step_id": record.step_id}
        )
        return record

    def list_for_ticket(self, ticket_id: int) -> List[AssignmentRecord]:
        cursor = self._history.find({"ticket_id": ticket_id}).sort("created_at", ASCENDING)
        return [AssignmentRecord.model_validate(doc) for doc in cursor]
