"""Parallel Repository - Parallel step instances and outstanding counters"""
from datetime import datetime
from typing import List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import ParallelInstance
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ParallelInstanceRepository:
    """
    Repository for parallel step instances

    Completion relies on two single-document atomic updates: the instance
    flag flips only from False, and the counter is decremented with $inc.
    """

    def __init__(self):
        self._instances: Collection = get_collection("parallel_instances")
        self._counters: Collection = get_collection("parallel_counters")

    def replace_instances(self, ticket_id: int, step_id: int, instances: List[ParallelInstance]) -> None:
        key = {"ticket_id": ticket_id, "step_id": step_id}
        self._instances.delete_many(key)
        if instances:
            self._instances.insert_many([i.model_dump() for i in instances])
        self._counters.replace_one(
            key,
            {**key, "outstanding": len(instances)},
            upsert=True
        )

    def mark_instance_complete(
        self,
        ticket_id: int,
        step_id: int,
        user_id: int,
        completed_at: datetime
    ) -> Optional[bool]:
        key = {"ticket_id": ticket_id, "step_id": step_id, "user_id": user_id}
        flipped = self._instances.find_one_and_update(
            {**key, "completed": False},
            {"$set": {"completed": True, "completed_at": completed_at}}
        )
        if flipped is not None:
            return True
        if self._instances.find_one(key, {"_id": 1}) is not None:
            return False
        return None

    def decrement_outstanding(self, ticket_id: int, step_id: int) -> int:
        result = self._counters.find_one_and_update(
            {"ticket_id": ticket_id, "step_id": step_id},
            {"$inc": {"outstanding": -1}},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            logger.warning(
                "Parallel counter missing on completion",
                extra={"ticket_id": ticket_id, "step_id": step_id}
            )
            return -1
        return result["outstanding"]

    def count_outstanding(self, ticket_id: int, step_id: int) -> int:
        doc = self._counters.find_one({"ticket_id": ticket_id, "step_id": step_id})
        return max(doc["outstanding"], 0) if doc else 0

    def list_instances(self, ticket_id: int, step_id: int) -> List[ParallelInstance]:
        cursor = self._instances.find({"ticket_id": ticket_id, "step_id": step_id}).sort(
            "created_at", ASCENDING
        )
        return [ParallelInstance.model_validate(doc) for doc in cursor]

    def delete_instances(self, ticket_id: int, step_id: int) -> int:
        key = {"ticket_id": ticket_id, "step_id": step_id}
        result = self._instances.delete_many(key)
        self._counters.delete_one(key)
        return result.deleted_count
