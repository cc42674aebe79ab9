"""Notification Repository - Data access for the notification outbox"""
from typing import List
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import NotificationEvent
from ..domain.enums import NotificationStatus
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for notification outbox operations"""

    def __init__(self):
        self._outbox: Collection = get_collection("notification_outbox")

    def enqueue(self, event: NotificationEvent) -> NotificationEvent:
        """Create a notification in outbox"""
        doc = event.model_dump()
        doc["_id"] = event.notification_id
        doc["event_type"] = event.event_type.value
        doc["status"] = event.status.value

        self._outbox.insert_one(doc)
        logger.info(
            f"Created notification: {event.event_type.value}",
            extra={"ticket_id": event.ticket_id, "step_id": event.step_id}
        )
        return event

    def list_pending(self, limit: int = 100) -> List[NotificationEvent]:
        cursor = self._outbox.find({"status": NotificationStatus.PENDING.value}).sort(
            "created_at", ASCENDING
        ).limit(limit)
        return [NotificationEvent.model_validate(doc) for doc in cursor]
