"""Ticket Repository - Workflow state of tickets"""
from typing import Any, Dict, Optional
from pymongo.collection import Collection
from pymongo import ReturnDocument

from .mongo_client import get_collection
from .legacy_adapter import LEGACY_ASSIGNEES_FIELD, assignees_from_document
from ..domain.models import Ticket
from ..domain.errors import ConcurrentAdvancementConflictError, TicketNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def ticket_from_document(doc: Dict[str, Any]) -> Ticket:
    """Build a Ticket from a stored document, reading legacy assignee columns"""
    doc = dict(doc)
    doc.pop("_id", None)
    doc["assignee_ids"] = assignees_from_document(doc)
    doc.pop(LEGACY_ASSIGNEES_FIELD, None)
    return Ticket.model_validate(doc)


def ticket_to_document(ticket: Ticket) -> Dict[str, Any]:
    doc = ticket.model_dump()
    doc["_id"] = ticket.id
    doc["status"] = ticket.status.value
    return doc


class TicketRepository:
    """Repository for ticket workflow state"""

    def __init__(self):
        self._tickets: Collection = get_collection("tickets")

    def create_ticket(self, ticket: Ticket) -> Ticket:
        self._tickets.insert_one(ticket_to_document(ticket))
        logger.info(f"Created ticket: {ticket.id}", extra={"ticket_id": ticket.id})
        return ticket

    def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        doc = self._tickets.find_one({"id": ticket_id})
        if doc is None:
            return None
        return ticket_from_document(doc)

    def update_workflow_state(
        self,
        ticket_id: int,
        updates: Dict[str, Any],
        expected_version: int
    ) -> Ticket:
        """Update ticket with optimistic concurrency"""
        updates = dict(updates)
        if "status" in updates and hasattr(updates["status"], "value"):
            updates["status"] = updates["status"].value
        if "route_position" in updates and hasattr(updates["route_position"], "model_dump"):
            updates["route_position"] = updates["route_position"].model_dump()
        updates["version"] = expected_version + 1

        result = self._tickets.find_one_and_update(
            {"id": ticket_id, "version": expected_version},
            {"$set": updates, "$unset": {LEGACY_ASSIGNEES_FIELD: ""}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if self._tickets.find_one({"id": ticket_id}, {"_id": 1}):
                raise ConcurrentAdvancementConflictError(
                    f"Ticket {ticket_id} was modified. Please refresh and try again.",
                    details={"ticket_id": ticket_id, "expected_version": expected_version}
                )
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticket_id": ticket_id})

        logger.info(f"Updated ticket workflow state: {ticket_id}", extra={"ticket_id": ticket_id})
        return ticket_from_document(result)
