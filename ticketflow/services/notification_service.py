"""Notification Service - Enqueue workflow events into the outbox

Delivery (email, in-app) is done by an external worker reading the outbox.
Enqueue failures never undo the workflow change that produced them.
"""
from typing import Any, Dict, List, Optional

from ..domain.models import NotificationEvent, Step, Ticket
from ..domain.enums import NotificationEventType
from ..repositories.protocols import NotificationOutbox
from ..repositories.notification_repo import NotificationRepository
from ..utils.idgen import generate_notification_id
from ..utils.time import utc_now, format_iso
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _with_observer(recipient_ids: List[int], observer_id: Optional[int]) -> List[int]:
    """Recipients plus the flow observer, who is never listed twice"""
    if observer_id is None or observer_id in recipient_ids:
        return list(recipient_ids)
    return list(recipient_ids) + [observer_id]


class NotificationService:
    """Service for enqueueing notifications"""

    def __init__(self, outbox: Optional[NotificationOutbox] = None):
        self.outbox = outbox or NotificationRepository()

    def notify_step_assigned(
        self,
        ticket: Ticket,
        step: Step,
        assignee_ids: List[int],
        observer_id: Optional[int] = None
    ) -> Optional[NotificationEvent]:
        """Tell the assignees (and the flow observer) a ticket is waiting for them"""
        return self._enqueue(
            NotificationEventType.STEP_ASSIGNED,
            ticket,
            step_id=step.id,
            recipient_ids=_with_observer(assignee_ids, observer_id),
            payload={
                "step_name": step.name,
                "step_due_at": format_iso(ticket.step_due_at) if ticket.step_due_at else None,
                "is_parallel": step.is_parallel,
            }
        )

    def notify_ticket_closed(
        self,
        ticket: Ticket,
        closed_by_id: int,
        observer_id: Optional[int] = None
    ) -> Optional[NotificationEvent]:
        """Tell the creator the ticket was closed"""
        return self._enqueue(
            NotificationEventType.TICKET_CLOSED,
            ticket,
            step_id=ticket.current_step_id,
            recipient_ids=_with_observer([ticket.creator_id], observer_id),
            payload={"closed_by_id": closed_by_id}
        )

    def notify_parallel_task_completed(
        self,
        ticket: Ticket,
        step_id: int,
        user_id: int,
        outstanding: int,
        observer_id: Optional[int] = None
    ) -> Optional[NotificationEvent]:
        """Tell the assigner one share of a parallel step is done"""
        recipients = [ticket.assigned_by_id] if ticket.assigned_by_id is not None else []
        return self._enqueue(
            NotificationEventType.PARALLEL_TASK_COMPLETED,
            ticket,
            step_id=step_id,
            recipient_ids=_with_observer(recipients, observer_id),
            payload={"completed_by_id": user_id, "outstanding": outstanding}
        )

    def _enqueue(
        self,
        event_type: NotificationEventType,
        ticket: Ticket,
        step_id: Optional[int],
        recipient_ids: List[int],
        payload: Dict[str, Any]
    ) -> Optional[NotificationEvent]:
        event = NotificationEvent(
            notification_id=generate_notification_id(),
            event_type=event_type,
            ticket_id=ticket.id,
            step_id=step_id,
            recipient_ids=list(recipient_ids),
            payload=payload,
            created_at=utc_now()
        )
        try:
            return self.outbox.enqueue(event)
        except Exception as e:
            logger.error(
                f"Failed to enqueue {event_type.value} notification: {e}",
                extra={"ticket_id": ticket.id, "step_id": step_id},
                exc_info=True
            )
            return None
