"""Service modules - Business logic layer

TicketWorkflowService lives in .ticket_workflow_service and is imported from
there; it builds the orchestrator, which itself uses NotificationService.
"""
from .notification_service import NotificationService
from .permission_service import PermissionService

__all__ = [
    "NotificationService",
    "PermissionService",
]
