"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection, create_indexes, close_connection
from .workflow_repo import WorkflowRepository
from .ticket_repo import TicketRepository
from .parallel_repo import ParallelInstanceRepository
from .permission_repo import PermissionRepository
from .directory_repo import UserDirectoryRepository, OrgChartRepository, FieldValueRepository
from .history_repo import AssignmentHistoryRepository
from .notification_repo import NotificationRepository

__all__ = [
    "get_database",
    "get_collection",
    "create_indexes",
    "close_connection",
    "WorkflowRepository",
    "TicketRepository",
    "ParallelInstanceRepository",
    "PermissionRepository",
    "UserDirectoryRepository",
    "OrgChartRepository",
    "FieldValueRepository",
    "AssignmentHistoryRepository",
    "NotificationRepository",
]
