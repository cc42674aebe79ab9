"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class TicketStatus(str, Enum):
    """Global ticket status"""
    OPEN = "OPEN"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


class AssignmentStrategy(str, Enum):
    """How the assignees of a step are resolved (exactly one per step)"""
    ROLE_BASED = "ROLE_BASED"              # Users holding the step's role within scope
    EXPLICIT = "EXPLICIT"                  # Users listed on the step
    BOSS_REFERENCE = "BOSS_REFERENCE"      # User id stored in a dynamic ticket field
    HIERARCHICAL = "HIERARCHICAL"          # Requester's immediate boss in the org chart
    CREATOR_AUTO = "CREATOR_AUTO"          # The ticket creator
    MANUAL_SELECTION = "MANUAL_SELECTION"  # Picked by a person in the UI


class SlaStatus(str, Enum):
    """SLA status of the current step"""
    ON_TIME = "ON_TIME"
    OVERDUE = "OVERDUE"


class NotificationEventType(str, Enum):
    """Events written to the notification outbox"""
    STEP_ASSIGNED = "STEP_ASSIGNED"
    TICKET_CLOSED = "TICKET_CLOSED"
    PARALLEL_TASK_COMPLETED = "PARALLEL_TASK_COMPLETED"


class NotificationStatus(str, Enum):
    """Outbox delivery status (delivery itself is external)"""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class PermissionAction(str, Enum):
    """Standard permission actions; MANAGE implies every action"""
    MANAGE = "manage"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


# Subject that matches every resource in a permission grant
ALL_SUBJECTS = "all"
