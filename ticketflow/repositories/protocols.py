"""Collaborator protocols - storage and lookup seams used by the engine"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from ..domain.models import (
    AssignmentRecord, CachedPermission, NotificationEvent, ParallelInstance,
    Permission, Ticket, UserProfile, WorkflowDefinition,
)


class WorkflowStore(Protocol):
    """Read access to validated workflow definitions."""

    def get_definition(self, flow_id: int) -> Optional[WorkflowDefinition]:
        """Definition of an active flow, or None."""

    def get_definition_for_subcategory(self, subcategory_id: int) -> Optional[WorkflowDefinition]:
        """Definition of the active flow attached to a subcategory, or None."""

    def save_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """Validate and persist a definition."""

    def list_flow_ids(self) -> List[int]:
        """Ids of every stored flow."""


class TicketStore(Protocol):
    """Workflow state of tickets."""

    def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        """Ticket by id, or None."""

    def update_workflow_state(
        self, ticket_id: int, updates: Dict[str, Any], expected_version: int
    ) -> Ticket:
        """Apply updates and bump the version.

        Raises ConcurrentAdvancementConflictError when the version moved.
        """


class ParallelInstanceStore(Protocol):
    """Parallel instances plus the outstanding counter per (ticket, step)."""

    def replace_instances(self, ticket_id: int, step_id: int, instances: List[ParallelInstance]) -> None:
        """Drop existing instances and counter, insert these, counter = len."""

    def mark_instance_complete(
        self, ticket_id: int, step_id: int, user_id: int, completed_at: datetime
    ) -> Optional[bool]:
        """True if flipped now, False if already complete, None if unknown."""

    def decrement_outstanding(self, ticket_id: int, step_id: int) -> int:
        """Atomically decrement the counter and return the remaining count (-1 if no counter)."""

    def count_outstanding(self, ticket_id: int, step_id: int) -> int:
        """Remaining count without side effects."""

    def list_instances(self, ticket_id: int, step_id: int) -> List[ParallelInstance]:
        """Instances ordered by creation."""

    def delete_instances(self, ticket_id: int, step_id: int) -> int:
        """Delete instances and counter, returning how many were removed."""


class PermissionStore(Protocol):
    """Permission catalogue and role grants."""

    def load_role_permissions(self, role_id: int) -> List[CachedPermission]:
        """Active (action, subject) pairs granted to a role."""

    def load_all_role_permissions(self) -> Dict[int, List[CachedPermission]]:
        """Active grants of every role linked to any permission; fully revoked roles map to []."""

    def list_permissions(self) -> List[Permission]:
        """Active permission catalogue."""

    def get_permission(self, permission_id: int) -> Optional[Permission]:
        """Permission by id, or None."""

    def list_role_permission_ids(self, role_id: int) -> List[int]:
        """Permission ids actively granted to a role."""

    def set_role_permission(self, role_id: int, permission_id: int, active: bool) -> None:
        """Create or (de)activate a role grant."""


class UserDirectory(Protocol):
    """External user directory."""

    def get_user(self, user_id: int) -> Optional[UserProfile]:
        """User by id, or None."""

    def get_users(self, user_ids: List[int]) -> List[UserProfile]:
        """Users found among the given ids."""

    def find_users_by_role(self, role_id: int) -> List[UserProfile]:
        """Active users holding a role, ordered by id."""


class OrgChart(Protocol):
    """Position hierarchy."""

    def superior_of(self, position_id: int) -> Optional[int]:
        """Position directly above, or None."""

    def holders_of(self, position_id: int) -> List[UserProfile]:
        """Active users occupying a position, ordered by id."""


class FieldValueLookup(Protocol):
    """Dynamic form values captured on tickets."""

    def get_field_value(self, ticket_id: int, field_id: int) -> Optional[str]:
        """Raw value of a field on a ticket, or None."""


class HistoryStore(Protocol):
    """Append-only assignment history."""

    def append(self, record: AssignmentRecord) -> AssignmentRecord:
        """Persist a record."""

    def list_for_ticket(self, ticket_id: int) -> List[AssignmentRecord]:
        """Records of a ticket, oldest first."""


class NotificationOutbox(Protocol):
    """Pending notification events."""

    def enqueue(self, event: NotificationEvent) -> NotificationEvent:
        """Persist an event with PENDING status."""

    def list_pending(self, limit: int = 100) -> List[NotificationEvent]:
        """Oldest pending events."""
