"""In-memory implementations of the collaborator protocols.

Useful for tests or local runs without a database. Data is not persisted
across process restarts. Each store guards its state with a lock so the
atomic operations of the Mongo repositories keep their meaning.
"""
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..domain.models import (
    AssignmentRecord, CachedPermission, NotificationEvent, ParallelInstance,
    Permission, RolePermission, Ticket, UserProfile, WorkflowDefinition,
)
from ..domain.enums import NotificationStatus
from ..domain.errors import ConcurrentAdvancementConflictError, TicketNotFoundError
from ..engine.config_validator import WorkflowConfigValidator


class InMemoryWorkflowRepository:
    """Workflow definitions validated on save and load."""

    def __init__(self, validator: Optional[WorkflowConfigValidator] = None) -> None:
        self._definitions: Dict[int, WorkflowDefinition] = {}
        self.validator = validator or WorkflowConfigValidator()

    def save_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        self.validator.validate(definition)
        self._definitions[definition.flow.id] = definition.model_copy(deep=True)
        return definition

    def get_definition(self, flow_id: int) -> Optional[WorkflowDefinition]:
        definition = self._definitions.get(flow_id)
        if definition is None or not definition.flow.active:
            return None
        return self.validator.validate(definition)

    def get_definition_for_subcategory(self, subcategory_id: int) -> Optional[WorkflowDefinition]:
        for flow_id in sorted(self._definitions):
            definition = self._definitions[flow_id]
            if definition.flow.subcategory_id == subcategory_id and definition.flow.active:
                return self.validator.validate(definition)
        return None

    def list_flow_ids(self) -> List[int]:
        return sorted(self._definitions)


class InMemoryTicketRepository:
    """Tickets with version-checked updates."""

    def __init__(self) -> None:
        self._tickets: Dict[int, Ticket] = {}
        self._lock = threading.Lock()

    def create_ticket(self, ticket: Ticket) -> Ticket:
        with self._lock:
            self._tickets[ticket.id] = ticket
        return ticket

    def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        with self._lock:
            return self._tickets.get(ticket_id)

    def update_workflow_state(
        self, ticket_id: int, updates: Dict[str, Any], expected_version: int
    ) -> Ticket:
        with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticket_id": ticket_id})
            if current.version != expected_version:
                raise ConcurrentAdvancementConflictError(
                    f"Ticket {ticket_id} was modified. Please refresh and try again.",
                    details={"ticket_id": ticket_id, "expected_version": expected_version}
                )
            updated = current.model_copy(update={**updates, "version": expected_version + 1})
            self._tickets[ticket_id] = updated
            return updated


class InMemoryParallelInstanceRepository:
    """Parallel instances keyed by (ticket, step, user) plus counters."""

    def __init__(self) -> None:
        self._instances: Dict[Tuple[int, int], Dict[int, ParallelInstance]] = {}
        self._counters: Dict[Tuple[int, int], int] = {}
        self._lock = threading.Lock()

    def replace_instances(self, ticket_id: int, step_id: int, instances: List[ParallelInstance]) -> None:
        with self._lock:
            self._instances[(ticket_id, step_id)] = {i.user_id: i for i in instances}
            self._counters[(ticket_id, step_id)] = len(instances)

    def mark_instance_complete(
        self, ticket_id: int, step_id: int, user_id: int, completed_at: datetime
    ) -> Optional[bool]:
        with self._lock:
            instance = self._instances.get((ticket_id, step_id), {}).get(user_id)
            if instance is None:
                return None
            if instance.completed:
                return False
            self._instances[(ticket_id, step_id)][user_id] = instance.model_copy(
                update={"completed": True, "completed_at": completed_at}
            )
            return True

    def decrement_outstanding(self, ticket_id: int, step_id: int) -> int:
        with self._lock:
            key = (ticket_id, step_id)
            if key not in self._counters:
                return -1
            self._counters[key] -= 1
            return self._counters[key]

    def count_outstanding(self, ticket_id: int, step_id: int) -> int:
        with self._lock:
            return max(self._counters.get((ticket_id, step_id), 0), 0)

    def list_instances(self, ticket_id: int, step_id: int) -> List[ParallelInstance]:
        with self._lock:
            return list(self._instances.get((ticket_id, step_id), {}).values())

    def delete_instances(self, ticket_id: int, step_id: int) -> int:
        with self._lock:
            removed = self._instances.pop((ticket_id, step_id), {})
            self._counters.pop((ticket_id, step_id), None)
            return len(removed)


class InMemoryPermissionRepository:
    """Permission catalogue and role links; counts backing loads."""

    def __init__(
        self,
        permissions: Optional[List[Permission]] = None,
        links: Optional[List[RolePermission]] = None
    ) -> None:
        self._permissions: Dict[int, Permission] = {p.id: p for p in permissions or []}
        self._links: Dict[Tuple[int, int], RolePermission] = {
            (link.role_id, link.permission_id): link for link in links or []
        }
        self._lock = threading.Lock()
        self.role_loads = 0
        self.full_loads = 0

    def load_role_permissions(self, role_id: int) -> List[CachedPermission]:
        with self._lock:
            self.role_loads += 1
            return self._granted(role_id)

    def load_all_role_permissions(self) -> Dict[int, List[CachedPermission]]:
        with self._lock:
            self.full_loads += 1
            role_ids = sorted({role_id for role_id, _ in self._links})
            return {role_id: self._granted(role_id) for role_id in role_ids}

    def list_permissions(self) -> List[Permission]:
        with self._lock:
            return sorted(
                (p for p in self._permissions.values() if p.active),
                key=lambda p: (p.subject, p.action)
            )

    def get_permission(self, permission_id: int) -> Optional[Permission]:
        with self._lock:
            return self._permissions.get(permission_id)

    def list_role_permission_ids(self, role_id: int) -> List[int]:
        with self._lock:
            return sorted(
                pid for (rid, pid), link in self._links.items() if rid == role_id and link.active
            )

    def set_role_permission(self, role_id: int, permission_id: int, active: bool) -> None:
        with self._lock:
            self._links[(role_id, permission_id)] = RolePermission(
                role_id=role_id, permission_id=permission_id, active=active
            )

    def _granted(self, role_id: int) -> List[CachedPermission]:
        result = []
        for (rid, pid), link in sorted(self._links.items()):
            permission = self._permissions.get(pid)
            if rid == role_id and link.active and permission is not None and permission.active:
                result.append(CachedPermission(action=permission.action, subject=permission.subject))
        return result


class InMemoryDirectory:
    """User directory, org chart and ticket field values in one place."""

    def __init__(
        self,
        users: Optional[List[UserProfile]] = None,
        superiors: Optional[Dict[int, int]] = None,
        field_values: Optional[Dict[Tuple[int, int], str]] = None
    ) -> None:
        self._users: Dict[int, UserProfile] = {u.id: u for u in users or []}
        self._superiors: Dict[int, int] = dict(superiors or {})
        self._field_values: Dict[Tuple[int, int], str] = dict(field_values or {})

    def add_user(self, user: UserProfile) -> None:
        self._users[user.id] = user

    def set_field_value(self, ticket_id: int, field_id: int, value: Optional[str]) -> None:
        self._field_values[(ticket_id, field_id)] = value

    # UserDirectory
    def get_user(self, user_id: int) -> Optional[UserProfile]:
        return self._users.get(user_id)

    def get_users(self, user_ids: List[int]) -> List[UserProfile]:
        return [self._users[user_id] for user_id in user_ids if user_id in self._users]

    def find_users_by_role(self, role_id: int) -> List[UserProfile]:
        return sorted(
            (u for u in self._users.values() if u.role_id == role_id and u.active),
            key=lambda u: u.id
        )

    # OrgChart
    def superior_of(self, position_id: int) -> Optional[int]:
        return self._superiors.get(position_id)

    def holders_of(self, position_id: int) -> List[UserProfile]:
        return sorted(
            (u for u in self._users.values() if u.position_id == position_id and u.active),
            key=lambda u: u.id
        )

    # FieldValueLookup
    def get_field_value(self, ticket_id: int, field_id: int) -> Optional[str]:
        return self._field_values.get((ticket_id, field_id))


class InMemoryHistoryRepository:
    def __init__(self) -> None:
        self._records: List[AssignmentRecord] = []
        self._lock = threading.Lock()

    def append(self, record: AssignmentRecord) -> AssignmentRecord:
        with self._lock:
            self._records.append(record)
        return record

    def list_for_ticket(self, ticket_id: int) -> List[AssignmentRecord]:
        with self._lock:
            return [r for r in self._records if r.ticket_id == ticket_id]


class InMemoryNotificationOutbox:
    def __init__(self) -> None:
        self._events: List[NotificationEvent] = []
        self._lock = threading.Lock()

    def enqueue(self, event: NotificationEvent) -> NotificationEvent:
        with self._lock:
            self._events.append(event)
        return event

    def list_pending(self, limit: int = 100) -> List[NotificationEvent]:
        with self._lock:
            return [e for e in self._events if e.status == NotificationStatus.PENDING][:limit]
