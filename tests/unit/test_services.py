"""Tests for PermissionService, TicketWorkflowService and NotificationService."""

import pytest

from ticketflow.domain.enums import NotificationEventType, NotificationStatus
from ticketflow.domain.errors import PermissionDeniedError, PermissionNotFoundError
from ticketflow.domain.models import ActorContext, CachedPermission
from ticketflow.services.notification_service import NotificationService
from ticketflow.services.permission_service import PermissionService
from ticketflow.services.ticket_workflow_service import TicketWorkflowService
from tests.conftest import CREATOR_ID, TICKET_ID, make_step

UPDATE_TICKET = CachedPermission(action="update", subject="Ticket")


@pytest.fixture
def permission_service(permission_cache, permission_store) -> PermissionService:
    return PermissionService(permission_cache, permission_store)


@pytest.fixture
def workflow_service(orchestrator) -> TicketWorkflowService:
    return TicketWorkflowService(orchestrator)


class TestPermissionService:
    def test_add_permission_invalidates_role(self, permission_service, permission_cache):
        assert UPDATE_TICKET not in permission_service.permissions_for_role(1)

        permission_service.add_permission_to_role(1, 2)

        assert not permission_cache.is_cached(1)
        assert UPDATE_TICKET in permission_service.permissions_for_role(1)

    def test_remove_permission_invalidates_role(self, permission_service):
        permission_service.permissions_for_role(2)
        permission_service.remove_permission_from_role(2, 2)

        assert UPDATE_TICKET not in permission_service.permissions_for_role(2)

    def test_sync_replaces_grants(self, permission_service, permission_store):
        granted = permission_service.sync_role_permissions(1, [5, 2, 5])

        assert granted == [2, 5]
        assert permission_store.list_role_permission_ids(1) == [2, 5]
        assert {p.subject for p in permission_service.permissions_for_role(1)} == {"Ticket", "Permission"}

    def test_unknown_permission_leaves_cache_alone(self, permission_service, permission_cache):
        permission_service.permissions_for_role(1)

        with pytest.raises(PermissionNotFoundError):
            permission_service.add_permission_to_role(1, 404)
        assert permission_cache.is_cached(1)

    def test_refresh_cache_reports_status(self, permission_service):
        status = permission_service.refresh_cache()
        assert status.role_count == 3
        assert status.last_refresh is not None

    def test_list_permissions_sorted(self, permission_service):
        permissions = permission_service.list_permissions()
        assert [(p.subject, p.action) for p in permissions][0] == ("Permission", "read")


class TestTicketWorkflowService:
    def test_only_assignees_can_advance(self, workflow_service):
        workflow_service.start(TICKET_ID, ActorContext(user_id=CREATOR_ID))

        with pytest.raises(PermissionDeniedError):
            workflow_service.advance(TICKET_ID, ActorContext(user_id=99), decision_key="APPROVE")

    def test_override_allows_non_assignee(self, workflow_service):
        workflow_service.start(TICKET_ID, ActorContext(user_id=CREATOR_ID))

        result = workflow_service.advance(
            TICKET_ID, ActorContext(user_id=99), decision_key="APPROVE", can_override=True
        )
        assert result.step.id == 2

    def test_assignment_history(self, workflow_service):
        workflow_service.start(TICKET_ID, ActorContext(user_id=CREATOR_ID))
        workflow_service.advance(TICKET_ID, ActorContext(user_id=CREATOR_ID), decision_key="APPROVE")

        history = workflow_service.assignment_history(TICKET_ID)
        assert [(r.step_id, r.assignee_ids) for r in history] == [(1, [CREATOR_ID]), (2, [30, 32])]


class TestNotificationService:
    def test_step_assigned_event(self, outbox, tickets):
        service = NotificationService(outbox)
        ticket = tickets.get_ticket(TICKET_ID)

        event = service.notify_step_assigned(ticket, make_step(2, 2, assigned_role_id=7), [30, 32])

        assert event.event_type == NotificationEventType.STEP_ASSIGNED
        assert event.status == NotificationStatus.PENDING
        assert event.recipient_ids == [30, 32]
        assert outbox.list_pending() == [event]

    def test_closed_event_goes_to_creator(self, outbox, tickets):
        event = NotificationService(outbox).notify_ticket_closed(tickets.get_ticket(TICKET_ID), 11)

        assert event.recipient_ids == [CREATOR_ID]
        assert event.payload == {"closed_by_id": 11}

    def test_observer_is_added_once(self, outbox, tickets):
        service = NotificationService(outbox)
        ticket = tickets.get_ticket(TICKET_ID)
        step = make_step(2, 2, assigned_role_id=7)

        copied = service.notify_step_assigned(ticket, step, [30, 32], observer_id=99)
        already_assigned = service.notify_step_assigned(ticket, step, [30, 32], observer_id=30)
        closed = service.notify_ticket_closed(ticket, 11, observer_id=99)

        assert copied.recipient_ids == [30, 32, 99]
        assert already_assigned.recipient_ids == [30, 32]
        assert closed.recipient_ids == [CREATOR_ID, 99]
