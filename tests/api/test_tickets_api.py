"""HTTP tests for the ticket workflow and permission routes.

The application is built with create_app() and used without entering its
lifespan, so no database is touched: the permission cache and services are
wired to the in-memory stores from conftest.
"""

import jwt
import pytest
from fastapi.testclient import TestClient

from ticketflow.api.deps import get_permission_service, get_ticket_workflow_service
from ticketflow.config.settings import settings
from ticketflow.main import create_app
from ticketflow.services.permission_service import PermissionService
from ticketflow.services.ticket_workflow_service import TicketWorkflowService
from tests.conftest import CREATOR_ID, TICKET_ID

ADMIN_ROLE = 9
READER_ROLE = 1
UPDATER_ROLE = 2


def _auth(user_id: int, role_id: int) -> dict:
    token = jwt.encode(
        {"usu_id": user_id, "rol_id": role_id, "reg_id": 3},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )
    return {"Authorization": f"Bearer {token}"}


ADMIN = _auth(1, ADMIN_ROLE)
CREATOR = _auth(CREATOR_ID, UPDATER_ROLE)


@pytest.fixture
def client(orchestrator, permission_cache, permission_store) -> TestClient:
    app = create_app()
    app.state.permission_cache = permission_cache
    app.dependency_overrides[get_ticket_workflow_service] = lambda: TicketWorkflowService(orchestrator)
    app.dependency_overrides[get_permission_service] = lambda: PermissionService(
        permission_cache, permission_store
    )
    return TestClient(app)


@pytest.fixture
def started(client) -> TestClient:
    response = client.post(f"/api/v1/tickets/{TICKET_ID}/start", json={}, headers=ADMIN)
    assert response.status_code == 200
    return client


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get(f"/api/v1/tickets/{TICKET_ID}/decisions")

        assert response.status_code == 401
        assert response.json() == {
            "error": {
                "code": "AUTHENTICATION_ERROR",
                "message": "Authorization header is missing",
                "details": {},
                "retryable": False
            }
        }

    def test_correlation_id_is_echoed(self, client):
        response = client.get(
            f"/api/v1/tickets/{TICKET_ID}/decisions", headers={"X-Correlation-Id": "req-123"}
        )
        assert response.headers["X-Correlation-Id"] == "req-123"

    def test_role_without_permission(self, client):
        response = client.post(
            f"/api/v1/tickets/{TICKET_ID}/start", json={}, headers=_auth(CREATOR_ID, UPDATER_ROLE)
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"


class TestTicketRoutes:
    def test_start(self, client):
        response = client.post(
            f"/api/v1/tickets/{TICKET_ID}/start", json={"comment": "go"}, headers=_auth(CREATOR_ID, READER_ROLE)
        )

        body = response.json()
        assert response.status_code == 200
        assert body["step_id"] == 1
        assert body["assignee_ids"] == [CREATOR_ID]
        assert body["strategy"] == "CREATOR_AUTO"
        assert body["ticket"]["version"] == 1

    def test_decisions(self, started):
        response = started.get(f"/api/v1/tickets/{TICKET_ID}/decisions", headers=CREATOR)

        body = response.json()
        assert body["step_id"] == 1
        assert [t["decision_key"] for t in body["transitions"]] == ["APPROVE", "REJECT"]
        assert body["sla_status"] == "ON_TIME"

    def test_assignee_advances(self, started):
        response = started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance", json={"decision_key": "APPROVE"}, headers=CREATOR
        )

        assert response.status_code == 200
        assert response.json()["assignee_ids"] == [30, 32]

    def test_non_assignee_is_rejected(self, started):
        response = started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance",
            json={"decision_key": "APPROVE"},
            headers=_auth(30, UPDATER_ROLE)
        )
        assert response.status_code == 403

    def test_manager_may_advance_any_ticket(self, started):
        response = started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance", json={"decision_key": "APPROVE"}, headers=ADMIN
        )
        assert response.status_code == 200

    def test_unknown_decision(self, started):
        response = started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance", json={"decision_key": "MAYBE"}, headers=CREATOR
        )

        error = response.json()["error"]
        assert response.status_code == 400
        assert error["code"] == "UNKNOWN_DECISION"
        assert error["details"]["available"] == ["APPROVE", "REJECT"]

    def test_manual_selection_round_trip(self, started):
        started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance", json={"decision_key": "APPROVE"}, headers=CREATOR
        )
        approver = _auth(30, UPDATER_ROLE)

        first = started.post(f"/api/v1/tickets/{TICKET_ID}/advance", json={}, headers=approver)
        second = started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance",
            json={"selected_assignee_ids": [40]},
            headers=approver
        )

        assert first.status_code == 409
        assert first.json()["error"]["code"] == "MANUAL_SELECTION_REQUIRED"
        assert second.status_code == 200
        assert second.json()["step_id"] == 4

    def test_invalid_body(self, started):
        response = started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance", json={"decision_key": "X" * 51}, headers=CREATOR
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_assignment_history(self, started):
        response = started.get(f"/api/v1/tickets/{TICKET_ID}/assignments", headers=CREATOR)

        items = response.json()["items"]
        assert [(i["step_id"], i["assignee_ids"]) for i in items] == [(1, [CREATOR_ID])]

    def test_parallel_completion_with_unknown_decision(self, started):
        started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance", json={"decision_key": "APPROVE"}, headers=CREATOR
        )
        started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance",
            json={"selected_assignee_ids": [40]},
            headers=_auth(30, UPDATER_ROLE)
        )
        started.post(
            f"/api/v1/tickets/{TICKET_ID}/advance",
            json={"decision_key": "SUBMIT"},
            headers=_auth(40, UPDATER_ROLE)
        )
        started.post(
            f"/api/v1/tickets/{TICKET_ID}/parallel/complete", json={}, headers=_auth(20, UPDATER_ROLE)
        )
        last = _auth(21, UPDATER_ROLE)

        rejected = started.post(
            f"/api/v1/tickets/{TICKET_ID}/parallel/complete", json={"decision_key": "DONE"}, headers=last
        )
        accepted = started.post(f"/api/v1/tickets/{TICKET_ID}/parallel/complete", json={}, headers=last)

        assert rejected.status_code == 400
        assert rejected.json()["error"]["code"] == "UNKNOWN_DECISION"
        assert accepted.status_code == 200
        assert accepted.json()["completion"]["all_complete"]
        assert accepted.json()["advancement"]["step_id"] == 6


class TestPermissionRoutes:
    def test_role_permissions(self, client):
        response = client.get(f"/api/v1/permissions/roles/{UPDATER_ROLE}", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["permissions"] == [
            {"action": "read", "subject": "Ticket"},
            {"action": "update", "subject": "Ticket"},
        ]

    def test_sync_invalidates_cached_role(self, client, permission_cache):
        client.get(f"/api/v1/permissions/roles/{READER_ROLE}", headers=ADMIN)
        assert permission_cache.is_cached(READER_ROLE)

        response = client.put(
            f"/api/v1/permissions/roles/{READER_ROLE}", json={"permission_ids": [1]}, headers=ADMIN
        )

        assert response.status_code == 200
        assert response.json() == {"role_id": READER_ROLE, "permission_ids": [1]}
        assert not permission_cache.is_cached(READER_ROLE)

    def test_unknown_permission(self, client):
        response = client.post(f"/api/v1/permissions/roles/{READER_ROLE}/404", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PERMISSION_NOT_FOUND"

    def test_refresh_requires_manage(self, client):
        response = client.post("/api/v1/permissions/cache/refresh", headers=CREATOR)
        assert response.status_code == 403

    def test_refresh_and_status(self, client):
        refreshed = client.post("/api/v1/permissions/cache/refresh", headers=ADMIN)
        status = client.get("/api/v1/permissions/cache/status", headers=ADMIN)

        assert refreshed.status_code == 200
        assert status.json()["role_count"] == 3
        assert status.json()["last_refresh"] is not None
