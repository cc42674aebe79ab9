"""Pytest configuration and fixtures for ticketflow.

Every fixture runs on the in-memory stores from ticketflow.repositories.memory,
so no test needs MongoDB.

Reference workflow (flow 1, subcategory 77):

    S1 creator    --APPROVE--> S2 role 7 (8h SLA)
                  --REJECT-->  S3 creator, terminal, closes
    S2            ---------->  S4 manual selection
    S4            --SUBMIT-->  route 90: [S5 parallel, explicit 20/21] -> [S6 boss]
    S6            --CLOSE-->   ticket closed
                  --RETURN-->  S1
"""

from typing import List

import pytest

from ticketflow.domain.models import (
    Flow, Permission, Route, RolePermission, RouteStep, Step, Ticket, Transition,
    UserProfile, WorkflowDefinition,
)
from ticketflow.engine.business_calendar import BusinessCalendar
from ticketflow.engine.history_writer import AssignmentHistoryWriter
from ticketflow.engine.orchestrator import StepAdvancementOrchestrator
from ticketflow.engine.permission_cache import PermissionCache
from ticketflow.repositories.memory import (
    InMemoryDirectory, InMemoryHistoryRepository, InMemoryNotificationOutbox,
    InMemoryParallelInstanceRepository, InMemoryPermissionRepository,
    InMemoryTicketRepository, InMemoryWorkflowRepository,
)
from ticketflow.services.notification_service import NotificationService

FLOW_ID = 1
SUBCATEGORY_ID = 77
ROUTE_ID = 90
TICKET_ID = 500
CREATOR_ID = 10


def make_step(step_id: int, order: int, **fields) -> Step:
    """Step of the reference flow with the given flags."""
    return Step(id=step_id, flow_id=FLOW_ID, order=order, name=f"Step {step_id}", **fields)


def make_transition(transition_id: int, origin: int, **fields) -> Transition:
    return Transition(id=transition_id, origin_step_id=origin, **fields)


def build_definition() -> WorkflowDefinition:
    steps = [
        make_step(1, 1, assign_to_creator=True),
        make_step(2, 2, assigned_role_id=7, sla_hours=8),
        make_step(3, 3, assign_to_creator=True, allows_closing=True),
        make_step(4, 4, requires_manual_selection=True),
        make_step(5, 5, explicit_user_ids=[20, 21], is_parallel=True),
        make_step(6, 6, requires_boss_approval=True, allows_closing=True),
    ]
    transitions = [
        make_transition(101, 1, destination_step_id=2, decision_key="APPROVE", label="Approve"),
        make_transition(102, 1, destination_step_id=3, decision_key="REJECT", label="Reject"),
        make_transition(103, 2, destination_step_id=4),
        make_transition(104, 4, destination_route_id=ROUTE_ID, decision_key="SUBMIT"),
        make_transition(105, 6, decision_key="CLOSE", label="Close", closes_ticket=True),
        make_transition(106, 6, destination_step_id=1, decision_key="RETURN", label="Return"),
    ]
    routes = [
        Route(
            id=ROUTE_ID,
            flow_id=FLOW_ID,
            name="Review",
            steps=[
                RouteStep(route_id=ROUTE_ID, step_id=6, order=2),
                RouteStep(route_id=ROUTE_ID, step_id=5, order=1),
            ]
        )
    ]
    return WorkflowDefinition(
        flow=Flow(id=FLOW_ID, name="Access request", subcategory_id=SUBCATEGORY_ID),
        steps=steps,
        transitions=transitions,
        routes=routes
    )


def build_users() -> List[UserProfile]:
    return [
        UserProfile(id=CREATOR_ID, role_id=1, region_id=3, position_id=100),
        # Holders of the creator's superior position (200)
        UserProfile(id=11, role_id=2, region_id=3, position_id=200),
        UserProfile(id=12, role_id=2, region_id=5, position_id=200),
        # Role 7
        UserProfile(id=30, role_id=7, region_id=3),
        UserProfile(id=31, role_id=7, region_id=5),
        UserProfile(id=32, role_id=7, region_id=9, is_national=True),
        UserProfile(id=33, role_id=7, region_id=3, active=False),
        # Explicit and manual picks
        UserProfile(id=20, role_id=3, region_id=3),
        UserProfile(id=21, role_id=3, region_id=5),
        UserProfile(id=40, role_id=4, region_id=3),
        UserProfile(id=41, role_id=4, region_id=3, active=False),
    ]


@pytest.fixture
def definition() -> WorkflowDefinition:
    return build_definition()


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory(users=build_users(), superiors={100: 200})


@pytest.fixture
def calendar() -> BusinessCalendar:
    """Calendar without holidays so deadlines only skip weekends."""
    return BusinessCalendar()


@pytest.fixture
def workflows(definition) -> InMemoryWorkflowRepository:
    repo = InMemoryWorkflowRepository()
    repo.save_definition(definition)
    return repo


@pytest.fixture
def tickets() -> InMemoryTicketRepository:
    repo = InMemoryTicketRepository()
    repo.create_ticket(Ticket(id=TICKET_ID, creator_id=CREATOR_ID, subcategory_id=SUBCATEGORY_ID))
    return repo


@pytest.fixture
def parallel_store() -> InMemoryParallelInstanceRepository:
    return InMemoryParallelInstanceRepository()


@pytest.fixture
def history_store() -> InMemoryHistoryRepository:
    return InMemoryHistoryRepository()


@pytest.fixture
def outbox() -> InMemoryNotificationOutbox:
    return InMemoryNotificationOutbox()


@pytest.fixture
def orchestrator(
    workflows, tickets, parallel_store, directory, history_store, outbox, calendar
) -> StepAdvancementOrchestrator:
    return StepAdvancementOrchestrator(
        workflows=workflows,
        tickets=tickets,
        parallel_store=parallel_store,
        directory=directory,
        org_chart=directory,
        field_values=directory,
        history=AssignmentHistoryWriter(history_store),
        notifications=NotificationService(outbox),
        calendar=calendar
    )


# Permissions: role 1 reads tickets, role 2 updates tickets, role 9 manages all
PERMISSIONS = [
    Permission(id=1, action="read", subject="Ticket"),
    Permission(id=2, action="update", subject="Ticket"),
    Permission(id=3, action="create", subject="Ticket"),
    Permission(id=4, action="manage", subject="all"),
    Permission(id=5, action="read", subject="Permission"),
]

ROLE_LINKS = [
    RolePermission(role_id=1, permission_id=1),
    RolePermission(role_id=1, permission_id=3),
    RolePermission(role_id=2, permission_id=1),
    RolePermission(role_id=2, permission_id=2),
    RolePermission(role_id=9, permission_id=4),
]


@pytest.fixture
def permission_store() -> InMemoryPermissionRepository:
    return InMemoryPermissionRepository(permissions=list(PERMISSIONS), links=list(ROLE_LINKS))


@pytest.fixture
def permission_cache(permission_store) -> PermissionCache:
    return PermissionCache(permission_store)
