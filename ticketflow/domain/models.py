"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from .enums import (
    TicketStatus, AssignmentStrategy, SlaStatus, NotificationEventType, NotificationStatus
)
from .errors import InvalidWorkflowConfigurationError


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from the bearer token"""
    model_config = ConfigDict(extra="forbid")

    user_id: int = Field(..., description="Authenticated user id")
    email: Optional[str] = Field(None, description="User email")
    role_id: Optional[int] = Field(None, description="Role used for permission checks")
    region_id: Optional[int] = Field(None, description="Regional scope")
    position_id: Optional[int] = Field(None, description="Org chart position")
    is_national: bool = Field(default=False, description="User operates nationwide")


class UserProfile(BaseModel):
    """Directory view of a user, as needed for assignment"""
    model_config = ConfigDict(extra="ignore")

    id: int
    role_id: Optional[int] = None
    region_id: Optional[int] = None
    position_id: Optional[int] = None
    is_national: bool = False
    active: bool = True


# ============================================================================
# Workflow Configuration
# ============================================================================

class Flow(BaseModel):
    """Workflow attached to a ticket subcategory"""
    model_config = ConfigDict(extra="forbid")

    id: int
    name: str
    subcategory_id: int = Field(..., description="Subcategory whose tickets follow this flow")
    observer_user_id: Optional[int] = Field(None, description="User copied on flow events")
    active: bool = True


class Step(BaseModel):
    """One stage of a workflow"""
    model_config = ConfigDict(extra="forbid")

    id: int
    flow_id: int
    order: int = Field(..., description="Position inside the flow")
    name: str
    description: Optional[str] = None
    sla_hours: int = Field(default=0, description="Business hours allowed for the step")

    assigned_role_id: Optional[int] = None
    requires_manual_selection: bool = False
    is_national_task: bool = False
    requires_approval: bool = False
    allows_closing: bool = False
    requires_boss_approval: bool = False
    is_parallel: bool = False
    requires_signature: bool = False
    assign_to_creator: bool = False
    boss_reference_field_id: Optional[int] = Field(
        None, description="Dynamic field holding the boss user id"
    )
    explicit_user_ids: List[int] = Field(default_factory=list, description="Users listed on the step")
    active: bool = True

    def configured_strategies(self) -> List[AssignmentStrategy]:
        """Every assignment strategy switched on by this step's flags"""
        flags = [
            (self.assigned_role_id is not None, AssignmentStrategy.ROLE_BASED),
            (bool(self.explicit_user_ids), AssignmentStrategy.EXPLICIT),
            (self.boss_reference_field_id is not None, AssignmentStrategy.BOSS_REFERENCE),
            (self.requires_boss_approval, AssignmentStrategy.HIERARCHICAL),
            (self.assign_to_creator, AssignmentStrategy.CREATOR_AUTO),
            (self.requires_manual_selection, AssignmentStrategy.MANUAL_SELECTION),
        ]
        return [strategy for enabled, strategy in flags if enabled]

    @property
    def assignment_strategy(self) -> AssignmentStrategy:
        """The single assignment strategy of the step"""
        strategies = self.configured_strategies()
        if len(strategies) != 1:
            raise InvalidWorkflowConfigurationError(
                f"Step {self.id} must configure exactly one assignment strategy",
                details={"step_id": self.id, "strategies": [s.value for s in strategies]}
            )
        return strategies[0]


class Transition(BaseModel):
    """Labeled edge from a step to a step, a route, or ticket closure"""
    model_config = ConfigDict(extra="forbid")

    id: int
    origin_step_id: int
    destination_step_id: Optional[int] = None
    destination_route_id: Optional[int] = None
    decision_key: Optional[str] = Field(None, description="Short code, e.g. APPROVED")
    label: str = ""
    closes_ticket: bool = False
    active: bool = True


class RouteStep(BaseModel):
    """Membership of a step in a route"""
    model_config = ConfigDict(extra="forbid")

    route_id: int
    step_id: int
    order: int


class Route(BaseModel):
    """Named ordered sub-sequence of steps"""
    model_config = ConfigDict(extra="forbid")

    id: int
    flow_id: int
    name: str
    steps: List[RouteStep] = Field(default_factory=list)

    def ordered_steps(self) -> List[RouteStep]:
        return sorted(self.steps, key=lambda rs: rs.order)


class WorkflowDefinition(BaseModel):
    """Complete, read-only configuration of one flow"""
    model_config = ConfigDict(extra="forbid")

    flow: Flow
    steps: List[Step] = Field(default_factory=list)
    transitions: List[Transition] = Field(default_factory=list)
    routes: List[Route] = Field(default_factory=list)


class RoutePosition(BaseModel):
    """Where a ticket stands inside a route"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    route_id: int
    order: int = Field(..., ge=1, description="1-based position among the route's steps sorted by order")


# ============================================================================
# Navigation & Assignment Results
# ============================================================================

class TransitionOption(BaseModel):
    """Decision offered to the user on the current step"""
    decision_key: Optional[str] = None
    label: str = ""
    closes_ticket: bool = False


class NavigationResult(BaseModel):
    """Outcome of WorkflowNavigator.next_step"""
    step: Optional[Step] = Field(None, description="Next step, None when the ticket closes")
    closes_ticket: bool = False
    transition: Optional[Transition] = Field(None, description="Transition taken, None for route sequencing")
    route_position: Optional[RoutePosition] = None


class AssignmentResult(BaseModel):
    """Outcome of AssignmentResolver.resolve_assignees"""
    strategy: AssignmentStrategy
    user_ids: List[int] = Field(default_factory=list, description="Ordered, without duplicates")

    @property
    def requires_manual_selection(self) -> bool:
        return self.strategy == AssignmentStrategy.MANUAL_SELECTION and not self.user_ids


# ============================================================================
# Ticket
# ============================================================================

class Ticket(BaseModel):
    """Workflow-relevant view of a ticket"""
    model_config = ConfigDict(extra="ignore")

    id: int
    creator_id: int
    subcategory_id: int
    flow_id: Optional[int] = None
    current_step_id: Optional[int] = None
    route_position: Optional[RoutePosition] = None
    assignee_ids: List[int] = Field(default_factory=list)
    assigned_by_id: Optional[int] = None
    status: TicketStatus = TicketStatus.OPEN
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    step_started_at: Optional[datetime] = None
    step_due_at: Optional[datetime] = None
    version: int = 0


class AdvancementResult(BaseModel):
    """Committed outcome of a ticket transition"""
    ticket: Ticket
    previous_step_id: Optional[int] = None
    step: Optional[Step] = None
    closed: bool = False
    assignment: Optional[AssignmentResult] = None
    parallel_instances: List["ParallelInstance"] = Field(default_factory=list)


# ============================================================================
# Parallel Steps
# ============================================================================

class ParallelInstance(BaseModel):
    """One assignee's share of a parallel step"""
    model_config = ConfigDict(extra="ignore")

    ticket_id: int
    step_id: int
    user_id: int
    completed: bool = False
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ParallelCompletion(BaseModel):
    """Outcome of ParallelStepCoordinator.mark_complete"""
    all_complete: bool = Field(..., description="True only for the call that closed the last instance")
    already_completed: bool = False
    outstanding: int = 0


class ParallelTaskResult(BaseModel):
    """Outcome of completing a parallel task through the orchestrator"""
    completion: ParallelCompletion
    advancement: Optional[AdvancementResult] = None


# ============================================================================
# Permissions
# ============================================================================

class Permission(BaseModel):
    """Catalogue entry: an action on a subject"""
    model_config = ConfigDict(extra="ignore")

    id: int
    action: str
    subject: str
    description: Optional[str] = None
    active: bool = True


class RolePermission(BaseModel):
    """Grant of a permission to a role"""
    model_config = ConfigDict(extra="ignore")

    role_id: int
    permission_id: int
    active: bool = True


class CachedPermission(BaseModel):
    """(action, subject) pair held by the permission cache"""
    model_config = ConfigDict(frozen=True)

    action: str
    subject: str


class CacheStatus(BaseModel):
    """Permission cache introspection"""
    role_count: int
    last_refresh: Optional[datetime] = None


# ============================================================================
# History & Notifications
# ============================================================================

class AssignmentRecord(BaseModel):
    """Assignment history row written whenever a ticket enters a step"""
    record_id: str
    ticket_id: int
    step_id: Optional[int] = None
    assignee_ids: List[int] = Field(default_factory=list)
    assigned_by_id: Optional[int] = None
    comment: Optional[str] = None
    created_at: datetime


class NotificationEvent(BaseModel):
    """Outbox entry consumed by the external delivery worker"""
    notification_id: str
    event_type: NotificationEventType
    ticket_id: int
    step_id: Optional[int] = None
    recipient_ids: List[int] = Field(default_factory=list)
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.PENDING
    created_at: datetime


class DecisionPrompt(BaseModel):
    """What the UI needs to render the decision buttons of a ticket"""
    ticket_id: int
    step_id: Optional[int] = None
    step_name: Optional[str] = None
    transitions: List[TransitionOption] = Field(default_factory=list)
    sla_status: SlaStatus = SlaStatus.ON_TIME
    step_due_at: Optional[datetime] = None


AdvancementResult.model_rebuild()
