"""
API Schemas

Request and response models for the workflow and permission endpoints.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from ...domain.models import (
    AdvancementResult, AssignmentRecord, CachedPermission, ParallelCompletion, Ticket
)


# =============================================================================
# Ticket Workflow Schemas
# =============================================================================

class StartTicketRequest(BaseModel):
    """Request to enter the initial step"""
    selected_assignee_ids: Optional[List[int]] = None
    comment: Optional[str] = Field(None, max_length=2000)


class AdvanceTicketRequest(BaseModel):
    """Decision on the current step"""
    decision_key: Optional[str] = Field(None, max_length=50)
    selected_assignee_ids: Optional[List[int]] = Field(
        default=None,
        description="Assignees of the next step when it is assigned by hand"
    )
    comment: Optional[str] = Field(None, max_length=2000)


class CompleteParallelRequest(BaseModel):
    """Completion of the caller's share of a parallel step"""
    decision_key: Optional[str] = Field(None, max_length=50)
    selected_assignee_ids: Optional[List[int]] = None
    comment: Optional[str] = Field(None, max_length=2000)


class AdvancementResponse(BaseModel):
    """Ticket state after a transition"""
    ticket: Ticket
    previous_step_id: Optional[int] = None
    step_id: Optional[int] = None
    step_name: Optional[str] = None
    closed: bool = False
    assignee_ids: List[int] = Field(default_factory=list)
    strategy: Optional[str] = None

    @classmethod
    def from_result(cls, result: AdvancementResult) -> "AdvancementResponse":
        return cls(
            ticket=result.ticket,
            previous_step_id=result.previous_step_id,
            step_id=result.step.id if result.step else None,
            step_name=result.step.name if result.step else None,
            closed=result.closed,
            assignee_ids=result.ticket.assignee_ids,
            strategy=result.assignment.strategy.value if result.assignment else None
        )


class ParallelCompletionResponse(BaseModel):
    completion: ParallelCompletion
    advancement: Optional[AdvancementResponse] = None


class AssignmentHistoryResponse(BaseModel):
    items: List[AssignmentRecord]


# =============================================================================
# Permission Schemas
# =============================================================================

class SyncRolePermissionsRequest(BaseModel):
    """Full set of permissions a role must hold"""
    permission_ids: List[int] = Field(default_factory=list)


class RolePermissionsResponse(BaseModel):
    role_id: int
    permissions: List[CachedPermission]


class SyncRolePermissionsResponse(BaseModel):
    role_id: int
    permission_ids: List[int]


class CacheStatusResponse(BaseModel):
    role_count: int
    last_refresh: Optional[datetime] = None
