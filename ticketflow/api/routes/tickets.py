"""
Ticket Workflow Routes

- Decisions available on the current step
- Start, advance and parallel completion
- Assignment history
"""

from fastapi import APIRouter, Depends

from ..deps import (
    PermissionChecker, get_correlation_id_dep, get_current_user_dep,
    get_permission_checker, get_ticket_workflow_service, require_permission,
)
from ...domain.models import ActorContext, DecisionPrompt
from ...services.ticket_workflow_service import TicketWorkflowService
from ...utils.logger import get_logger
from .schemas import (
    AdvanceTicketRequest, AdvancementResponse, AssignmentHistoryResponse,
    CompleteParallelRequest, ParallelCompletionResponse, StartTicketRequest,
)

logger = get_logger(__name__)
router = APIRouter()

TICKET_SUBJECT = "Ticket"


@router.get("/{ticket_id}/decisions", response_model=DecisionPrompt)
def get_decisions(
    ticket_id: int,
    actor: ActorContext = Depends(require_permission("read", TICKET_SUBJECT)),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: TicketWorkflowService = Depends(get_ticket_workflow_service)
):
    """Current step, offered transitions and SLA status."""
    return service.get_decisions(ticket_id)


@router.post("/{ticket_id}/start", response_model=AdvancementResponse)
def start_ticket(
    ticket_id: int,
    request: StartTicketRequest,
    actor: ActorContext = Depends(require_permission("create", TICKET_SUBJECT)),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: TicketWorkflowService = Depends(get_ticket_workflow_service)
):
    """Enter the initial step of the ticket's workflow."""
    result = service.start(
        ticket_id,
        actor,
        comment=request.comment,
        selected_assignee_ids=request.selected_assignee_ids
    )
    return AdvancementResponse.from_result(result)


@router.post("/{ticket_id}/advance", response_model=AdvancementResponse)
def advance_ticket(
    ticket_id: int,
    request: AdvanceTicketRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    checker: PermissionChecker = Depends(get_permission_checker),
    service: TicketWorkflowService = Depends(get_ticket_workflow_service)
):
    """
    Apply a decision to the current step.

    Assignees may always decide; actors allowed to manage tickets may act on
    any ticket. A 409 MANUAL_SELECTION_REQUIRED asks the caller to resend with
    selected_assignee_ids.
    """
    checker.require(actor, "update", TICKET_SUBJECT)
    result = service.advance(
        ticket_id,
        actor,
        decision_key=request.decision_key,
        selected_assignee_ids=request.selected_assignee_ids,
        comment=request.comment,
        can_override=checker.can(actor.role_id, "manage", TICKET_SUBJECT)
    )
    return AdvancementResponse.from_result(result)


@router.post("/{ticket_id}/parallel/complete", response_model=ParallelCompletionResponse)
def complete_parallel_task(
    ticket_id: int,
    request: CompleteParallelRequest,
    actor: ActorContext = Depends(require_permission("update", TICKET_SUBJECT)),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: TicketWorkflowService = Depends(get_ticket_workflow_service)
):
    """Complete the caller's share of the current parallel step."""
    result = service.complete_parallel_task(
        ticket_id,
        actor,
        decision_key=request.decision_key,
        selected_assignee_ids=request.selected_assignee_ids,
        comment=request.comment
    )
    return ParallelCompletionResponse(
        completion=result.completion,
        advancement=AdvancementResponse.from_result(result.advancement) if result.advancement else None
    )


@router.get("/{ticket_id}/assignments", response_model=AssignmentHistoryResponse)
def get_assignment_history(
    ticket_id: int,
    actor: ActorContext = Depends(require_permission("read", TICKET_SUBJECT)),
    service: TicketWorkflowService = Depends(get_ticket_workflow_service)
):
    """Assignment history of a ticket, oldest first."""
    return AssignmentHistoryResponse(items=service.assignment_history(ticket_id))
