"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400
    retryable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidArgumentError(ValidationError):
    """Malformed argument, e.g. a negative day count"""
    error_code = "INVALID_ARGUMENT"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class WorkflowNotFoundError(NotFoundError):
    """No active workflow for the requested flow or subcategory"""
    error_code = "WORKFLOW_NOT_FOUND"


class TicketNotFoundError(NotFoundError):
    """Ticket not found"""
    error_code = "TICKET_NOT_FOUND"


class ParallelInstanceNotFoundError(NotFoundError):
    """No parallel instance for (ticket, step, user)"""
    error_code = "PARALLEL_INSTANCE_NOT_FOUND"


class PermissionNotFoundError(NotFoundError):
    """Permission not found"""
    error_code = "PERMISSION_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"
    retryable = True


class ConcurrentAdvancementConflictError(ConcurrencyError):
    """Another transition advanced the ticket first; re-fetch and retry"""
    error_code = "CONCURRENT_ADVANCEMENT_CONFLICT"


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class ManualSelectionRequiredError(DomainError):
    """
    Signal, not a failure: the next step is assigned by hand.

    The caller must resubmit the transition with explicit assignees.
    """
    error_code = "MANUAL_SELECTION_REQUIRED"
    http_status = 409


# Engine Errors
class EngineError(DomainError):
    """Workflow engine error"""
    error_code = "ENGINE_ERROR"
    http_status = 500


class InvalidWorkflowConfigurationError(EngineError):
    """Dangling or contradictory Step/Transition/Route configuration"""
    error_code = "INVALID_WORKFLOW_CONFIGURATION"
    http_status = 422


class UnknownDecisionError(EngineError):
    """Decision key not recognized for the current step"""
    error_code = "UNKNOWN_DECISION"
    http_status = 400


class DecisionRequiredError(UnknownDecisionError):
    """The current step has several transitions and no decision was given"""
    error_code = "DECISION_REQUIRED"


class UnresolvableAssignmentError(EngineError):
    """Could not resolve who must act on a step"""
    error_code = "UNRESOLVABLE_ASSIGNMENT"
    http_status = 400


class NoEligibleAssigneeError(UnresolvableAssignmentError):
    """No user satisfies the step's assignment rule"""
    error_code = "NO_ELIGIBLE_ASSIGNEE"


class NoSuperiorDefinedError(UnresolvableAssignmentError):
    """Requester's position has no superior in the org chart"""
    error_code = "NO_SUPERIOR_DEFINED"


class MissingBossReferenceError(UnresolvableAssignmentError):
    """The boss reference field of the ticket holds no user id"""
    error_code = "MISSING_BOSS_REFERENCE"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class ExternalLookupError(ExternalServiceError):
    """Directory, org chart or field lookup failed or timed out"""
    error_code = "EXTERNAL_LOOKUP_ERROR"
    retryable = True
