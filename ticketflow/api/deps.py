"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Depends, Header, Request

from ..domain.models import ActorContext
from ..domain.enums import ALL_SUBJECTS, PermissionAction
from ..domain.errors import AuthenticationError, PermissionDeniedError
from ..engine.permission_cache import PermissionCache
from ..services.permission_service import PermissionService
from ..services.ticket_workflow_service import TicketWorkflowService
from ..utils.jwt import get_current_user as _jwt_get_current_user
from ..utils.logger import set_correlation_id, get_logger
from ..utils.idgen import generate_correlation_id

logger = get_logger(__name__)


def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """Get or generate correlation ID for request tracing"""
    correlation_id = x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Dependency to get current user from Authorization header

    Raises:
        AuthenticationError: 401 if token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")
    return _jwt_get_current_user(authorization)


# =============================================================================
# Permissions
# =============================================================================

def get_permission_cache(request: Request) -> PermissionCache:
    """Permission cache created in the application lifespan"""
    cache = getattr(request.app.state, "permission_cache", None)
    if cache is None:
        raise RuntimeError("Permission cache is not initialised")
    return cache


class PermissionChecker:
    """
    Decide whether a role may perform an action on a subject

    A grant of action 'manage' covers every action and a grant on subject
    'all' covers every subject.
    """

    def __init__(self, cache: PermissionCache):
        self.cache = cache

    def can(self, role_id: Optional[int], action: str, subject: str) -> bool:
        if role_id is None:
            return False
        for granted in self.cache.get_permissions(role_id):
            action_ok = granted.action in (action, PermissionAction.MANAGE.value)
            subject_ok = granted.subject in (subject, ALL_SUBJECTS)
            if action_ok and subject_ok:
                return True
        return False

    def require(self, actor: ActorContext, action: str, subject: str) -> None:
        if not self.can(actor.role_id, action, subject):
            logger.warning(
                f"Permission denied: {action} {subject}",
                extra={"user_id": actor.user_id, "role_id": actor.role_id}
            )
            raise PermissionDeniedError(
                f"Role {actor.role_id} cannot {action} {subject}",
                details={"action": action, "subject": subject, "role_id": actor.role_id}
            )


def get_permission_checker(
    cache: PermissionCache = Depends(get_permission_cache)
) -> PermissionChecker:
    return PermissionChecker(cache)


def require_permission(action: str, subject: str):
    """Route dependency that rejects actors lacking (action, subject)"""

    def dependency(
        actor: ActorContext = Depends(get_current_user_dep),
        checker: PermissionChecker = Depends(get_permission_checker)
    ) -> ActorContext:
        checker.require(actor, action, subject)
        return actor

    return dependency


# =============================================================================
# Services
# =============================================================================

def get_ticket_workflow_service() -> TicketWorkflowService:
    return TicketWorkflowService()


def get_permission_service(
    cache: PermissionCache = Depends(get_permission_cache)
) -> PermissionService:
    return PermissionService(cache)
