"""
Permission Administration Routes

Catalogue, role grants and permission cache introspection. Every write
invalidates the affected role in the permission cache.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ..deps import get_permission_service, require_permission
from ...domain.models import ActorContext, Permission
from ...services.permission_service import PermissionService
from ...utils.logger import get_logger
from .schemas import (
    CacheStatusResponse, RolePermissionsResponse, SyncRolePermissionsRequest,
    SyncRolePermissionsResponse,
)

logger = get_logger(__name__)
router = APIRouter()

PERMISSION_SUBJECT = "Permission"


@router.get("", response_model=List[Permission])
def list_permissions(
    actor: ActorContext = Depends(require_permission("read", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    """Active permission catalogue."""
    return service.list_permissions()


@router.get("/cache/status", response_model=CacheStatusResponse)
def get_cache_status(
    actor: ActorContext = Depends(require_permission("read", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    return CacheStatusResponse(**service.cache_status().model_dump())


@router.post("/cache/refresh", response_model=CacheStatusResponse)
def refresh_cache(
    actor: ActorContext = Depends(require_permission("manage", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    """Reload every role's permissions."""
    logger.info("Permission cache refresh requested", extra={"user_id": actor.user_id})
    return CacheStatusResponse(**service.refresh_cache().model_dump())


@router.get("/roles/{role_id}", response_model=RolePermissionsResponse)
def get_role_permissions(
    role_id: int,
    actor: ActorContext = Depends(require_permission("read", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    permissions = sorted(
        service.permissions_for_role(role_id), key=lambda p: (p.subject, p.action)
    )
    return RolePermissionsResponse(role_id=role_id, permissions=permissions)


@router.put("/roles/{role_id}", response_model=SyncRolePermissionsResponse)
def sync_role_permissions(
    role_id: int,
    request: SyncRolePermissionsRequest,
    actor: ActorContext = Depends(require_permission("manage", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    """Replace the permissions of a role."""
    permission_ids = service.sync_role_permissions(role_id, request.permission_ids)
    return SyncRolePermissionsResponse(role_id=role_id, permission_ids=permission_ids)


@router.post("/roles/{role_id}/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
def add_permission_to_role(
    role_id: int,
    permission_id: int,
    actor: ActorContext = Depends(require_permission("manage", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    service.add_permission_to_role(role_id, permission_id)


@router.delete("/roles/{role_id}/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_permission_from_role(
    role_id: int,
    permission_id: int,
    actor: ActorContext = Depends(require_permission("manage", PERMISSION_SUBJECT)),
    service: PermissionService = Depends(get_permission_service)
):
    service.remove_permission_from_role(role_id, permission_id)
