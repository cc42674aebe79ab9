"""Permission Service - Role permission administration

Every write invalidates the role's cache slot before returning, so the next
authorization check for that role reloads from storage.
"""
from typing import FrozenSet, List, Optional

from ..domain.models import CachedPermission, CacheStatus, Permission
from ..domain.errors import PermissionNotFoundError
from ..engine.permission_cache import PermissionCache
from ..repositories.protocols import PermissionStore
from ..repositories.permission_repo import PermissionRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionService:
    """Service for permission catalogue and role grants"""

    def __init__(self, cache: PermissionCache, store: Optional[PermissionStore] = None):
        self.cache = cache
        self.store = store or PermissionRepository()

    # =========================================================================
    # Reads
    # =========================================================================

    def list_permissions(self) -> List[Permission]:
        return self.store.list_permissions()

    def permissions_for_role(self, role_id: int) -> FrozenSet[CachedPermission]:
        return self.cache.get_permissions(role_id)

    def cache_status(self) -> CacheStatus:
        return self.cache.status()

    def refresh_cache(self) -> CacheStatus:
        self.cache.refresh_all()
        return self.cache.status()

    # =========================================================================
    # Writes
    # =========================================================================

    def sync_role_permissions(self, role_id: int, permission_ids: List[int]) -> List[int]:
        """
        Make a role hold exactly the given permissions

        Returns:
            Permission ids granted after the sync
        """
        wanted = list(dict.fromkeys(permission_ids))
        for permission_id in wanted:
            self._require_permission(permission_id)

        current = set(self.store.list_role_permission_ids(role_id))
        try:
            for permission_id in current - set(wanted):
                self.store.set_role_permission(role_id, permission_id, active=False)
            for permission_id in wanted:
                if permission_id not in current:
                    self.store.set_role_permission(role_id, permission_id, active=True)
        finally:
            self.cache.invalidate(role_id)

        logger.info(
            f"Synced role {role_id} to {len(wanted)} permission(s)",
            extra={"role_id": role_id}
        )
        return sorted(wanted)

    def add_permission_to_role(self, role_id: int, permission_id: int) -> None:
        self._require_permission(permission_id)
        try:
            self.store.set_role_permission(role_id, permission_id, active=True)
        finally:
            self.cache.invalidate(role_id)

    def remove_permission_from_role(self, role_id: int, permission_id: int) -> None:
        self._require_permission(permission_id)
        try:
            self.store.set_role_permission(role_id, permission_id, active=False)
        finally:
            self.cache.invalidate(role_id)

    def _require_permission(self, permission_id: int) -> Permission:
        permission = self.store.get_permission(permission_id)
        if permission is None:
            raise PermissionNotFoundError(
                f"Permission {permission_id} not found",
                details={"permission_id": permission_id}
            )
        return permission
