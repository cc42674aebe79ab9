"""Permission Repository - Permission catalogue and role grants"""
from typing import Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import CachedPermission, Permission
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionRepository:
    """Repository for permissions and role-permission links"""

    def __init__(self):
        self._permissions: Collection = get_collection("permissions")
        self._role_permissions: Collection = get_collection("role_permissions")

    # =========================================================================
    # Cache loads
    # =========================================================================

    def load_role_permissions(self, role_id: int) -> List[CachedPermission]:
        """Active (action, subject) pairs granted to one role"""
        permission_ids = self.list_role_permission_ids(role_id)
        if not permission_ids:
            return []
        cursor = self._permissions.find({"id": {"$in": permission_ids}, "active": True})
        return [CachedPermission(action=doc["action"], subject=doc["subject"]) for doc in cursor]

    def load_all_role_permissions(self) -> Dict[int, List[CachedPermission]]:
        """
        Active grants of every role grouped by role

        Roles whose links are all revoked map to an empty list.
        """
        catalogue = {
            doc["id"]: CachedPermission(action=doc["action"], subject=doc["subject"])
            for doc in self._permissions.find({"active": True})
        }
        grouped: Dict[int, List[CachedPermission]] = {}
        for link in self._role_permissions.find({}):
            permissions = grouped.setdefault(link["role_id"], [])
            permission = catalogue.get(link["permission_id"])
            if link.get("active", True) and permission is not None:
                permissions.append(permission)
        return grouped

    # =========================================================================
    # Catalogue and links
    # =========================================================================

    def list_permissions(self) -> List[Permission]:
        cursor = self._permissions.find({"active": True}).sort(
            [("subject", ASCENDING), ("action", ASCENDING)]
        )
        return [Permission.model_validate(doc) for doc in cursor]

    def get_permission(self, permission_id: int) -> Optional[Permission]:
        doc = self._permissions.find_one({"id": permission_id})
        return Permission.model_validate(doc) if doc else None

    def list_role_permission_ids(self, role_id: int) -> List[int]:
        cursor = self._role_permissions.find({"role_id": role_id, "active": True}).sort(
            "permission_id", ASCENDING
        )
        return [doc["permission_id"] for doc in cursor]

    def set_role_permission(self, role_id: int, permission_id: int, active: bool) -> None:
        """Create or (de)activate a link"""
        self._role_permissions.update_one(
            {"role_id": role_id, "permission_id": permission_id},
            {
                "$set": {"active": active, "updated_at": utc_now()},
                "$setOnInsert": {"role_id": role_id, "permission_id": permission_id},
            },
            upsert=True
        )
        logger.info(
            f"Role {role_id} permission {permission_id} set active={active}",
            extra={"role_id": role_id}
        )
