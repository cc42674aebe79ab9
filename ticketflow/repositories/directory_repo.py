"""Directory Repository - Users, org chart positions and ticket field values

These collections are owned by other systems; this module only reads them.
Database failures surface as retryable ExternalLookupError.
"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from .mongo_client import get_collection
from ..domain.models import UserProfile
from ..domain.errors import ExternalLookupError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _lookup_failed(what: str, error: PyMongoError) -> ExternalLookupError:
    logger.error(f"{what} lookup failed: {error}")
    return ExternalLookupError(f"{what} lookup failed", details={"reason": str(error)})


class UserDirectoryRepository:
    """Read-only view of the user directory"""

    def __init__(self):
        self._users: Collection = get_collection("users")

    def get_user(self, user_id: int) -> Optional[UserProfile]:
        try:
            doc = self._users.find_one({"id": user_id})
        except PyMongoError as e:
            raise _lookup_failed("User", e)
        return UserProfile.model_validate(doc) if doc else None

    def get_users(self, user_ids: List[int]) -> List[UserProfile]:
        if not user_ids:
            return []
        try:
            docs = list(self._users.find({"id": {"$in": list(user_ids)}}))
        except PyMongoError as e:
            raise _lookup_failed("User", e)
        return [UserProfile.model_validate(doc) for doc in docs]

    def find_users_by_role(self, role_id: int) -> List[UserProfile]:
        try:
            docs = list(self._users.find({"role_id": role_id, "active": True}).sort("id", ASCENDING))
        except PyMongoError as e:
            raise _lookup_failed("Role", e)
        return [UserProfile.model_validate(doc) for doc in docs]


class OrgChartRepository:
    """Position hierarchy: each position points at its superior position"""

    def __init__(self):
        self._positions: Collection = get_collection("positions")
        self._users: Collection = get_collection("users")

    def superior_of(self, position_id: int) -> Optional[int]:
        try:
            doc = self._positions.find_one({"id": position_id})
        except PyMongoError as e:
            raise _lookup_failed("Org chart", e)
        if doc is None:
            return None
        return doc.get("superior_position_id")

    def holders_of(self, position_id: int) -> List[UserProfile]:
        try:
            docs = list(
                self._users.find({"position_id": position_id, "active": True}).sort("id", ASCENDING)
            )
        except PyMongoError as e:
            raise _lookup_failed("Org chart", e)
        return [UserProfile.model_validate(doc) for doc in docs]


class FieldValueRepository:
    """Dynamic field values captured on ticket forms"""

    def __init__(self):
        self._values: Collection = get_collection("ticket_field_values")

    def get_field_value(self, ticket_id: int, field_id: int) -> Optional[str]:
        try:
            doc = self._values.find_one({"ticket_id": ticket_id, "field_id": field_id})
        except PyMongoError as e:
            raise _lookup_failed("Field value", e)
        if doc is None or doc.get("value") is None:
            return None
        return str(doc["value"])
