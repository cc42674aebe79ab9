"""Permission Cache - Per-role read-through cache of granted permissions"""
import threading
from concurrent.futures import Future
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from ..domain.models import CachedPermission, CacheStatus
from ..repositories.protocols import PermissionStore
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionCache:
    """
    Cache of role -> frozenset of (action, subject)

    Slots are loaded lazily and dropped on invalidate(). Every role carries a
    generation counter bumped by invalidate(); a load only stores its result
    if the generation it started with is still current, so a load racing an
    invalidation can never resurrect stale grants. Concurrent misses for the
    same role share a single backing load through a Future.

    The cache answers "what does role R hold"; authorization decisions live in
    PermissionChecker.
    """

    def __init__(self, store: PermissionStore):
        self._store = store
        self._lock = threading.Lock()
        self._slots: Dict[int, FrozenSet[CachedPermission]] = {}
        self._generations: Dict[int, int] = {}
        self._inflight: Dict[int, Future] = {}
        self._last_refresh: Optional[datetime] = None

    def get_permissions(self, role_id: int) -> FrozenSet[CachedPermission]:
        """Permissions of a role, loading them on a miss"""
        with self._lock:
            cached = self._slots.get(role_id)
            if cached is not None:
                return cached
            future = self._inflight.get(role_id)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[role_id] = future
                generation = self._generations.get(role_id, 0)

        if not owner:
            return future.result()

        try:
            permissions = frozenset(self._store.load_role_permissions(role_id))
        except Exception as e:
            with self._lock:
                if self._inflight.get(role_id) is future:
                    del self._inflight[role_id]
            future.set_exception(e)
            logger.error(
                f"Failed to load permissions for role {role_id}: {e}",
                extra={"role_id": role_id}
            )
            raise

        with self._lock:
            if self._generations.get(role_id, 0) == generation:
                self._slots[role_id] = permissions
            else:
                logger.debug(
                    f"Discarding permissions of role {role_id} loaded before invalidation",
                    extra={"role_id": role_id}
                )
            if self._inflight.get(role_id) is future:
                del self._inflight[role_id]

        future.set_result(permissions)
        return permissions

    def refresh_all(self) -> None:
        """
        Reload every role and swap the whole map

        The previous map stays in place if the load fails. Roles invalidated
        while the load was running are left out of the new map.
        """
        with self._lock:
            started_with = dict(self._generations)

        grouped = self._store.load_all_role_permissions()

        with self._lock:
            fresh: Dict[int, FrozenSet[CachedPermission]] = {}
            skipped = 0
            for role_id, permissions in grouped.items():
                if self._generations.get(role_id, 0) != started_with.get(role_id, 0):
                    skipped += 1
                    continue
                fresh[role_id] = frozenset(permissions)
            self._slots = fresh
            self._last_refresh = utc_now()

        logger.info(
            f"Permission cache refreshed: {len(fresh)} roles loaded, {skipped} skipped"
        )

    def invalidate(self, role_id: int) -> None:
        """Drop one role; in-flight loads for it will not be stored"""
        with self._lock:
            self._slots.pop(role_id, None)
            self._generations[role_id] = self._generations.get(role_id, 0) + 1
            self._inflight.pop(role_id, None)
        logger.debug(f"Permission cache invalidated for role {role_id}", extra={"role_id": role_id})

    def is_cached(self, role_id: int) -> bool:
        with self._lock:
            return role_id in self._slots

    def status(self) -> CacheStatus:
        with self._lock:
            return CacheStatus(role_count=len(self._slots), last_refresh=self._last_refresh)
