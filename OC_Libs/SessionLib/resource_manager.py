"""
Resource Lifecycle Manager.

Tracks the encoded-image handles an editing session creates for previews,
commits and exports, and guarantees that each one is released exactly once:
either when a newer result supersedes it or when the session is torn down.

Releasing is idempotent. Revoking a handle that is unknown or already revoked
logs a warning and does nothing, because several clean-up paths may race to
release the same handle during rapid replacement.

Classes:
    HandleState: Lifecycle states of a handle
    ResourceHandle: Reference to one encoded blob
    ResourceLifecycleManager: Registry that creates and revokes handles

Example:
    >>> with ResourceLifecycleManager() as resources:
    ...     first = resources.create(png_bytes)
    ...     second = resources.replace(first, newer_png_bytes)
    ...     resources.get_active_count()
    1
"""

from enum import Enum
from typing import Dict, List, Optional, Union
import logging
import uuid

from OC_Libs.constants import DEFAULT_MIME_TYPE, HANDLE_PREFIX

logger = logging.getLogger(__name__)


class HandleState(Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class ResourceHandle:
    """
    Opaque reference to an encoded blob owned by a ResourceLifecycleManager.

    The blob bytes are dropped when the handle is revoked.
    """

    def __init__(self, handle_id: str, data: bytes, mime_type: str) -> None:
        self.handle_id = handle_id
        self.mime_type = mime_type
        self.size = len(data)
        self._data: Optional[bytes] = data
        self._state = HandleState.ACTIVE

    def __repr__(self) -> str:
        return f"ResourceHandle({self.handle_id!r}, {self.mime_type!r}, {self._state.value})"

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is HandleState.ACTIVE

    @property
    def data(self) -> bytes:
        """
        The encoded bytes.

        Raises:
            RuntimeError: If the handle has been revoked
        """
        if self._data is None:
            raise RuntimeError(f"Handle {self.handle_id} has been revoked")
        return self._data

    def _revoke(self) -> None:
        self._data = None
        self._state = HandleState.REVOKED


HandleRef = Union[ResourceHandle, str]


class ResourceLifecycleManager:
    """
    Creates and revokes ResourceHandles for one editing session.

    Construct one per session; the owner is responsible for calling
    revoke_all() (or using the manager as a context manager) on teardown.
    """

    def __init__(self) -> None:
        self._active: Dict[str, ResourceHandle] = {}
        self.created_count = 0
        self.revoked_count = 0

    def __enter__(self) -> "ResourceLifecycleManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.revoke_all()

    def __len__(self) -> int:
        return len(self._active)

    def __contains__(self, handle: object) -> bool:
        if isinstance(handle, (ResourceHandle, str)):
            return self.is_valid(handle)
        return False

    def create(self, data: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> ResourceHandle:
        """
        Register encoded bytes and return a new active handle.

        Raises:
            ValueError: If ``data`` is empty
            TypeError: If ``data`` is not bytes-like
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Expected bytes, got {type(data)}")
        if len(data) == 0:
            raise ValueError("Cannot create a handle for empty data")

        handle_id = f"{HANDLE_PREFIX}{uuid.uuid4()}"
        handle = ResourceHandle(handle_id, bytes(data), mime_type)
        self._active[handle_id] = handle
        self.created_count += 1

        logger.debug(f"Created handle {handle_id} ({handle.size} bytes, {mime_type})")
        return handle

    def revoke(self, handle: Optional[HandleRef]) -> bool:
        """
        Release a handle.

        Args:
            handle: ResourceHandle or handle id

        Returns:
            True if the handle was active and is now revoked, False if it was
            unknown or already revoked (logged, not raised)
        """
        if handle is None:
            return False

        handle_id = handle.handle_id if isinstance(handle, ResourceHandle) else str(handle)
        tracked = self._active.pop(handle_id, None)

        if tracked is None:
            logger.warning(f"Ignoring revoke of unknown or already revoked handle {handle_id}")
            return False

        tracked._revoke()
        self.revoked_count += 1
        logger.debug(f"Revoked handle {handle_id}")
        return True

    def revoke_all(self) -> int:
        """
        Release every active handle.

        Returns:
            Number of handles revoked
        """
        handles = list(self._active.values())
        self._active.clear()
        for handle in handles:
            handle._revoke()
        self.revoked_count += len(handles)

        if handles:
            logger.info(f"Revoked {len(handles)} handle(s)")
        return len(handles)

    def replace(
        self,
        previous: Optional[HandleRef],
        data: bytes,
        mime_type: str = DEFAULT_MIME_TYPE,
    ) -> ResourceHandle:
        """
        Create a handle for ``data``, then revoke ``previous``.

        The new handle exists before the old one is released, so a display
        surface is never left pointing at a revoked handle. If creation fails
        ``previous`` stays active.
        """
        handle = self.create(data, mime_type)
        if previous is not None:
            self.revoke(previous)
        return handle

    def is_valid(self, handle: Optional[HandleRef]) -> bool:
        if handle is None:
            return False
        handle_id = handle.handle_id if isinstance(handle, ResourceHandle) else str(handle)
        return handle_id in self._active

    def get(self, handle_id: str) -> Optional[ResourceHandle]:
        """Return the active handle with this id, or None."""
        return self._active.get(handle_id)

    def get_active_count(self) -> int:
        return len(self._active)

    def active_handles(self) -> List[ResourceHandle]:
        """Active handles in creation order."""
        return list(self._active.values())
