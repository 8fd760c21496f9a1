# groupsync/common/exceptions/exceptions.py
# =============================================================================
# Custom exceptions for GroupSync
# =============================================================================

from __future__ import annotations

from typing import Optional, Type, TypeVar

E = TypeVar("E", bound=BaseException)


class GroupSyncException(Exception):
    """Base exception for GroupSync"""
    pass


class NotFoundError(GroupSyncException):
    """Raised when a resource is not found"""
    pass


# =============================================================================
# Replay errors
# =============================================================================

class ReplayError(GroupSyncException):
    """
    Base class for every error raised while replaying account logs.

    Each subclass carries a stable ``code``. The underlying transport or
    store error is chained as ``__cause__`` (raise ... from err), so callers
    can look through the chain with ``find_cause``.
    """
    code: str = "ERR_REPLAY"

    def __init__(self, message: str = "", group_pk: Optional[str] = None):
        super().__init__(message or self.code)
        self.group_pk = group_pk

    def find_cause(self, exc_type: Type[E]) -> Optional[E]:
        """Return the first exception of ``exc_type`` in the cause chain, self included."""
        current: Optional[BaseException] = self
        seen = set()
        while current is not None and id(current) not in seen:
            if isinstance(current, exc_type):
                return current
            seen.add(id(current))
            current = current.__cause__ or current.__context__
        return None

    def has_code(self, code: str) -> bool:
        """Check whether any ReplayError in the cause chain carries ``code``."""
        current: Optional[BaseException] = self
        seen = set()
        while current is not None and id(current) not in seen:
            if isinstance(current, ReplayError) and current.code == code:
                return True
            seen.add(id(current))
            current = current.__cause__ or current.__context__
        return False

    def __str__(self) -> str:
        base = super().__str__()
        if self.__cause__ is not None:
            return f"{self.code}: {base}: {self.__cause__}"
        return f"{self.code}: {base}"


class ConfigurationFetchError(ReplayError):
    """Account configuration could not be fetched from the protocol service"""
    code = "ERR_CONFIGURATION_FETCH"


class StoreReadError(ReplayError):
    """Reading from the local store failed"""
    code = "ERR_DB_READ"


class StoreWriteError(ReplayError):
    """Writing to the local store failed"""
    code = "ERR_DB_WRITE"


class DeserializationError(ReplayError):
    """A payload or key could not be decoded"""
    code = "ERR_DESERIALIZATION"


class GroupActivationError(ReplayError):
    """The protocol service refused to activate a group"""
    code = "ERR_GROUP_ACTIVATE"


class GroupDeactivationError(ReplayError):
    """The protocol service refused to deactivate a group"""
    code = "ERR_GROUP_DEACTIVATE"


class MetadataReplayError(ReplayError):
    """Replaying a group's metadata log failed"""
    code = "ERR_REPLAY_PROCESS_GROUP_METADATA"


class MessageReplayError(ReplayError):
    """Replaying a group's message log failed"""
    code = "ERR_REPLAY_PROCESS_GROUP_MESSAGE"


class EventListMetadataError(ReplayError):
    """Opening or reading a metadata log stream failed"""
    code = "ERR_EVENT_LIST_METADATA"


class EventListMessageError(ReplayError):
    """Opening or reading a message log stream failed"""
    code = "ERR_EVENT_LIST_MESSAGE"
