# =============================================================================
# File: groupsync/infra/cqrs/projector_decorators.py
# Description: Decorators binding projector methods to log entry types
#              @metadata_projection - handles a metadata log entry type
#              @message_projection  - handles an application message type
# =============================================================================

import inspect
import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Optional

from groupsync.messenger.enums import AppMessageType, MetadataEventType

log = logging.getLogger("groupsync.cqrs.projector_decorators")

# Projections slower than this are reported
SLOW_PROJECTION_THRESHOLD_MS = 100.0


@dataclass
class ProjectionBinding:
    """Metadata attached to a decorated projector method"""
    kind: str  # "metadata" or "message"
    event_type: str
    method_name: str
    description: Optional[str] = None


def _bind(kind: str, event_type: str, func: Callable) -> Callable:
    if not inspect.iscoroutinefunction(func):
        raise TypeError(f"projection {func.__name__} must be async")
    func._projection_binding = ProjectionBinding(
        kind=kind,
        event_type=event_type,
        method_name=func.__name__,
        description=func.__doc__,
    )
    return func


def metadata_projection(event_type: MetadataEventType):
    """
    Bind a projector method to a metadata log entry type.

    Usage:
        class MessengerProjector:
            @metadata_projection(MetadataEventType.ACCOUNT_GROUP_JOINED)
            async def on_group_joined(self, event, payload):
                ...
    """
    def decorator(func: Callable) -> Callable:
        return _bind("metadata", event_type.value, func)
    return decorator


def message_projection(message_type: AppMessageType):
    """Bind a projector method to an application message type."""
    def decorator(func: Callable) -> Callable:
        return _bind("message", message_type.value, func)
    return decorator


def monitor_projection(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """Log projections that take longer than SLOW_PROJECTION_THRESHOLD_MS."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > SLOW_PROJECTION_THRESHOLD_MS:
                log.warning(f"Slow projection {func.__name__}: {elapsed_ms:.1f}ms")
    return wrapper


def collect_projections(projector: Any, kind: str) -> Dict[str, Callable[..., Awaitable[None]]]:
    """
    Build the dispatch table of a projector instance.

    Returns:
        event type value -> bound coroutine method
    """
    handlers: Dict[str, Callable[..., Awaitable[None]]] = {}
    for name, member in inspect.getmembers(type(projector)):
        binding = getattr(member, "_projection_binding", None)
        if binding is None or binding.kind != kind:
            continue
        if binding.event_type in handlers:
            raise ValueError(f"duplicate {kind} projection for {binding.event_type}")
        handlers[binding.event_type] = getattr(projector, name)
    return handlers
