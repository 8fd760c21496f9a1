# =============================================================================
# File: groupsync/messenger/ports/projection_handler_port.py
# Description: Port interface for applying log entries to the local store
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from groupsync.messenger.app_messages import AppMessage
    from groupsync.messenger.ports.local_store_port import LocalStorePort
    from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort
    from groupsync.messenger.protocol_types import GroupMessageEvent, GroupMetadataEvent


@runtime_checkable
class ProjectionHandlerPort(Protocol):
    """
    Port: Projection Handler

    Defined by: Messenger Domain
    Implemented by: MessengerProjector (groupsync/messenger/projectors.py)

    Implementations must be idempotent: the replay re-reads logs from the
    beginning on every run.
    """

    async def handle_metadata_event(self, event: 'GroupMetadataEvent') -> None:
        """
        Apply a metadata log entry.

        Raises:
            ProjectionError: If the entry cannot be applied
        """
        ...

    async def handle_app_message(
        self,
        group_pk: str,
        event: 'GroupMessageEvent',
        app_message: 'AppMessage',
    ) -> None:
        """
        Apply an application message.

        Args:
            group_pk: Encoded public key of the conversation
            event: Raw message log entry
            app_message: Decoded payload of ``event``

        Raises:
            ProjectionError: If the message cannot be applied
        """
        ...


# Builds the handler used by a replay, bound to its store and client
ProjectionHandlerFactory = Callable[
    ['LocalStorePort', 'ProtocolClientPort'],
    ProjectionHandlerPort,
]
