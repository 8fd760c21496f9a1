# =============================================================================
# File: groupsync/messenger/ports/protocol_client_port.py
# Description: Port interface for the protocol service
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import AsyncIterator, Optional, Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from groupsync.infra.replay.cancellation import CancellationScope
    from groupsync.messenger.protocol_types import (
        GroupConfiguration,
        GroupMessageEvent,
        GroupMetadataEvent,
    )


@runtime_checkable
class ProtocolClientPort(Protocol):
    """
    Port: Protocol Service Client

    Defined by: Messenger Domain
    Implemented by: LocalProtocolService (groupsync/infra/protocol/local_protocol_service.py)

    The protocol service owns the per-group append-only logs (metadata and
    messages) and the activation state of groups. The home (account) group
    is always active; any other group must be activated before its logs can
    be read.
    """

    async def get_configuration(self) -> 'GroupConfiguration':
        """
        Fetch the configuration of the local protocol instance.

        Returns:
            GroupConfiguration; ``account_group_pk`` is the home group
        """
        ...

    async def activate_group(self, group_pk: bytes, local_only: bool = False) -> None:
        """
        Activate a group so that its logs become readable.

        Args:
            group_pk: Group public key
            local_only: Do not advertise presence on the network
        """
        ...

    async def deactivate_group(self, group_pk: bytes) -> None:
        """Release whatever activate_group allocated for the group."""
        ...

    async def group_metadata_list(
        self,
        group_pk: bytes,
        until_now: bool = False,
        scope: Optional['CancellationScope'] = None,
    ) -> AsyncIterator['GroupMetadataEvent']:
        """
        Open a metadata log stream for a group.

        Args:
            group_pk: Group public key
            until_now: Stop at the log head as seen when the stream is opened
            scope: Producer stops once this scope is cancelled

        Returns:
            Async iterator over metadata entries, in log order
        """
        ...

    async def group_message_list(
        self,
        group_pk: bytes,
        until_now: bool = False,
        scope: Optional['CancellationScope'] = None,
    ) -> AsyncIterator['GroupMessageEvent']:
        """
        Open a message log stream for a group.

        Returns:
            Async iterator over message entries, in log order
        """
        ...
