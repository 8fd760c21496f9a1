# =============================================================================
# File: groupsync/infra/replay/group_lifecycle.py
# Description: Activation and release of non-home groups during replay
# =============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, TYPE_CHECKING

from groupsync.common.exceptions.exceptions import GroupActivationError, GroupDeactivationError
from groupsync.utils.key_utils import b64_encode_bytes

if TYPE_CHECKING:
    from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort

log = logging.getLogger("groupsync.replay.lifecycle")


class GroupLifecycleManager:
    """
    Activates a group so its logs can be read, and releases it afterwards.

    The home group is always active on the protocol side; callers must not
    pass it here.
    """

    def __init__(self, protocol_client: 'ProtocolClientPort', deactivate_on_failure: bool = True):
        self.protocol_client = protocol_client
        self.deactivate_on_failure = deactivate_on_failure

    async def activate(self, group_pk: bytes) -> None:
        """Local-only activation: presence is not advertised to the network."""
        try:
            await self.protocol_client.activate_group(group_pk, local_only=True)
        except Exception as e:
            raise GroupActivationError(
                "unable to activate group", group_pk=b64_encode_bytes(group_pk)
            ) from e

    async def deactivate(self, group_pk: bytes) -> None:
        try:
            await self.protocol_client.deactivate_group(group_pk)
        except Exception as e:
            raise GroupDeactivationError(
                "unable to deactivate group", group_pk=b64_encode_bytes(group_pk)
            ) from e

    @asynccontextmanager
    async def activated(self, group_pk: bytes) -> AsyncIterator[None]:
        """
        Keep a group active for the duration of the block.

        The group is deactivated when the block succeeds. When the block
        fails, it is deactivated too unless deactivate_on_failure is off; a
        deactivation error on that path is logged and the block's own error
        is raised.
        """
        await self.activate(group_pk)
        try:
            yield
        except BaseException:
            if self.deactivate_on_failure:
                try:
                    await self.deactivate(group_pk)
                except GroupDeactivationError as e:
                    log.warning(f"Group left active after failed replay: {e}")
            raise
        await self.deactivate(group_pk)
