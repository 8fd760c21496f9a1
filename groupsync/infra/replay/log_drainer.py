# =============================================================================
# File: groupsync/infra/replay/log_drainer.py
# Description: Drains a group log "until now" into a projection handler
# =============================================================================
# One drain = one child cancellation scope + one bounded stream. The stream
# is consumed to its end, sequentially, and both the scope and the stream are
# released on every exit path so the producer stops right away.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Type, TYPE_CHECKING

from groupsync.common.exceptions.exceptions import (
    DeserializationError,
    EventListMessageError,
    EventListMetadataError,
    ReplayError,
)
from groupsync.infra.replay.cancellation import CancellationScope, ScopeCancelledError
from groupsync.messenger.app_messages import decode_app_message
from groupsync.messenger.protocol_types import GroupMessageEvent, GroupMetadataEvent
from groupsync.utils.key_utils import b64_encode_bytes, short_key

if TYPE_CHECKING:
    from groupsync.messenger.ports.projection_handler_port import ProjectionHandlerPort
    from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort

log = logging.getLogger("groupsync.replay.drainer")

_END_OF_STREAM = object()


async def _receive(stream: AsyncIterator[Any]) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _END_OF_STREAM


async def _close(stream: AsyncIterator[Any]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        log.warning(f"Error closing log stream: {e}")


class LogDrainer:
    """
    Reads the metadata and message logs of a group from the start through
    the head at open time, and hands each entry to the projection handler.
    """

    def __init__(
        self,
        protocol_client: 'ProtocolClientPort',
        handler: 'ProjectionHandlerPort',
        scope: CancellationScope,
    ):
        self.protocol_client = protocol_client
        self.handler = handler
        self.scope = scope

    async def drain_metadata(self, group_pk: bytes) -> int:
        """
        Apply every metadata entry of the group.

        Handler errors propagate unchanged.

        Returns:
            Number of entries applied

        Raises:
            EventListMetadataError: Stream could not be opened or read, or the scope was cancelled
        """
        async def open_stream(scope: CancellationScope) -> AsyncIterator[GroupMetadataEvent]:
            return await self.protocol_client.group_metadata_list(group_pk, until_now=True, scope=scope)

        return await self._drain(
            group_pk,
            "metadata",
            open_stream,
            self.handler.handle_metadata_event,
            EventListMetadataError,
        )

    async def drain_messages(self, group_pk: bytes) -> int:
        """
        Decode and apply every application message of the group.

        Returns:
            Number of messages applied

        Raises:
            DeserializationError: A payload is not a valid application message
            EventListMessageError: Stream could not be opened or read, or the scope was cancelled
        """
        group_pk_str = b64_encode_bytes(group_pk)

        async def open_stream(scope: CancellationScope) -> AsyncIterator[GroupMessageEvent]:
            return await self.protocol_client.group_message_list(group_pk, until_now=True, scope=scope)

        async def apply(event: GroupMessageEvent) -> None:
            try:
                app_message = decode_app_message(event.message)
            except DeserializationError as e:
                e.group_pk = group_pk_str
                raise
            await self.handler.handle_app_message(group_pk_str, event, app_message)

        return await self._drain(
            group_pk,
            "message",
            open_stream,
            apply,
            EventListMessageError,
        )

    async def _drain(
        self,
        group_pk: bytes,
        kind: str,
        open_stream: Callable[[CancellationScope], Awaitable[AsyncIterator[Any]]],
        apply: Callable[[Any], Awaitable[None]],
        list_error: Type[ReplayError],
    ) -> int:
        group_pk_str = b64_encode_bytes(group_pk)

        async with self.scope.child() as scope:
            try:
                stream = await open_stream(scope)
            except Exception as e:
                raise list_error(f"unable to list {kind} log", group_pk=group_pk_str) from e

            applied = 0
            try:
                while True:
                    if scope.cancelled:
                        raise list_error(
                            f"{kind} log listing cancelled", group_pk=group_pk_str
                        ) from ScopeCancelledError(scope.reason or "scope cancelled")

                    try:
                        entry = await scope.guard(_receive(stream))
                    except Exception as e:
                        raise list_error(f"unable to read {kind} log", group_pk=group_pk_str) from e

                    if entry is _END_OF_STREAM:
                        break

                    await apply(entry)
                    applied += 1
            finally:
                await _close(stream)

        log.debug(f"Drained {applied} {kind} entries from {short_key(group_pk_str)}")
        return applied
