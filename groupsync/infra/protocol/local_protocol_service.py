# =============================================================================
# File: groupsync/infra/protocol/local_protocol_service.py
# Description: In-process protocol service holding per-group event logs
# =============================================================================
# Each group owns two append-only logs (metadata, messages). The account
# group is always active; any other group must be activated before its logs
# can be listed. Streams opened with until_now=True stop at the log head as
# seen when the stream was opened.
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Set

from groupsync.common.exceptions.exceptions import GroupSyncException, NotFoundError
from groupsync.infra.replay.cancellation import CancellationScope, ScopeCancelledError
from groupsync.messenger.app_messages import BaseAppMessage, encode_app_message
from groupsync.messenger.enums import MetadataEventType
from groupsync.messenger.protocol_types import (
    EventContext,
    GroupConfiguration,
    GroupMessageEvent,
    GroupMetadataEvent,
    MessageHeaders,
    ProtocolModel,
    encode_metadata_payload,
)
from groupsync.utils.key_utils import b64_encode_bytes, short_key

log = logging.getLogger("groupsync.protocol.local")


class GroupNotFoundError(NotFoundError):
    """Group unknown to the protocol service"""
    def __init__(self, group_pk: bytes):
        super().__init__(f"Group not found: {b64_encode_bytes(group_pk)}")
        self.group_pk = group_pk


class GroupNotActiveError(GroupSyncException):
    """Logs of an inactive group were requested"""
    def __init__(self, group_pk: bytes):
        super().__init__(f"Group not active: {b64_encode_bytes(group_pk)}")
        self.group_pk = group_pk


@dataclass
class GroupLogs:
    """Both logs of one group"""
    group_pk: bytes
    metadata: List[GroupMetadataEvent] = field(default_factory=list)
    messages: List[GroupMessageEvent] = field(default_factory=list)


def _entry_id(group_pk: bytes, kind: str, index: int) -> bytes:
    return hashlib.sha256(group_pk + kind.encode() + index.to_bytes(8, "big")).digest()


class LocalProtocolService:
    """
    Protocol service running in the same process as the messenger.

    Implements ProtocolClientPort. Keeps an activation history so callers
    can check that groups were released.
    """

    def __init__(self, account_pk: bytes, device_pk: bytes, account_group_pk: bytes, peer_id: str = ""):
        self._config = GroupConfiguration(
            account_pk=account_pk,
            device_pk=device_pk,
            account_group_pk=account_group_pk,
            peer_id=peer_id,
        )
        self._groups: Dict[bytes, GroupLogs] = {}
        self._active: Set[bytes] = set()
        self.activation_history: List[tuple] = []  # ("activate" | "deactivate", group_pk)
        self.max_active_groups = 0

        self.create_group(account_group_pk)

    # =========================================================================
    # Log management
    # =========================================================================

    def create_group(self, group_pk: bytes) -> GroupLogs:
        return self._groups.setdefault(group_pk, GroupLogs(group_pk=group_pk))

    def _logs(self, group_pk: bytes) -> GroupLogs:
        logs = self._groups.get(group_pk)
        if logs is None:
            raise GroupNotFoundError(group_pk)
        return logs

    def append_metadata(
        self,
        group_pk: bytes,
        event_type: MetadataEventType,
        payload: Optional[ProtocolModel] = None,
    ) -> GroupMetadataEvent:
        logs = self._logs(group_pk)
        parents = [logs.metadata[-1].event_context.id] if logs.metadata else []
        event = GroupMetadataEvent(
            event_context=EventContext(
                id=_entry_id(group_pk, "metadata", len(logs.metadata)),
                parent_ids=parents,
                group_pk=group_pk,
            ),
            event_type=event_type,
            payload=encode_metadata_payload(payload) if payload is not None else b"",
        )
        logs.metadata.append(event)
        return event

    def append_message(
        self,
        group_pk: bytes,
        app_message: BaseAppMessage,
        device_pk: Optional[bytes] = None,
    ) -> GroupMessageEvent:
        return self.append_raw_message(group_pk, encode_app_message(app_message), device_pk)

    def append_raw_message(
        self,
        group_pk: bytes,
        data: bytes,
        device_pk: Optional[bytes] = None,
    ) -> GroupMessageEvent:
        logs = self._logs(group_pk)
        parents = [logs.messages[-1].event_context.id] if logs.messages else []
        event = GroupMessageEvent(
            event_context=EventContext(
                id=_entry_id(group_pk, "message", len(logs.messages)),
                parent_ids=parents,
                group_pk=group_pk,
            ),
            headers=MessageHeaders(
                counter=len(logs.messages),
                device_pk=device_pk if device_pk is not None else self._config.device_pk,
            ),
            message=data,
        )
        logs.messages.append(event)
        return event

    # =========================================================================
    # ProtocolClientPort
    # =========================================================================

    async def get_configuration(self) -> GroupConfiguration:
        return self._config

    def is_active(self, group_pk: bytes) -> bool:
        return group_pk == self._config.account_group_pk or group_pk in self._active

    @property
    def active_groups(self) -> Set[bytes]:
        return set(self._active)

    async def activate_group(self, group_pk: bytes, local_only: bool = False) -> None:
        self._logs(group_pk)
        if group_pk == self._config.account_group_pk:
            return
        self._active.add(group_pk)
        self.activation_history.append(("activate", group_pk))
        self.max_active_groups = max(self.max_active_groups, len(self._active))
        log.debug(f"Group activated: {short_key(b64_encode_bytes(group_pk))} local_only={local_only}")

    async def deactivate_group(self, group_pk: bytes) -> None:
        self._logs(group_pk)
        if group_pk == self._config.account_group_pk:
            return
        self._active.discard(group_pk)
        self.activation_history.append(("deactivate", group_pk))
        log.debug(f"Group deactivated: {short_key(b64_encode_bytes(group_pk))}")

    async def group_metadata_list(
        self,
        group_pk: bytes,
        until_now: bool = False,
        scope: Optional[CancellationScope] = None,
    ) -> AsyncIterator[GroupMetadataEvent]:
        logs = self._open(group_pk, until_now)
        return self._stream(logs.metadata[:], scope)

    async def group_message_list(
        self,
        group_pk: bytes,
        until_now: bool = False,
        scope: Optional[CancellationScope] = None,
    ) -> AsyncIterator[GroupMessageEvent]:
        logs = self._open(group_pk, until_now)
        return self._stream(logs.messages[:], scope)

    def _open(self, group_pk: bytes, until_now: bool) -> GroupLogs:
        if not until_now:
            raise NotImplementedError("live log subscriptions are not served by the local service")
        logs = self._logs(group_pk)
        if not self.is_active(group_pk):
            raise GroupNotActiveError(group_pk)
        return logs

    @staticmethod
    async def _stream(entries: list, scope: Optional[CancellationScope]) -> AsyncIterator:
        for entry in entries:
            if scope is not None and scope.cancelled:
                raise ScopeCancelledError(scope.reason or "stream cancelled")
            # One suspension point per entry, like a network receive
            await asyncio.sleep(0)
            yield entry
