# groupsync/services/infrastructure/replay_service.py
"""
Replay Service - catches the local store up with the protocol service logs

Runs once per account opening, before live subscriptions take over:

1. fetch the instance configuration (home group)
2. make sure the account exists in the local store
3. replay the home group metadata log
4. for every conversation known to the store, in store order:
   activate (non-home), replay metadata (non-home), replay messages,
   deactivate (non-home)

Every failure aborts the replay. Nothing is persisted about progress: the
next run re-reads every log from the beginning, which the projection
handler tolerates by being idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TYPE_CHECKING

from groupsync.common.exceptions.exceptions import (
    ConfigurationFetchError,
    DeserializationError,
    MessageReplayError,
    MetadataReplayError,
    StoreReadError,
    StoreWriteError,
)
from groupsync.config.logging_config import get_null_logger, get_logger
from groupsync.config.replay_config import ReplayConfig, get_replay_config
from groupsync.infra.replay.cancellation import CancellationScope
from groupsync.infra.replay.group_lifecycle import GroupLifecycleManager
from groupsync.infra.replay.log_drainer import LogDrainer
from groupsync.messenger.projectors import MessengerProjector
from groupsync.utils.key_utils import b64_decode_bytes, b64_encode_bytes, short_key

if TYPE_CHECKING:
    from groupsync.messenger.ports.local_store_port import LocalStorePort
    from groupsync.messenger.ports.projection_handler_port import (
        ProjectionHandlerFactory,
        ProjectionHandlerPort,
    )
    from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort

logger = logging.getLogger("groupsync.replay")


@dataclass
class ReplayStats:
    """Counters of one replay run"""
    groups: int = 0
    metadata_events: int = 0
    messages: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


def replay_handler_factory(config: Optional[ReplayConfig] = None) -> 'ProjectionHandlerFactory':
    """
    Factory for the handler used during replay: store-backed, replay mode,
    no notifier, and a disabled logger unless handler_logging is set.
    """
    config = config or get_replay_config()

    def build(store: 'LocalStorePort', protocol_client: 'ProtocolClientPort') -> 'ProjectionHandlerPort':
        handler_logger = (
            get_logger("groupsync.messenger.projectors")
            if config.handler_logging
            else get_null_logger()
        )
        return MessengerProjector(
            store,
            protocol_client,
            logger=handler_logger,
            notifier=None,
            replay=True,
        )

    return build


class ReplayService:
    """
    Replays the metadata and message logs of every group of an account
    into the local store.

    Groups are processed one after the other, so at most one non-home group
    is active at any time.
    """

    def __init__(
        self,
        protocol_client: 'ProtocolClientPort',
        store: 'LocalStorePort',
        handler_factory: Optional['ProjectionHandlerFactory'] = None,
        config: Optional[ReplayConfig] = None,
    ):
        self.protocol_client = protocol_client
        self.store = store
        self.config = config or get_replay_config()
        self.handler_factory = handler_factory or replay_handler_factory(self.config)
        self.lifecycle = GroupLifecycleManager(
            protocol_client,
            deactivate_on_failure=self.config.deactivate_on_failure,
        )

    async def replay(self, scope: Optional[CancellationScope] = None) -> ReplayStats:
        """
        Catch the local store up with every group log, "until now".

        Args:
            scope: Cancellation scope of the caller; cancelling it makes the
                   in-flight drain fail with a list error

        Returns:
            ReplayStats of this run

        Raises:
            ReplayError: Subclass identifying the failed step
        """
        scope = scope or CancellationScope()
        stats = ReplayStats(started_at=datetime.now(timezone.utc))

        # Get account infos
        try:
            cfg = await self.protocol_client.get_configuration()
        except Exception as e:
            raise ConfigurationFetchError("unable to get instance configuration") from e

        home_pk = cfg.account_group_pk
        home_pk_str = b64_encode_bytes(home_pk)

        try:
            await self.store.add_account(home_pk_str, self.config.account_display_name)
        except Exception as e:
            raise StoreWriteError("unable to add account", group_pk=home_pk_str) from e

        handler = self.handler_factory(self.store, self.protocol_client)
        drainer = LogDrainer(self.protocol_client, handler, scope)

        logger.info(f"Replaying logs for account {short_key(home_pk_str)}")

        # The account group metadata defines which conversations the store knows
        try:
            stats.metadata_events += await drainer.drain_metadata(home_pk)
        except Exception as e:
            raise MetadataReplayError("unable to replay account group metadata", group_pk=home_pk_str) from e

        try:
            conversations = await self.store.get_all_conversations()
        except Exception as e:
            raise StoreReadError("unable to list conversations") from e

        for conversation in conversations:
            try:
                group_pk = b64_decode_bytes(conversation.public_key)
            except ValueError as e:
                raise DeserializationError(
                    "invalid conversation public key", group_pk=conversation.public_key
                ) from e

            if group_pk == home_pk:
                # Account group is always active and its metadata was replayed above
                stats.messages += await self._replay_messages(drainer, group_pk, conversation.public_key)
            else:
                async with self.lifecycle.activated(group_pk):
                    try:
                        stats.metadata_events += await drainer.drain_metadata(group_pk)
                    except Exception as e:
                        raise MetadataReplayError(
                            "unable to replay group metadata", group_pk=conversation.public_key
                        ) from e
                    stats.messages += await self._replay_messages(drainer, group_pk, conversation.public_key)

            stats.groups += 1
            logger.debug(f"Group replayed: {short_key(conversation.public_key)}")

        stats.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Replay complete: groups={stats.groups}, "
            f"metadata_events={stats.metadata_events}, messages={stats.messages}, "
            f"duration={stats.duration_seconds:.2f}s"
        )
        return stats

    @staticmethod
    async def _replay_messages(drainer: LogDrainer, group_pk: bytes, group_pk_str: str) -> int:
        try:
            return await drainer.drain_messages(group_pk)
        except Exception as e:
            raise MessageReplayError("unable to replay group messages", group_pk=group_pk_str) from e


# =============================================================================
# Account opening integration
# =============================================================================

Replayer = Callable[['LocalStorePort'], Awaitable[Optional[ReplayStats]]]


def get_events_replayer_for_store(
    scope: CancellationScope,
    protocol_client: 'ProtocolClientPort',
    config: Optional[ReplayConfig] = None,
    handler_factory: Optional['ProjectionHandlerFactory'] = None,
) -> Replayer:
    """
    Build the replayer run by account opening once the store is ready.

    Returns:
        Coroutine function taking the store; a no-op returning None when
        replay is disabled
    """
    config = config or get_replay_config()

    async def replayer(store: 'LocalStorePort') -> Optional[ReplayStats]:
        if not config.enabled:
            logger.info("Log replay disabled, skipping")
            return None
        service = ReplayService(protocol_client, store, handler_factory=handler_factory, config=config)
        return await service.replay(scope)

    return replayer


async def replay_account(
    protocol_client: 'ProtocolClientPort',
    store: 'LocalStorePort',
    scope: Optional[CancellationScope] = None,
) -> ReplayStats:
    """One-shot replay with the default configuration."""
    return await ReplayService(protocol_client, store).replay(scope)
