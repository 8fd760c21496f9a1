# =============================================================================
# File: groupsync/messenger/projectors.py
# Description: Messenger projector - applies group log entries to the local store
# =============================================================================
# Used both by live subscriptions and by the replay. Every projection is
# idempotent: conversations, contacts and members are created only if absent,
# interactions are keyed by the cid of their log entry.
#
# In replay mode the projector never calls back into the protocol service
# and never notifies listeners.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from groupsync.config.logging_config import get_logger
from groupsync.infra.cqrs.projector_decorators import (
    collect_projections,
    message_projection,
    metadata_projection,
    monitor_projection,
)
from groupsync.messenger.app_messages import (
    Acknowledge,
    AppMessage,
    SetUserInfo,
    UserReaction,
)
from groupsync.messenger.enums import (
    AppMessageType,
    ContactState,
    ConversationType,
    MetadataEventType,
)
from groupsync.messenger.exceptions import ProjectionError
from groupsync.messenger.protocol_types import (
    AccountGroupJoined,
    AccountGroupLeft,
    ContactRequestIncomingAccepted,
    ContactRequestIncomingReceived,
    ContactRequestOutgoingEnqueued,
    GroupMemberDeviceAdded,
    GroupMessageEvent,
    GroupMetadataEvent,
    decode_metadata_payload,
)
from groupsync.messenger.read_models import InteractionReadModel
from groupsync.utils.key_utils import b64_decode_bytes, b64_encode_bytes

if TYPE_CHECKING:
    from groupsync.messenger.ports.local_store_port import LocalStorePort
    from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort

# Listener called after a projection changed the store: (kind, payload)
Notifier = Callable[[str, Any], Awaitable[None]]


class MessengerProjector:
    """
    Store-backed projection handler for metadata and message logs.

    Dispatch is built from @metadata_projection / @message_projection
    bindings; entry types without a binding are skipped.
    """

    def __init__(
        self,
        store: 'LocalStorePort',
        protocol_client: 'ProtocolClientPort',
        logger: Optional[logging.Logger] = None,
        notifier: Optional[Notifier] = None,
        replay: bool = False,
    ):
        self.store = store
        self.protocol_client = protocol_client
        self.log = logger or get_logger("groupsync.messenger.projectors")
        self.notifier = notifier
        self.replay = replay

        self._metadata_handlers = collect_projections(self, "metadata")
        self._message_handlers = collect_projections(self, "message")

    # =========================================================================
    # Projection handler interface
    # =========================================================================

    async def handle_metadata_event(self, event: GroupMetadataEvent) -> None:
        handler = self._metadata_handlers.get(event.event_type.value)
        if handler is None:
            self.log.debug(f"No projection for metadata event {event.event_type.value}")
            return

        event_id = b64_encode_bytes(event.event_context.id)
        try:
            payload = decode_metadata_payload(event)
        except PydanticValidationError as e:
            raise ProjectionError(
                f"invalid {event.event_type.value} payload", event_id=event_id
            ) from e

        await handler(event, payload)

    async def handle_app_message(
        self,
        group_pk: str,
        event: GroupMessageEvent,
        app_message: AppMessage,
    ) -> None:
        handler = self._message_handlers.get(app_message.message_type.value)
        if handler is None:
            self.log.debug(f"No projection for app message {app_message.message_type.value}")
            return

        await handler(group_pk, event, app_message)

    # =========================================================================
    # Account group projections
    # =========================================================================

    @metadata_projection(MetadataEventType.ACCOUNT_GROUP_JOINED)
    @monitor_projection
    async def on_account_group_joined(
        self, event: GroupMetadataEvent, payload: AccountGroupJoined
    ) -> None:
        """Create the conversation of a joined multi-member group."""
        created = await self.store.add_conversation(
            public_key=payload.group_pk,
            conversation_type=payload.group_type,
            display_name=payload.display_name,
        )
        if created:
            self.log.info(f"Conversation added: {payload.group_pk}")
            await self._notify("conversation_updated", payload.group_pk)

    @metadata_projection(MetadataEventType.ACCOUNT_GROUP_LEFT)
    async def on_account_group_left(
        self, event: GroupMetadataEvent, payload: AccountGroupLeft
    ) -> None:
        conversations = await self.store.get_all_conversations()
        if not any(c.public_key == payload.group_pk for c in conversations):
            return
        await self.store.close_conversation(payload.group_pk)
        await self._notify("conversation_updated", payload.group_pk)

    @metadata_projection(MetadataEventType.ACCOUNT_CONTACT_REQUEST_OUTGOING_ENQUEUED)
    @monitor_projection
    async def on_contact_request_outgoing_enqueued(
        self, event: GroupMetadataEvent, payload: ContactRequestOutgoingEnqueued
    ) -> None:
        """Record an outgoing contact request and open its conversation."""
        await self.store.add_contact(
            public_key=payload.contact_pk,
            conversation_public_key=payload.group_pk,
            display_name=payload.display_name,
            state=ContactState.OUTGOING_REQUEST_ENQUEUED,
        )
        await self._open_contact_conversation(payload.contact_pk, payload.group_pk, payload.display_name)

    @metadata_projection(MetadataEventType.ACCOUNT_CONTACT_REQUEST_INCOMING_RECEIVED)
    async def on_contact_request_incoming_received(
        self, event: GroupMetadataEvent, payload: ContactRequestIncomingReceived
    ) -> None:
        await self.store.add_contact(
            public_key=payload.contact_pk,
            conversation_public_key=payload.group_pk,
            display_name=payload.display_name,
            state=ContactState.INCOMING_REQUEST,
        )
        await self._notify("contact_updated", payload.contact_pk)

    @metadata_projection(MetadataEventType.ACCOUNT_CONTACT_REQUEST_INCOMING_ACCEPTED)
    @monitor_projection
    async def on_contact_request_incoming_accepted(
        self, event: GroupMetadataEvent, payload: ContactRequestIncomingAccepted
    ) -> None:
        contact = await self.store.add_contact(
            public_key=payload.contact_pk,
            conversation_public_key=payload.group_pk,
            display_name="",
            state=ContactState.ACCEPTED,
        )
        await self._open_contact_conversation(payload.contact_pk, payload.group_pk, contact.display_name)

    async def _open_contact_conversation(
        self, contact_pk: str, group_pk: str, display_name: str
    ) -> None:
        created = await self.store.add_conversation(
            public_key=group_pk,
            conversation_type=ConversationType.CONTACT,
            display_name=display_name,
            contact_public_key=contact_pk,
        )
        if not created:
            return

        self.log.info(f"Contact conversation added: {group_pk}")
        # Live path only: the replay activates groups itself, one at a time
        if not self.replay:
            try:
                group_pk_bytes = b64_decode_bytes(group_pk)
            except ValueError as e:
                raise ProjectionError(f"invalid contact group key {group_pk!r}") from e
            await self.protocol_client.activate_group(group_pk_bytes)
        await self._notify("contact_updated", contact_pk)

    # =========================================================================
    # Group member projections
    # =========================================================================

    @metadata_projection(MetadataEventType.GROUP_MEMBER_DEVICE_ADDED)
    async def on_group_member_device_added(
        self, event: GroupMetadataEvent, payload: GroupMemberDeviceAdded
    ) -> None:
        conversation_pk = b64_encode_bytes(event.event_context.group_pk)
        await self.store.add_member(
            conversation_public_key=conversation_pk,
            member_public_key=payload.member_pk,
            device_public_key=payload.device_pk,
        )
        await self._notify("member_updated", payload.member_pk)

    # =========================================================================
    # Application message projections
    # =========================================================================

    @message_projection(AppMessageType.USER_MESSAGE)
    @monitor_projection
    async def on_user_message(
        self, group_pk: str, event: GroupMessageEvent, app_message: AppMessage
    ) -> None:
        """Store a user message as an interaction of its conversation."""
        await self._add_interaction(group_pk, event, app_message)

    @message_projection(AppMessageType.GROUP_INVITATION)
    async def on_group_invitation(
        self, group_pk: str, event: GroupMessageEvent, app_message: AppMessage
    ) -> None:
        await self._add_interaction(group_pk, event, app_message)

    @message_projection(AppMessageType.ACKNOWLEDGE)
    async def on_acknowledge(
        self, group_pk: str, event: GroupMessageEvent, app_message: Acknowledge
    ) -> None:
        await self._add_interaction(group_pk, event, app_message, target_cid=app_message.target)
        if not await self.store.mark_interaction_acknowledged(app_message.target):
            self.log.debug(f"Acknowledged interaction not found: {app_message.target}")

    @message_projection(AppMessageType.USER_REACTION)
    async def on_user_reaction(
        self, group_pk: str, event: GroupMessageEvent, app_message: UserReaction
    ) -> None:
        await self._add_interaction(group_pk, event, app_message, target_cid=app_message.target)
        if not await self.store.set_reaction(app_message.target, app_message.emoji, app_message.state):
            self.log.debug(f"Reaction target not found: {app_message.target}")

    @message_projection(AppMessageType.SET_USER_INFO)
    async def on_set_user_info(
        self, group_pk: str, event: GroupMessageEvent, app_message: SetUserInfo
    ) -> None:
        device_pk = b64_encode_bytes(event.headers.device_pk)
        updated = await self.store.set_member_display_name(
            conversation_public_key=group_pk,
            device_public_key=device_pk,
            display_name=app_message.display_name,
        )
        if updated:
            await self._notify("member_updated", device_pk)
        else:
            self.log.debug(f"No member for device {device_pk} in {group_pk}")

    async def _add_interaction(
        self,
        group_pk: str,
        event: GroupMessageEvent,
        app_message: AppMessage,
        target_cid: Optional[str] = None,
    ) -> None:
        interaction = InteractionReadModel(
            cid=b64_encode_bytes(event.event_context.id),
            conversation_public_key=group_pk,
            message_type=app_message.message_type,
            device_public_key=b64_encode_bytes(event.headers.device_pk),
            payload=app_message.model_dump_json(),
            sent_date=app_message.sent_date,
            target_cid=target_cid,
        )
        if await self.store.add_interaction(interaction):
            await self._notify("interaction_updated", interaction.cid)

    # =========================================================================
    # Notifications
    # =========================================================================

    async def _notify(self, kind: str, payload: Any) -> None:
        if self.replay or self.notifier is None:
            return
        await self.notifier(kind, payload)
