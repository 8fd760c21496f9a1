from __future__ import annotations

import asyncio

import pytest

from groupsync.infra.protocol.local_protocol_service import LocalProtocolService
from groupsync.infra.read_repos.messenger_memory_repo import MessengerMemoryRepo
from groupsync.messenger.app_messages import GroupInvitation, UserMessage, UserReaction
from groupsync.messenger.enums import AppMessageType, ContactState, ConversationType, MetadataEventType
from groupsync.messenger.exceptions import ConversationNotFoundError, ProjectionError
from groupsync.messenger.ports.local_store_port import LocalStorePort
from groupsync.messenger.ports.projection_handler_port import ProjectionHandlerPort
from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort
from groupsync.messenger.projectors import MessengerProjector
from groupsync.messenger.protocol_types import (
    AccountGroupJoined,
    AccountGroupLeft,
    ContactRequestIncomingAccepted,
    ContactRequestIncomingReceived,
    ContactRequestOutgoingEnqueued,
)
from groupsync.utils.key_utils import b64_encode_bytes

from tests.fakes.fake_protocol_client import make_group_pk


class Notifications:
    def __init__(self):
        self.sent = []

    async def __call__(self, kind, payload):
        self.sent.append((kind, payload))


@pytest.fixture
def service(home_pk) -> LocalProtocolService:
    return LocalProtocolService(account_pk=b"me", device_pk=b"my-device", account_group_pk=home_pk)


@pytest.fixture
def repo() -> MessengerMemoryRepo:
    return MessengerMemoryRepo()


def _apply_metadata(projector, service, group_pk, event_type, payload=None):
    event = service.append_metadata(group_pk, event_type, payload)
    asyncio.run(projector.handle_metadata_event(event))
    return event


def _apply_message(projector, service, group_pk, app_message, device_pk=None):
    event = service.append_message(group_pk, app_message, device_pk=device_pk)
    asyncio.run(projector.handle_app_message(b64_encode_bytes(group_pk), event, app_message))
    return event


# =============================================================================
# Live mode
# =============================================================================

def test_outgoing_contact_request_activates_group_when_live(service, repo, home_pk):
    contact_group = make_group_pk("carol")
    service.create_group(contact_group)
    notifications = Notifications()
    projector = MessengerProjector(repo, service, notifier=notifications)

    _apply_metadata(
        projector, service, home_pk,
        MetadataEventType.ACCOUNT_CONTACT_REQUEST_OUTGOING_ENQUEUED,
        ContactRequestOutgoingEnqueued(contact_pk="carol", group_pk=b64_encode_bytes(contact_group)),
    )

    assert service.is_active(contact_group)
    assert ("contact_updated", "carol") in notifications.sent


def test_replay_mode_neither_activates_nor_notifies(service, repo, home_pk):
    contact_group = make_group_pk("carol")
    service.create_group(contact_group)
    notifications = Notifications()
    projector = MessengerProjector(repo, service, notifier=notifications, replay=True)

    _apply_metadata(
        projector, service, home_pk,
        MetadataEventType.ACCOUNT_CONTACT_REQUEST_OUTGOING_ENQUEUED,
        ContactRequestOutgoingEnqueued(contact_pk="carol", group_pk=b64_encode_bytes(contact_group)),
    )

    assert service.activation_history == []
    assert notifications.sent == []
    assert b64_encode_bytes(contact_group) in repo.conversations


def test_invalid_contact_group_key_when_live(service, repo, home_pk):
    projector = MessengerProjector(repo, service)

    with pytest.raises(ProjectionError):
        _apply_metadata(
            projector, service, home_pk,
            MetadataEventType.ACCOUNT_CONTACT_REQUEST_OUTGOING_ENQUEUED,
            ContactRequestOutgoingEnqueued(contact_pk="carol", group_pk="not base64!"),
        )


# =============================================================================
# Conversations and contacts
# =============================================================================

def test_group_left_closes_known_conversation(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)
    team = b64_encode_bytes(make_group_pk("team"))

    _apply_metadata(projector, service, home_pk, MetadataEventType.ACCOUNT_GROUP_JOINED,
                    AccountGroupJoined(group_pk=team, display_name="Team"))
    _apply_metadata(projector, service, home_pk, MetadataEventType.ACCOUNT_GROUP_LEFT,
                    AccountGroupLeft(group_pk=team))

    assert repo.conversations[team].is_open is False
    assert repo.conversations[team].conversation_type == ConversationType.MULTI_MEMBER


def test_group_left_for_unknown_conversation_is_ignored(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)

    _apply_metadata(projector, service, home_pk, MetadataEventType.ACCOUNT_GROUP_LEFT,
                    AccountGroupLeft(group_pk="unknown"))

    assert repo.conversations == {}


def test_accepted_request_keeps_received_display_name(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)
    group = b64_encode_bytes(make_group_pk("dave"))

    _apply_metadata(projector, service, home_pk,
                    MetadataEventType.ACCOUNT_CONTACT_REQUEST_INCOMING_RECEIVED,
                    ContactRequestIncomingReceived(contact_pk="dave", group_pk=group, display_name="Dave"))
    _apply_metadata(projector, service, home_pk,
                    MetadataEventType.ACCOUNT_CONTACT_REQUEST_INCOMING_ACCEPTED,
                    ContactRequestIncomingAccepted(contact_pk="dave", group_pk=group))

    contact = repo.contacts["dave"]
    assert contact.state == ContactState.ACCEPTED
    assert contact.display_name == "Dave"
    assert repo.conversations[group].display_name == "Dave"
    assert repo.conversations[group].contact_public_key == "dave"


def test_contact_state_does_not_move_backwards(repo):
    async def run():
        await repo.add_contact("dave", "g", "Dave", ContactState.ACCEPTED)
        return await repo.add_contact("dave", "g", "", ContactState.INCOMING_REQUEST)

    contact = asyncio.run(run())

    assert contact.state == ContactState.ACCEPTED


def test_unhandled_metadata_type_is_skipped(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)

    _apply_metadata(projector, service, home_pk, MetadataEventType.GROUP_DEVICE_CHAIN_KEY_ADDED)

    assert repo.snapshot()["conversations"] == []


def test_malformed_payload_raises_projection_error(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)
    event = service.append_metadata(home_pk, MetadataEventType.ACCOUNT_GROUP_JOINED)

    with pytest.raises(ProjectionError) as exc_info:
        asyncio.run(projector.handle_metadata_event(event))

    assert exc_info.value.event_id == b64_encode_bytes(event.event_context.id)


# =============================================================================
# Interactions
# =============================================================================

def test_user_message_stored_once(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)
    event = _apply_message(projector, service, home_pk, UserMessage(body="hello"))

    asyncio.run(projector.handle_app_message(
        b64_encode_bytes(home_pk), event, UserMessage(body="hello"),
    ))

    assert list(repo.interactions) == [b64_encode_bytes(event.event_context.id)]
    interaction = repo.interactions[b64_encode_bytes(event.event_context.id)]
    assert interaction.message_type == AppMessageType.USER_MESSAGE
    assert interaction.device_public_key == b64_encode_bytes(b"my-device")


def test_group_invitation_is_an_interaction(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)

    event = _apply_message(projector, service, home_pk, GroupInvitation(link="https://example.invalid/join"))

    assert repo.interactions[b64_encode_bytes(event.event_context.id)].message_type == AppMessageType.GROUP_INVITATION


def test_reaction_removed(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)
    target = b64_encode_bytes(_apply_message(projector, service, home_pk, UserMessage(body="hi")).event_context.id)

    _apply_message(projector, service, home_pk, UserReaction(target=target, emoji="+1"))
    _apply_message(projector, service, home_pk, UserReaction(target=target, emoji="+1", state=False))

    assert repo.interactions[target].reactions == []


def test_reaction_to_unknown_target_is_kept_as_interaction(service, repo, home_pk):
    projector = MessengerProjector(repo, service, replay=True)

    event = _apply_message(projector, service, home_pk, UserReaction(target="missing", emoji="+1"))

    assert repo.interactions[b64_encode_bytes(event.event_context.id)].target_cid == "missing"


# =============================================================================
# Store
# =============================================================================

def test_add_account_creates_home_conversation_once(repo):
    async def run():
        await repo.add_account("home", "Alice")
        await repo.add_account("home", "Renamed")
        return await repo.get_account(), await repo.get_conversation("home")

    account, conversation = asyncio.run(run())

    assert account.display_name == "Alice"
    assert conversation.conversation_type == ConversationType.ACCOUNT
    assert len(repo.conversations) == 1


def test_add_account_rejects_a_second_account(repo):
    async def run():
        await repo.add_account("home", "Alice")
        await repo.add_account("other", "Bob")

    with pytest.raises(ValueError):
        asyncio.run(run())


def test_close_unknown_conversation(repo):
    with pytest.raises(ConversationNotFoundError):
        asyncio.run(repo.close_conversation("missing"))


def test_adapters_satisfy_ports(service, repo):
    assert isinstance(service, ProtocolClientPort)
    assert isinstance(repo, LocalStorePort)
    assert isinstance(MessengerProjector(repo, service), ProjectionHandlerPort)
