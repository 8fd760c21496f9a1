# =============================================================================
# File: groupsync/messenger/protocol_types.py
# Description: Types exchanged with the protocol service
# =============================================================================
# Log items are produced by the protocol service in log order. Metadata
# payloads are opaque to the replay core and only decoded by the projection
# handler; message payloads are serialized AppMessages (see app_messages.py).
# =============================================================================

from __future__ import annotations

from typing import Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from groupsync.messenger.enums import ConversationType, MetadataEventType


class ProtocolModel(BaseModel):
    """Base for immutable protocol payloads"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Instance configuration
# =============================================================================

class GroupConfiguration(ProtocolModel):
    """Configuration of the local protocol instance"""
    account_pk: bytes
    device_pk: bytes
    account_group_pk: bytes  # home group
    peer_id: str = ""


# =============================================================================
# Log items
# =============================================================================

class EventContext(ProtocolModel):
    """Position of an entry in a group log"""
    id: bytes
    parent_ids: List[bytes] = Field(default_factory=list)
    group_pk: bytes


class GroupMetadataEvent(ProtocolModel):
    """Entry of a group metadata log"""
    event_context: EventContext
    event_type: MetadataEventType
    payload: bytes = b""


class MessageHeaders(ProtocolModel):
    counter: int = 0
    device_pk: bytes = b""


class GroupMessageEvent(ProtocolModel):
    """Entry of a group message log; ``message`` is a serialized AppMessage"""
    event_context: EventContext
    headers: MessageHeaders = Field(default_factory=MessageHeaders)
    message: bytes


# =============================================================================
# Metadata payloads (JSON, keys as encoded strings)
# =============================================================================

class AccountGroupJoined(ProtocolModel):
    group_pk: str
    group_type: ConversationType = ConversationType.MULTI_MEMBER
    display_name: str = ""


class AccountGroupLeft(ProtocolModel):
    group_pk: str


class ContactRequestOutgoingEnqueued(ProtocolModel):
    contact_pk: str
    group_pk: str
    display_name: str = ""


class ContactRequestIncomingReceived(ProtocolModel):
    contact_pk: str
    group_pk: str
    display_name: str = ""


class ContactRequestIncomingAccepted(ProtocolModel):
    contact_pk: str
    group_pk: str


class GroupMemberDeviceAdded(ProtocolModel):
    member_pk: str
    device_pk: str


METADATA_PAYLOADS: Dict[MetadataEventType, Type[ProtocolModel]] = {
    MetadataEventType.ACCOUNT_GROUP_JOINED: AccountGroupJoined,
    MetadataEventType.ACCOUNT_GROUP_LEFT: AccountGroupLeft,
    MetadataEventType.ACCOUNT_CONTACT_REQUEST_OUTGOING_ENQUEUED: ContactRequestOutgoingEnqueued,
    MetadataEventType.ACCOUNT_CONTACT_REQUEST_INCOMING_RECEIVED: ContactRequestIncomingReceived,
    MetadataEventType.ACCOUNT_CONTACT_REQUEST_INCOMING_ACCEPTED: ContactRequestIncomingAccepted,
    MetadataEventType.GROUP_MEMBER_DEVICE_ADDED: GroupMemberDeviceAdded,
}


def encode_metadata_payload(payload: ProtocolModel) -> bytes:
    """Serialize a metadata payload for a metadata log entry."""
    return payload.model_dump_json().encode("utf-8")


def decode_metadata_payload(event: GroupMetadataEvent) -> Optional[ProtocolModel]:
    """
    Decode the payload of a metadata log entry.

    Returns None for event types that carry no payload this side understands.

    Raises:
        pydantic.ValidationError: If the payload does not match its type
    """
    model = METADATA_PAYLOADS.get(event.event_type)
    if model is None:
        return None
    return model.model_validate_json(event.payload)
