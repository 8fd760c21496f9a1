# =============================================================================
# File: groupsync/messenger/enums.py
# Description: Messenger domain enumerations
# =============================================================================

from enum import Enum


class MetadataEventType(str, Enum):
    """Types of entries found in a group metadata log"""
    GROUP_MEMBER_DEVICE_ADDED = "group_member_device_added"
    GROUP_DEVICE_CHAIN_KEY_ADDED = "group_device_chain_key_added"
    MULTI_MEMBER_GROUP_INITIAL_MEMBER_ANNOUNCED = "multi_member_group_initial_member_announced"
    ACCOUNT_GROUP_JOINED = "account_group_joined"
    ACCOUNT_GROUP_LEFT = "account_group_left"
    ACCOUNT_CONTACT_REQUEST_OUTGOING_ENQUEUED = "account_contact_request_outgoing_enqueued"
    ACCOUNT_CONTACT_REQUEST_INCOMING_RECEIVED = "account_contact_request_incoming_received"
    ACCOUNT_CONTACT_REQUEST_INCOMING_ACCEPTED = "account_contact_request_incoming_accepted"


class AppMessageType(str, Enum):
    """Types of application messages carried in a group message log"""
    USER_MESSAGE = "user_message"
    ACKNOWLEDGE = "acknowledge"
    SET_USER_INFO = "set_user_info"
    GROUP_INVITATION = "group_invitation"
    USER_REACTION = "user_reaction"


class ConversationType(str, Enum):
    """Types of conversations"""
    ACCOUNT = "account"
    CONTACT = "contact"
    MULTI_MEMBER = "multi_member"


class ContactState(str, Enum):
    """Contact request lifecycle"""
    OUTGOING_REQUEST_ENQUEUED = "outgoing_request_enqueued"
    INCOMING_REQUEST = "incoming_request"
    ACCEPTED = "accepted"
