# =============================================================================
# File: groupsync/messenger/read_models.py
# Description: Messenger domain read models held by the local store
# =============================================================================

from __future__ import annotations

from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from groupsync.messenger.enums import ConversationType, ContactState, AppMessageType


class AccountReadModel(BaseModel):
    """Local account, keyed by the home group public key"""
    public_key: str
    display_name: str = ""

    model_config = ConfigDict(from_attributes=True)


class ConversationReadModel(BaseModel):
    """Any group the account is a member of, the home group included"""
    public_key: str
    conversation_type: ConversationType = ConversationType.MULTI_MEMBER
    display_name: str = ""
    contact_public_key: Optional[str] = None
    is_open: bool = True

    model_config = ConfigDict(from_attributes=True)


class ContactReadModel(BaseModel):
    public_key: str
    conversation_public_key: str
    display_name: str = ""
    state: ContactState = ContactState.INCOMING_REQUEST

    model_config = ConfigDict(from_attributes=True)


class MemberReadModel(BaseModel):
    """Member of a conversation, identified by member key within that conversation"""
    public_key: str
    conversation_public_key: str
    display_name: str = ""
    device_public_keys: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class InteractionReadModel(BaseModel):
    """Application message applied to a conversation, keyed by its log cid"""
    cid: str
    conversation_public_key: str
    message_type: AppMessageType
    device_public_key: str = ""
    payload: str = ""  # JSON of the decoded application message
    sent_date: int = 0
    target_cid: Optional[str] = None
    acknowledged: bool = False
    reactions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
