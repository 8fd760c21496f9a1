# =============================================================================
# File: groupsync/messenger/app_messages.py
# Description: Application messages carried by group message logs
# =============================================================================

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from groupsync.common.exceptions.exceptions import DeserializationError
from groupsync.messenger.enums import AppMessageType


class BaseAppMessage(BaseModel):
    """Base Pydantic model for application messages"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')

    sent_date: int = 0  # ms since epoch, set by the sender

    @property
    def message_type(self) -> AppMessageType:
        return AppMessageType(getattr(self, "type"))


class UserMessage(BaseAppMessage):
    type: Literal["user_message"] = "user_message"
    body: str


class Acknowledge(BaseAppMessage):
    type: Literal["acknowledge"] = "acknowledge"
    target: str  # cid of the acknowledged interaction


class SetUserInfo(BaseAppMessage):
    type: Literal["set_user_info"] = "set_user_info"
    display_name: str


class GroupInvitation(BaseAppMessage):
    type: Literal["group_invitation"] = "group_invitation"
    link: str


class UserReaction(BaseAppMessage):
    type: Literal["user_reaction"] = "user_reaction"
    target: str
    emoji: str
    state: bool = True  # False removes the reaction


AppMessage = Annotated[
    Union[UserMessage, Acknowledge, SetUserInfo, GroupInvitation, UserReaction],
    Field(discriminator="type"),
]

_app_message_adapter: TypeAdapter[AppMessage] = TypeAdapter(AppMessage)


def encode_app_message(message: BaseAppMessage) -> bytes:
    """Serialize an application message to its wire form (UTF-8 JSON)."""
    return message.model_dump_json().encode("utf-8")


def decode_app_message(data: bytes) -> AppMessage:
    """
    Deserialize an application message.

    Raises:
        DeserializationError: If the payload is not a valid application message
    """
    try:
        return _app_message_adapter.validate_json(data)
    except PydanticValidationError as e:
        raise DeserializationError("unable to decode application message") from e
