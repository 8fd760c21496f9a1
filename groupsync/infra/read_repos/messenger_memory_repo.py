# =============================================================================
# File: groupsync/infra/read_repos/messenger_memory_repo.py
# Description: In-process local store for the Messenger domain
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from groupsync.messenger.enums import ContactState, ConversationType
from groupsync.messenger.exceptions import ConversationNotFoundError
from groupsync.messenger.read_models import (
    AccountReadModel,
    ContactReadModel,
    ConversationReadModel,
    InteractionReadModel,
    MemberReadModel,
)

log = logging.getLogger("groupsync.messenger.read_repo")

# Contact requests only move forward
_CONTACT_STATE_RANK = {
    ContactState.OUTGOING_REQUEST_ENQUEUED: 0,
    ContactState.INCOMING_REQUEST: 0,
    ContactState.ACCEPTED: 1,
}


class MessengerMemoryRepo:
    """
    In-memory local store for accounts, conversations, contacts, members
    and interactions.

    All writes are idempotent and serialized through a single asyncio.Lock,
    so a live subscription path may share the repo with a running replay.
    Conversations are listed in creation order.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self.account: Optional[AccountReadModel] = None
        self.conversations: Dict[str, ConversationReadModel] = {}
        self.contacts: Dict[str, ContactReadModel] = {}
        self.members: Dict[str, MemberReadModel] = {}  # "conversation:member" -> member
        self.interactions: Dict[str, InteractionReadModel] = {}

    # =========================================================================
    # Account
    # =========================================================================

    async def add_account(self, public_key: str, display_name: str) -> None:
        """
        Create the account and its home conversation if absent.

        An existing account is left untouched, display name included.
        """
        async with self._lock:
            if self.account is not None:
                if self.account.public_key != public_key:
                    raise ValueError(
                        f"store already holds account {self.account.public_key}"
                    )
                return

            self.account = AccountReadModel(public_key=public_key, display_name=display_name)
            self.conversations.setdefault(public_key, ConversationReadModel(
                public_key=public_key,
                conversation_type=ConversationType.ACCOUNT,
                display_name=display_name,
            ))
            log.debug(f"Account created: {public_key}")

    async def get_account(self) -> Optional[AccountReadModel]:
        return self.account

    # =========================================================================
    # Conversations
    # =========================================================================

    async def get_all_conversations(self) -> List[ConversationReadModel]:
        async with self._lock:
            return list(self.conversations.values())

    async def get_conversation(self, public_key: str) -> ConversationReadModel:
        conversation = self.conversations.get(public_key)
        if conversation is None:
            raise ConversationNotFoundError(public_key)
        return conversation

    async def add_conversation(
        self,
        public_key: str,
        conversation_type: ConversationType,
        display_name: str = "",
        contact_public_key: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            if public_key in self.conversations:
                return False
            self.conversations[public_key] = ConversationReadModel(
                public_key=public_key,
                conversation_type=conversation_type,
                display_name=display_name,
                contact_public_key=contact_public_key,
            )
            return True

    async def close_conversation(self, public_key: str) -> None:
        async with self._lock:
            conversation = self.conversations.get(public_key)
            if conversation is None:
                raise ConversationNotFoundError(public_key)
            self.conversations[public_key] = conversation.model_copy(update={"is_open": False})

    # =========================================================================
    # Contacts and members
    # =========================================================================

    async def add_contact(
        self,
        public_key: str,
        conversation_public_key: str,
        display_name: str,
        state: ContactState,
    ) -> ContactReadModel:
        async with self._lock:
            existing = self.contacts.get(public_key)
            if existing is not None and _CONTACT_STATE_RANK[existing.state] >= _CONTACT_STATE_RANK[state]:
                return existing

            contact = ContactReadModel(
                public_key=public_key,
                conversation_public_key=conversation_public_key,
                display_name=display_name or (existing.display_name if existing else ""),
                state=state,
            )
            self.contacts[public_key] = contact
            return contact

    async def add_member(
        self,
        conversation_public_key: str,
        member_public_key: str,
        device_public_key: str,
    ) -> MemberReadModel:
        key = f"{conversation_public_key}:{member_public_key}"
        async with self._lock:
            member = self.members.get(key) or MemberReadModel(
                public_key=member_public_key,
                conversation_public_key=conversation_public_key,
            )
            if device_public_key not in member.device_public_keys:
                member = member.model_copy(update={
                    "device_public_keys": [*member.device_public_keys, device_public_key],
                })
            self.members[key] = member
            return member

    async def set_member_display_name(
        self,
        conversation_public_key: str,
        device_public_key: str,
        display_name: str,
    ) -> bool:
        async with self._lock:
            for key, member in self.members.items():
                if (member.conversation_public_key == conversation_public_key
                        and device_public_key in member.device_public_keys):
                    self.members[key] = member.model_copy(update={"display_name": display_name})
                    return True
            return False

    # =========================================================================
    # Interactions
    # =========================================================================

    async def add_interaction(self, interaction: InteractionReadModel) -> bool:
        async with self._lock:
            if interaction.cid in self.interactions:
                return False
            self.interactions[interaction.cid] = interaction
            return True

    async def get_interaction(self, cid: str) -> Optional[InteractionReadModel]:
        return self.interactions.get(cid)

    async def mark_interaction_acknowledged(self, cid: str) -> bool:
        async with self._lock:
            interaction = self.interactions.get(cid)
            if interaction is None:
                return False
            if not interaction.acknowledged:
                self.interactions[cid] = interaction.model_copy(update={"acknowledged": True})
            return True

    async def set_reaction(self, cid: str, emoji: str, state: bool) -> bool:
        async with self._lock:
            interaction = self.interactions.get(cid)
            if interaction is None:
                return False
            if state:
                if emoji in interaction.reactions:
                    return True
                reactions = [*interaction.reactions, emoji]
            else:
                reactions = [r for r in interaction.reactions if r != emoji]
            self.interactions[cid] = interaction.model_copy(update={"reactions": reactions})
            return True

    # =========================================================================
    # Inspection
    # =========================================================================

    def snapshot(self) -> dict:
        """Plain-data dump of the whole store, for comparisons."""
        return {
            "account": self.account.model_dump() if self.account else None,
            "conversations": [c.model_dump() for c in self.conversations.values()],
            "contacts": [c.model_dump() for c in self.contacts.values()],
            "members": [m.model_dump() for m in self.members.values()],
            "interactions": [i.model_dump() for i in self.interactions.values()],
        }
