# =============================================================================
# File: groupsync/messenger/ports/local_store_port.py
# Description: Port interface for the local messenger store
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from groupsync.messenger.enums import ContactState, ConversationType
    from groupsync.messenger.read_models import (
        ContactReadModel,
        ConversationReadModel,
        InteractionReadModel,
        MemberReadModel,
    )


@runtime_checkable
class LocalStorePort(Protocol):
    """
    Port: Local Store

    Defined by: Messenger Domain
    Implemented by: MessengerMemoryRepo (groupsync/infra/read_repos/messenger_memory_repo.py)

    Every write is idempotent: applying the same log entry twice leaves the
    store unchanged after the first application.

    Categories:
    - Account (1 method) - used by the replay
    - Conversations (3 methods) - enumeration used by the replay
    - Contacts and members (3 methods) - used by projection handlers
    - Interactions (4 methods) - used by projection handlers
    """

    # =========================================================================
    # Account
    # =========================================================================

    async def add_account(self, public_key: str, display_name: str) -> None:
        """Create the account record if it does not exist yet."""
        ...

    # =========================================================================
    # Conversations
    # =========================================================================

    async def get_all_conversations(self) -> List['ConversationReadModel']:
        """All known conversations, in a stable order."""
        ...

    async def add_conversation(
        self,
        public_key: str,
        conversation_type: 'ConversationType',
        display_name: str = "",
        contact_public_key: Optional[str] = None,
    ) -> bool:
        """Create a conversation if absent. Returns True if created."""
        ...

    async def close_conversation(self, public_key: str) -> None:
        ...

    # =========================================================================
    # Contacts and members
    # =========================================================================

    async def add_contact(
        self,
        public_key: str,
        conversation_public_key: str,
        display_name: str,
        state: 'ContactState',
    ) -> 'ContactReadModel':
        """Create a contact or move it forward in its request lifecycle."""
        ...

    async def add_member(
        self,
        conversation_public_key: str,
        member_public_key: str,
        device_public_key: str,
    ) -> 'MemberReadModel':
        ...

    async def set_member_display_name(
        self,
        conversation_public_key: str,
        device_public_key: str,
        display_name: str,
    ) -> bool:
        """Returns False if no member owns the device."""
        ...

    # =========================================================================
    # Interactions
    # =========================================================================

    async def add_interaction(self, interaction: 'InteractionReadModel') -> bool:
        """Store an interaction if its cid is unknown. Returns True if stored."""
        ...

    async def get_interaction(self, cid: str) -> Optional['InteractionReadModel']:
        ...

    async def mark_interaction_acknowledged(self, cid: str) -> bool:
        """Returns False if the interaction is unknown."""
        ...

    async def set_reaction(self, cid: str, emoji: str, state: bool) -> bool:
        """Add or remove a reaction. Returns False if the interaction is unknown."""
        ...
