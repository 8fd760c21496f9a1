# =============================================================================
# File: tests/fakes/fake_projection_handler.py
# Description: Recording fake of ProjectionHandlerPort and a scripted store
# Pattern: Ports & Adapters - Fake/Stub adapter
# =============================================================================

from __future__ import annotations

from typing import Dict, List, Optional

from groupsync.messenger.app_messages import AppMessage
from groupsync.messenger.read_models import ConversationReadModel
from groupsync.messenger.protocol_types import GroupMessageEvent, GroupMetadataEvent
from groupsync.utils.key_utils import b64_encode_bytes

from tests.fakes.call_journal import CallJournal


class RecordingProjectionHandler:
    """
    Projection handler that only records what it is asked to apply.

    Usage:
        journal = CallJournal()
        handler = RecordingProjectionHandler(journal)
        handler.configure_failure("handle_app_message", on_call=2, error=ProjectionError("boom"))

        service = ReplayService(client, store, handler_factory=handler.factory)
    """

    def __init__(self, journal: Optional[CallJournal] = None):
        self.journal = journal or CallJournal()
        self.metadata_events: List[GroupMetadataEvent] = []
        self.app_messages: List[tuple] = []  # (group_pk, event, app_message)
        self.factory_calls = 0

        self._failures: Dict[str, tuple] = {}  # method -> (1-based call number, error)
        self._counts: Dict[str, int] = {}

    def factory(self, store, protocol_client) -> RecordingProjectionHandler:
        """ProjectionHandlerFactory returning this instance."""
        self.factory_calls += 1
        return self

    def configure_failure(self, method: str, on_call: int, error: Exception) -> None:
        self._failures[method] = (on_call, error)

    async def handle_metadata_event(self, event: GroupMetadataEvent) -> None:
        self.journal.record("handle_metadata_event", b64_encode_bytes(event.event_context.group_pk), event)
        self._maybe_fail("handle_metadata_event")
        self.metadata_events.append(event)

    async def handle_app_message(
        self,
        group_pk: str,
        event: GroupMessageEvent,
        app_message: AppMessage,
    ) -> None:
        self.journal.record("handle_app_message", group_pk, event, app_message)
        self._maybe_fail("handle_app_message")
        self.app_messages.append((group_pk, event, app_message))

    def _maybe_fail(self, method: str) -> None:
        self._counts[method] = self._counts.get(method, 0) + 1
        failure = self._failures.get(method)
        if failure is not None and failure[0] == self._counts[method]:
            raise failure[1]


class FakeLocalStore:
    """
    Local store exposing only what the replay itself uses, with scripted
    conversations and configurable failures.
    """

    def __init__(self, conversation_pks: List[str], journal: Optional[CallJournal] = None):
        self.journal = journal or CallJournal()
        self.conversations = [ConversationReadModel(public_key=pk) for pk in conversation_pks]
        self.accounts: Dict[str, str] = {}
        self._should_fail: Dict[str, Exception] = {}

    def configure_failure(self, method: str, error: Exception) -> None:
        self._should_fail[method] = error

    async def add_account(self, public_key: str, display_name: str) -> None:
        self.journal.record("add_account", public_key, display_name)
        if "add_account" in self._should_fail:
            raise self._should_fail["add_account"]
        self.accounts.setdefault(public_key, display_name)

    async def get_all_conversations(self) -> List[ConversationReadModel]:
        self.journal.record("get_all_conversations")
        if "get_all_conversations" in self._should_fail:
            raise self._should_fail["get_all_conversations"]
        return list(self.conversations)
