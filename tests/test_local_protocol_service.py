from __future__ import annotations

import asyncio

import pytest

from groupsync.infra.protocol.local_protocol_service import (
    GroupNotActiveError,
    GroupNotFoundError,
    LocalProtocolService,
)
from groupsync.infra.replay.cancellation import CancellationScope, ScopeCancelledError
from groupsync.messenger.app_messages import UserMessage

from tests.fakes.fake_protocol_client import make_group_pk


@pytest.fixture
def service(home_pk) -> LocalProtocolService:
    return LocalProtocolService(account_pk=b"me", device_pk=b"my-device", account_group_pk=home_pk)


async def _collect(stream):
    return [entry async for entry in stream]


def test_home_group_is_always_readable(service, home_pk):
    service.append_message(home_pk, UserMessage(body="note to self"))

    async def run():
        return await _collect(await service.group_message_list(home_pk, until_now=True))

    assert len(asyncio.run(run())) == 1
    assert service.activation_history == []


def test_inactive_group_cannot_be_listed(service):
    group = make_group_pk("team")
    service.create_group(group)

    with pytest.raises(GroupNotActiveError):
        asyncio.run(service.group_metadata_list(group, until_now=True))


def test_unknown_group(service):
    with pytest.raises(GroupNotFoundError):
        asyncio.run(service.activate_group(make_group_pk("nowhere")))


def test_live_listing_not_served(service, home_pk):
    with pytest.raises(NotImplementedError):
        asyncio.run(service.group_metadata_list(home_pk))


def test_stream_stops_at_head_seen_when_opened(service, home_pk):
    service.append_message(home_pk, UserMessage(body="first"))

    async def run():
        stream = await service.group_message_list(home_pk, until_now=True)
        service.append_message(home_pk, UserMessage(body="second"))
        return await _collect(stream)

    assert len(asyncio.run(run())) == 1


def test_entries_are_chained_to_their_parent(service, home_pk):
    first = service.append_message(home_pk, UserMessage(body="first"))
    second = service.append_message(home_pk, UserMessage(body="second"))

    assert first.event_context.parent_ids == []
    assert second.event_context.parent_ids == [first.event_context.id]
    assert second.headers.counter == 1


def test_stream_stops_when_scope_cancelled(service, home_pk):
    for i in range(3):
        service.append_message(home_pk, UserMessage(body=str(i)))
    scope = CancellationScope()

    async def run():
        stream = await service.group_message_list(home_pk, until_now=True, scope=scope)
        await stream.__anext__()
        scope.cancel("closing")
        await stream.__anext__()

    with pytest.raises(ScopeCancelledError, match="closing"):
        asyncio.run(run())
