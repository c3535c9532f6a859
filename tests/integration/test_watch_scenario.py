"""
End-to-end watch scenario: real polling observer on a temporary directory,
in-memory storage, a fake WebSocket subscriber and a fake mail transport.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from change_monitor.models import ChangeKind
from change_monitor.services import build_services

OWNER = "owner@example.com"


async def wait_for_events(change_log, count, timeout=5.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        events = await change_log.list_recent()
        if len(events) >= count:
            return events
        await asyncio.sleep(0.05)
    raise AssertionError(f"expected {count} events, got {len(await change_log.list_recent())}")


@pytest_asyncio.fixture
async def services(settings):
    services = build_services(settings.model_copy(update={"use_polling": True, "coalesce_seconds": 0.2}))
    await services.startup()
    yield services
    await services.shutdown()


@pytest_asyncio.fixture
async def subscriber(services):
    websocket = Mock()
    websocket.accept = AsyncMock()
    websocket.send_json = AsyncMock()
    websocket.close = AsyncMock()
    await services.connections.connect(websocket)
    return websocket


@pytest.fixture
def dispatcher(services):
    dispatcher = Mock()
    dispatcher.send = AsyncMock()
    services.fanout.dispatcher = dispatcher
    return dispatcher


@pytest.mark.asyncio
async def test_create_modify_delete_then_stop(services, subscriber, dispatcher, tmp_path):
    target = await services.targets.upsert(
        {"ownerIdentity": OWNER, "path": str(tmp_path), "interval": 0.1, "trackedFiles": []}
    )
    await services.sessions.start(target)

    watched_file = tmp_path / "a.txt"

    watched_file.write_text("hello")
    events = await wait_for_events(services.change_log, 1)
    assert [(e.change_kind, e.path) for e in events] == [(ChangeKind.CREATED, str(watched_file))]

    watched_file.write_text("hello, world")
    events = await wait_for_events(services.change_log, 2)
    assert events[0].change_kind == ChangeKind.MODIFIED

    watched_file.unlink()
    events = await wait_for_events(services.change_log, 3)
    assert events[0].change_kind == ChangeKind.DELETED

    await services.sessions.stop()
    (tmp_path / "b.txt").write_text("after stop")
    await asyncio.sleep(0.6)
    await services.pipeline.wait_idle()

    recorded = await services.change_log.list_recent()
    assert len(recorded) == 3
    assert [e.change_kind for e in reversed(recorded)] == [
        ChangeKind.CREATED,
        ChangeKind.MODIFIED,
        ChangeKind.DELETED,
    ]

    pushed = [call.args[0] for call in subscriber.send_json.await_args_list]
    assert [message["changeKind"] for message in pushed] == ["created", "modified", "deleted"]
    assert all(message["path"] == str(watched_file) for message in pushed)

    assert dispatcher.send.await_count == 3
    assert {call.args[0] for call in dispatcher.send.await_args_list} == {OWNER}


@pytest.mark.asyncio
async def test_untracked_files_not_reported(services, tmp_path):
    target = await services.targets.upsert(
        {"ownerIdentity": OWNER, "path": str(tmp_path), "interval": 0.1, "trackedFiles": ["*.md"]}
    )
    await services.sessions.start(target)

    (tmp_path / "notes.txt").write_text("ignored")
    (tmp_path / "readme.md").write_text("tracked")

    events = await wait_for_events(services.change_log, 1)
    await asyncio.sleep(0.5)
    await services.sessions.stop()

    events = await services.change_log.list_recent()
    assert [e.path for e in events] == [str(tmp_path / "readme.md")]
