import asyncio

import pytest

from tgmcp.errors import InvalidParametersError, SessionUnavailableError
from tgmcp.session import create_session_manager
from tgmcp.config.schema import Config

from tests.conftest import FakeBackend, ScriptedPrompter, build_manager


@pytest.mark.asyncio
class TestAcquireConnection:
    async def test_concurrent_callers_share_one_resumption(self, store):
        backend = FakeBackend(accepted_tokens=("T1",))
        backend.connect_delay = 0.01
        store.save("+1000", "T1")
        manager = build_manager(store, backend)

        a, b = await asyncio.gather(
            manager.acquire_connection("+1000"),
            manager.acquire_connection("+1000"),
        )

        assert a is b
        assert len(backend.clients) == 1

    async def test_concurrent_callers_share_one_login_dialog(self, store):
        backend = FakeBackend()
        prompter = ScriptedPrompter(["11111", "11111"])
        manager = build_manager(store, backend, prompter)

        a, b = await asyncio.gather(
            manager.acquire_connection("+1000"),
            manager.acquire_connection("+1 000"),
        )

        assert a is b
        assert len(prompter.asked) == 1
        assert backend.code_requests == ["+1000"]

    async def test_pool_hit_is_reused(self, store):
        backend = FakeBackend(accepted_tokens=("T1",))
        store.save("+1000", "T1")
        manager = build_manager(store, backend)

        first = await manager.acquire_connection("+1000")
        second = await manager.acquire_connection("+1000")

        assert first is second
        assert len(backend.clients) == 1
        assert manager.is_connected("+1000")

    async def test_unauthenticated_handle_is_replaced(self, store):
        backend = FakeBackend(accepted_tokens=("T1",))
        store.save("+1000", "T1")
        manager = build_manager(store, backend)

        stale = await manager.acquire_connection("+1000")
        stale.authorized = False
        fresh = await manager.acquire_connection("+1000")

        assert fresh is not stale
        assert stale.disconnected
        assert manager.pool.get("+1000") is fresh

    async def test_distinct_ids_are_independent(self, store):
        backend = FakeBackend(accepted_tokens=("T1", "T2"))
        backend.gates["T1"] = asyncio.Event()
        store.save("+1000", "T1")
        store.save("+2000", "T2")
        manager = build_manager(store, backend)

        slow = asyncio.create_task(manager.acquire_connection("+1000"))
        other = await asyncio.wait_for(manager.acquire_connection("+2000"), timeout=1)
        assert other.mode.token == "T2"
        assert not slow.done()

        backend.gates["T1"].set()
        assert (await slow).mode.token == "T1"

    async def test_unexpected_errors_are_wrapped(self, store):
        def broken_factory(mode):
            raise RuntimeError("factory exploded")

        backend = FakeBackend()
        backend.factory = broken_factory
        manager = build_manager(store, backend)

        with pytest.raises(SessionUnavailableError) as exc_info:
            await manager.acquire_connection("+1000")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.session_id == "+1000"
        assert not manager.pool.is_pending("+1000")

    async def test_invalid_identifier(self, store, backend):
        manager = build_manager(store, backend)
        with pytest.raises(InvalidParametersError):
            await manager.acquire_connection("../escape")

    async def test_close_disconnects_everything(self, store):
        backend = FakeBackend(accepted_tokens=("T1",))
        store.save("+1000", "T1")
        manager = build_manager(store, backend)
        client = await manager.acquire_connection("+1000")

        await manager.close()

        assert client.disconnected
        assert not manager.is_connected("+1000")


@pytest.mark.asyncio
async def test_create_session_manager_uses_config(tmp_path):
    backend = FakeBackend(accepted_tokens=("T1",))
    config = Config(
        telegram={"api_id": 1, "api_hash": "h"},
        sessions={"path": str(tmp_path / "s")},
        auth={"max_password_attempts": 5},
    )
    manager = create_session_manager(config, ScriptedPrompter(), client_factory=backend.factory)
    manager.store.save("+1000", "T1")

    client = await manager.acquire_connection("+1000")

    assert manager.store.directory == tmp_path / "s"
    assert manager.authenticator.max_password_attempts == 5
    assert client.mode.credentials.api_id == 1
