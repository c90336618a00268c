import asyncio

import pytest

from tgmcp.client.base import FreshLogin
from tgmcp.session.pool import ConnectionPool

from tests.conftest import CREDS, FakeBackend


def _client(backend: FakeBackend):
    return backend.factory(FreshLogin(CREDS))


def test_put_returns_previous(backend):
    pool = ConnectionPool()
    first, second = _client(backend), _client(backend)
    assert pool.put("+1000", first) is None
    assert pool.put("+1000", second) is first
    assert pool.get("+1000") is second
    assert len(pool) == 1


@pytest.mark.asyncio
async def test_invalidate_removes_and_disconnects(backend):
    pool = ConnectionPool()
    client = _client(backend)
    pool.put("+1000", client)

    await pool.invalidate("+1000")
    await pool.invalidate("+1000")

    assert pool.get("+1000") is None
    assert client.disconnected


@pytest.mark.asyncio
async def test_acquire_runs_one_creation_per_id(backend):
    pool = ConnectionPool()
    calls = 0
    release = asyncio.Event()

    async def create():
        nonlocal calls
        calls += 1
        await release.wait()
        return _client(backend)

    first = asyncio.create_task(pool.acquire("+1000", create))
    second = asyncio.create_task(pool.acquire("+1000", create))
    await asyncio.sleep(0)
    assert pool.is_pending("+1000")

    release.set()
    a, b = await asyncio.gather(first, second)

    assert a is b
    assert calls == 1
    assert not pool.is_pending("+1000")


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_attempt(backend):
    pool = ConnectionPool()
    release = asyncio.Event()

    async def create():
        await release.wait()
        return _client(backend)

    impatient = asyncio.create_task(pool.acquire("+1000", create))
    patient = asyncio.create_task(pool.acquire("+1000", create))
    await asyncio.sleep(0)

    impatient.cancel()
    with pytest.raises(asyncio.CancelledError):
        await impatient

    release.set()
    client = await patient
    assert client is not None


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_clears_marker():
    pool = ConnectionPool()
    attempts = 0

    async def failing():
        nonlocal attempts
        attempts += 1
        await asyncio.sleep(0)
        raise RuntimeError("boom")

    results = await asyncio.gather(
        pool.acquire("+1000", failing),
        pool.acquire("+1000", failing),
        return_exceptions=True,
    )
    assert all(isinstance(r, RuntimeError) for r in results)
    assert attempts == 1
    assert not pool.is_pending("+1000")

    with pytest.raises(RuntimeError):
        await pool.acquire("+1000", failing)
    assert attempts == 2


@pytest.mark.asyncio
async def test_different_ids_do_not_block_each_other(backend):
    pool = ConnectionPool()
    never = asyncio.Event()

    async def stuck():
        await never.wait()

    async def quick():
        return _client(backend)

    blocked = asyncio.create_task(pool.acquire("+1000", stuck))
    client = await asyncio.wait_for(pool.acquire("+2000", quick), timeout=1)
    assert client is not None
    assert pool.is_pending("+1000")

    blocked.cancel()
    never.set()
    await asyncio.sleep(0)
    await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_close_all(backend):
    pool = ConnectionPool()
    clients = [_client(backend), _client(backend)]
    pool.put("+1000", clients[0])
    pool.put("+2000", clients[1])

    await pool.close_all()

    assert len(pool) == 0
    assert all(c.disconnected for c in clients)
