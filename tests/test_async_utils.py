"""
Tests for async_utils module.

Covers run_sync, run_sync_limited, gather_limited, and init_semaphore.
"""

import threading
import time

import pytest

import obsync.core.async_utils as mod
from obsync.core.async_utils import (
    gather_limited,
    init_semaphore,
    run_sync,
    run_sync_limited,
)


@pytest.fixture(autouse=True)
def restore_semaphore():
    original = mod._semaphore
    yield
    mod._semaphore = original


def _blob_id(content: str) -> str:
    if content == "bad":
        raise LookupError("no such blob")
    return f"id-{content}"


async def test_run_sync_passes_args_and_kwargs():
    def _ref(owner: str, *, branch: str) -> str:
        return f"{owner}:heads/{branch}"

    assert await run_sync(_ref, "octo", branch="main") == "octo:heads/main"


async def test_init_semaphore_sets_bound():
    init_semaphore(5)
    assert mod._semaphore is not None
    assert mod._semaphore._value == 5


async def test_run_sync_limited_without_semaphore():
    """Falls back to unbounded when the semaphore was never initialised."""
    mod._semaphore = None
    assert await run_sync_limited(_blob_id, "a") == "id-a"


async def test_gather_limited_keeps_order():
    init_semaphore(3)
    coros = [run_sync_limited(_blob_id, str(i)) for i in range(5)]
    assert await gather_limited(coros) == [f"id-{i}" for i in range(5)]


async def test_gather_limited_empty_list():
    assert await gather_limited([]) == []


async def test_gather_limited_returns_exceptions_in_place():
    """One failing fetch does not cancel or hide its siblings."""
    init_semaphore(2)
    results = await gather_limited(
        [run_sync_limited(_blob_id, c) for c in ("a", "bad", "c")]
    )
    assert results[0] == "id-a"
    assert isinstance(results[1], LookupError)
    assert results[2] == "id-c"


async def test_run_sync_limited_concurrency_bound():
    init_semaphore(2)
    peak = 0
    running = 0
    lock = threading.Lock()

    def _fetch(val):
        nonlocal peak, running
        with lock:
            running += 1
            peak = max(peak, running)
        time.sleep(0.05)
        with lock:
            running -= 1
        return val

    results = await gather_limited(
        [run_sync_limited(_fetch, i) for i in range(6)]
    )

    assert results == [0, 1, 2, 3, 4, 5]
    assert peak <= 2
