"""Run coroutines to completion from synchronous code."""

import asyncio
import threading
from typing import Any, AsyncIterator, Coroutine, Iterator, Optional, TypeVar

T = TypeVar("T")

_event_loop: Optional[asyncio.AbstractEventLoop] = None
_event_loop_lock = threading.Lock()


def _start_event_loop(name: str) -> asyncio.AbstractEventLoop:
    loop = asyncio.new_event_loop()

    def run() -> None:
        try:
            loop.run_forever()
        finally:
            loop.close()

    threading.Thread(target=run, name=name, daemon=True).start()
    return loop


def _get_event_loop() -> asyncio.AbstractEventLoop:
    global _event_loop
    with _event_loop_lock:
        if _event_loop is None or _event_loop.is_closed():
            _event_loop = _start_event_loop("restweave-sync")
        return _event_loop


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _acquire_loop() -> tuple[asyncio.AbstractEventLoop, bool]:
    """The loop to run on, and whether the caller owns (and must stop) it."""
    loop = _get_event_loop()
    if _running_loop() is loop:
        # waiting on the shared loop from its own thread would block it
        return _start_event_loop("restweave-sync-nested"), True
    return loop, False


def _run_on(loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run_coroutine_threadsafe(coro, loop).result()


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on the background event loop and wait for its result.

    The coroutine never runs on the caller's thread, so this is safe to call
    from code that is itself running inside an event loop. Calls made from the
    background loop itself, such as an interceptor calling a blocking method,
    run on a short-lived loop of their own.
    """
    loop, owned = _acquire_loop()
    try:
        return _run_on(loop, coro)
    finally:
        if owned:
            loop.call_soon_threadsafe(loop.stop)


def iterate_sync(iterator: AsyncIterator[T]) -> Iterator[T]:
    """Drive an async iterator from synchronous code, one item at a time."""
    loop, owned = _acquire_loop()
    try:
        while True:
            try:
                yield _run_on(loop, _anext(iterator))
            except StopAsyncIteration:
                return
    finally:
        aclose = getattr(iterator, "aclose", None)
        try:
            if aclose is not None:
                _run_on(loop, aclose())
        finally:
            if owned:
                loop.call_soon_threadsafe(loop.stop)


async def _anext(iterator: AsyncIterator[T]) -> T:
    return await iterator.__anext__()
