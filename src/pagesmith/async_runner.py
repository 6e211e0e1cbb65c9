"""Run engine calls under a wall-clock budget from sync or async callers."""

from __future__ import annotations

import asyncio
import threading
from queue import Queue
from typing import TYPE_CHECKING, Any

from pagesmith.exceptions import AsyncExecutionError

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine


def _run_in_background_thread[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine in a dedicated thread with its own event loop.

    Args:
        coro: The coroutine to run.

    Raises:
        AsyncExecutionError: If the coroutine raises an exception.

    Returns:
        The result of the coroutine.
    """
    output: Queue[T | BaseException] = Queue(maxsize=1)

    def _runner() -> None:
        try:
            output.put(asyncio.run(coro))
        except BaseException as exc:
            output.put(exc)

    thread = threading.Thread(target=_runner, daemon=True)
    thread.start()
    thread.join()

    result = output.get()
    if isinstance(result, BaseException):
        raise AsyncExecutionError(result=result) from result
    return result


def run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine from both sync and async contexts.

    Inside a running loop the coroutine gets its own loop on a helper thread,
    otherwise it runs on a fresh loop in the calling thread.

    Args:
        coro: The coroutine to run.

    Returns:
        The result of the coroutine.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    return _run_in_background_thread(coro)


def _settle(future: asyncio.Future[Any], result: Any, exc: BaseException | None) -> None:
    """Resolve `future` from the loop thread unless `wait_for` already cancelled it."""
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)


async def _bounded[T](func: Callable[..., T], args: tuple[Any, ...], timeout: float) -> T:
    """Await a blocking callable on a daemon thread, bounded by `timeout` seconds."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def _worker() -> None:
        result: T | None = None
        error: BaseException | None = None
        try:
            result = func(*args)
        except BaseException as exc:  # noqa: BLE001
            error = exc
        try:
            loop.call_soon_threadsafe(_settle, future, result, error)
        except RuntimeError:
            # Loop closed after a timeout; the late result is dropped.
            return

    threading.Thread(target=_worker, daemon=True).start()
    return await asyncio.wait_for(future, timeout=timeout)


def call_with_timeout[T](func: Callable[..., T], *args: Any, timeout: float) -> T:
    """Call a blocking function and give up after `timeout` seconds.

    The worker thread is not cancelled on timeout; its result is discarded.

    Args:
        func: Blocking callable, typically a PDF engine call.
        *args: Positional arguments for `func`.
        timeout: Wall-clock budget in seconds.

    Raises:
        TimeoutError: If the budget is exhausted from a sync caller.
        AsyncExecutionError: If the budget is exhausted or `func` fails inside a running loop.

    Returns:
        The value returned by `func`.
    """
    return run_async(_bounded(func, args, timeout))
