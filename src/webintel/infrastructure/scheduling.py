"""
Cancellable background tasks on the asyncio event loop.

Components own their timers explicitly: a ``DelayedTask`` runs a callback
once after a delay (debounce), a ``PeriodicTask`` runs it on a fixed
interval (sweeps, safety-net flushes). Both must be cancelled by their
owner; nothing is torn down on garbage collection.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[Awaitable[Any], Any]]


def has_running_loop() -> bool:
    """Return True when called from inside a running event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


async def _invoke(callback: Callback) -> Any:
    result = callback()
    if inspect.isawaitable(result):
        result = await result
    return result


class DelayedTask:
    """
    Run a callback once, ``delay_ms`` after ``start()``.

    Cancelling before the delay elapses prevents the callback from running.
    Once the callback has begun it is allowed to finish; ``cancel()`` is then
    a no-op so an in-flight write is never interrupted.
    """

    def __init__(self, delay_ms: float, callback: Callback, name: str = "delayed-task"):
        self.delay_ms = delay_ms
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._fired = False

    def start(self) -> "DelayedTask":
        """Schedule the task on the running loop.

        Raises:
            RuntimeError: If no event loop is running
        """
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=self.name)
        return self

    async def _run(self) -> None:
        await asyncio.sleep(self.delay_ms / 1000.0)
        self._fired = True
        try:
            await _invoke(self._callback)
        except Exception as e:
            logger.error(f"{self.name} failed: {e}")

    @property
    def pending(self) -> bool:
        """True while the delay has not yet elapsed."""
        return self._task is not None and not self._fired and not self._task.done()

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> bool:
        """Cancel the task if its callback has not started.

        Returns:
            True if the callback was prevented from running
        """
        if self.pending:
            self._task.cancel()
            return True
        return False

    async def wait(self) -> None:
        """Wait for the task to finish (or to observe its cancellation)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class PeriodicTask:
    """Run a callback every ``interval_ms`` until stopped.

    Errors raised by the callback are logged and the loop keeps running.
    """

    def __init__(self, interval_ms: float, callback: Callback, name: str = "periodic-task"):
        self.interval_ms = interval_ms
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def start(self) -> "PeriodicTask":
        """Schedule the loop on the running event loop.

        Raises:
            RuntimeError: If no event loop is running
        """
        loop = asyncio.get_running_loop()
        self._running = True
        self._task = loop.create_task(self._loop(), name=self.name)
        return self

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_ms / 1000.0)
                await _invoke(self._callback)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"{self.name} error: {e}")

    def cancel(self) -> None:
        """Stop the loop without waiting for it to unwind."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()

    async def stop(self) -> None:
        """Stop the loop and wait for it to exit."""
        self.cancel()
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
