from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

from tardis.driver.commands.base import CommandSet, QueueOwner
from tardis.driver.messages import WAIT_FOR_TIMEOUT, DriverMessage

logger = logging.getLogger(__name__)

LocalFunction = Callable[[Callable[[], None]], Any]


class ExecuteCommands(CommandSet):
    """Script execution commands.

    Every public method only queues work and hands the owner back so calls can
    be chained; the owner's action queue runs the steps later, in order.
    """

    def execute(self, script: str, args: Sequence[Any] | None, hash: str) -> QueueOwner:
        """Run a script in the page and report its return value."""
        payload = _payload(script, args)
        self._push_remote("execute", self.client.execute, payload)
        self._push(partial(self._set_execute_cb, hash))
        return self.owner

    async def _set_execute_cb(self, hash: str, data: Any) -> None:
        result = self._parse(data)
        self._emit(DriverMessage.success("execute", result.get("value"), hash))

    def execute_async(self, script: str, args: Sequence[Any] | None, hash: str) -> QueueOwner:
        """Run an asynchronous script (one that calls its callback argument)."""
        payload = _payload(script, args)
        self._push_remote("executeAsync", self.client.execute_async, payload)
        self._push(partial(self._set_execute_async_cb, hash))
        return self.owner

    async def _set_execute_async_cb(self, hash: str, data: Any) -> None:
        result = self._parse(data)
        if result.get("status", 0) == 0:
            self._emit(DriverMessage.success("executeAsync", result.get("value"), hash))
        else:
            self._emit(DriverMessage.failure("executeAsync", self._error_text(result.get("value")), hash))

    def async_script_timeout(self, timeout: int, hash: str) -> QueueOwner:
        """Set how long (ms) the browser waits for asynchronous scripts."""
        self._push_remote("asyncScriptTimeout", self.client.set_async_script_timeout, timeout)
        self._push(partial(self._set_async_script_timeout_cb, hash))
        return self.owner

    async def _set_async_script_timeout_cb(self, hash: str, data: Any) -> None:
        self._emit(DriverMessage.success("asyncScriptTimeout", "", hash))

    def wait_for(self, script: str, args: Sequence[Any] | None, timeout: int, hash: str) -> QueueOwner:
        """Re-run a script until it reports ``{"userRet": true}`` or ``timeout`` ms pass."""
        payload = _payload(script, args)
        self._push_remote("waitFor", self.client.execute, payload)
        self._push(partial(self._wait_for_cb, payload, timeout, hash))
        return self.owner

    async def _wait_for_cb(self, payload: dict[str, Any], timeout: int, hash: str, data: Any) -> None:
        if _user_ret(self._parse(data)):
            self._emit(DriverMessage.success("waitFor", "", hash))
            return

        loop = asyncio.get_running_loop()
        settled: asyncio.Future[None] = loop.create_future()

        def settle(value: str) -> None:
            # whichever of timer and poller comes second is ignored
            if settled.done():
                return
            try:
                self._emit(DriverMessage.success("waitFor", value, hash))
            except Exception as exc:
                # a failing handler must still release the queue
                settled.set_exception(exc)
            else:
                settled.set_result(None)

        async def poll() -> None:
            while not settled.done():
                # always yield, even at zero interval, so the timer can fire
                await asyncio.sleep(max(self.owner.poll_interval, 0))
                raw = await self.client.execute(payload)
                if _user_ret(self._parse(raw)):
                    settle("")

        def on_poll_done(task: asyncio.Task[None]) -> None:
            if task.cancelled():
                return
            exc = task.exception()
            if exc is None:
                return
            if settled.done():
                logger.debug("Ignoring poll failure for %s after it settled: %r", hash, exc)
            else:
                settled.set_exception(exc)

        timer = loop.call_later(max(timeout, 0) / 1000, settle, WAIT_FOR_TIMEOUT)
        poller = asyncio.create_task(poll())
        poller.add_done_callback(on_poll_done)
        try:
            await settled
        finally:
            timer.cancel()
            if not poller.done():
                # drops the pending HTTP request; the script itself keeps running in the page
                poller.cancel()
                await asyncio.wait([poller])

    def then_local(self, fn: LocalFunction, hash: str) -> QueueOwner:
        """Run local glue code; the queue moves on once ``fn`` calls its ``done`` argument."""
        self._push(partial(self._set_then_local_cb, fn, hash))
        return self.owner

    async def _set_then_local_cb(self, fn: LocalFunction, hash: str, _previous: Any) -> None:
        loop = asyncio.get_running_loop()
        finished: asyncio.Future[None] = loop.create_future()

        def resolve() -> None:
            if not finished.done():
                finished.set_result(None)

        def done() -> None:
            loop.call_soon_threadsafe(resolve)

        outcome = fn(done)
        if inspect.isawaitable(outcome):
            await outcome
        await finished
        logger.debug("Local function for %s finished", hash)


def _payload(script: str, args: Sequence[Any] | None) -> dict[str, Any]:
    return {"script": str(script), "arguments": list(args or [])}


def _user_ret(result: dict[str, Any]) -> bool:
    if result.get("status", 0) != 0:
        return False
    value = result.get("value")
    return isinstance(value, dict) and value.get("userRet") is True
