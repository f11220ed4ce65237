from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from tardis.driver.commands.execute import ExecuteCommands, LocalFunction
from tardis.driver.commands.url import UrlCommands
from tardis.driver.events import EventBus
from tardis.driver.queue import ActionQueue
from tardis.webdriver.client import RemoteClient


class DriverNative:
    """Queue-owning driver talking to a WebDriver endpoint.

    Test code chains commands on it; nothing touches the browser until
    :meth:`run` drains the queue.
    """

    def __init__(
        self,
        webdriver_client: RemoteClient,
        events: EventBus,
        base_url: str | None = None,
        poll_interval: float = 0.1,
    ) -> None:
        self.webdriver_client = webdriver_client
        self.events = events
        self.base_url = base_url
        self.poll_interval = poll_interval
        self.action_queue = ActionQueue()
        self._execute = ExecuteCommands(self)
        self._url = UrlCommands(self)

    def execute(self, script: str, args: Sequence[Any] | None = None, hash: str | None = None) -> DriverNative:
        self._execute.execute(script, args, _hash(hash))
        return self

    def execute_async(self, script: str, args: Sequence[Any] | None = None, hash: str | None = None) -> DriverNative:
        self._execute.execute_async(script, args, _hash(hash))
        return self

    def async_script_timeout(self, timeout: int, hash: str | None = None) -> DriverNative:
        self._execute.async_script_timeout(timeout, _hash(hash))
        return self

    def wait_for(
        self,
        script: str,
        args: Sequence[Any] | None = None,
        timeout: int = 5000,
        hash: str | None = None,
    ) -> DriverNative:
        self._execute.wait_for(script, args, timeout, _hash(hash))
        return self

    def then_local(self, fn: LocalFunction, hash: str | None = None) -> DriverNative:
        self._execute.then_local(fn, _hash(hash))
        return self

    def open(self, url: str, hash: str | None = None) -> DriverNative:
        self._url.open(url, _hash(hash))
        return self

    def url(self, hash: str | None = None) -> DriverNative:
        self._url.url(_hash(hash))
        return self

    async def run(self) -> Any:
        return await self.action_queue.drain()


def _hash(value: str | None) -> str:
    return value if value else uuid.uuid4().hex
