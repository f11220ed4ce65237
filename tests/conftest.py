from __future__ import annotations

import json
from typing import Any

import pytest

from tardis.driver.events import DRIVER_MESSAGE, EventBus
from tardis.driver.native import DriverNative


def wire(value: Any, status: int = 0) -> str:
    return json.dumps({"status": status, "value": value})


class FakeClient:
    """Remote client answering from canned responses, recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.execute_results: list[Any] = []
        self.execute_async_result: str = wire(None)
        self.navigate_result: str = wire(None)
        self.current_url_result: str = wire("about:blank")

    async def execute(self, payload: dict[str, Any]) -> str:
        self.calls.append(("execute", payload))
        result = self.execute_results.pop(0) if len(self.execute_results) > 1 else self.execute_results[0]
        if callable(result):
            return await result()
        return result

    async def execute_async(self, payload: dict[str, Any]) -> str:
        self.calls.append(("execute_async", payload))
        return self.execute_async_result

    async def set_async_script_timeout(self, timeout_ms: int) -> str:
        self.calls.append(("set_async_script_timeout", timeout_ms))
        return wire(None)

    async def navigate(self, url: str) -> str:
        self.calls.append(("navigate", url))
        return self.navigate_result

    async def current_url(self) -> str:
        self.calls.append(("current_url", None))
        return self.current_url_result


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def messages(events: EventBus) -> list[dict[str, Any]]:
    received: list[dict[str, Any]] = []
    events.on(DRIVER_MESSAGE, received.append)
    return received


@pytest.fixture
def driver(client: FakeClient, events: EventBus) -> DriverNative:
    return DriverNative(client, events, base_url="http://example.test/app", poll_interval=0)
