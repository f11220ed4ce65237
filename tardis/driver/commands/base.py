from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from tardis.driver.events import DRIVER_MESSAGE, EventBus
from tardis.driver.messages import DriverMessage
from tardis.driver.queue import Action, ActionQueue
from tardis.webdriver.client import RemoteClient

logger = logging.getLogger(__name__)


class QueueOwner(Protocol):
    action_queue: ActionQueue
    webdriver_client: RemoteClient
    events: EventBus
    base_url: str | None
    poll_interval: float


class CommandSet:
    """Shared plumbing for adapters that queue steps on behalf of a driver."""

    def __init__(self, owner: QueueOwner) -> None:
        self.owner = owner

    @property
    def client(self) -> RemoteClient:
        return self.owner.webdriver_client

    def _push(self, action: Action) -> None:
        self.owner.action_queue.push(action)

    def _push_remote(self, name: str, call: Callable[..., Awaitable[str]], *args: Any) -> None:
        async def step(_previous: Any) -> str:
            logger.debug("Remote call %s", name)
            return await call(*args)

        self._push(step)

    def _emit(self, message: DriverMessage) -> None:
        self.owner.events.emit(DRIVER_MESSAGE, message.to_dict())

    @staticmethod
    def _parse(data: Any) -> dict[str, Any]:
        if isinstance(data, dict):
            return data
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            return {"status": 0, "value": parsed}
        return parsed

    @staticmethod
    def _error_text(value: Any) -> str:
        if isinstance(value, dict):
            return str(value.get("message", ""))
        return str(value)
