from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Action = Callable[[Any], Awaitable[Any]]


class ActionQueue:
    """Ordered list of pending driver steps.

    Each action receives whatever the action before it produced, so a remote
    call can hand its raw result to the callback queued right after it.
    """

    def __init__(self) -> None:
        self._actions: deque[Action] = deque()

    def __len__(self) -> int:
        return len(self._actions)

    def push(self, action: Action) -> None:
        self._actions.append(action)

    def clear(self) -> None:
        self._actions.clear()

    async def drain(self) -> Any:
        result: Any = None
        executed = 0
        try:
            while self._actions:
                action = self._actions.popleft()
                result = await action(result)
                executed += 1
        except BaseException:
            # remaining steps depended on the one that failed
            self._actions.clear()
            raise
        finally:
            logger.debug("Drained %d queued action(s)", executed)
        return result
