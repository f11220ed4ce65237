from __future__ import annotations

from functools import partial
from typing import Any
from urllib.parse import urljoin, urlparse

from tardis.driver.commands.base import CommandSet, QueueOwner
from tardis.driver.messages import DriverMessage


class UrlCommands(CommandSet):
    def open(self, url: str, hash: str) -> QueueOwner:
        target = self.resolve(url)
        self._push_remote("open", self.client.navigate, target)
        self._push(partial(self._set_open_cb, target, hash))
        return self.owner

    async def _set_open_cb(self, url: str, hash: str, data: Any) -> None:
        result = self._parse(data)
        if result.get("status", 0) == 0:
            self._emit(DriverMessage.success("open", url, hash))
        else:
            self._emit(DriverMessage.failure("open", self._error_text(result.get("value")), hash))

    def url(self, hash: str) -> QueueOwner:
        self._push_remote("url", self.client.current_url)
        self._push(partial(self._set_url_cb, hash))
        return self.owner

    async def _set_url_cb(self, hash: str, data: Any) -> None:
        result = self._parse(data)
        if result.get("status", 0) == 0:
            self._emit(DriverMessage.success("url", result.get("value"), hash))
        else:
            self._emit(DriverMessage.failure("url", self._error_text(result.get("value")), hash))

    def resolve(self, url: str) -> str:
        """Prefix relative paths with the configured base URL."""
        base_url = self.owner.base_url
        if not base_url or urlparse(url).scheme:
            return url
        if not base_url.endswith("/"):
            base_url += "/"
        return urljoin(base_url, url.lstrip("/"))
