from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


# W3C error names mapped onto the numeric codes of the old JSON wire protocol
LEGACY_STATUS: dict[str, int] = {
    "invalid session id": 6,
    "no such element": 7,
    "unknown command": 9,
    "stale element reference": 10,
    "unknown error": 13,
    "javascript error": 17,
    "timeout": 21,
    "no such window": 23,
    "unexpected alert open": 26,
    "script timeout": 28,
    "invalid selector": 32,
    "session not created": 33,
    "invalid argument": 61,
}
UNKNOWN_ERROR = LEGACY_STATUS["unknown error"]


class WebDriverError(Exception):
    def __init__(self, message: str, status: int = UNKNOWN_ERROR) -> None:
        self.status = status
        super().__init__(message)


class RemoteClient(Protocol):
    """What the command adapters need from a browser automation backend.

    Every call resolves to a JSON string shaped ``{"status": int, "value": ...}``.
    """

    async def execute(self, payload: dict[str, Any]) -> str: ...

    async def execute_async(self, payload: dict[str, Any]) -> str: ...

    async def set_async_script_timeout(self, timeout_ms: int) -> str: ...

    async def navigate(self, url: str) -> str: ...

    async def current_url(self) -> str: ...


class WebDriverClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self.session_id: str | None = None
        self.capabilities: dict[str, Any] = {}

    async def start(self, browser: str, viewport: Mapping[str, Any] | None = None) -> str:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            )
        value = await self._create_session(browser)
        self.session_id = str(value["sessionId"])
        self.capabilities = value.get("capabilities") or {}
        logger.info("WebDriver session %s started for %s", self.session_id, browser)

        if viewport:
            raw = await self._command(
                "POST",
                "window/rect",
                {"width": viewport["width"], "height": viewport["height"]},
            )
            if json.loads(raw)["status"] != 0:
                logger.warning("Could not resize window to %s: %s", viewport, raw)
        return self.session_id

    async def stop(self) -> None:
        if self._http is None:
            return
        try:
            if self.session_id is not None:
                response = await self._http.delete(f"/session/{self.session_id}")
                logger.info("WebDriver session %s ended (%s)", self.session_id, response.status_code)
        finally:
            self.session_id = None
            await self._http.aclose()
            self._http = None

    async def execute(self, payload: dict[str, Any]) -> str:
        return await self._command("POST", "execute/sync", _script_body(payload))

    async def execute_async(self, payload: dict[str, Any]) -> str:
        return await self._command("POST", "execute/async", _script_body(payload))

    async def set_async_script_timeout(self, timeout_ms: int) -> str:
        return await self._command("POST", "timeouts", {"script": int(timeout_ms)})

    async def navigate(self, url: str) -> str:
        return await self._command("POST", "url", {"url": url})

    async def current_url(self) -> str:
        return await self._command("GET", "url")

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _create_session(self, browser: str) -> dict[str, Any]:
        if self._http is None:
            raise WebDriverError("WebDriver client is not started")
        response = await self._http.post(
            "/session",
            json={"capabilities": {"alwaysMatch": {"browserName": browser}}},
        )
        status, value = _normalize(response)
        if status != 0:
            message = value.get("message", "") if isinstance(value, dict) else str(value)
            raise WebDriverError(f"Could not create {browser} session: {message}", status=status)
        if not isinstance(value, dict) or "sessionId" not in value:
            raise WebDriverError(f"Unexpected new session response: {response.text[:500]}")
        return value

    async def _command(self, method: str, path: str, body: dict[str, Any] | None = None) -> str:
        if self._http is None or self.session_id is None:
            raise WebDriverError("WebDriver session is not started")
        response = await self._http.request(
            method,
            f"/session/{self.session_id}/{path}",
            json=body,
        )
        logger.debug("%s %s -> %s", method, path, response.status_code)
        status, value = _normalize(response)
        return json.dumps({"status": status, "value": value})


def _script_body(payload: dict[str, Any]) -> dict[str, Any]:
    return {"script": payload["script"], "args": list(payload.get("arguments") or [])}


def _normalize(response: httpx.Response) -> tuple[int, Any]:
    try:
        data = response.json()
    except ValueError:
        data = {"value": {"error": "unknown error", "message": response.text[:500]}}
    value = data.get("value") if isinstance(data, dict) else data

    if response.is_success:
        legacy_status = data.get("status") if isinstance(data, dict) else None
        if isinstance(legacy_status, int) and legacy_status != 0:
            return legacy_status, value
        return 0, value

    error = value.get("error", "unknown error") if isinstance(value, dict) else "unknown error"
    message = value.get("message", "") if isinstance(value, dict) else str(value)
    return LEGACY_STATUS.get(error, UNKNOWN_ERROR), {"error": error, "message": message}
