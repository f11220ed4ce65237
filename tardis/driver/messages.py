from __future__ import annotations

from dataclasses import dataclass
from typing import Any


WAIT_FOR_TIMEOUT = "Interrupted by timeout"


@dataclass(slots=True, frozen=True)
class DriverMessage:
    key: str
    uuid: str
    hash: str
    value: Any = None
    error_message: str | None = None

    @classmethod
    def success(cls, key: str, value: Any, hash: str) -> DriverMessage:
        return cls(key=key, value=value, uuid=hash, hash=hash)

    @classmethod
    def failure(cls, key: str, error_message: str, hash: str) -> DriverMessage:
        return cls(key=key, error_message=error_message, uuid=hash, hash=hash)

    @property
    def is_failure(self) -> bool:
        return self.error_message is not None or self.value == WAIT_FOR_TIMEOUT

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"key": self.key}
        if self.error_message is not None:
            payload["errorMessage"] = self.error_message
        else:
            payload["value"] = self.value
        payload["uuid"] = self.uuid
        payload["hash"] = self.hash
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> DriverMessage:
        return cls(
            key=str(payload.get("key", "")),
            value=payload.get("value"),
            error_message=payload.get("errorMessage"),
            uuid=str(payload.get("uuid", "")),
            hash=str(payload.get("hash", "")),
        )
