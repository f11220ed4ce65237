from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from dotenv import load_dotenv


@dataclass(slots=True, frozen=True)
class TardisConfig:
    tests: tuple[str, ...] = ()
    driver: tuple[str, ...] = ()
    reporter: tuple[str, ...] = ()
    browser: tuple[str, ...] = ()
    viewport: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    log_level: str | None = None
    base_url: str | None = None
    no_colors: bool = False
    no_symbols: bool = False
    remote: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "viewport", MappingProxyType(dict(self.viewport)))


@dataclass(slots=True, frozen=True)
class Settings:
    webdriver_url: str = "http://localhost:4444"
    request_timeout_seconds: float = 30.0
    poll_interval_ms: int = 100
    default_browser: str = "chrome"

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv()
        return cls(
            webdriver_url=os.getenv("TARDIS_WEBDRIVER_URL", "http://localhost:4444").strip(),
            request_timeout_seconds=float(os.getenv("TARDIS_REQUEST_TIMEOUT_SECONDS", "30")),
            poll_interval_ms=int(os.getenv("TARDIS_POLL_INTERVAL_MS", "100")),
            default_browser=os.getenv("TARDIS_DEFAULT_BROWSER", "chrome").strip() or "chrome",
        )
