from __future__ import annotations

import asyncio
import importlib.util
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from rich.console import Console
from rich.logging import RichHandler

from tardis.config import Settings, TardisConfig
from tardis.driver.events import DRIVER_MESSAGE, EventBus
from tardis.driver.messages import DriverMessage
from tardis.driver.native import DriverNative
from tardis.reporters.console import ConsoleReporter
from tardis.reporters.json_report import JsonReporter
from tardis.webdriver.client import WebDriverClient, WebDriverError

logger = logging.getLogger(__name__)

DRIVERS = ("native",)
REPORTERS: dict[str, Callable[..., Any]] = {
    "console": ConsoleReporter,
    "json": JsonReporter,
}
LOG_LEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.DEBUG,
}

TestFunction = Callable[[DriverNative], Any]


@dataclass(slots=True)
class RunSummary:
    messages: list[DriverMessage] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def record(self, payload: dict[str, Any]) -> None:
        self.messages.append(DriverMessage.from_dict(payload))

    @property
    def failures(self) -> list[str]:
        failed = [
            f"{message.key}: {message.error_message if message.error_message is not None else message.value}"
            for message in self.messages
            if message.is_failure
        ]
        return failed + self.errors

    @property
    def ok(self) -> bool:
        return not self.failures


def log_level(value: str | int | None) -> int:
    try:
        level = int(value) if value is not None else 1
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid log level %r", value)
        level = 1
    return LOG_LEVELS[min(max(level, 0), 5)]


def configure_logging(value: str | int | None, no_colors: bool = False) -> None:
    handler = RichHandler(console=Console(stderr=True, no_color=no_colors), show_path=False)
    logging.basicConfig(level=log_level(value), format="%(message)s", handlers=[handler], force=True)


def load_tests(path: str) -> list[tuple[str, TestFunction]]:
    """Import a test file and return its ``test_*`` callables in definition order."""
    file_path = Path(path).resolve()
    if not file_path.is_file():
        raise FileNotFoundError(f"Test file not found: {path}")
    spec = importlib.util.spec_from_file_location(f"tardis_tests.{file_path.stem}", file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load test file: {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return [
        (f"{file_path.name}::{name}", obj)
        for name, obj in vars(module).items()
        if name.startswith("test_") and callable(obj)
    ]


class Tardis:
    def __init__(
        self,
        config: TardisConfig,
        settings: Settings | None = None,
        client_factory: Callable[..., WebDriverClient] = WebDriverClient,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.settings = settings
        self.client_factory = client_factory
        self.console = console

    def run(self) -> RunSummary:
        configure_logging(self.config.log_level, no_colors=self.config.no_colors)
        settings = self.settings or Settings.from_env()
        return asyncio.run(self.run_async(settings))

    async def run_async(self, settings: Settings) -> RunSummary:
        summary = RunSummary()
        events = EventBus()
        events.on(DRIVER_MESSAGE, summary.record)
        reporters = self._reporters()
        for reporter in reporters:
            events.on(DRIVER_MESSAGE, reporter.on_message)

        if self.config.remote is not None:
            logger.warning("Remote host mode (port %s) is not supported, running locally", self.config.remote)

        tests: list[tuple[str, TestFunction]] = []
        for path in self.config.tests:
            try:
                tests.extend(load_tests(path))
            except Exception as exc:
                logger.error("Could not load %s: %s", path, exc)
                self._fail(summary, reporters, path, f"load error: {exc}")
        if not tests:
            logger.warning("No tests to run")

        for driver_name in self.config.driver or DRIVERS:
            if driver_name not in DRIVERS:
                logger.warning("Unknown driver %r skipped (available: %s)", driver_name, ", ".join(DRIVERS))
                continue
            for browser in self.config.browser or (settings.default_browser,):
                await self._run_browser(browser, tests, settings, events, summary, reporters)

        for reporter in reporters:
            reporter.finish(summary)
        return summary

    async def _run_browser(
        self,
        browser: str,
        tests: list[tuple[str, TestFunction]],
        settings: Settings,
        events: EventBus,
        summary: RunSummary,
        reporters: list[Any],
    ) -> None:
        if not tests:
            return
        client = self.client_factory(settings.webdriver_url, timeout_seconds=settings.request_timeout_seconds)
        try:
            try:
                await client.start(browser, dict(self.config.viewport) or None)
            except (WebDriverError, httpx.HTTPError) as exc:
                logger.error("Could not start %s: %s", browser, exc)
                self._fail(summary, reporters, browser, f"session error: {exc}")
                return

            for name, test in tests:
                label = f"{name} [{browser}]"
                for reporter in reporters:
                    reporter.on_test_start(label)
                driver = DriverNative(
                    client,
                    events,
                    base_url=self.config.base_url,
                    poll_interval=settings.poll_interval_ms / 1000,
                )
                try:
                    outcome = test(driver)
                    if inspect.isawaitable(outcome):
                        await outcome
                    await driver.run()
                except Exception as exc:
                    logger.exception("Test %s raised", label)
                    self._fail(summary, reporters, label, str(exc) or exc.__class__.__name__)
        finally:
            try:
                await client.stop()
            except (WebDriverError, httpx.HTTPError) as exc:
                logger.error("Could not end %s session: %s", browser, exc)
                self._fail(summary, reporters, browser, f"teardown error: {exc}")

    def _reporters(self) -> list[Any]:
        reporters = []
        for name in self.config.reporter or ("console",):
            factory = REPORTERS.get(name)
            if factory is None:
                logger.warning("Unknown reporter %r skipped (available: %s)", name, ", ".join(REPORTERS))
                continue
            reporters.append(factory(self.config, console=self.console))
        return reporters

    @staticmethod
    def _fail(summary: RunSummary, reporters: list[Any], name: str, error: str) -> None:
        summary.errors.append(f"{name}: {error}")
        for reporter in reporters:
            reporter.on_test_error(name, error)
