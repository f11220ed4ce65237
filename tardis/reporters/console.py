from __future__ import annotations

from typing import Any

from rich.console import Console

from tardis.config import TardisConfig
from tardis.driver.messages import DriverMessage


class ConsoleReporter:
    def __init__(self, config: TardisConfig, console: Console | None = None) -> None:
        self.console = console or Console(no_color=config.no_colors, highlight=False)
        self.no_colors = config.no_colors
        self.ok_symbol, self.fail_symbol = ("+", "x") if config.no_symbols else ("✔", "✖")
        self.passed = 0
        self.failed = 0

    def _style(self, style: str) -> str | None:
        return None if self.no_colors else style

    def on_test_start(self, name: str) -> None:
        self.console.print(f"\nRUNNING TEST - {name}", style=self._style("bold"), markup=False)

    def on_message(self, payload: dict[str, Any]) -> None:
        message = DriverMessage.from_dict(payload)
        if message.is_failure:
            self.failed += 1
            detail = message.error_message if message.error_message is not None else message.value
            self.console.print(
                f"{self.fail_symbol} {message.key} {detail}",
                style=self._style("red"),
                markup=False,
            )
            return
        self.passed += 1
        detail = "" if message.value in (None, "") else f" {message.value!r}"
        self.console.print(f"{self.ok_symbol} {message.key}{detail}", style=self._style("green"), markup=False)

    def on_test_error(self, name: str, error: str) -> None:
        self.failed += 1
        self.console.print(f"{self.fail_symbol} {name}: {error}", style=self._style("red"), markup=False)

    def finish(self, summary: Any) -> None:
        self.console.print("\n" + "=" * 60, markup=False)
        if self.failed:
            self.console.print(f"{self.fail_symbol} {self.failed} failed, {self.passed} passed", style=self._style("bold red"), markup=False)
        else:
            self.console.print(f"{self.ok_symbol} {self.passed} passed", style=self._style("bold green"), markup=False)
        self.console.print("=" * 60 + "\n", markup=False)
