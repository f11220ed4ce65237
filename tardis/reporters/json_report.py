from __future__ import annotations

import json
from typing import Any

from rich.console import Console

from tardis.config import TardisConfig


class JsonReporter:
    """Buffers everything and prints a single JSON document once the run ends."""

    def __init__(self, config: TardisConfig, console: Console | None = None) -> None:
        self.console = console or Console(no_color=True, highlight=False)
        self.tests: list[dict[str, Any]] = []

    def on_test_start(self, name: str) -> None:
        self.tests.append({"name": name, "messages": [], "error": None})

    def on_message(self, payload: dict[str, Any]) -> None:
        if not self.tests:
            self.on_test_start("")
        self.tests[-1]["messages"].append(dict(payload))

    def on_test_error(self, name: str, error: str) -> None:
        if not self.tests or self.tests[-1]["name"] != name:
            self.on_test_start(name)
        self.tests[-1]["error"] = error

    def finish(self, summary: Any) -> None:
        document = {
            "tests": self.tests,
            "failures": len(summary.failures),
            "success": summary.ok,
        }
        self.console.out(json.dumps(document, ensure_ascii=False, default=str), highlight=False)
