"""Tardis command line tools.

Usage: tardis [test files] {OPTIONS}

Parses the flags into a :class:`TardisConfig` and hands it to the runner.
``--version`` and ``--help`` print and exit before anything runs.
"""
from __future__ import annotations

import argparse
import math
from collections.abc import Callable, Sequence
from typing import Any

from tardis.config import TardisConfig
from tardis.runner import Tardis

VERSION = "0.1.0"

RunnerFactory = Callable[[TardisConfig], Any]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tardis",
        usage="%(prog)s [test files] {OPTIONS}",
        description="Run browser automation tests against a WebDriver endpoint",
    )
    parser.add_argument("tests", nargs="*", help="Test files to run")
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"Tardis CLI Tools {VERSION}",
        help="Shows the version of the tardis cli",
    )
    parser.add_argument("-r", "--reporter", help="Reporter(s) you would like to invoke")
    parser.add_argument("-d", "--driver", help="Driver(s) you would like to invoke")
    parser.add_argument("-b", "--browser", help="Browser(s) you would like to invoke")
    parser.add_argument("--viewport", help="Viewport dimensions you would like to invoke, as width,height")
    parser.add_argument(
        "-u",
        "--baseUrl",
        dest="base_url",
        help="Base URL to prepend to every open() call given a relative path",
    )
    parser.add_argument(
        "-l",
        "--logLevel",
        dest="log_level",
        help="Log level, controls the amount of information outputted to the console (0 to 5)",
    )
    parser.add_argument("--remote", type=int, help="Starts a tardis host server for clients to connect to")
    parser.add_argument("--nocolors", action="store_true", help="Disable colorized output in the console")
    parser.add_argument("--nosymbols", action="store_true", help="Disable UTF-8 symbols in the console")
    return parser


def split_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def parse_viewport(value: str | None) -> dict[str, int | float]:
    if not value:
        return {}
    parts = value.split(",")
    width = _number(parts[0])
    height = _number(parts[1]) if len(parts) > 1 else None
    if width is None or height is None:
        return {}
    return {"width": width, "height": height}


def _number(text: str) -> int | float | None:
    text = text.strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def parse_config(argv: Sequence[str] | None = None) -> TardisConfig:
    args = build_parser().parse_args(argv)
    return TardisConfig(
        tests=tuple(args.tests),
        driver=split_list(args.driver),
        reporter=split_list(args.reporter),
        browser=split_list(args.browser),
        viewport=parse_viewport(args.viewport),
        log_level=args.log_level,
        base_url=args.base_url,
        no_colors=args.nocolors,
        no_symbols=args.nosymbols,
        remote=args.remote,
    )


def main(argv: Sequence[str] | None = None, runner_factory: RunnerFactory = Tardis) -> None:
    config = parse_config(argv)
    runner_factory(config).run()


if __name__ == "__main__":
    main()
