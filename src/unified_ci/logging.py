# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console output for check runs and stdlib logging setup."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Final

from rich.console import Console, RenderableType
from rich.rule import Rule
from rich.text import Text

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Status(Enum):
    """Kinds of one-line status messages, each with a glyph and a colour."""

    INFO = ("ℹ️ ", "cyan")
    OK = ("✅ ", "green")
    WARN = ("⚠️ ", "yellow")
    FAIL = ("❌ ", "red")

    @property
    def glyph(self) -> str:
        return self.value[0]

    @property
    def style(self) -> str:
        return self.value[1]


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


@dataclass(frozen=True, slots=True)
class CheckConsole:
    """Print check progress with colour and emoji switched independently.

    Colour is only used when stdout is a terminal, so piped output and
    captured test output stay plain.
    """

    color: bool = True
    emoji: bool = True

    @property
    def use_color(self) -> bool:
        return self.color and detect_tty()

    def _console(self) -> Console:
        # built per call so redirected stdout is honoured
        color = self.use_color
        return Console(
            color_system="auto" if color else None,
            force_terminal=color,
            no_color=not color,
            emoji=self.emoji,
            soft_wrap=True,
        )

    def heading(self, title: str) -> None:
        """Print a section header for one check run."""
        console = self._console()
        if self.use_color:
            console.print()
            console.print(Rule(title))
        else:
            console.print(f"\n--- {title} ---")

    def status(self, kind: Status, message: str) -> None:
        """Print ``message`` prefixed and styled for ``kind``."""
        text = Text(f"{kind.glyph if self.emoji else ''}{message}")
        if self.use_color:
            text.stylize(kind.style)
        self._console().print(text)

    def render(self, renderable: RenderableType) -> None:
        """Print a rich renderable such as a findings table."""
        self._console().print(renderable)


def configure_logging(verbose: bool = False) -> None:
    """Route stdlib logging to stderr at WARNING, or DEBUG when ``verbose``.

    Args:
        verbose: ``True`` to include tool stdout/stderr dumps logged at DEBUG.
    """

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("unified_ci").setLevel(level)


__all__ = [
    "CheckConsole",
    "Status",
    "configure_logging",
    "detect_tty",
]
