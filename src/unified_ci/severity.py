# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Severity related types and helpers."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import IntEnum
from types import MappingProxyType
from typing import Final


class Severity(IntEnum):
    """Severity levels normalising different tool vocabularies."""

    OFF = 0
    WARNING = 1
    ERROR = 2

    @property
    def label(self) -> str:
        """Return the lowercase name used in reports."""
        return self.name.lower()


class SeverityTable(Mapping[str, Severity]):
    """Immutable, case-insensitive lookup from a tool's labels to :class:`Severity`.

    Labels missing from the table resolve to :attr:`Severity.OFF` through
    :meth:`lookup` so findings are kept and counted instead of dropped.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Severity]) -> None:
        self._entries: Mapping[str, Severity] = MappingProxyType(
            {str(key).lower(): Severity(value) for key, value in entries.items()},
        )

    def __getitem__(self, key: str) -> Severity:
        return self._entries[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SeverityTable({dict(self._entries)!r})"

    def lookup(self, label: object, default: Severity = Severity.OFF) -> Severity:
        """Return the severity for ``label`` or ``default`` when it is unmapped.

        Args:
            label: Raw severity value taken from a tool report.
            default: Severity returned for unknown or non-string labels.

        Returns:
            Severity: Normalised severity level.
        """

        if isinstance(label, bool) or label is None:
            return default
        return self._entries.get(str(label).strip().lower(), default)

    def extend(self, entries: Mapping[str, Severity]) -> SeverityTable:
        """Return a new table containing this table's entries plus ``entries``."""

        merged = dict(self._entries)
        merged.update({str(key).lower(): Severity(value) for key, value in entries.items()})
        return SeverityTable(merged)


DEFAULT_SEVERITY_TABLE: Final[SeverityTable] = SeverityTable(
    {
        "off": Severity.OFF,
        "warning": Severity.WARNING,
        "error": Severity.ERROR,
    },
)


def parse_threshold(value: str | int | Severity) -> Severity:
    """Coerce a configured threshold (``"error"``, ``2`` ...) into a severity.

    Raises:
        ValueError: If ``value`` names no known severity.
    """

    if isinstance(value, Severity):
        return value
    if isinstance(value, int):
        return Severity(value)
    try:
        return Severity[value.strip().upper()]
    except KeyError as exc:
        raise ValueError(f"unknown severity '{value}'") from exc


__all__ = [
    "DEFAULT_SEVERITY_TABLE",
    "Severity",
    "SeverityTable",
    "parse_threshold",
]
