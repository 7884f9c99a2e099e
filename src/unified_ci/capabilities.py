# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Decide which tool categories apply to a repository from its marker files."""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Final

from pydantic import BaseModel, ConfigDict


class ToolCategory(str, Enum):
    """Categories of external tools, each switched on by its own marker files."""

    GO = "go"
    CPP = "cpp"
    OC = "oc"
    CLANG_LINT = "clang_lint"
    MARKDOWN = "markdown"
    TYPESCRIPT = "typescript"
    SCSS = "scss"
    ES = "es"
    JS = "js"
    APIDOC = "apidoc"
    ANDROID = "android"
    PHP = "php"


class MarkerRule(BaseModel):
    """Marker files for one category, checked in order; the first present one wins."""

    model_config = ConfigDict(frozen=True)

    markers: tuple[str, ...] = ()
    default_enabled: bool = False
    record_path: bool = False


class Capability(BaseModel):
    """Whether a category is eligible, plus the marker path some adapters need."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    auxiliary_path: str | None = None


class CapabilitySet(Mapping[ToolCategory, Capability]):
    """Immutable mapping from every :class:`ToolCategory` to its capability."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[ToolCategory, Capability] | None = None) -> None:
        given = dict(entries or {})
        self._entries: Mapping[ToolCategory, Capability] = MappingProxyType(
            {category: given.get(category, Capability()) for category in ToolCategory},
        )

    def __getitem__(self, key: ToolCategory | str) -> Capability:
        return self._entries[ToolCategory(key)]

    def __iter__(self) -> Iterator[ToolCategory]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        enabled = ", ".join(sorted(category.value for category in self.enabled_categories()))
        return f"CapabilitySet(enabled=[{enabled}])"

    def enabled(self, category: ToolCategory | str) -> bool:
        """Return ``True`` when ``category`` is eligible for this repository."""
        return self[ToolCategory(category)].enabled

    def auxiliary_path(self, category: ToolCategory | str) -> str | None:
        """Return the recorded marker path for ``category``, if any."""
        return self[ToolCategory(category)].auxiliary_path

    def enabled_categories(self) -> frozenset[ToolCategory]:
        """Return every eligible category."""
        return frozenset(category for category in ToolCategory if self.enabled(category))


DEFAULT_MARKERS: Final[Mapping[ToolCategory, MarkerRule]] = MappingProxyType(
    {
        ToolCategory.GO: MarkerRule(markers=(".golangci.yml",)),
        ToolCategory.CPP: MarkerRule(markers=("CPPLINT.cfg",)),
        ToolCategory.OC: MarkerRule(markers=(".oclint",)),
        ToolCategory.CLANG_LINT: MarkerRule(markers=(".clang-format",)),
        ToolCategory.MARKDOWN: MarkerRule(markers=(".remarkrc", ".remarkrc.js")),
        ToolCategory.TYPESCRIPT: MarkerRule(markers=("tslint.json",)),
        ToolCategory.SCSS: MarkerRule(markers=(".scss-lint.yml",)),
        ToolCategory.ES: MarkerRule(markers=(".eslintrc", ".eslintrc.js"), record_path=True),
        ToolCategory.JS: MarkerRule(markers=(".eslintrc.js", ".eslintrc"), record_path=True),
        ToolCategory.APIDOC: MarkerRule(markers=("apidoc.json",)),
        ToolCategory.ANDROID: MarkerRule(markers=("build.gradle",)),
        ToolCategory.PHP: MarkerRule(default_enabled=True),
    },
)


def _marker_present(path: Path) -> bool:
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def detect(
    repo_root: str | os.PathLike[str],
    markers: Mapping[ToolCategory, MarkerRule] = DEFAULT_MARKERS,
) -> CapabilitySet:
    """Return the capabilities of the repository checked out at ``repo_root``.

    Only the repository root is inspected, and only for existence. A marker
    that is missing or cannot be stat'ed counts as absent. Categories missing
    from ``markers`` are disabled. The result is never cached because the
    repository content changes between revisions.
    """

    root = Path(repo_root)
    entries: dict[ToolCategory, Capability] = {}
    for category in ToolCategory:
        rule = markers.get(category)
        if rule is None:
            entries[category] = Capability()
            continue
        found = next((root / name for name in rule.markers if _marker_present(root / name)), None)
        if found is None:
            entries[category] = Capability(enabled=rule.default_enabled)
        else:
            entries[category] = Capability(
                enabled=True,
                auxiliary_path=str(found) if rule.record_path else None,
            )
    return CapabilitySet(entries)


__all__ = [
    "Capability",
    "CapabilitySet",
    "DEFAULT_MARKERS",
    "MarkerRule",
    "ToolCategory",
    "detect",
]
