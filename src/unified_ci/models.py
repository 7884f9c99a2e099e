# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the unified_ci package."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .severity import Severity


class Finding(BaseModel):
    """Normalized, line-addressable result produced by one tool check."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity = Severity.OFF
    line: int = 1
    column: int = 0
    message: str
    source_snippet: str | None = None
    path: str | None = None

    @field_validator("rule_id")
    @classmethod
    def _require_rule(cls, value: str) -> str:
        """Reject blank rule identifiers."""
        if not value.strip():
            raise ValueError("rule_id must not be empty")
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: object) -> Severity:
        """Accept severities as enum members, integers or labels; unknown values become ``off``."""
        if isinstance(value, Severity):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return Severity(value)
            except ValueError:
                return Severity.OFF
        if isinstance(value, str):
            return Severity.__members__.get(value.strip().upper(), Severity.OFF)
        return Severity.OFF

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value: object) -> int:
        """Clamp missing or non-positive line numbers to the first line."""
        try:
            number = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 1
        return max(number, 1)

    @field_validator("column", mode="before")
    @classmethod
    def _coerce_column(cls, value: object) -> int:
        """Use ``0`` for unknown columns."""
        try:
            number = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0
        return max(number, 0)


class BindingContext(BaseModel):
    """Variables available to command templates for one check run."""

    model_config = ConfigDict(frozen=True)

    working_dir: Path
    check_type: str = ""
    check_ref: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def project_name(self) -> str:
        """Return the base name of the working directory."""
        return self.working_dir.name


class ToolOutcome(BaseModel):
    """Result bundle for one (file, tool) invocation."""

    model_config = ConfigDict(frozen=True)

    tool: str
    file: str | None = None
    findings: tuple[Finding, ...] = Field(default_factory=tuple)
    error: str | None = None
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """Return ``True`` when the tool ran and produced a result."""
        return self.error is None

    def worst_severity(self) -> Severity:
        """Return the highest severity among the findings (``off`` when empty)."""
        return max((finding.severity for finding in self.findings), default=Severity.OFF)


__all__ = [
    "BindingContext",
    "Finding",
    "ToolOutcome",
]
