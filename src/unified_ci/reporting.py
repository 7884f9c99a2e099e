# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build check-run conclusions, summaries and annotations from tool outcomes."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from datetime import datetime, timezone
from typing import Any, Final, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ContractViolation
from .models import Finding, ToolOutcome
from .severity import Severity

LOGGER = logging.getLogger(__name__)

SUMMARY_LIMIT: Final[int] = 60000
TRUNCATION_MARKER: Final[str] = "... truncated ..."
ANNOTATION_BATCH_SIZE: Final[int] = 50
STDERR_EXCERPT_LIMIT: Final[int] = 2000

Conclusion: TypeAlias = Literal["success", "failure", "action_required"]
Annotation: TypeAlias = dict[str, Any]

_ANNOTATION_LEVELS: Final[dict[Severity, str]] = {
    Severity.ERROR: "failure",
    Severity.WARNING: "warning",
    Severity.OFF: "notice",
}


def truncated(text: str, marker: str, limit: int) -> tuple[bool, str]:
    """Cut ``text`` so that the result plus ``marker`` fits within ``limit`` characters.

    Returns:
        tuple[bool, str]: Whether the text was cut, and the (possibly cut) text.

    Raises:
        ContractViolation: If ``marker`` alone does not fit within ``limit``.
    """

    if len(text) <= limit:
        return False, text
    if len(marker) > limit:
        raise ContractViolation(f"marker of {len(marker)} characters exceeds limit {limit}")
    return True, text[: limit - len(marker)] + marker


def conclusion(outcomes: Sequence[ToolOutcome], threshold: Severity = Severity.ERROR) -> Conclusion:
    """Return the overall check conclusion.

    ``failure`` when any finding reaches ``threshold``; otherwise
    ``action_required`` when any tool failed to run; otherwise ``success``.
    """

    if any(finding.severity >= threshold for outcome in outcomes for finding in outcome.findings):
        return "failure"
    if any(not outcome.ok for outcome in outcomes):
        return "action_required"
    return "success"


def _annotation(outcome: ToolOutcome, finding: Finding, path: str) -> Annotation:
    annotation: Annotation = {
        "path": path,
        "start_line": finding.line,
        "end_line": finding.line,
        "annotation_level": _ANNOTATION_LEVELS[finding.severity],
        "message": finding.message or finding.rule_id,
        "title": f"{outcome.tool}: {finding.rule_id}",
    }
    if finding.column > 0:
        annotation["start_column"] = finding.column
        annotation["end_column"] = finding.column
    if finding.source_snippet:
        annotation["raw_details"] = finding.source_snippet
    return annotation


def build_annotations(outcomes: Sequence[ToolOutcome], *, include_off: bool = False) -> list[Annotation]:
    """Convert findings into check-run annotation payloads.

    Findings at ``off`` severity are only annotated (as ``notice``) when
    ``include_off`` is set. Findings without a file cannot be annotated and
    are skipped; they still count in the summary.
    """

    annotations: list[Annotation] = []
    for outcome in outcomes:
        for finding in outcome.findings:
            if finding.severity is Severity.OFF and not include_off:
                continue
            path = finding.path or outcome.file
            if not path:
                continue
            annotations.append(_annotation(outcome, finding, path))
    return annotations


def annotation_batches(
    annotations: Sequence[Annotation],
    size: int = ANNOTATION_BATCH_SIZE,
) -> Iterator[list[Annotation]]:
    """Yield ``annotations`` in chunks the check-run API accepts per update."""

    if size <= 0:
        raise ContractViolation(f"batch size must be positive, got {size}")
    for start in range(0, len(annotations), size):
        yield list(annotations[start : start + size])


def _count(outcome: ToolOutcome, severity: Severity) -> int:
    return sum(1 for finding in outcome.findings if finding.severity is severity)


def build_title(outcomes: Sequence[ToolOutcome]) -> str:
    """Return a one-line title such as ``2 error(s), 1 warning(s)``."""

    errors = sum(_count(outcome, Severity.ERROR) for outcome in outcomes)
    warnings = sum(_count(outcome, Severity.WARNING) for outcome in outcomes)
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    title = f"{errors} error(s), {warnings} warning(s)"
    if failed:
        title += f", {failed} tool failure(s)"
    return title


def _excerpt(text: str) -> str:
    _, excerpt = truncated(text.strip(), TRUNCATION_MARKER, STDERR_EXCERPT_LIMIT)
    return excerpt


def build_summary(outcomes: Sequence[ToolOutcome], *, limit: int = SUMMARY_LIMIT) -> str:
    """Render a markdown summary: one table row per outcome plus failure details.

    The result is truncated to ``limit`` characters with an explicit marker.
    """

    if not outcomes:
        return "No files to review."

    lines = [
        "| Tool | File | Errors | Warnings | Info | Status |",
        "| --- | --- | ---: | ---: | ---: | --- |",
    ]
    for outcome in outcomes:
        status = "ok" if outcome.ok else "failed"
        lines.append(
            f"| {outcome.tool} | {outcome.file or '*'} | {_count(outcome, Severity.ERROR)} "
            f"| {_count(outcome, Severity.WARNING)} | {_count(outcome, Severity.OFF)} | {status} |",
        )

    failures = [outcome for outcome in outcomes if not outcome.ok]
    if failures:
        lines.extend(["", "### Tool failures", ""])
        for outcome in failures:
            location = f" on `{outcome.file}`" if outcome.file else ""
            lines.append(f"**{outcome.tool}**{location}: {outcome.error}")
            if outcome.stderr.strip():
                lines.extend(["", "```", _excerpt(outcome.stderr), "```", ""])

    cut, summary = truncated("\n".join(lines), TRUNCATION_MARKER, limit)
    if cut:
        LOGGER.warning("The output summary is too long.")
    return summary


class CheckRunUpdate(BaseModel):
    """Payload completing a remote check run."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: Literal["completed"] = "completed"
    conclusion: Conclusion
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    title: str
    summary: str
    annotations: tuple[Annotation, ...] = ()

    @field_validator("summary")
    @classmethod
    def _truncate_summary(cls, value: str) -> str:
        """Keep the summary within the size the remote API accepts."""
        cut, summary = truncated(value, TRUNCATION_MARKER, SUMMARY_LIMIT)
        if cut:
            LOGGER.warning("The output summary is too long.")
        return summary

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for the check-run update request."""

        return {
            "name": self.name,
            "status": self.status,
            "conclusion": self.conclusion,
            "completed_at": self.completed_at.isoformat(),
            "output": {
                "title": self.title,
                "summary": self.summary,
                "annotations": [dict(annotation) for annotation in self.annotations],
            },
        }


class CheckReport(BaseModel):
    """Everything needed to complete a check run for one review."""

    model_config = ConfigDict(frozen=True)

    outcomes: tuple[ToolOutcome, ...]
    conclusion: Conclusion
    title: str
    summary: str
    annotations: tuple[Annotation, ...] = ()

    def to_update(self, name: str, completed_at: datetime | None = None) -> CheckRunUpdate:
        """Return the :class:`CheckRunUpdate` for the check run called ``name``."""

        extra = {"completed_at": completed_at} if completed_at is not None else {}
        return CheckRunUpdate(
            name=name,
            conclusion=self.conclusion,
            title=self.title,
            summary=self.summary,
            annotations=self.annotations,
            **extra,
        )


def build_report(outcomes: Sequence[ToolOutcome], threshold: Severity = Severity.ERROR) -> CheckReport:
    """Assemble conclusion, title, summary and annotations for ``outcomes``."""

    return CheckReport(
        outcomes=tuple(outcomes),
        conclusion=conclusion(outcomes, threshold),
        title=build_title(outcomes),
        summary=build_summary(outcomes),
        annotations=tuple(build_annotations(outcomes)),
    )


def error_update(name: str, title: str, error: BaseException | str) -> CheckRunUpdate:
    """Return the update reporting that the whole check could not run."""

    return CheckRunUpdate(
        name=name,
        conclusion="action_required",
        title=title,
        summary=f"error: {error}",
    )


__all__ = [
    "ANNOTATION_BATCH_SIZE",
    "CheckReport",
    "CheckRunUpdate",
    "SUMMARY_LIMIT",
    "TRUNCATION_MARKER",
    "annotation_batches",
    "build_annotations",
    "build_report",
    "build_summary",
    "build_title",
    "conclusion",
    "error_update",
    "truncated",
]
