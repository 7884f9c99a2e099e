# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsers for the native reports of the supported tools."""

from __future__ import annotations

import json
import os
import xml.etree.ElementTree as ET  # nosec B405 - reports come from tools we run ourselves
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path, PureWindowsPath
from typing import Any, Final

from ..models import Finding
from ..severity import DEFAULT_SEVERITY_TABLE, Severity, SeverityTable
from .base import ToolRun

TSLINT_SEVERITY: Final[SeverityTable] = DEFAULT_SEVERITY_TABLE
SCSSLINT_SEVERITY: Final[SeverityTable] = DEFAULT_SEVERITY_TABLE
CODE_CLIMATE_SEVERITY: Final[SeverityTable] = SeverityTable(
    {
        "info": Severity.OFF,
        "minor": Severity.WARNING,
        "major": Severity.ERROR,
        "critical": Severity.ERROR,
        "blocker": Severity.ERROR,
    },
)
ANDROID_LINT_SEVERITY: Final[SeverityTable] = SeverityTable(
    {
        "fatal": Severity.ERROR,
        "error": Severity.ERROR,
        "warning": Severity.WARNING,
        "information": Severity.OFF,
        "informational": Severity.OFF,
        "ignore": Severity.OFF,
    },
)
OCLINT_PRIORITY: Final[SeverityTable] = SeverityTable(
    {
        "1": Severity.ERROR,
        "2": Severity.WARNING,
        "3": Severity.WARNING,
    },
)


def _load_json(text: str) -> Any:
    # JSONDecodeError is a ValueError, which the structured handler reports
    return json.loads(text)


def _iter_dicts(value: Any) -> Iterator[Mapping[str, Any]]:
    """Yield mapping items from ``value`` when it is a sequence of dict-like objects."""

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        for item in value:
            if isinstance(item, Mapping):
                yield item


def _first(value: Any) -> Mapping[str, Any] | None:
    return next(_iter_dicts(value), None)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_posix(path: str) -> str:
    if os.name == "nt":  # pragma: no cover - exercised on Windows only
        return PureWindowsPath(path).as_posix()
    return path


def parse_lint_results(text: str, run: ToolRun) -> list[Finding]:
    """Parse the ``[{"filePath", "messages": [...]}]`` report of phplint and ESLint.

    Only the first result is used because the tools are invoked for one file.
    ESLint reports parse errors without a rule id; those use the tool name.
    """

    result = _first(_load_json(text))
    if result is None:
        return []
    return [
        Finding(
            rule_id=str(message.get("ruleId") or run.tool),
            severity=message.get("severity", Severity.OFF),
            line=message.get("line"),
            column=message.get("column"),
            message=str(message.get("message", "")),
            source_snippet=message.get("sourceCode") or message.get("source"),
        )
        for message in _iter_dicts(result.get("messages"))
    ]


def parse_tslint(text: str, run: ToolRun) -> list[Finding]:
    """Parse TSLint's JSON list; positions are zero-based."""

    del run
    findings: list[Finding] = []
    for entry in _iter_dicts(_load_json(text)):
        start = entry.get("startPosition")
        position = start if isinstance(start, Mapping) else {}
        findings.append(
            Finding(
                rule_id=str(entry.get("ruleName") or "tslint"),
                severity=TSLINT_SEVERITY.lookup(entry.get("ruleSeverity")),
                line=_int(position.get("line")) + 1,
                column=_int(position.get("character")) + 1,
                message=str(entry.get("failure", "")),
            ),
        )
    return findings


def parse_scsslint(text: str, run: ToolRun) -> list[Finding]:
    """Parse scss-lint's ``{file: [lint, ...]}`` report (first file only)."""

    del run
    payload = _load_json(text)
    if not isinstance(payload, Mapping) or not payload:
        return []
    lints = next(iter(payload.values()))
    return [
        Finding(
            rule_id=str(lint.get("linter") or "scsslint"),
            severity=SCSSLINT_SEVERITY.lookup(lint.get("severity")),
            line=lint.get("line"),
            column=lint.get("column"),
            message=str(lint.get("reason", "")),
        )
        for lint in _iter_dicts(lints)
    ]


def parse_code_climate(text: str, run: ToolRun) -> list[Finding]:
    """Parse golangci-lint's code-climate report into path-carrying findings.

    Issues without a severity label are errors; labelled ones go through
    :data:`CODE_CLIMATE_SEVERITY`.
    """

    del run
    findings: list[Finding] = []
    for issue in _iter_dicts(_load_json(text)):
        location = issue.get("location")
        location = location if isinstance(location, Mapping) else {}
        lines = location.get("lines")
        lines = lines if isinstance(lines, Mapping) else {}
        label = issue.get("severity")
        findings.append(
            Finding(
                rule_id=str(issue.get("check_name") or "golangci-lint"),
                severity=CODE_CLIMATE_SEVERITY.lookup(label) if label else Severity.ERROR,
                line=lines.get("begin"),
                message=str(issue.get("description", "")),
                path=_to_posix(str(location.get("path", ""))) or None,
            ),
        )
    return findings


def parse_remark(text: str, run: ToolRun) -> list[Finding]:
    """Parse the JSON report remark writes to stderr (first file only).

    ``fatal: true`` is an error, ``fatal: false`` a warning and a missing
    flag an informational message.
    """

    del run
    report = _first(_load_json(text))
    if report is None:
        return []
    findings: list[Finding] = []
    for message in _iter_dicts(report.get("messages")):
        fatal = message.get("fatal")
        severity = Severity.ERROR if fatal is True else Severity.WARNING if fatal is False else Severity.OFF
        findings.append(
            Finding(
                rule_id=str(message.get("ruleId") or message.get("source") or "remark-lint"),
                severity=severity,
                line=message.get("line"),
                column=message.get("column"),
                message=str(message.get("reason") or message.get("message") or ""),
            ),
        )
    return findings


def parse_oclint_xml(text: str, run: ToolRun) -> list[Finding]:
    """Parse ``<oclint><violations><violation .../></violations></oclint>``."""

    del run
    root = ET.fromstring(text)  # nosec B314
    return [
        Finding(
            rule_id=violation.get("rule") or "oclint",
            severity=OCLINT_PRIORITY.lookup(violation.get("priority")),
            line=violation.get("startline"),
            column=violation.get("startcolumn"),
            message=violation.get("message", ""),
        )
        for violation in root.iterfind("./violations/violation")
    ]


def parse_android_lint(text: str, run: ToolRun) -> list[Finding]:
    """Parse Android lint's ``lint-results.xml``; paths become repository relative."""

    root = ET.fromstring(text)  # nosec B314
    base = run.request.working_dir.resolve()
    findings: list[Finding] = []
    for issue in root.iterfind("./issue"):
        location = issue.find("location")
        file_name = location.get("file", "") if location is not None else ""
        line = location.get("line") if location is not None else None
        column = location.get("column") if location is not None else None
        path = Path(file_name)
        if path.is_absolute():
            path = Path(os.path.relpath(path, base))
        findings.append(
            Finding(
                rule_id=issue.get("id") or "android-lint",
                severity=ANDROID_LINT_SEVERITY.lookup(issue.get("severity")),
                line=line,
                column=column,
                message=issue.get("message", ""),
                path=path.as_posix() if file_name else None,
            ),
        )
    return findings


__all__ = [
    "ANDROID_LINT_SEVERITY",
    "CODE_CLIMATE_SEVERITY",
    "OCLINT_PRIORITY",
    "SCSSLINT_SEVERITY",
    "TSLINT_SEVERITY",
    "parse_android_lint",
    "parse_code_climate",
    "parse_lint_results",
    "parse_oclint_xml",
    "parse_remark",
    "parse_scsslint",
    "parse_tslint",
]
