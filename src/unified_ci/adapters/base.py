# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool adapter contract and the three output-handling strategies."""

from __future__ import annotations

import logging
import re
import threading
import xml.etree.ElementTree as ET  # nosec B405 - reports come from tools we run ourselves
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Final, Protocol, TypeAlias

from ..capabilities import ToolCategory
from ..diff.synthesis import synthesize_findings
from ..errors import ConfigError, ContractViolation, ProcessError
from ..models import Finding
from ..process import DEFAULT_TIMEOUT, ProcessResult, run_process
from ..severity import Severity

LOGGER = logging.getLogger(__name__)


class OutputSource(str, Enum):
    """Where a handler reads the tool's result from."""

    STDOUT = "stdout"
    STDERR = "stderr"
    REPORT_FILE = "report_file"


class Scope(str, Enum):
    """Whether a tool checks one file per run or the whole repository."""

    FILE = "file"
    PROJECT = "project"


@dataclass(frozen=True, slots=True)
class InvocationRequest:
    """Everything an adapter knows about one invocation."""

    command: tuple[str, ...]
    target: Path | None
    working_dir: Path
    auxiliary_path: str | None = None

    def target_path(self) -> Path:
        """Return the target resolved against the working directory."""
        if self.target is None:
            raise ContractViolation("file-scoped adapter invoked without a target file")
        return self.working_dir / self.target


@dataclass(frozen=True, slots=True)
class ToolRun:
    """A finished process together with the request that started it."""

    tool: str
    request: InvocationRequest
    result: ProcessResult

    def read(self, source: OutputSource, report_path: str | None = None) -> bytes:
        """Return the raw bytes a handler should parse.

        Raises:
            ProcessError: If a side-effect report file is missing.
            OSError: If an existing report file cannot be read.
        """

        if source is OutputSource.STDOUT:
            return self.result.stdout
        if source is OutputSource.STDERR:
            return self.result.stderr
        if report_path is None:
            raise ContractViolation("report_file source requires a report path")
        report = self.request.working_dir / report_path
        if not report.is_file():
            raise ProcessError(
                f"{self.tool} did not produce {report_path}",
                command=self.result.args,
                returncode=self.result.returncode,
                stderr=self.result.stderr_text,
            )
        return report.read_bytes()


ReportParser: TypeAlias = Callable[[str, ToolRun], Sequence[Finding]]
ArgumentBuilder: TypeAlias = Callable[[InvocationRequest], Sequence[str]]


class OutputHandler(Protocol):
    """Turn a finished tool run into findings."""

    def handle(self, run: ToolRun) -> list[Finding]:
        """Return the findings extracted from ``run``."""
        ...


@dataclass(frozen=True, slots=True)
class StructuredOutput:
    """Parse a native JSON or XML report with a tool-specific parser."""

    parse: ReportParser
    source: OutputSource = OutputSource.STDOUT
    report_path: str | None = None

    def handle(self, run: ToolRun) -> list[Finding]:
        text = run.read(self.source, self.report_path).decode("utf-8", errors="replace")
        if not text.strip():
            return []
        try:
            return list(self.parse(text, run))
        except (ValueError, ET.ParseError) as exc:
            raise ProcessError(
                f"{run.tool} report could not be parsed: {exc}",
                command=run.result.args,
                returncode=run.result.returncode,
                stderr=run.result.stderr_text,
            ) from exc


@dataclass(frozen=True, slots=True)
class RegexOutput:
    """Scrape findings from free text, one anchored pattern per line.

    The pattern must define ``line`` and ``message`` groups and may define
    ``column`` and ``rule``; lines that do not match are ignored.
    """

    pattern: re.Pattern[str]
    default_rule: str
    severity: Severity = Severity.ERROR
    source: OutputSource = OutputSource.STDOUT

    def handle(self, run: ToolRun) -> list[Finding]:
        text = run.read(self.source).decode("utf-8", errors="replace")
        findings: list[Finding] = []
        for line in text.splitlines():
            match = self.pattern.search(line)
            if match is None:
                continue
            groups = match.groupdict()
            rule = (groups.get("rule") or "").strip()
            findings.append(
                Finding(
                    rule_id=rule or self.default_rule,
                    severity=self.severity,
                    line=groups["line"],
                    column=groups.get("column") or 0,
                    message=groups["message"].strip(),
                ),
            )
        return findings


@dataclass(frozen=True, slots=True)
class FormatDiffOutput:
    """Diff the tool's rewritten file against the original content."""

    rule_id: str
    source: OutputSource = OutputSource.STDOUT

    def handle(self, run: ToolRun) -> list[Finding]:
        original = run.request.target_path().read_bytes()
        return synthesize_findings(original, run.read(self.source), self.rule_id)


@dataclass(frozen=True, slots=True)
class ExitPolicy:
    """Exit statuses that still mean "the tool ran"; zero always does."""

    findings_codes: frozenset[int] = frozenset()
    tolerate_any: bool = False

    def accepts(self, returncode: int) -> bool:
        """Return ``True`` when output should be parsed for ``returncode``."""
        if returncode == 0:
            return True
        if returncode < 0:
            # killed by a signal
            return False
        return self.tolerate_any or returncode in self.findings_codes


def _no_arguments(request: InvocationRequest) -> Sequence[str]:
    del request
    return ()


STRICT_EXIT: Final[ExitPolicy] = ExitPolicy()


@dataclass(frozen=True, slots=True)
class ToolAdapter:
    """One external tool: how to call it and how to read what it says."""

    name: str
    category: ToolCategory
    template_key: str
    handlers: tuple[OutputHandler, ...] = ()
    arguments: ArgumentBuilder = _no_arguments
    exit_policy: ExitPolicy = STRICT_EXIT
    scope: Scope = Scope.FILE
    extensions: frozenset[str] | None = None
    merge_stderr: bool = False
    description: str = field(default="", compare=False)

    def applies_to(self, path: str) -> bool:
        """Return ``True`` when ``path`` has one of the adapter's extensions."""
        if self.extensions is None:
            return True
        return Path(path).suffix.lower() in self.extensions

    def invoke(
        self,
        command: Sequence[str],
        target: str | Path | None,
        working_dir: Path,
        timeout: float | None = DEFAULT_TIMEOUT,
        cancel: threading.Event | None = None,
        *,
        auxiliary_path: str | None = None,
    ) -> list[Finding]:
        """Run the tool once and normalise its output.

        Args:
            command: Resolved command template; adapter arguments are appended.
            target: File to check, relative to ``working_dir``; ``None`` for
                project-scoped tools.
            working_dir: Repository root the tool runs in.
            timeout: Seconds before the process tree is killed.
            cancel: Event cancelling the run when set.
            auxiliary_path: Marker path recorded by capability detection.

        Returns:
            list[Finding]: Findings from every handler, in handler order.

        Raises:
            ConfigError: If ``command`` is empty.
            ProcessError: On a missing binary, an unexpected exit status, a
                timeout, a cancellation or an unreadable report.
            OSError: If the target file cannot be read for diffing.
        """

        if not command:
            raise ConfigError(f"{self.name} command is not configured")
        if self.scope is Scope.FILE and target is None:
            raise ContractViolation(f"{self.name} checks single files and needs a target")
        request = InvocationRequest(
            command=tuple(command),
            target=Path(target) if target is not None else None,
            working_dir=working_dir,
            auxiliary_path=auxiliary_path,
        )
        args = [*request.command, *self.arguments(request)]
        result = run_process(
            args,
            cwd=working_dir,
            timeout=timeout,
            cancel=cancel,
            merge_stderr=self.merge_stderr,
        )
        LOGGER.debug("%s stdout:\n%s", self.name, result.stdout_text)
        LOGGER.debug("%s stderr:\n%s", self.name, result.stderr_text)

        if not self.exit_policy.accepts(result.returncode):
            diagnostics = result.stdout_text if self.merge_stderr else result.stderr_text
            LOGGER.error("%s exited with status %s", self.name, result.returncode)
            raise ProcessError(
                f"{self.name} exited with status {result.returncode}",
                command=result.args,
                returncode=result.returncode,
                stderr=diagnostics,
            )

        run = ToolRun(tool=self.name, request=request, result=result)
        findings: list[Finding] = []
        for handler in self.handlers:
            findings.extend(handler.handle(run))
        return findings


__all__ = [
    "ArgumentBuilder",
    "ExitPolicy",
    "FormatDiffOutput",
    "InvocationRequest",
    "OutputHandler",
    "OutputSource",
    "RegexOutput",
    "ReportParser",
    "STRICT_EXIT",
    "Scope",
    "StructuredOutput",
    "ToolAdapter",
    "ToolRun",
]
