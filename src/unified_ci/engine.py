# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Check orchestration: select changed files, fan out adapters, collect outcomes."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .adapters import AdapterRegistry, Scope, ToolAdapter, default_registry
from .capabilities import CapabilitySet, detect
from .config import Config
from .diff import (
    head_file,
    is_gitlink_mode,
    is_symlink_mode,
    match_any,
    parse_file_type,
    parse_multi_file_diff,
    trimmed_new_name,
)
from .diff.parser import FileDiff
from .errors import ConfigError, ParseError, ProcessError, UnifiedCIError
from .models import BindingContext, Finding, ToolOutcome
from .shellwords import CommandResolver

LOGGER = logging.getLogger(__name__)

GENERATED_MARKER: Final[str] = "@generated"
GO_GENERATED_PREFIX: Final[str] = "Code generated"
GO_GENERATED_SUFFIX: Final[str] = "DO NOT EDIT"


@dataclass(frozen=True, slots=True)
class ReviewTarget:
    """A changed file selected for review and the lines the change adds."""

    path: str
    added_lines: frozenset[int] = frozenset()


@dataclass(frozen=True, slots=True)
class Invocation:
    """One scheduled (tool, file) pair; ``target`` is ``None`` for project tools."""

    order: int
    adapter: ToolAdapter
    target: str | None


def is_generated(lines: Sequence[str]) -> bool:
    """Return ``True`` when header ``lines`` mark the file as machine generated."""

    for line in lines:
        if GENERATED_MARKER in line:
            return True
        if GO_GENERATED_PREFIX in line and GO_GENERATED_SUFFIX in line:
            return True
    return False


def _is_special_file(entry: FileDiff) -> bool:
    try:
        mode = parse_file_type(entry.extended)
    except ParseError:
        # plain ``diff -u`` output carries no modes
        return False
    return is_symlink_mode(mode) or is_gitlink_mode(mode)


class CheckEngine:
    """Run every eligible adapter against the files touched by a diff.

    One failing tool never aborts the others: each invocation yields its own
    :class:`ToolOutcome`, with the error recorded on it. Caller bugs
    (:class:`~unified_ci.errors.ContractViolation`) are not caught.
    """

    def __init__(
        self,
        config: Config | None = None,
        registry: AdapterRegistry | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config or Config()
        self._registry = registry if registry is not None else default_registry()
        self._environ = environ

    @property
    def config(self) -> Config:
        """Return the configuration the engine runs with."""
        return self._config

    def select_files(self, repo_root: Path, diff_text: str) -> list[ReviewTarget]:
        """Return the reviewable files of ``diff_text`` in diff order.

        Deleted files, symlinks, submodules, binary files, paths matching the
        ignore patterns, files missing from ``repo_root`` and generated files
        are skipped.

        Raises:
            ParseError: If ``diff_text`` is not a valid unified diff.
            OSError: If a changed file exists but cannot be read.
        """

        review = self._config.review
        targets: list[ReviewTarget] = []
        for entry in parse_multi_file_diff(diff_text):
            name, ok = trimmed_new_name(entry)
            if not ok:
                LOGGER.debug("skipping %s: no new file name", name)
                continue
            if entry.is_binary or _is_special_file(entry):
                LOGGER.debug("skipping %s: binary, symlink or submodule", name)
                continue
            if match_any(review.ignore_patterns, name):
                LOGGER.debug("skipping %s: ignored by pattern", name)
                continue
            path = repo_root / name
            if not path.is_file():
                LOGGER.debug("skipping %s: not present in the checkout", name)
                continue
            if is_generated(head_file(path, review.generated_header_lines)):
                LOGGER.info("skipping generated file %s", name)
                continue
            targets.append(ReviewTarget(path=name, added_lines=frozenset(entry.added_line_numbers())))
        return targets

    def plan(self, targets: Sequence[ReviewTarget], capabilities: CapabilitySet) -> list[Invocation]:
        """Return the invocations needed for ``targets`` under ``capabilities``.

        File-scoped adapters run once per matching file. Project-scoped
        adapters run once when any target matches their extensions, or when
        any target changed at all if they declare none.
        """

        disabled = set(self._config.review.disabled_tools)
        invocations: list[Invocation] = []
        for adapter in self._registry.values():
            if adapter.name in disabled or not capabilities.enabled(adapter.category):
                continue
            matching = [target.path for target in targets if adapter.applies_to(target.path)]
            if not matching:
                continue
            if adapter.scope is Scope.PROJECT:
                invocations.append(Invocation(order=len(invocations), adapter=adapter, target=None))
                continue
            for path in matching:
                invocations.append(Invocation(order=len(invocations), adapter=adapter, target=path))
        return invocations

    def resolve_command(self, adapter: ToolAdapter, context: BindingContext) -> tuple[str, ...]:
        """Resolve ``adapter``'s command template for a single invocation.

        Backtick subcommands in the template run on every call, so each
        invocation gets its own freshly resolved argument vector.

        Args:
            adapter: Adapter whose template is resolved.
            context: Bindings for ``$PWD``, ``$PROJECT_NAME`` and the check variables.

        Returns:
            tuple[str, ...]: The argument vector the adapter appends to.

        Raises:
            ParseError: If the template is malformed or a backtick command fails.
            ConfigError: If the template resolves to no words.
        """

        template = self._config.commands.template_for(adapter.template_key)
        command = CommandResolver(context, environ=self._environ).parse(template)
        if not command:
            raise ConfigError(f"{adapter.name} command is not configured")
        return command

    def run(
        self,
        repo_root: Path,
        diff_text: str,
        context: BindingContext | None = None,
        cancel: threading.Event | None = None,
    ) -> list[ToolOutcome]:
        """Review the change described by ``diff_text`` in the checkout at ``repo_root``.

        Args:
            repo_root: Checkout of the revision under review.
            diff_text: Unified diff of the change.
            context: Template bindings; derived from ``repo_root`` when omitted.
            cancel: Event that cancels every running tool when set.

        Returns:
            list[ToolOutcome]: One outcome per invocation, in plan order.

        Raises:
            ParseError: If ``diff_text`` is malformed.
        """

        root = Path(repo_root)
        binding = context or BindingContext(working_dir=root)
        targets = self.select_files(root, diff_text)
        capabilities = detect(root)
        LOGGER.debug("capabilities for %s: %r", root, capabilities)
        invocations = self.plan(targets, capabilities)
        if not invocations:
            return []

        by_path = {target.path: target for target in targets}
        outcomes: list[ToolOutcome | None] = [None] * len(invocations)

        def _execute(invocation: Invocation) -> ToolOutcome:
            return self._invoke(invocation, root, binding, capabilities, cancel)

        with ThreadPoolExecutor(max_workers=self._config.execution.jobs) as executor:
            future_map = {executor.submit(_execute, invocation): invocation for invocation in invocations}
            for future in as_completed(future_map):
                invocation = future_map[future]
                outcome = future.result()
                outcomes[invocation.order] = self._filter(outcome, invocation, by_path)
        return [outcome for outcome in outcomes if outcome is not None]

    def _invoke(
        self,
        invocation: Invocation,
        root: Path,
        context: BindingContext,
        capabilities: CapabilitySet,
        cancel: threading.Event | None,
    ) -> ToolOutcome:
        """Resolve, run and parse one invocation, folding failures into its outcome.

        Args:
            invocation: The scheduled (tool, file) pair.
            root: Repository root the tool runs in.
            context: Bindings used to resolve the command template.
            capabilities: Detected capabilities, for the auxiliary marker path.
            cancel: Shared cancellation event.

        Returns:
            ToolOutcome: Findings on success, otherwise the recorded error.
        """

        adapter = invocation.adapter
        location = invocation.target or root
        if cancel is not None and cancel.is_set():
            return ToolOutcome(tool=adapter.name, file=invocation.target, error="cancelled before start")
        try:
            command = self.resolve_command(adapter, context)
        except ParseError as exc:
            LOGGER.error("%s command template is invalid: %s", adapter.name, exc)
            return ToolOutcome(tool=adapter.name, file=invocation.target, error=str(exc))
        except ConfigError as exc:
            return ToolOutcome(tool=adapter.name, file=invocation.target, error=str(exc))
        try:
            findings = adapter.invoke(
                command,
                invocation.target,
                root,
                self._config.execution.timeout,
                cancel,
                auxiliary_path=capabilities.auxiliary_path(adapter.category),
            )
        except ProcessError as exc:
            LOGGER.warning("%s failed on %s: %s", adapter.name, location, exc)
            return ToolOutcome(tool=adapter.name, file=invocation.target, error=str(exc), stderr=exc.stderr)
        except (UnifiedCIError, OSError, ValueError) as exc:
            # ValueError covers findings a tool reported that do not validate
            LOGGER.warning("%s failed on %s: %s", adapter.name, location, exc)
            return ToolOutcome(tool=adapter.name, file=invocation.target, error=str(exc))
        return ToolOutcome(tool=adapter.name, file=invocation.target, findings=tuple(findings))

    def _filter(
        self,
        outcome: ToolOutcome,
        invocation: Invocation,
        by_path: Mapping[str, ReviewTarget],
    ) -> ToolOutcome:
        if not self._config.review.changed_lines_only or not outcome.findings:
            return outcome
        kept: list[Finding] = []
        for finding in outcome.findings:
            path = invocation.target if invocation.target is not None else finding.path
            if path is None:
                kept.append(finding)
                continue
            target = by_path.get(os.path.normpath(path).replace(os.sep, "/"))
            if target is not None and finding.line in target.added_lines:
                kept.append(finding)
        return outcome.model_copy(update={"findings": tuple(kept)})


__all__ = [
    "CheckEngine",
    "Invocation",
    "ReviewTarget",
    "is_generated",
]
