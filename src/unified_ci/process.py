# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution."""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess  # nosec B404
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .errors import ProcessError, ToolCancelledError, ToolTimeoutError

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Final[float] = 600.0
_POLL_INTERVAL: Final[float] = 0.2
_REAP_TIMEOUT: Final[float] = 5.0


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Captured result of a finished external process."""

    args: tuple[str, ...]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def stdout_text(self) -> str:
        """Return stdout decoded as UTF-8 (undecodable bytes replaced)."""
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        """Return stderr decoded as UTF-8 (undecodable bytes replaced)."""
        return self.stderr.decode("utf-8", errors="replace")


def _normalize_args(args: Sequence[str], cwd: Path | None) -> list[str]:
    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]
    if "/" in head and cwd is not None:
        # relative paths such as ``./gradlew`` are resolved against the working directory
        return [str(cwd / head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def _kill_tree(proc: subprocess.Popen[bytes]) -> tuple[bytes, bytes]:
    """Kill ``proc`` together with its process group and collect leftover output."""

    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:  # pragma: no cover - exercised on Windows only
        proc.kill()
    try:
        stdout, stderr = proc.communicate(timeout=_REAP_TIMEOUT)
    except subprocess.TimeoutExpired:
        return b"", b""
    return stdout or b"", stderr or b""


def run_process(
    args: Sequence[str],
    *,
    cwd: Path,
    timeout: float | None = DEFAULT_TIMEOUT,
    cancel: threading.Event | None = None,
    env: Mapping[str, str] | None = None,
    merge_stderr: bool = False,
) -> ProcessResult:
    """Run ``args`` in ``cwd`` and wait for it, honouring timeout and cancellation.

    The child starts in its own session so that a timeout or a cancellation
    kills every process it spawned, not just the direct child.

    Args:
        args: Argument vector; the executable is resolved on ``PATH``.
        cwd: Working directory for the process.
        timeout: Seconds before the process tree is killed; ``None`` waits forever.
        cancel: Event that, once set, kills the process tree.
        env: Complete environment for the child, defaults to the current one.
        merge_stderr: Redirect stderr into stdout (``stderr`` is then empty).

    Returns:
        ProcessResult: Exit status and captured output.

    Raises:
        ProcessError: If the executable is missing or cannot be started.
        ToolTimeoutError: If ``timeout`` elapsed before the process exited.
        ToolCancelledError: If ``cancel`` was set before the process exited.
    """

    try:
        normalized = _normalize_args(args, cwd)
    except FileNotFoundError as exc:
        raise ProcessError(str(exc), command=args) from exc

    LOGGER.debug("running %s in %s", normalized, cwd)
    try:
        # Bandit: commands originate from vetted tool configurations; we pass
        # argument lists directly without shell expansion.
        proc = subprocess.Popen(  # nosec B603
            normalized,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            start_new_session=os.name == "posix",
        )
    except OSError as exc:
        raise ProcessError(f"Command '{normalized[0]}' could not be started: {exc}", command=normalized) from exc

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        wait = _POLL_INTERVAL if cancel is not None else None
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                _, stderr = _kill_tree(proc)
                stderr_text = stderr.decode("utf-8", errors="replace")
                timeout_msg = f"Command timed out after {timeout:.1f}s"
                raise ToolTimeoutError(
                    timeout_msg,
                    command=normalized,
                    stderr=f"{stderr_text}\n{timeout_msg}" if stderr_text else timeout_msg,
                )
            wait = remaining if wait is None else min(wait, remaining)
        try:
            stdout, stderr = proc.communicate(timeout=wait)
            break
        except subprocess.TimeoutExpired:
            if cancel is not None and cancel.is_set():
                _, stderr = _kill_tree(proc)
                raise ToolCancelledError(
                    f"Command '{normalized[0]}' was cancelled",
                    command=normalized,
                    stderr=stderr.decode("utf-8", errors="replace"),
                ) from None

    return ProcessResult(
        args=tuple(normalized),
        returncode=proc.returncode,
        stdout=stdout or b"",
        stderr=stderr or b"",
    )


__all__ = ["DEFAULT_TIMEOUT", "ProcessResult", "run_process"]
