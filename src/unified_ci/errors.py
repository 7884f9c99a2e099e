# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by the resolver, diff utilities and adapters."""

from __future__ import annotations

from collections.abc import Sequence


class UnifiedCIError(Exception):
    """Base class for recoverable errors scoped to one tool invocation."""


class ParseError(UnifiedCIError):
    """Raised for malformed command templates or malformed diff text."""


class ProcessError(UnifiedCIError):
    """Raised when an external tool could not produce a usable result."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialise the error with captured subprocess metadata.

        Args:
            message: Human readable description of the failure.
            command: Argument vector that was executed, when known.
            returncode: Exit status reported by the process, when it exited.
            stderr: Captured standard error text kept for diagnostics.
        """

        super().__init__(message)
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr


class ToolTimeoutError(ProcessError):
    """Raised when a tool exceeds its timeout and is killed."""


class ToolCancelledError(ProcessError):
    """Raised when the enclosing check is cancelled while a tool runs."""


class ConfigError(ProcessError):
    """Raised when an enabled tool has no usable command template."""


class ConfigLoadError(UnifiedCIError):
    """Raised when configuration input is invalid."""


class ContractViolation(AssertionError):
    """Raised for caller bugs; deliberately outside :class:`UnifiedCIError`."""


__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ContractViolation",
    "ParseError",
    "ProcessError",
    "ToolCancelledError",
    "ToolTimeoutError",
    "UnifiedCIError",
]
