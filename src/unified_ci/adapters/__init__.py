# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool adapters that normalise external tool output into findings."""

from __future__ import annotations

from .base import (
    ExitPolicy,
    FormatDiffOutput,
    InvocationRequest,
    OutputHandler,
    OutputSource,
    RegexOutput,
    Scope,
    StructuredOutput,
    ToolAdapter,
    ToolRun,
)
from .builtins import BUILTIN_ADAPTERS, default_registry
from .registry import AdapterRegistry

__all__ = [
    "AdapterRegistry",
    "BUILTIN_ADAPTERS",
    "ExitPolicy",
    "FormatDiffOutput",
    "InvocationRequest",
    "OutputHandler",
    "OutputSource",
    "RegexOutput",
    "Scope",
    "StructuredOutput",
    "ToolAdapter",
    "ToolRun",
    "default_registry",
]
