# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Unified diff parsing and the helpers built on top of it."""

from __future__ import annotations

from .files import head_file
from .globs import GlobSyntaxError, compile_glob, match_any
from .names import (
    is_gitlink_mode,
    is_symlink_mode,
    parse_file_mode,
    parse_file_type,
    trimmed_new_name,
    unquote_name,
)
from .parser import FileDiff, Hunk, HunkLine, LineKind, parse_file_diff, parse_multi_file_diff
from .synthesis import format_diff, synthesize_findings

__all__ = [
    "FileDiff",
    "GlobSyntaxError",
    "Hunk",
    "HunkLine",
    "LineKind",
    "compile_glob",
    "format_diff",
    "head_file",
    "is_gitlink_mode",
    "is_symlink_mode",
    "match_any",
    "parse_file_diff",
    "parse_file_mode",
    "parse_file_type",
    "parse_multi_file_diff",
    "synthesize_findings",
    "trimmed_new_name",
    "unquote_name",
]
