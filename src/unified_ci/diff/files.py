# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Bounded reads of source files."""

from __future__ import annotations

from itertools import islice
from os import PathLike
from pathlib import Path

from ..errors import ContractViolation


def head_file(path: str | PathLike[str], n: int) -> list[str]:
    """Return at most the first ``n`` lines of ``path`` without reading the rest.

    Line terminators are stripped. A file shorter than ``n`` lines yields all
    of its lines.

    Raises:
        ContractViolation: If ``n`` is not positive; this is a caller bug.
        OSError: If the file cannot be opened or read.
    """

    if n <= 0:
        raise ContractViolation(f"head_file requires a positive line count, got {n}")
    with Path(path).open(encoding="utf-8", errors="replace") as handle:
        return [line.rstrip("\r\n") for line in islice(handle, n)]


__all__ = ["head_file"]
