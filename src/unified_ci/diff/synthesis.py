# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Turn a formatter's rewritten output into line-addressable findings."""

from __future__ import annotations

import difflib
from typing import Final

from ..models import Finding
from ..severity import Severity
from .parser import FileDiff, Hunk, parse_file_diff

ORIGINAL_LABEL: Final[str] = "original"
FORMATTED_LABEL: Final[str] = "formatted"


def _as_text(content: str | bytes) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def _as_bytes(content: str | bytes) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8", errors="surrogateescape")
    return content


def _split_lines(text: str) -> list[str]:
    """Split ``text`` into ``"\\n"``-terminated lines the way line-based tools count them.

    Only ``"\\n"`` ends a line; form feeds and Unicode separators stay inside
    it. A trailing ``"\\r"`` is dropped so CRLF-only changes compare equal.

    Args:
        text: Decoded file content.

    Returns:
        list[str]: Lines, each terminated by exactly one ``"\\n"``.
    """

    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [f"{line[:-1] if line.endswith(chr(13)) else line}\n" for line in lines]


def format_diff(original: str | bytes, transformed: str | bytes) -> FileDiff | None:
    """Return the zero-context diff between ``original`` and ``transformed``.

    Returns ``None`` when the contents are byte-identical, and also when the
    rendered diff is empty although the bytes differ (line-ending-only or
    final-newline-only changes). The latter is a known limitation.
    """

    if _as_bytes(original) == _as_bytes(transformed):
        return None
    rendered = "".join(
        difflib.unified_diff(
            _split_lines(_as_text(original)),
            _split_lines(_as_text(transformed)),
            fromfile=ORIGINAL_LABEL,
            tofile=FORMATTED_LABEL,
            n=0,
        ),
    )
    if not rendered:
        return None
    return parse_file_diff(rendered)


def describe_hunk(hunk: Hunk) -> str:
    """Summarise what a formatter wants to change in ``hunk``."""

    removed, added = len(hunk.removed()), len(hunk.added())
    if removed and added:
        return f"Replace {removed} line(s) with {added} line(s)"
    if removed:
        return f"Remove {removed} line(s)"
    return f"Insert {added} line(s)"


def synthesize_findings(original: str | bytes, transformed: str | bytes, rule_id: str) -> list[Finding]:
    """Emit one ``error`` finding per hunk of the original-vs-formatted diff.

    Each finding points at the first affected line of the original file and
    carries the hunk body as its source snippet.

    Args:
        original: File content before formatting.
        transformed: Content the formatting tool produced.
        rule_id: Rule identifier attached to every finding.

    Returns:
        list[Finding]: Findings in hunk order; empty when nothing changed.
    """

    file_diff = format_diff(original, transformed)
    if file_diff is None:
        return []
    return [
        Finding(
            rule_id=rule_id,
            severity=Severity.ERROR,
            line=max(hunk.orig_start, 1),
            column=0,
            message=describe_hunk(hunk),
            source_snippet=hunk.body(),
        )
        for hunk in file_diff.hunks
    ]


__all__ = ["describe_hunk", "format_diff", "synthesize_findings"]
