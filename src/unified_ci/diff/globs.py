# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Path-aware glob matching used for ignore patterns.

Unlike :func:`fnmatch.fnmatch`, a single ``*`` or ``?`` never crosses a
``/``; only a ``**`` path segment matches across directories. Character
classes (``[abc]``, ``[!abc]``), brace alternation (``{a,b}``) and
backslash escapes are supported.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from functools import lru_cache
from typing import Final

LOGGER = logging.getLogger(__name__)

_SEPARATOR: Final[str] = "/"


class GlobSyntaxError(ValueError):
    """Raised for malformed glob patterns."""


def _find_class_end(pattern: str, start: int) -> int:
    index = start + 1
    if index < len(pattern) and pattern[index] in "!^":
        index += 1
    if index < len(pattern) and pattern[index] == "]":
        index += 1
    while index < len(pattern):
        if pattern[index] == "\\":
            index += 2
            continue
        if pattern[index] == "]":
            return index
        index += 1
    return -1


def _translate_class(body: str) -> str:
    negated = body[:1] in ("!", "^")
    if negated:
        body = body[1:]
    chars: list[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char == "\\" and index + 1 < len(body):
            chars.append(re.escape(body[index + 1]))
            index += 2
            continue
        if char == "-" and chars and index + 1 < len(body):
            chars.append("-")
        else:
            chars.append(re.escape(char) if char in "\\^[]" else char)
        index += 1
    if negated:
        return f"[^/{''.join(chars)}]"
    return f"[{''.join(chars)}]"


def _split_alternatives(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char == "\\" and index + 1 < len(body):
            current.append(body[index : index + 2])
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            index += 1
            continue
        current.append(char)
        index += 1
    parts.append("".join(current))
    return parts


def _find_brace_end(pattern: str, start: int) -> int:
    depth = 0
    index = start
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def _translate(pattern: str) -> str:
    """Translate a glob ``pattern`` into an unanchored regular expression body.

    Args:
        pattern: Glob pattern, possibly one alternative of a brace group.

    Returns:
        str: Regular expression source matching the same paths.

    Raises:
        GlobSyntaxError: If a class or brace group is unterminated or the pattern
            ends in a backslash.
    """

    out: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            end = index
            while end < length and pattern[end] == "*":
                end += 1
            segment_start = index == 0 or pattern[index - 1] == _SEPARATOR
            segment_end = end == length or pattern[end] == _SEPARATOR
            if end - index >= 2 and segment_start and segment_end:
                if end == length:
                    out.append(".*")
                else:
                    # ``**/`` matches zero or more whole directories
                    out.append("(?:.*/)?")
                    end += 1
            else:
                out.append("[^/]*")
            index = end
        elif char == "?":
            out.append("[^/]")
            index += 1
        elif char == "[":
            end = _find_class_end(pattern, index)
            if end < 0:
                raise GlobSyntaxError(f"unterminated character class in {pattern!r}")
            out.append(_translate_class(pattern[index + 1 : end]))
            index = end + 1
        elif char == "{":
            end = _find_brace_end(pattern, index)
            if end < 0:
                raise GlobSyntaxError(f"unterminated brace alternation in {pattern!r}")
            alternatives = _split_alternatives(pattern[index + 1 : end])
            out.append("(?:" + "|".join(_translate(alt) for alt in alternatives) + ")")
            index = end + 1
        elif char == "\\":
            if index + 1 >= length:
                raise GlobSyntaxError(f"trailing backslash in {pattern!r}")
            out.append(re.escape(pattern[index + 1]))
            index += 2
        else:
            out.append(re.escape(char))
            index += 1
    return "".join(out)


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile ``pattern`` into a regular expression matching whole paths.

    Raises:
        GlobSyntaxError: If the pattern is malformed.
    """

    return re.compile(_translate(pattern), re.DOTALL)


def match(pattern: str, path: str) -> bool:
    """Return ``True`` when ``path`` matches ``pattern``.

    Raises:
        GlobSyntaxError: If the pattern is malformed.
    """

    return compile_glob(pattern).fullmatch(path) is not None


def match_any(patterns: Iterable[str], path: str) -> bool:
    """Return ``True`` when ``path`` matches any of ``patterns``; malformed patterns never match."""

    for pattern in patterns:
        try:
            if match(pattern, path):
                return True
        except GlobSyntaxError as exc:
            LOGGER.warning("ignoring malformed glob pattern: %s", exc)
    return False


__all__ = ["GlobSyntaxError", "compile_glob", "match", "match_any"]
