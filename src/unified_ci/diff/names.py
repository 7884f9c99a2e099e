# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""File name and file mode helpers for parsed diffs."""

from __future__ import annotations

import re
import stat
from collections.abc import Sequence
from typing import Final

from ..errors import ParseError
from .parser import FileDiff

NEW_NAME_PREFIX: Final[str] = "b/"
OLD_NAME_PREFIX: Final[str] = "a/"

GITLINK_MODE: Final[int] = 0o160000

_NEW_FILE_MODE_RE: Final[re.Pattern[str]] = re.compile(r"^new file mode (?P<mode>\S+)$")
_INDEX_MODE_RE: Final[re.Pattern[str]] = re.compile(r"^index [0-9a-fA-F]+\.\.[0-9a-fA-F]+ (?P<mode>\S+)$")
_QUOTED_ESCAPES: Final[dict[str, bytes]] = {
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "n": b"\n",
    "r": b"\r",
    "t": b"\t",
    "v": b"\v",
    '"': b'"',
    "\\": b"\\",
}
_OCTAL_DIGITS: Final[frozenset[str]] = frozenset("01234567")


def unquote_name(name: str) -> str:
    """Decode a diff path as written by git.

    Git escapes non-ASCII bytes of file names as backslash plus three octal
    digits and wraps such names in double quotes. Both quoted and bare forms
    are accepted; byte groups are reassembled and decoded as UTF-8. Bytes
    that are not valid UTF-8 are kept as surrogate escapes so the name still
    maps back to the file on disk.
    """

    quoted = len(name) >= 2 and name.startswith('"') and name.endswith('"')
    text = name[1:-1] if quoted else name
    if "\\" not in text:
        return text

    raw = bytearray()
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 3 < len(text) and set(text[index + 1 : index + 4]) <= _OCTAL_DIGITS:
            raw.append(int(text[index + 1 : index + 4], 8) & 0xFF)
            index += 4
        elif char == "\\" and quoted and index + 1 < len(text) and text[index + 1] in _QUOTED_ESCAPES:
            raw.extend(_QUOTED_ESCAPES[text[index + 1]])
            index += 2
        else:
            raw.extend(char.encode("utf-8", errors="surrogateescape"))
            index += 1
    return raw.decode("utf-8", errors="surrogateescape")


def trimmed_new_name(entry: FileDiff) -> tuple[str, bool]:
    """Return the new path of ``entry`` without its ``b/`` prefix.

    Returns:
        tuple[str, bool]: The decoded, trimmed name and ``True``; or the
        unchanged name and ``False`` when the prefix is missing (for example
        ``/dev/null`` for deleted files), meaning no reliable new path exists.
    """

    decoded = unquote_name(entry.new_name)
    if not decoded.startswith(NEW_NAME_PREFIX):
        return entry.new_name, False
    return decoded[len(NEW_NAME_PREFIX) :], True


def _parse_octal(text: str) -> int:
    try:
        return int(text, 8)
    except ValueError as exc:
        raise ParseError(f"invalid file mode {text!r}") from exc


def parse_file_type(extended: Sequence[str]) -> int:
    """Return the full git mode (type and permission bits) from extended headers.

    ``new file mode NNNNNN`` takes precedence over ``index OLD..NEW NNNNNN``.

    Raises:
        ParseError: If no mode is present or it is not valid octal.
    """

    index_mode: str | None = None
    for raw_line in extended:
        line = raw_line.strip()
        match = _NEW_FILE_MODE_RE.match(line)
        if match:
            return _parse_octal(match.group("mode"))
        match = _INDEX_MODE_RE.match(line)
        if match and index_mode is None:
            index_mode = match.group("mode")
    if index_mode is None:
        raise ParseError("no file mode found in extended header lines")
    return _parse_octal(index_mode)


def parse_file_mode(extended: Sequence[str]) -> int:
    """Return the permission bits (``0o644``, ``0o755``...) of a diff entry.

    Raises:
        ParseError: If no mode is present or it is not valid octal.
    """

    return stat.S_IMODE(parse_file_type(extended))


def is_symlink_mode(mode: int) -> bool:
    """Return ``True`` for a git symlink mode (``120000``)."""
    return stat.S_ISLNK(mode)


def is_gitlink_mode(mode: int) -> bool:
    """Return ``True`` for a submodule entry (``160000``)."""
    return stat.S_IFMT(mode) == GITLINK_MODE


__all__ = [
    "NEW_NAME_PREFIX",
    "OLD_NAME_PREFIX",
    "is_gitlink_mode",
    "is_symlink_mode",
    "parse_file_mode",
    "parse_file_type",
    "trimmed_new_name",
    "unquote_name",
]
