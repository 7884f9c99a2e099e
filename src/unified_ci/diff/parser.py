# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parse unified diff text into file and hunk records."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from ..errors import ParseError

_GIT_HEADER_PREFIX: Final[str] = "diff --git "
_HUNK_HEADER_RE: Final[re.Pattern[str]] = re.compile(
    r"^@@ -(?P<orig_start>\d+)(?:,(?P<orig_lines>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_lines>\d+))? @@ ?(?P<section>.*)$",
)


class LineKind(str, Enum):
    """Kind of a line inside a hunk body, keyed by its diff marker."""

    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"


@dataclass(frozen=True, slots=True)
class HunkLine:
    """One line of a hunk body with its position in either file."""

    kind: LineKind
    text: str
    orig_line: int | None = None
    new_line: int | None = None


@dataclass(slots=True)
class Hunk:
    """Contiguous block of changes introduced by an ``@@`` header."""

    orig_start: int
    orig_lines: int
    new_start: int
    new_lines: int
    section: str = ""
    lines: list[HunkLine] = field(default_factory=list)

    def added_line_numbers(self) -> list[int]:
        """Return new-file line numbers of the lines this hunk adds."""
        return [line.new_line for line in self.lines if line.kind is LineKind.ADDED and line.new_line is not None]

    def removed(self) -> list[str]:
        """Return the text of the removed lines."""
        return [line.text for line in self.lines if line.kind is LineKind.REMOVED]

    def added(self) -> list[str]:
        """Return the text of the added lines."""
        return [line.text for line in self.lines if line.kind is LineKind.ADDED]

    def body(self) -> str:
        """Render the hunk body back to diff notation."""
        return "\n".join(f"{line.kind.value}{line.text}" for line in self.lines)


@dataclass(slots=True)
class FileDiff:
    """Changes to one file: names, extended header lines and hunks."""

    old_name: str = ""
    new_name: str = ""
    extended: list[str] = field(default_factory=list)
    hunks: list[Hunk] = field(default_factory=list)

    def added_line_numbers(self) -> set[int]:
        """Return every new-file line number added by this diff."""
        return {number for hunk in self.hunks for number in hunk.added_line_numbers()}

    @property
    def is_binary(self) -> bool:
        """Return ``True`` when git reported the file as binary."""
        return any(line.startswith(("Binary files ", "GIT binary patch")) for line in self.extended)


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _strip_timestamp(name: str) -> str:
    # ``--- a/file\t2002-02-21 23:30:39 -0800`` style headers
    return name.split("\t", 1)[0]


def _split_git_header(rest: str) -> tuple[str, str]:
    """Split ``a/old b/new`` from a ``diff --git`` line on a best-effort basis."""

    if rest.startswith('"'):
        end = _closing_quote(rest, 1)
        if end > 0:
            return rest[: end + 1], rest[end + 1 :].strip()
    if rest.endswith('"'):
        start = rest.rfind(' "')
        if start > 0:
            return rest[:start], rest[start + 1 :]
    # identical names are the common case: split in the middle
    half = len(rest) // 2
    if len(rest) % 2 == 1 and rest[half] == " " and rest[2:half] == rest[half + 3 :]:
        return rest[:half], rest[half + 1 :]
    index = rest.find(" b/")
    if index > 0:
        return rest[:index], rest[index + 1 :]
    return rest, rest


def _closing_quote(text: str, start: int) -> int:
    index = start
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text[index] == '"':
            return index
        index += 1
    return -1


class _DiffReader:
    """Cursor over the lines of a (multi-file) unified diff."""

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = lines
        self._index = 0

    def _peek(self) -> str | None:
        if self._index < len(self._lines):
            return self._lines[self._index]
        return None

    def _at_file_start(self) -> bool:
        line = self._peek()
        if line is None:
            return False
        if line.startswith(_GIT_HEADER_PREFIX):
            return True
        following = self._lines[self._index + 1] if self._index + 1 < len(self._lines) else ""
        return line.startswith("--- ") and following.startswith("+++ ")

    def read_all(self) -> list[FileDiff]:
        files: list[FileDiff] = []
        while self._peek() is not None:
            if self._at_file_start():
                files.append(self._read_file())
            else:
                # commit messages, blank separators and other preamble
                self._index += 1
        return files

    def _read_file(self) -> FileDiff:
        entry = FileDiff()
        header = self._peek()
        if header is not None and header.startswith(_GIT_HEADER_PREFIX):
            entry.old_name, entry.new_name = _split_git_header(header[len(_GIT_HEADER_PREFIX) :])
            self._index += 1
            while (line := self._peek()) is not None and not line.startswith(("--- ", _GIT_HEADER_PREFIX, "@@ ")):
                entry.extended.append(line)
                self._index += 1
            if any(line.startswith("deleted file mode") for line in entry.extended):
                entry.new_name = "/dev/null"
            elif any(line.startswith("new file mode") for line in entry.extended):
                entry.old_name = "/dev/null"

        line = self._peek()
        if line is not None and line.startswith("--- "):
            entry.old_name = _strip_timestamp(line[4:])
            self._index += 1
            line = self._peek()
            if line is None or not line.startswith("+++ "):
                raise ParseError(f"expected '+++' header after '--- {entry.old_name}'")
            entry.new_name = _strip_timestamp(line[4:])
            self._index += 1

        while (line := self._peek()) is not None and line.startswith("@@ "):
            hunk = self._read_hunk()
            if entry.hunks and hunk.orig_start < entry.hunks[-1].orig_start:
                raise ParseError(f"hunks out of order in diff of {entry.new_name or entry.old_name}")
            entry.hunks.append(hunk)
        return entry

    def _read_hunk(self) -> Hunk:
        """Read the hunk whose ``@@`` header is at the cursor.

        The body is consumed by counting old and new lines against the header;
        ``\\ No newline at end of file`` markers are skipped.

        Returns:
            Hunk: The parsed hunk with numbered lines.

        Raises:
            ParseError: If the header is malformed or the body does not match its counts.
        """

        header = self._lines[self._index]
        match = _HUNK_HEADER_RE.match(header)
        if match is None:
            raise ParseError(f"malformed hunk header: {header!r}")
        hunk = Hunk(
            orig_start=int(match.group("orig_start")),
            orig_lines=int(match.group("orig_lines") or 1),
            new_start=int(match.group("new_start")),
            new_lines=int(match.group("new_lines") or 1),
            section=match.group("section") or "",
        )
        self._index += 1

        orig_line, new_line = hunk.orig_start, hunk.new_start
        orig_left, new_left = hunk.orig_lines, hunk.new_lines
        while orig_left > 0 or new_left > 0:
            line = self._peek()
            if line is None:
                raise ParseError(f"unexpected end of diff inside hunk {header!r}")
            self._index += 1
            if line.startswith("\\"):
                continue
            marker, text = (line[:1], line[1:]) if line else (" ", "")
            if marker == " ":
                hunk.lines.append(HunkLine(LineKind.CONTEXT, text, orig_line, new_line))
                orig_line += 1
                new_line += 1
                orig_left -= 1
                new_left -= 1
            elif marker == "-":
                hunk.lines.append(HunkLine(LineKind.REMOVED, text, orig_line, None))
                orig_line += 1
                orig_left -= 1
            elif marker == "+":
                hunk.lines.append(HunkLine(LineKind.ADDED, text, None, new_line))
                new_line += 1
                new_left -= 1
            else:
                raise ParseError(f"unexpected line in hunk {header!r}: {line!r}")
            if orig_left < 0 or new_left < 0:
                raise ParseError(f"hunk body does not match its header {header!r}")

        while (line := self._peek()) is not None and line.startswith("\\"):
            self._index += 1
        return hunk


def parse_multi_file_diff(text: str) -> list[FileDiff]:
    """Parse a diff that may contain several files.

    Raises:
        ParseError: If a header or hunk is malformed.
    """

    return _DiffReader(_split_lines(text)).read_all()


def parse_file_diff(text: str) -> FileDiff:
    """Parse a diff containing exactly one file.

    Raises:
        ParseError: If the text is malformed or does not describe exactly one file.
    """

    files = parse_multi_file_diff(text)
    if len(files) != 1:
        raise ParseError(f"expected a diff of exactly one file, found {len(files)}")
    return files[0]


__all__ = [
    "FileDiff",
    "Hunk",
    "HunkLine",
    "LineKind",
    "parse_file_diff",
    "parse_multi_file_diff",
]
