# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve configured command templates into argument vectors.

The grammar is a small, fixed subset of the POSIX shell:

* words are separated by unquoted, unescaped spaces, tabs and newlines;
* ``$NAME`` and ``${NAME}`` expand through an ordered lookup chain in which
  the check bindings (``PWD``, ``PROJECT_NAME``, ``CI_CHECK_TYPE``,
  ``CI_CHECK_REF``) shadow the process environment, and unknown names
  expand to the empty string;
* single quotes are literal, double quotes keep expansions and backticks;
* backslash escapes the next character;
* ```cmd``` runs ``cmd`` through ``/bin/sh`` in the working directory and
  is replaced by its stripped standard output.

Pipelines, redirections and command lists are rejected.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from .errors import ParseError, ProcessError
from .models import BindingContext
from .process import run_process

LOGGER = logging.getLogger(__name__)

DEFAULT_SHELL: Final[str] = "/bin/sh"
BACKTICK_TIMEOUT: Final[float] = 60.0

_NAME_RE: Final[re.Pattern[str]] = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_OPERATORS: Final[frozenset[str]] = frozenset("|;&<>")
_WORD_SEPARATORS: Final[frozenset[str]] = frozenset(" \t\n")
# characters a backslash escapes inside double quotes
_DQUOTE_ESCAPABLE: Final[frozenset[str]] = frozenset('$`"\\')


def builtin_bindings(context: BindingContext) -> Mapping[str, str]:
    """Return the variables every command template can reference."""

    return MappingProxyType(
        {
            "PWD": str(context.working_dir),
            "PROJECT_NAME": context.project_name,
            "CI_CHECK_TYPE": context.check_type,
            "CI_CHECK_REF": context.check_ref,
        },
    )


class VariableLookup:
    """Ordered chain of variable layers; the first layer defining a name wins."""

    def __init__(self, *layers: Mapping[str, str]) -> None:
        self._layers = layers

    def __call__(self, name: str) -> str:
        for layer in self._layers:
            if name in layer:
                return layer[name]
        return ""


class CommandResolver:
    """Parse command templates for one :class:`BindingContext`."""

    def __init__(
        self,
        context: BindingContext,
        *,
        environ: Mapping[str, str] | None = None,
        shell: str = DEFAULT_SHELL,
        backtick_timeout: float | None = BACKTICK_TIMEOUT,
    ) -> None:
        self._context = context
        self._environ = os.environ if environ is None else environ
        self._bindings = builtin_bindings(context)
        self._lookup = VariableLookup(self._bindings, self._environ)
        self._shell = shell
        self._backtick_timeout = backtick_timeout

    @property
    def context(self) -> BindingContext:
        """Return the binding context used for expansion."""
        return self._context

    def lookup(self, name: str) -> str:
        """Return the value ``name`` expands to."""
        return self._lookup(name)

    def parse(self, template: str) -> tuple[str, ...]:
        """Split ``template`` into words, expanding variables and backticks.

        Args:
            template: Command template taken from configuration.

        Returns:
            tuple[str, ...]: Resolved argument vector, empty for a blank template.

        Raises:
            ParseError: On unterminated quoting, unsupported operators or a
                failing backtick command.
        """

        words: list[str] = []
        buf: list[str] = []
        quoted = False
        index = 0
        length = len(template)
        while index < length:
            char = template[index]
            if char in _WORD_SEPARATORS:
                text = "".join(buf)
                # words made only of empty unquoted expansions disappear, like in the shell
                if quoted or text:
                    words.append(text)
                buf = []
                quoted = False
                index += 1
            elif char == "\\":
                if index + 1 >= length:
                    raise ParseError(f"trailing backslash in command template: {template!r}")
                buf.append(template[index + 1])
                index += 2
            elif char == "'":
                end = template.find("'", index + 1)
                if end < 0:
                    raise ParseError(f"unterminated single quote in command template: {template!r}")
                buf.append(template[index + 1 : end])
                quoted = True
                index = end + 1
            elif char == '"':
                value, index = self._double_quoted(template, index + 1)
                buf.append(value)
                quoted = True
            elif char == "`":
                value, index = self._backtick(template, index + 1)
                buf.append(value)
            elif char == "$":
                value, index = self._expand(template, index)
                buf.append(value)
            elif char in _OPERATORS:
                raise ParseError(f"unsupported shell operator {char!r} in command template: {template!r}")
            else:
                buf.append(char)
                index += 1
        text = "".join(buf)
        if quoted or text:
            words.append(text)
        return tuple(words)

    def _double_quoted(self, template: str, index: int) -> tuple[str, int]:
        """Read a double-quoted segment starting just after the opening quote.

        Args:
            template: Whole command template.
            index: Position of the first character inside the quotes.

        Returns:
            tuple[str, int]: The segment's value and the index after the closing quote.

        Raises:
            ParseError: If the closing quote is missing.
        """

        buf: list[str] = []
        length = len(template)
        while index < length:
            char = template[index]
            if char == '"':
                return "".join(buf), index + 1
            if char == "\\" and index + 1 < length and template[index + 1] in _DQUOTE_ESCAPABLE:
                buf.append(template[index + 1])
                index += 2
            elif char == "$":
                value, index = self._expand(template, index)
                buf.append(value)
            elif char == "`":
                value, index = self._backtick(template, index + 1)
                buf.append(value)
            else:
                buf.append(char)
                index += 1
        raise ParseError(f"unterminated double quote in command template: {template!r}")

    def _expand(self, template: str, index: int) -> tuple[str, int]:
        """Expand the ``$NAME`` or ``${NAME}`` reference at ``index``.

        Args:
            template: Whole command template.
            index: Position of the ``$``.

        Returns:
            tuple[str, int]: The expanded value and the index after the reference.

        Raises:
            ParseError: If a braced reference is unterminated or not a valid name.
        """

        if template.startswith("${", index):
            end = template.find("}", index + 2)
            if end < 0:
                raise ParseError(f"unterminated variable reference in command template: {template!r}")
            name = template[index + 2 : end]
            if not _NAME_RE.fullmatch(name):
                raise ParseError(f"bad variable reference '${{{name}}}' in command template")
            return self._lookup(name), end + 1
        match = _NAME_RE.match(template, index + 1)
        if match is None:
            return "$", index + 1
        return self._lookup(match.group()), match.end()

    def _backtick(self, template: str, index: int) -> tuple[str, int]:
        """Collect a backtick segment and substitute its command output.

        Args:
            template: Whole command template.
            index: Position just after the opening backtick.

        Returns:
            tuple[str, int]: The stripped command output and the index after the closing backtick.

        Raises:
            ParseError: If the closing backtick is missing or the command fails.
        """

        buf: list[str] = []
        length = len(template)
        while index < length:
            char = template[index]
            if char == "`":
                return self._run_backtick("".join(buf)), index + 1
            if char == "\\" and index + 1 < length and template[index + 1] in "`\\$":
                buf.append(template[index + 1])
                index += 2
                continue
            buf.append(char)
            index += 1
        raise ParseError(f"unterminated backtick in command template: {template!r}")

    def _run_backtick(self, command: str) -> str:
        env = dict(self._environ)
        env.update(self._bindings)
        try:
            result = run_process(
                [self._shell, "-c", command],
                cwd=self._context.working_dir,
                timeout=self._backtick_timeout,
                env=env,
            )
        except ProcessError as exc:
            raise ParseError(f"backtick command `{command}` failed: {exc}") from exc
        if result.returncode != 0:
            stderr = result.stderr_text.strip()
            raise ParseError(
                f"backtick command `{command}` exited with status {result.returncode}: {stderr or '<no stderr>'}",
            )
        output = result.stdout_text.strip()
        LOGGER.debug("backtick `%s` -> %r", command, output)
        return output


def resolve_command(
    template: str,
    context: BindingContext,
    *,
    environ: Mapping[str, str] | None = None,
) -> tuple[str, ...]:
    """Parse ``template`` with a fresh :class:`CommandResolver` for ``context``."""

    return CommandResolver(context, environ=environ).parse(template)


__all__ = [
    "CommandResolver",
    "VariableLookup",
    "builtin_bindings",
    "resolve_command",
]
