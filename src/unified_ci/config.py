# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and TOML loading for unified-ci."""

from __future__ import annotations

import math
import os
import re
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigLoadError
from .severity import Severity, parse_threshold

CONFIG_FILENAME: Final[str] = ".unified-ci.toml"
PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "unified-ci"
COMMANDS_SECTION: Final[str] = "commands"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 600.0
DEFAULT_GENERATED_HEADER_LINES: Final[int] = 5

_ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def default_parallel_jobs() -> int:
    """Return 75% of available CPU cores (minimum of 1)."""
    cores = os.cpu_count() or 1
    return max(1, math.floor(cores * 0.75))


class CommandsConfig(BaseModel):
    """Command templates for each adapter, keyed by the adapter's template key.

    Templates are resolved per check by the command resolver, so variables
    such as ``$PWD`` stay unexpanded here. An empty template disables nothing:
    an enabled adapter with an empty template fails with a configuration
    error in its outcome.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cpplint: str = "cpplint"
    oclint: str = "oclint"
    phplint: str = "phplint"
    eslint: str = "eslint"
    tslint: str = "tslint"
    scsslint: str = "scss-lint"
    golangci_lint: str = ""
    golint: str = "golint"
    goreturns: str = "goreturns"
    remark: str = "remark"
    clang_format: str = "clang-format"
    apidoc: str = ""
    android_lint: str = ""

    def template_for(self, key: str) -> str:
        """Return the template configured for ``key`` or ``""`` when unknown."""
        value = getattr(self, key, "")
        return value if isinstance(value, str) else ""


class ExecutionConfig(BaseModel):
    """How tool invocations are scheduled."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    jobs: int = Field(default_factory=default_parallel_jobs, ge=1)


class ReviewConfig(BaseModel):
    """Which files are reviewed and what fails the check."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ignore_patterns: tuple[str, ...] = ()
    changed_lines_only: bool = True
    fail_threshold: Severity = Severity.ERROR
    generated_header_lines: int = Field(default=DEFAULT_GENERATED_HEADER_LINES, ge=1)
    disabled_tools: tuple[str, ...] = ()

    @field_validator("fail_threshold", mode="before")
    @classmethod
    def _parse_threshold(cls, value: object) -> Severity:
        if isinstance(value, (str, int)):
            return parse_threshold(value)
        return value  # type: ignore[return-value]


class Config(BaseModel):
    """Top-level configuration for a check run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)

    def to_dict(self) -> dict[str, Any]:
        """Return a dictionary representation suitable for serialization."""
        return self.model_dump(mode="json")


def _expand_env_string(value: str, env: Mapping[str, str]) -> str:
    def _replace(match: re.Match[str]) -> str:
        return env.get(match.group(1), match.group(0))

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _expand_env_value(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        return _expand_env_string(value, env)
    if isinstance(value, Mapping):
        return {key: _expand_env_value(item, env) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env_value(item, env) for item in value]
    return value


def expand_env(data: Mapping[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Expand ``${VAR}`` references in every section except ``[commands]``.

    Unknown variables are left untouched. Command templates are expanded by
    the command resolver at run time, against the check's own bindings.
    """

    return {
        key: value if key == COMMANDS_SECTION else _expand_env_value(value, env)
        for key, value in data.items()
    }


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"Unable to read {path}: {exc}") from exc


def _pyproject_section(data: Mapping[str, Any]) -> Mapping[str, Any]:
    tool_section = data.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    if not isinstance(section, Mapping):
        return {}
    return section


def config_from_mapping(data: Mapping[str, Any], *, env: Mapping[str, str] | None = None) -> Config:
    """Validate a raw configuration mapping.

    Raises:
        ConfigLoadError: If the mapping does not describe a valid configuration.
    """

    payload = expand_env(data, os.environ if env is None else env)
    try:
        return Config.model_validate(payload)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid configuration: {exc}") from exc


def load_config(
    path: Path | None = None,
    *,
    repo_root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from an explicit file or from the repository root.

    Without ``path`` the repository root is searched for ``.unified-ci.toml``
    and then for a ``[tool.unified-ci]`` table in ``pyproject.toml``. When
    neither exists the built-in defaults are returned.

    Args:
        path: Explicit TOML file; a ``pyproject.toml`` is read from its
            ``[tool.unified-ci]`` table.
        repo_root: Directory searched when ``path`` is not given.
        env: Environment used for ``${VAR}`` expansion; defaults to
            :data:`os.environ`.

    Returns:
        Config: Validated configuration.

    Raises:
        ConfigLoadError: If the file is missing, unreadable, not valid TOML or
            not a valid configuration.
    """

    if path is not None:
        if not path.is_file():
            raise ConfigLoadError(f"Configuration file {path} does not exist")
        data = _read_toml(path)
        if path.name == PYPROJECT_FILENAME:
            data = dict(_pyproject_section(data))
        return config_from_mapping(data, env=env)

    root = repo_root or Path.cwd()
    candidate = root / CONFIG_FILENAME
    if candidate.is_file():
        return config_from_mapping(_read_toml(candidate), env=env)
    pyproject = root / PYPROJECT_FILENAME
    if pyproject.is_file():
        return config_from_mapping(_pyproject_section(_read_toml(pyproject)), env=env)
    return Config()


__all__ = [
    "CONFIG_FILENAME",
    "CommandsConfig",
    "Config",
    "ExecutionConfig",
    "ReviewConfig",
    "config_from_mapping",
    "default_parallel_jobs",
    "expand_env",
    "load_config",
]
