# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in adapters for the tools the review service knows how to run."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any, Final

from ..capabilities import ToolCategory
from .base import (
    ExitPolicy,
    FormatDiffOutput,
    InvocationRequest,
    OutputSource,
    RegexOutput,
    Scope,
    StructuredOutput,
    ToolAdapter,
)
from .parsers import (
    parse_android_lint,
    parse_code_climate,
    parse_lint_results,
    parse_oclint_xml,
    parse_remark,
    parse_scsslint,
    parse_tslint,
)
from .registry import AdapterRegistry

LOGGER = logging.getLogger(__name__)

CPP_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".c", ".cc", ".h", ".hpp", ".c++", ".h++", ".cu", ".cpp", ".hxx", ".cxx", ".cuh"},
)
OC_EXTENSIONS: Final[frozenset[str]] = frozenset({".c", ".cc", ".cpp", ".h", ".m", ".mm"})
GO_EXTENSIONS: Final[frozenset[str]] = frozenset({".go"})
PHP_EXTENSIONS: Final[frozenset[str]] = frozenset({".php"})
JS_EXTENSIONS: Final[frozenset[str]] = frozenset({".js", ".jsx", ".mjs", ".cjs"})
ES_EXTENSIONS: Final[frozenset[str]] = frozenset({".es", ".es6", ".esx"})
TS_EXTENSIONS: Final[frozenset[str]] = frozenset({".ts", ".tsx"})
SCSS_EXTENSIONS: Final[frozenset[str]] = frozenset({".scss"})
MARKDOWN_EXTENSIONS: Final[frozenset[str]] = frozenset({".md", ".markdown"})

APIDOC_CONFIG: Final[str] = "apidoc.json"
ANDROID_LINT_REPORT: Final[str] = "app/build/reports/lint-results.xml"

# "code.cpp:138:  Missing spaces around =  [whitespace/operators] [4]"
CPPLINT_PATTERN: Final[re.Pattern[str]] = re.compile(r":(?P<line>\d+):(?P<message>.+)\[(?P<rule>.+?)\] \[\d\]\s*$")
# "main.go:12:2: exported func Foo should have comment or be unexported"
GOLINT_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?P<file>.+?):(?P<line>\d+):(?P<column>\d+): (?P<message>.+)$")


def _target(request: InvocationRequest) -> str:
    return str(request.target)


def _cpplint_args(request: InvocationRequest) -> Sequence[str]:
    return ("--quiet", _target(request))


def _oclint_args(request: InvocationRequest) -> Sequence[str]:
    return ("-i", _target(request), "--", "-report-type", "xml")


def _phplint_args(request: InvocationRequest) -> Sequence[str]:
    return ("-f", "json", _target(request))


def _eslint_args(request: InvocationRequest) -> Sequence[str]:
    if request.auxiliary_path:
        return ("-c", request.auxiliary_path, "-f", "json", _target(request))
    return ("-f", "json", _target(request))


def _tslint_args(request: InvocationRequest) -> Sequence[str]:
    return ("--format", "json", _target(request))


def _scsslint_args(request: InvocationRequest) -> Sequence[str]:
    return ("--format=JSON", _target(request))


def _golangci_args(request: InvocationRequest) -> Sequence[str]:
    del request
    return ("run", "--out-format", "code-climate")


def _golint_args(request: InvocationRequest) -> Sequence[str]:
    return ("-min_confidence", "0.8", _target(request))


def _remark_args(request: InvocationRequest) -> Sequence[str]:
    return ("--quiet", "--report", "json", _target(request))


def _target_only(request: InvocationRequest) -> Sequence[str]:
    return (_target(request),)


def _load_apidoc_config(request: InvocationRequest) -> Mapping[str, Any]:
    config_path = request.working_dir / APIDOC_CONFIG
    if not config_path.is_file():
        return {}
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        LOGGER.error("Can not read %s: %s", config_path, exc)
        return {}
    except ValueError:
        LOGGER.error("Can not parse json: %s", config_path)
        return {}
    return payload if isinstance(payload, Mapping) else {}


def _apidoc_args(request: InvocationRequest) -> Sequence[str]:
    """Translate ``apidoc.json`` filters into apidoc command-line flags.

    An unreadable or malformed ``apidoc.json`` is logged and treated as empty,
    so apidoc still runs with its own defaults.
    """

    config = _load_apidoc_config(request)
    args: list[str] = []
    for key, flag in (("file-filters", "-f"), ("exclude-filters", "-e"), ("input", "-i")):
        value = config.get(key)
        if isinstance(value, str) and value:
            args.extend([flag, value])
    return args


CPPLINT = ToolAdapter(
    name="cpplint",
    category=ToolCategory.CPP,
    template_key="cpplint",
    handlers=(RegexOutput(CPPLINT_PATTERN, default_rule="cpplint", source=OutputSource.STDERR),),
    arguments=_cpplint_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1})),
    extensions=CPP_EXTENSIONS,
    description="Google C++ style checker.",
)

OCLINT = ToolAdapter(
    name="oclint",
    category=ToolCategory.OC,
    template_key="oclint",
    handlers=(StructuredOutput(parse_oclint_xml),),
    arguments=_oclint_args,
    exit_policy=ExitPolicy(tolerate_any=True),
    extensions=OC_EXTENSIONS,
    description="Static analysis for C, C++ and Objective-C.",
)

PHPLINT = ToolAdapter(
    name="phplint",
    category=ToolCategory.PHP,
    template_key="phplint",
    handlers=(StructuredOutput(parse_lint_results),),
    arguments=_phplint_args,
    extensions=PHP_EXTENSIONS,
    description="PHP syntax and style checker.",
)

ESLINT = ToolAdapter(
    name="eslint",
    category=ToolCategory.JS,
    template_key="eslint",
    handlers=(StructuredOutput(parse_lint_results),),
    arguments=_eslint_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1})),
    extensions=JS_EXTENSIONS,
    description="ESLint for JavaScript sources.",
)

ESLINT_ES = ToolAdapter(
    name="eslint-es",
    category=ToolCategory.ES,
    template_key="eslint",
    handlers=(StructuredOutput(parse_lint_results),),
    arguments=_eslint_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1})),
    extensions=ES_EXTENSIONS,
    description="ESLint for ECMAScript module sources.",
)

TSLINT = ToolAdapter(
    name="tslint",
    category=ToolCategory.TYPESCRIPT,
    template_key="tslint",
    handlers=(StructuredOutput(parse_tslint),),
    arguments=_tslint_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1, 2})),
    extensions=TS_EXTENSIONS,
    description="TypeScript linter.",
)

SCSSLINT = ToolAdapter(
    name="scsslint",
    category=ToolCategory.SCSS,
    template_key="scsslint",
    handlers=(StructuredOutput(parse_scsslint),),
    arguments=_scsslint_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1, 2})),
    extensions=SCSS_EXTENSIONS,
    description="SCSS linter.",
)

GOLANGCI_LINT = ToolAdapter(
    name="golangci-lint",
    category=ToolCategory.GO,
    template_key="golangci_lint",
    handlers=(StructuredOutput(parse_code_climate),),
    arguments=_golangci_args,
    exit_policy=ExitPolicy(tolerate_any=True),
    scope=Scope.PROJECT,
    extensions=GO_EXTENSIONS,
    description="Aggregated Go linters, run once per repository.",
)

GOLINT = ToolAdapter(
    name="golint",
    category=ToolCategory.GO,
    template_key="golint",
    handlers=(RegexOutput(GOLINT_PATTERN, default_rule="golint"),),
    arguments=_golint_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1})),
    extensions=GO_EXTENSIONS,
    description="Go style linter.",
)

GORETURNS = ToolAdapter(
    name="goreturns",
    category=ToolCategory.GO,
    template_key="goreturns",
    handlers=(FormatDiffOutput("goreturns"),),
    arguments=_target_only,
    extensions=GO_EXTENSIONS,
    description="Go formatter that also fills in zero-value returns.",
)

REMARK = ToolAdapter(
    name="remark",
    category=ToolCategory.MARKDOWN,
    template_key="remark",
    handlers=(
        StructuredOutput(parse_remark, source=OutputSource.STDERR),
        FormatDiffOutput("remark"),
    ),
    arguments=_remark_args,
    exit_policy=ExitPolicy(findings_codes=frozenset({1})),
    extensions=MARKDOWN_EXTENSIONS,
    description="Markdown linter and formatter.",
)

CLANG_FORMAT = ToolAdapter(
    name="clang-format",
    category=ToolCategory.CLANG_LINT,
    template_key="clang_format",
    handlers=(FormatDiffOutput("clanglint"),),
    arguments=_target_only,
    extensions=CPP_EXTENSIONS | OC_EXTENSIONS,
    description="clang-format conformance check.",
)

APIDOC = ToolAdapter(
    name="apidoc",
    category=ToolCategory.APIDOC,
    template_key="apidoc",
    arguments=_apidoc_args,
    scope=Scope.PROJECT,
    merge_stderr=True,
    description="API documentation generator; only success or failure is reported.",
)

ANDROID_LINT = ToolAdapter(
    name="android-lint",
    category=ToolCategory.ANDROID,
    template_key="android_lint",
    handlers=(
        StructuredOutput(
            parse_android_lint,
            source=OutputSource.REPORT_FILE,
            report_path=ANDROID_LINT_REPORT,
        ),
    ),
    scope=Scope.PROJECT,
    merge_stderr=True,
    description="Gradle Android lint; findings are read from the XML report.",
)

BUILTIN_ADAPTERS: Final[tuple[ToolAdapter, ...]] = (
    CPPLINT,
    OCLINT,
    CLANG_FORMAT,
    PHPLINT,
    ESLINT,
    ESLINT_ES,
    TSLINT,
    SCSSLINT,
    GOLANGCI_LINT,
    GOLINT,
    GORETURNS,
    REMARK,
    APIDOC,
    ANDROID_LINT,
)


def default_registry() -> AdapterRegistry:
    """Return a fresh registry holding every built-in adapter."""

    return AdapterRegistry(BUILTIN_ADAPTERS)


__all__ = [
    "ANDROID_LINT",
    "ANDROID_LINT_REPORT",
    "APIDOC",
    "BUILTIN_ADAPTERS",
    "CLANG_FORMAT",
    "CPPLINT",
    "CPPLINT_PATTERN",
    "ESLINT",
    "ESLINT_ES",
    "GOLANGCI_LINT",
    "GOLINT",
    "GOLINT_PATTERN",
    "GORETURNS",
    "OCLINT",
    "PHPLINT",
    "REMARK",
    "SCSSLINT",
    "TSLINT",
    "default_registry",
]
