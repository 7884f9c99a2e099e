# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the native report parsers."""

from __future__ import annotations

import json
from pathlib import Path

from unified_ci.adapters.base import InvocationRequest, ToolRun
from unified_ci.adapters.parsers import (
    parse_android_lint,
    parse_code_climate,
    parse_lint_results,
    parse_oclint_xml,
    parse_remark,
    parse_scsslint,
    parse_tslint,
)
from unified_ci.process import ProcessResult
from unified_ci.severity import Severity


def _run(tool: str, working_dir: Path, target: str | None = "src/file") -> ToolRun:
    request = InvocationRequest(
        command=(tool,),
        target=Path(target) if target is not None else None,
        working_dir=working_dir,
    )
    result = ProcessResult(args=(tool,), returncode=0, stdout=b"", stderr=b"")
    return ToolRun(tool=tool, request=request, result=result)


def test_eslint_messages(tmp_path: Path) -> None:
    report = [
        {
            "filePath": str(tmp_path / "src/app.js"),
            "messages": [
                {"ruleId": "no-unused-vars", "severity": 2, "line": 4, "column": 7, "message": "'x' is unused"},
                {"ruleId": "semi", "severity": 1, "line": 9, "column": 12, "message": "Missing semicolon."},
                {"fatal": True, "severity": 2, "line": 1, "message": "Parsing error", "source": "const = ;"},
            ],
        },
        {"filePath": "ignored.js", "messages": [{"ruleId": "x", "severity": 2, "message": "second file"}]},
    ]

    findings = parse_lint_results(json.dumps(report), _run("eslint", tmp_path))

    assert [finding.rule_id for finding in findings] == ["no-unused-vars", "semi", "eslint"]
    assert [finding.severity for finding in findings] == [Severity.ERROR, Severity.WARNING, Severity.ERROR]
    assert (findings[0].line, findings[0].column) == (4, 7)
    assert findings[2].source_snippet == "const = ;"
    assert findings[2].column == 0


def test_lint_results_empty_list(tmp_path: Path) -> None:
    assert parse_lint_results("[]", _run("phplint", tmp_path)) == []


def test_phplint_uses_tool_name_without_rule(tmp_path: Path) -> None:
    report = [{"messages": [{"severity": 2, "line": 3, "message": "syntax error, unexpected ';'"}]}]

    findings = parse_lint_results(json.dumps(report), _run("phplint", tmp_path))

    assert findings[0].rule_id == "phplint"
    assert findings[0].severity is Severity.ERROR


def test_tslint_positions_are_one_based(tmp_path: Path) -> None:
    report = [
        {
            "ruleName": "quotemark",
            "ruleSeverity": "ERROR",
            "failure": "\" should be '",
            "startPosition": {"line": 0, "character": 4, "position": 4},
        },
        {
            "ruleName": "no-console",
            "ruleSeverity": "warning",
            "failure": "Calls to 'console.log' are not allowed.",
            "startPosition": {"line": 11, "character": 0},
        },
        {"ruleName": "custom", "ruleSeverity": "fatal", "failure": "odd severity"},
    ]

    findings = parse_tslint(json.dumps(report), _run("tslint", tmp_path))

    assert [(finding.line, finding.column) for finding in findings] == [(1, 5), (12, 1), (1, 1)]
    assert [finding.severity for finding in findings] == [Severity.ERROR, Severity.WARNING, Severity.OFF]


def test_scsslint_first_file_only(tmp_path: Path) -> None:
    report = {
        "styles/main.scss": [
            {
                "line": 3,
                "column": 5,
                "length": 2,
                "severity": "warning",
                "reason": "Color literals",
                "linter": "ColorVariable",
            },
            {"line": 8, "column": 1, "severity": "error", "reason": "Syntax Error", "linter": "Syntax"},
        ],
    }

    findings = parse_scsslint(json.dumps(report), _run("scsslint", tmp_path))

    assert [finding.rule_id for finding in findings] == ["ColorVariable", "Syntax"]
    assert [finding.severity for finding in findings] == [Severity.WARNING, Severity.ERROR]
    assert parse_scsslint("{}", _run("scsslint", tmp_path)) == []


def test_code_climate_severity_and_paths(tmp_path: Path) -> None:
    report = [
        {
            "check_name": "errcheck",
            "severity": "major",
            "description": "Error return value is not checked",
            "location": {"path": "cmd/main.go", "lines": {"begin": 12}},
        },
        {
            "check_name": "lll",
            "description": "line is 130 characters",
            "location": {"path": "x.go", "lines": {"begin": 3}},
        },
        {"check_name": "godot", "severity": "minor", "description": "missing period", "location": {"path": "y.go"}},
        {"check_name": "gocritic", "severity": "info", "description": "hint", "location": {}},
    ]

    findings = parse_code_climate(json.dumps(report), _run("golangci-lint", tmp_path, target=None))

    assert [finding.severity for finding in findings] == [
        Severity.ERROR,
        Severity.ERROR,
        Severity.WARNING,
        Severity.OFF,
    ]
    assert [finding.path for finding in findings] == ["cmd/main.go", "x.go", "y.go", None]
    assert findings[0].line == 12
    assert findings[2].line == 1


def test_remark_fatal_flag_maps_severity(tmp_path: Path) -> None:
    report = [
        {
            "path": "README.md",
            "messages": [
                {
                    "ruleId": "list-item-indent",
                    "source": "remark-lint",
                    "fatal": False,
                    "line": 2,
                    "column": 3,
                    "reason": "Incorrect indent",
                },
                {"ruleId": None, "source": "remark-parse", "fatal": True, "line": 7, "reason": "Unexpected"},
                {"line": 9, "message": "Informational"},
            ],
        },
    ]

    findings = parse_remark(json.dumps(report), _run("remark", tmp_path))

    assert [finding.severity for finding in findings] == [Severity.WARNING, Severity.ERROR, Severity.OFF]
    assert [finding.rule_id for finding in findings] == ["list-item-indent", "remark-parse", "remark-lint"]
    assert findings[2].message == "Informational"


def test_oclint_priorities(tmp_path: Path) -> None:
    report = """<?xml version="1.0" encoding="UTF-8"?>
<oclint version="22.02">
  <summary numberOfFiles="1"/>
  <violations>
    <violation path="src/a.m" startline="10" startcolumn="5" endline="12" endcolumn="1"
        rule="long line" category="size" priority="3" message="Line with 120 characters exceeds limit of 100"/>
    <violation path="src/a.m" startline="20" startcolumn="1" rule="empty if statement" priority="1"
        message="empty if"/>
    <violation path="src/a.m" startline="30" rule="odd" priority="7" message="unknown"/>
  </violations>
</oclint>
"""

    findings = parse_oclint_xml(report, _run("oclint", tmp_path))

    assert [finding.severity for finding in findings] == [Severity.WARNING, Severity.ERROR, Severity.OFF]
    assert [finding.line for finding in findings] == [10, 20, 30]
    assert findings[0].column == 5
    assert findings[0].rule_id == "long line"


def test_android_lint_paths_are_made_relative(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    report = f"""<?xml version="1.0" encoding="UTF-8"?>
<issues format="6" by="lint 8.1.0">
  <issue id="HardcodedText" severity="Warning" message="Hardcoded string" category="Internationalization">
    <location file="{root}/app/src/main/res/layout/main.xml" line="14" column="9"/>
  </issue>
  <issue id="MissingPermission" severity="Fatal" message="Missing permissions">
    <location file="app/src/main/java/Main.java" line="3"/>
  </issue>
  <issue id="GradleDependency" severity="Informational" message="Newer version available"/>
</issues>
"""

    findings = parse_android_lint(report, _run("android-lint", tmp_path, target=None))

    assert [finding.path for finding in findings] == [
        "app/src/main/res/layout/main.xml",
        "app/src/main/java/Main.java",
        None,
    ]
    assert [finding.severity for finding in findings] == [Severity.WARNING, Severity.ERROR, Severity.OFF]
    assert (findings[0].line, findings[0].column) == (14, 9)
