# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for file selection, planning and concurrent tool execution."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from unified_ci.adapters import AdapterRegistry, ToolAdapter, ToolRun
from unified_ci.adapters.builtins import CPPLINT, GOLANGCI_LINT, PHPLINT
from unified_ci.capabilities import Capability, CapabilitySet, ToolCategory
from unified_ci.config import Config, config_from_mapping
from unified_ci.engine import CheckEngine, ReviewTarget, is_generated
from unified_ci.errors import ParseError
from unified_ci.models import BindingContext, Finding
from unified_ci.severity import Severity

ToolFactory = Callable[[str, str], Path]
DiffFactory = Callable[[str, Sequence[str]], str]

SOURCE = ["int main() {", "  int a=1;", "  return a;", "}"]

# cpplint stand-in: reports line 2 and line 40 of whatever file it is given
CPPLINT_BODY = (
    'file="$2"\n'
    'echo "$file:2:  Missing spaces around =  [whitespace/operators] [4]" >&2\n'
    'echo "$file:40:  Line too long  [whitespace/line_length] [2]" >&2\n'
    "exit 1"
)


def _config(**sections: Any) -> Config:
    return config_from_mapping(sections, env={})


def _write(repo: Path, name: str, lines: Sequence[str]) -> None:
    path = repo / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _cpp_repo(repo: Path, *names: str) -> None:
    (repo / "CPPLINT.cfg").write_text("set noparent\n", encoding="utf-8")
    for name in names:
        _write(repo, name, SOURCE)


def test_is_generated_markers() -> None:
    assert is_generated(["// Code generated by protoc-gen-go. DO NOT EDIT."])
    assert is_generated(["/*", " * @generated by tooling", " */"])
    assert not is_generated(["// Code generated by hand, edit freely"])
    assert not is_generated([])


def test_select_files_skips_unreviewable_entries(repo: Path, make_diff: DiffFactory) -> None:
    _write(repo, "src/keep.cc", SOURCE)
    _write(repo, "src/gen.pb.cc", ["// Code generated by protoc. DO NOT EDIT.", "int x;"])
    _write(repo, "third_party/lib.cc", SOURCE)
    (repo / "link.cc").symlink_to(repo / "src/keep.cc")
    diff = "".join(
        [
            make_diff("src/keep.cc", SOURCE),
            make_diff("src/gen.pb.cc", ["// Code generated by protoc. DO NOT EDIT.", "int x;"]),
            make_diff("third_party/lib.cc", SOURCE),
            make_diff("src/missing.cc", SOURCE),
            "diff --git a/link.cc b/link.cc\n"
            "new file mode 120000\n"
            "index 0000000..2222222\n"
            "--- /dev/null\n"
            "+++ b/link.cc\n"
            "@@ -0,0 +1 @@\n"
            "+src/keep.cc\n"
            "\\ No newline at end of file\n",
            "diff --git a/gone.cc b/gone.cc\n"
            "deleted file mode 100644\n"
            "index 3333333..0000000\n"
            "--- a/gone.cc\n"
            "+++ /dev/null\n"
            "@@ -1 +0,0 @@\n"
            "-int gone;\n",
        ],
    )
    engine = CheckEngine(_config(review={"ignore_patterns": ["third_party/**"]}))

    targets = engine.select_files(repo, diff)

    assert targets == [ReviewTarget(path="src/keep.cc", added_lines=frozenset({1, 2, 3, 4}))]


def test_select_files_rejects_malformed_diff(repo: Path) -> None:
    with pytest.raises(ParseError):
        CheckEngine().select_files(repo, "--- a/x\n+++ b/x\n@@ nonsense\n")


def test_plan_runs_file_tools_per_file_and_project_tools_once() -> None:
    engine = CheckEngine(_config(review={"disabled_tools": ["golint", "goreturns"]}))
    capabilities = CapabilitySet(
        {
            ToolCategory.GO: Capability(enabled=True),
            ToolCategory.CPP: Capability(enabled=True),
        },
    )
    targets = [ReviewTarget("a.go"), ReviewTarget("b.go"), ReviewTarget("c.cc"), ReviewTarget("d.php")]

    plan = engine.plan(targets, capabilities)

    assert [(invocation.adapter.name, invocation.target) for invocation in plan] == [
        ("cpplint", "c.cc"),
        ("golangci-lint", None),
    ]
    assert [invocation.order for invocation in plan] == [0, 1]


def test_plan_skips_project_tools_without_matching_files() -> None:
    engine = CheckEngine()
    capabilities = CapabilitySet({ToolCategory.GO: Capability(enabled=True)})

    assert engine.plan([ReviewTarget("README.md")], capabilities) == []


def test_run_filters_findings_to_added_lines(repo: Path, write_tool: ToolFactory, make_diff: DiffFactory) -> None:
    _cpp_repo(repo, "src/a.cc")
    tool = write_tool("cpplint", CPPLINT_BODY)
    engine = CheckEngine(_config(commands={"cpplint": str(tool)}))

    outcomes = engine.run(repo, make_diff("src/a.cc", SOURCE))

    assert len(outcomes) == 1
    outcome = outcomes[0]
    assert (outcome.tool, outcome.file, outcome.ok) == ("cpplint", "src/a.cc", True)
    assert [(finding.rule_id, finding.line) for finding in outcome.findings] == [("whitespace/operators", 2)]


def test_run_keeps_every_finding_when_filter_is_off(
    repo: Path,
    write_tool: ToolFactory,
    make_diff: DiffFactory,
) -> None:
    _cpp_repo(repo, "src/a.cc")
    tool = write_tool("cpplint", CPPLINT_BODY)
    engine = CheckEngine(_config(commands={"cpplint": str(tool)}, review={"changed_lines_only": False}))

    outcomes = engine.run(repo, make_diff("src/a.cc", SOURCE))

    assert [finding.line for finding in outcomes[0].findings] == [2, 40]


def test_one_failing_tool_does_not_abort_the_others(
    repo: Path,
    write_tool: ToolFactory,
    make_diff: DiffFactory,
) -> None:
    _cpp_repo(repo, "src/bad.cc", "src/good.cc")
    tool = write_tool("cpplint", 'if [ "$2" = "src/bad.cc" ]; then echo "segfault" >&2; exit 3; fi\n' + CPPLINT_BODY)
    engine = CheckEngine(_config(commands={"cpplint": str(tool)}, execution={"jobs": 2}))
    diff = make_diff("src/bad.cc", SOURCE) + make_diff("src/good.cc", SOURCE)

    outcomes = engine.run(repo, diff)

    assert [(outcome.file, outcome.ok) for outcome in outcomes] == [("src/bad.cc", False), ("src/good.cc", True)]
    assert "exited with status 3" in (outcomes[0].error or "")
    assert "segfault" in outcomes[0].stderr
    assert len(outcomes[1].findings) == 1


def test_unconfigured_command_fails_only_its_outcome(repo: Path, make_diff: DiffFactory) -> None:
    _write(repo, "index.php", ["<?php", "echo 1;"])
    engine = CheckEngine(_config(commands={"phplint": ""}))

    outcomes = engine.run(repo, make_diff("index.php", ["<?php", "echo 1;"]))

    assert len(outcomes) == 1
    assert outcomes[0].error == "phplint command is not configured"


def test_malformed_template_fails_every_invocation_of_the_tool(
    repo: Path,
    make_diff: DiffFactory,
    caplog: pytest.LogCaptureFixture,
) -> None:
    _cpp_repo(repo, "a.cc", "b.cc")
    engine = CheckEngine(_config(commands={"cpplint": "cpplint 'unterminated"}))

    outcomes = engine.run(repo, make_diff("a.cc", SOURCE) + make_diff("b.cc", SOURCE))

    assert [outcome.ok for outcome in outcomes] == [False, False]
    assert all("unterminated single quote" in (outcome.error or "") for outcome in outcomes)
    assert "command template is invalid" in caplog.text


def test_unreadable_tool_line_degrades_only_that_outcome(
    repo: Path,
    write_tool: ToolFactory,
    make_diff: DiffFactory,
) -> None:
    _cpp_repo(repo, "a.cc")
    _write(repo, "index.php", ["<?php", "echo 1;"])
    cpplint = write_tool("cpplint", 'echo "$2:1:  odd  [ ] [1]" >&2\nexit 1')
    phplint = write_tool("phplint", "echo '[]'")
    engine = CheckEngine(_config(commands={"cpplint": str(cpplint), "phplint": str(phplint)}))

    outcomes = engine.run(repo, make_diff("a.cc", SOURCE) + make_diff("index.php", ["<?php", "echo 1;"]))

    assert [(outcome.tool, outcome.ok) for outcome in outcomes] == [("cpplint", True), ("phplint", True)]
    assert [finding.rule_id for finding in outcomes[0].findings] == ["cpplint"]


@dataclass(frozen=True)
class _RejectingHandler:
    def handle(self, run: ToolRun) -> list[Finding]:
        raise ValueError(f"{run.tool} wrote an unreadable report")


def test_handler_errors_are_recorded_on_the_outcome(
    repo: Path,
    write_tool: ToolFactory,
    make_diff: DiffFactory,
) -> None:
    _cpp_repo(repo, "a.cc")
    _write(repo, "index.php", ["<?php", "echo 1;"])
    rejecting = ToolAdapter(
        name="cpp-report",
        category=ToolCategory.CPP,
        template_key="cpplint",
        handlers=(_RejectingHandler(),),
        extensions=frozenset({".cc"}),
    )
    commands = {"cpplint": str(write_tool("cpplint", "exit 0")), "phplint": str(write_tool("phplint", "echo '[]'"))}
    engine = CheckEngine(_config(commands=commands), AdapterRegistry([rejecting, PHPLINT]))

    outcomes = engine.run(repo, make_diff("a.cc", SOURCE) + make_diff("index.php", ["<?php", "echo 1;"]))

    assert [(outcome.tool, outcome.ok) for outcome in outcomes] == [("cpp-report", False), ("phplint", True)]
    assert outcomes[0].error == "cpp-report wrote an unreadable report"


def test_templates_resolve_once_per_invocation(
    repo: Path,
    write_tool: ToolFactory,
    make_diff: DiffFactory,
    tmp_path: Path,
) -> None:
    _cpp_repo(repo, "a.cc", "b.cc")
    calls = tmp_path / "calls.log"
    tool = write_tool("cpplint", "exit 0")
    template = f"{tool} `echo resolved >> {calls}; echo --verbose=0`"
    engine = CheckEngine(_config(commands={"cpplint": template}), environ={"PATH": "/usr/bin:/bin"})

    outcomes = engine.run(repo, make_diff("a.cc", SOURCE) + make_diff("b.cc", SOURCE))

    assert [outcome.ok for outcome in outcomes] == [True, True]
    assert calls.read_text(encoding="utf-8").splitlines() == ["resolved", "resolved"]


def test_templates_see_check_bindings(repo: Path, write_tool: ToolFactory, make_diff: DiffFactory) -> None:
    _cpp_repo(repo, "a.cc")
    tool = write_tool("cpplint", 'echo "$3:1:  type=$1  [check/binding] [1]" >&2\nexit 1')
    engine = CheckEngine(_config(commands={"cpplint": f"{tool} --type=$CI_CHECK_TYPE"}), environ={})
    context = BindingContext(working_dir=repo, check_type="review", check_ref="deadbeef")

    outcomes = engine.run(repo, make_diff("a.cc", SOURCE), context)

    assert [finding.message for finding in outcomes[0].findings] == ["type=--type=review"]


def test_cancelled_check_reports_every_outcome(repo: Path, write_tool: ToolFactory, make_diff: DiffFactory) -> None:
    _cpp_repo(repo, "a.cc")
    tool = write_tool("cpplint", "sleep 30")
    engine = CheckEngine(_config(commands={"cpplint": str(tool)}))
    cancel = threading.Event()
    cancel.set()

    outcomes = engine.run(repo, make_diff("a.cc", SOURCE), cancel=cancel)

    assert len(outcomes) == 1
    assert not outcomes[0].ok
    assert outcomes[0].error == "cancelled before start"


def test_project_tool_findings_are_filtered_by_their_own_paths(
    repo: Path,
    write_tool: ToolFactory,
    make_diff: DiffFactory,
) -> None:
    (repo / ".golangci.yml").write_text("linters: {}\n", encoding="utf-8")
    _write(repo, "cmd/main.go", ["package main", "", "func main() {}"])
    _write(repo, "pkg/util.go", ["package pkg"])
    report = (
        '[{"check_name":"unused","severity":"major","description":"unused","location":'
        '{"path":"cmd/main.go","lines":{"begin":3}}},'
        '{"check_name":"errcheck","severity":"minor","description":"old code","location":'
        '{"path":"pkg/other.go","lines":{"begin":1}}}]'
    )
    tool = write_tool("golangci-lint", f"echo '{report}'")
    engine = CheckEngine(
        _config(
            commands={"golangci_lint": str(tool)},
            review={"disabled_tools": ["golint", "goreturns"]},
        ),
    )
    diff = make_diff("cmd/main.go", ["package main", "", "func main() {}"]) + make_diff("pkg/util.go", ["package pkg"])

    outcomes = engine.run(repo, diff)

    assert len(outcomes) == 1
    assert outcomes[0].file is None
    assert [(finding.path, finding.severity) for finding in outcomes[0].findings] == [("cmd/main.go", Severity.ERROR)]


def test_no_reviewable_files_means_no_outcomes(repo: Path, make_diff: DiffFactory) -> None:
    assert CheckEngine().run(repo, make_diff("notes.txt", ["hello"])) == []


def test_engine_uses_default_registry() -> None:
    engine = CheckEngine()
    assert engine.config == Config()
    assert {CPPLINT.name, GOLANGCI_LINT.name, PHPLINT.name} <= set(engine._registry)
