# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for findings synthesised from formatter output."""

from __future__ import annotations

from unified_ci.diff import format_diff, synthesize_findings
from unified_ci.diff.synthesis import describe_hunk
from unified_ci.severity import Severity


def test_identical_content_yields_nothing() -> None:
    assert format_diff("a\nb\n", "a\nb\n") is None
    assert synthesize_findings(b"a\nb\n", b"a\nb\n", "gofmt") == []


def test_line_ending_only_change_yields_nothing() -> None:
    assert format_diff("a\r\nb\r\n", "a\nb\n") is None
    assert synthesize_findings("a\nb", "a\nb\n", "gofmt") == []


def test_one_finding_per_hunk_at_original_line() -> None:
    original = "int a=1;\nint b = 2;\nint c = 3;\nint d = 4;\nint e=5;\n"
    formatted = "int a = 1;\nint b = 2;\nint c = 3;\nint d = 4;\nint e = 5;\n"

    findings = synthesize_findings(original, formatted, "clanglint")

    assert [finding.line for finding in findings] == [1, 5]
    assert all(finding.rule_id == "clanglint" for finding in findings)
    assert all(finding.severity is Severity.ERROR for finding in findings)
    assert all(finding.column == 0 for finding in findings)
    assert findings[0].message == "Replace 1 line(s) with 1 line(s)"
    assert findings[0].source_snippet == "-int a=1;\n+int a = 1;"


def test_pure_insertion_points_at_a_valid_line() -> None:
    findings = synthesize_findings("", "package main\n", "goreturns")

    assert len(findings) == 1
    assert findings[0].line == 1
    assert findings[0].message == "Insert 1 line(s)"


def test_removal_is_described() -> None:
    file_diff = format_diff("keep\ndrop\n", "keep\n")

    assert file_diff is not None
    assert [describe_hunk(hunk) for hunk in file_diff.hunks] == ["Remove 1 line(s)"]
    assert file_diff.hunks[0].orig_start == 2


def test_bytes_and_text_inputs_agree() -> None:
    text = synthesize_findings("x = 1\n", "x=1\n", "remark")
    raw = synthesize_findings(b"x = 1\n", b"x=1\n", "remark")
    assert text == raw


def test_only_newline_ends_a_line() -> None:
    form_feed = synthesize_findings("a\x0cb\nc\nd\n", "a\x0cb\nc\nD\n", "fmt")
    separator = synthesize_findings("a\N{LINE SEPARATOR}b\x85c\nd\ne\n", "a\N{LINE SEPARATOR}b\x85c\nD\ne\n", "fmt")

    assert [finding.line for finding in form_feed] == [3]
    assert [finding.line for finding in separator] == [2]
    assert separator[0].source_snippet == "-d\n+D"


def test_lone_carriage_return_stays_inside_the_line() -> None:
    findings = synthesize_findings("a\rb\nc\n", "a\rb\nC\n", "fmt")
    assert [finding.line for finding in findings] == [2]


def test_synthesis_is_deterministic() -> None:
    first = synthesize_findings("a\nb\nc\n", "a\nB\nc\nd\n", "fmt")
    second = synthesize_findings("a\nb\nc\n", "a\nB\nc\nd\n", "fmt")
    assert first == second
    assert [finding.line for finding in first] == [2, 3]
