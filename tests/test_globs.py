# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for path-aware ignore pattern matching."""

from __future__ import annotations

import logging

import pytest

from unified_ci.diff import GlobSyntaxError, compile_glob, match_any
from unified_ci.diff.globs import match


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("*.go", "main.go", True),
        ("*.go", "cmd/main.go", False),
        ("**/*.go", "cmd/main.go", True),
        ("**/*.go", "main.go", True),
        ("vendor/**", "vendor/a/b/c.js", True),
        ("vendor/**", "src/vendor/a.js", False),
        ("src/**/gen/*.pb.go", "src/api/v1/gen/x.pb.go", True),
        ("src/**/gen/*.pb.go", "src/gen/x.pb.go", True),
        ("file?.c", "file1.c", True),
        ("file?.c", "file/.c", False),
        ("[!a]*.md", "b.md", True),
        ("[!a]*.md", "a.md", False),
        ("*.{js,ts}", "index.ts", True),
        ("*.{js,ts}", "index.tsx", False),
        ("docs/\\*.md", "docs/*.md", True),
        ("docs/\\*.md", "docs/x.md", False),
    ],
)
def test_match(pattern: str, path: str, expected: bool) -> None:
    assert match(pattern, path) is expected


@pytest.mark.parametrize("pattern", ["[abc", "{a,b", "trailing\\"])
def test_malformed_patterns_raise(pattern: str) -> None:
    with pytest.raises(GlobSyntaxError):
        compile_glob(pattern)


def test_match_any_skips_malformed_patterns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="unified_ci.diff.globs"):
        assert match_any(["[bad", "third_party/**"], "third_party/lib.c")
        assert not match_any(["[bad"], "src/lib.c")
    assert "malformed glob pattern" in caplog.text


def test_match_any_with_no_patterns() -> None:
    assert not match_any([], "anything")


def test_double_star_crosses_directories_single_star_does_not() -> None:
    assert match_any(["p/**"], "p/x/y")
    assert not match_any(["p/*"], "p/x/y")
    assert not match_any(["sdk/*"], "sdk/v2/x")
