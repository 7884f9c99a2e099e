# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared fixtures: throwaway tool scripts and diffs of new files."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

ToolFactory = Callable[[str, str], Path]
DiffFactory = Callable[[str, Sequence[str]], str]


@pytest.fixture
def write_tool(tmp_path: Path) -> ToolFactory:
    """Return a factory writing executable ``/bin/sh`` scripts outside the repository."""

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _write(name: str, body: str) -> Path:
        script = bin_dir / name
        script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _write


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Return an empty repository checkout directory."""

    root = tmp_path / "repo"
    root.mkdir()
    return root


def new_file_diff(name: str, lines: Sequence[str]) -> str:
    """Return the git diff adding ``name`` with ``lines`` as its content."""

    header = [
        f"diff --git a/{name} b/{name}",
        "new file mode 100644",
        "index 0000000..1111111",
        "--- /dev/null",
        f"+++ b/{name}",
        f"@@ -0,0 +1,{len(lines)} @@",
    ]
    return "\n".join([*header, *(f"+{line}" for line in lines)]) + "\n"


@pytest.fixture
def make_diff() -> DiffFactory:
    """Return :func:`new_file_diff` for tests that build diffs inline."""

    return new_file_diff


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Return a minimal environment keeping ``PATH`` so scripts can run ``cat`` and friends."""

    env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin")}
    monkeypatch.delenv("CI_CHECK_TYPE", raising=False)
    return env
