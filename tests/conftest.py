"""Shared fixtures"""

from pathlib import Path

import pytest


@pytest.fixture
def project(tmp_path, monkeypatch) -> Path:
    """A small project tree with the working directory set to it"""
    src = tmp_path / "src"
    src.mkdir()
    (src / "file1.ts").write_text('const foo = "bar";', encoding="utf-8")
    (src / "file2.ts").write_text('const bar = "baz";', encoding="utf-8")
    (src / "file3.ts").write_text('const john = "doo";', encoding="utf-8")
    (tmp_path / ".gitignore").write_text("node_modules\n/dist", encoding="utf-8")
    (tmp_path / "dist").mkdir()
    (tmp_path / "dist" / "index.js").write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path
