"""
Shared pytest fixtures.

- write_tree: lay out a directory of JS files under tmp_path
- parse_unit: parse a snippet into a SourceUnit backed by a real file
"""

from pathlib import Path
from typing import Callable

import pytest

from envscan.core.scanner import load_unit
from envscan.core.scanner.models import SourceUnit


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    def write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return write


@pytest.fixture
def parse_unit(write_tree) -> Callable[..., SourceUnit]:
    def parse(source: str, name: str = "index.js") -> SourceUnit:
        root = write_tree({name: source})
        return load_unit((root / name).resolve())

    return parse
