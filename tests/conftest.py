"""Shared pytest fixtures for elm-test-runner tests."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest


class ElmProjectBuilder:
    """Writes a throwaway Elm project under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def manifest(self, contents: object) -> Path:
        path = self.root / "elm.json"
        text = contents if isinstance(contents, str) else json.dumps(contents)
        path.write_text(text, encoding="utf-8")
        return path

    def file(self, relative: str, text: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path.resolve()


@pytest.fixture
def elm_project(tmp_path: Path) -> ElmProjectBuilder:
    """An application project with ``src/`` and ``tests/`` directories."""
    root = (tmp_path / "project").resolve()
    (root / "src").mkdir(parents=True)
    (root / "tests").mkdir()
    builder = ElmProjectBuilder(root)
    builder.manifest(
        {
            "type": "application",
            "source-directories": ["src"],
            "elm-version": "0.19.1",
            "dependencies": {"direct": {}, "indirect": {}},
            "test-dependencies": {"direct": {}, "indirect": {}},
        }
    )
    return builder


@pytest.fixture
def restore_logging():
    """Put the root logger back the way it was after a CLI run reconfigures it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
