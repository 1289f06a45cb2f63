"""Shared fixtures for cath tests."""

import logging

import pytest

from hilite.grammar_registry import GrammarRegistry
from hilite.theme_registry import ThemeRegistry


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the home directory at an empty temporary directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo any logging configuration done by the command line entry point."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()

    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(scope="module")
def grammars():
    """The bundled grammars."""
    return GrammarRegistry.load_defaults()


@pytest.fixture(scope="module")
def themes():
    """The bundled themes."""
    return ThemeRegistry.load_defaults()


@pytest.fixture
def python_file(tmp_path):
    """A small Python file with a string spanning lines 2 and 3."""
    path = tmp_path / "example.py"
    path.write_text('x = 1\ns = """open\nstill open"""\ny = 2\n', encoding="utf-8")
    return path


@pytest.fixture
def ten_line_file(tmp_path):
    """A plain text file with ten numbered lines."""
    path = tmp_path / "ten.txt"
    path.write_text(''.join(f"line {i}\n" for i in range(1, 11)), encoding="utf-8")
    return path
