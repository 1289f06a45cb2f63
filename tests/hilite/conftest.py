"""Shared fixtures and grammar/theme sources for hilite tests."""

import json

import pytest

from hilite.grammar_registry import GrammarRegistry
from hilite.theme import Theme, parse_theme
from hilite.tokenizer import Tokenizer


STRINGS_GRAMMAR = """
name: Strings
scope: source.strings
file_extensions: [strs]
contexts:
  main:
    - match: '"'
      scope: punctuation.definition.string.begin
      push: string
  string:
    - meta_content_scope: string.quoted
    - match: '"'
      scope: punctuation.definition.string.end
      pop: true
"""

HEREDOC_GRAMMAR = r"""
name: Heredoc
scope: source.heredoc
contexts:
  main:
    - match: '<<(\w+)'
      scope: keyword.heredoc.begin
      push: body
  body:
    - meta_content_scope: string.heredoc
    - match: '^\1$'
      scope: keyword.heredoc.end
      pop: true
"""

DEMO_GRAMMAR = r"""
name: Demo
scope: source.demo
file_extensions: [demo]
file_names: [Demofile]
first_line_match: '^#!.*\bdemo\b'
variables:
  ident: '[A-Za-z_][A-Za-z0-9_]*'
contexts:
  prototype:
    - match: '#.*$'
      scope: comment.line.demo
  main:
    - match: '\b(def)\s+({{ident}})'
      captures:
        1: keyword.declaration.demo
        2: entity.name.function.demo
    - match: '\b(if|else|return)\b'
      scope: keyword.control.demo
    - match: '[0-9]+'
      scope: constant.numeric.demo
    - match: '\('
      scope: punctuation.section.group.begin.demo
      push: group
    - include: strings
  group:
    - meta_scope: meta.group.demo
    - match: '\)'
      scope: punctuation.section.group.end.demo
      pop: true
    - include: main
  strings:
    - match: "'"
      scope: punctuation.definition.string.begin.demo
      push:
        - meta_include_prototype: false
        - meta_scope: string.quoted.single.demo
        - match: "'"
          scope: punctuation.definition.string.end.demo
          pop: true
"""

DEMO_THEME = {
    "name": "demo-theme",
    "settings": {"foreground": "#c0c0c0", "background": "#101010"},
    "rules": [
        {"scope": "comment", "foreground": "#808080", "fontStyle": "italic"},
        {"scope": "keyword", "foreground": "#ff0000"},
        {"scope": "keyword.control", "foreground": "#00ff00"},
        {"scope": "string", "foreground": "#0000ff"},
        {"scope": "punctuation.definition.string", "foreground": "#0000ff"},
        {"scope": "constant", "foreground": "#ffff00", "fontStyle": "bold"},
        {"scope": "meta.group", "background": "#202020"},
        {"scope": "entity.name.function", "foreground": "#00ffff", "fontStyle": "underline"}
    ]
}


@pytest.fixture
def strings_registry():
    """Registry with a grammar that only knows double quoted strings."""
    return GrammarRegistry.from_sources([("strings.yaml", STRINGS_GRAMMAR)])


@pytest.fixture
def demo_registry():
    """Registry with the demo, strings and heredoc grammars."""
    return GrammarRegistry.from_sources([
        ("demo.yaml", DEMO_GRAMMAR),
        ("strings.yaml", STRINGS_GRAMMAR),
        ("heredoc.yaml", HEREDOC_GRAMMAR)
    ])


@pytest.fixture
def demo_theme() -> Theme:
    """A small theme covering the demo grammar's scopes."""
    return parse_theme("demo-theme.json", json.dumps(DEMO_THEME))


@pytest.fixture
def tokenize():
    """Tokenize lines with one grammar of a registry; returns (per-line tokens, final state)."""
    def _tokenize(registry: GrammarRegistry, scope: str, lines):
        tokenizer = Tokenizer(registry)
        state = tokenizer.initial_state(registry.find_by_scope(scope))
        result = [tokenizer.tokenize_line(state, line) for line in lines]
        return result, state

    return _tokenize


@pytest.fixture
def load_beside_strings():
    """Load grammar sources together with the strings grammar."""
    def _load(*sources):
        return GrammarRegistry.from_sources([("strings.yaml", STRINGS_GRAMMAR), *sources])

    return _load
