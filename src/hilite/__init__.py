"""Syntax highlighting engine: grammars, themes, tokenizer and highlighter."""

from hilite.grammar import Context, Grammar, Rule, RuleKind, ScopePath
from hilite.grammar_registry import GrammarRegistry, PLAIN_TEXT_SCOPE
from hilite.highlighter import HighlightLines, Highlighter, highlight, highlight_line
from hilite.hilite_exceptions import GrammarLoadError, HiliteError, ResolutionError, ThemeLoadError
from hilite.scope_selector import ScopeSelector, ScopeSelectors
from hilite.style import Color, FontStyle, Style, StyledSpan
from hilite.text_lines import lines_with_endings
from hilite.theme import Theme, ThemeRule
from hilite.theme_registry import DEFAULT_THEME_NAME, ThemeRegistry
from hilite.tokenizer import ParseState, StackFrame, Token, Tokenizer


__all__ = [
    "Color",
    "Context",
    "DEFAULT_THEME_NAME",
    "FontStyle",
    "Grammar",
    "GrammarLoadError",
    "GrammarRegistry",
    "HighlightLines",
    "Highlighter",
    "HiliteError",
    "PLAIN_TEXT_SCOPE",
    "ParseState",
    "ResolutionError",
    "Rule",
    "RuleKind",
    "ScopePath",
    "ScopeSelector",
    "ScopeSelectors",
    "StackFrame",
    "Style",
    "StyledSpan",
    "Theme",
    "ThemeLoadError",
    "ThemeRegistry",
    "ThemeRule",
    "Token",
    "Tokenizer",
    "highlight",
    "highlight_line",
    "lines_with_endings"
]
