"""
Resolution of token scopes to styles, and the per-file highlighting session.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Tuple

from hilite.grammar import Grammar, ScopePath
from hilite.grammar_registry import GrammarRegistry
from hilite.scope_selector import split_scope_path
from hilite.style import Style, StyledSpan
from hilite.theme import Theme
from hilite.tokenizer import ParseState, Token, Tokenizer


class Highlighter:
    """
    Resolves scope paths to styles for one theme.

    Each style attribute (foreground, background and font style) is resolved on
    its own: the highest scoring rule that sets the attribute wins, a later rule
    wins a tie, and attributes no rule sets come from the theme's default style.
    Resolved styles are cached per scope path.
    """

    def __init__(self, theme: Theme) -> None:
        self._theme = theme
        self._cache: Dict[ScopePath, Style] = {}

    @property
    def theme(self) -> Theme:
        """The theme styles are resolved from."""
        return self._theme

    def style_for_scopes(self, scopes: ScopePath) -> Style:
        """
        Resolve the style for a scope path.

        Args:
            scopes: Scope path, outermost first

        Returns:
            The resolved style
        """
        style = self._cache.get(scopes)
        if style is not None:
            return style

        segments = split_scope_path(scopes)
        default = self._theme.default
        foreground, foreground_score = default.foreground, -1
        background, background_score = default.background, -1
        font_style, font_style_score = default.font_style, -1

        for rule in self._theme.rules:
            score = rule.selector.score_segments(segments)
            if score is None:
                continue

            if rule.foreground is not None and score >= foreground_score:
                foreground, foreground_score = rule.foreground, score

            if rule.background is not None and score >= background_score:
                background, background_score = rule.background, score

            if rule.font_style is not None and score >= font_style_score:
                font_style, font_style_score = rule.font_style, score

        style = Style(foreground=foreground, background=background, font_style=font_style)
        self._cache[scopes] = style
        return style

    def highlight_line(self, tokens: Iterable[Token]) -> List[StyledSpan]:
        """
        Convert a line's tokens into styled spans.

        Adjacent tokens that resolve to the same style are merged, so no two
        neighbouring spans share a style.

        Args:
            tokens: The line's tokens, in order

        Returns:
            Styled spans whose text concatenates to the original line
        """
        spans: List[StyledSpan] = []
        current_style: Style | None = None
        current_text: List[str] = []

        for token in tokens:
            if not token.value:
                continue

            style = self.style_for_scopes(token.scopes)
            if style == current_style:
                current_text.append(token.value)
                continue

            if current_style is not None:
                spans.append(StyledSpan(current_style, ''.join(current_text)))

            current_style = style
            current_text = [token.value]

        if current_style is not None:
            spans.append(StyledSpan(current_style, ''.join(current_text)))

        return spans


def highlight_line(tokens: Iterable[Token], theme: Theme) -> List[StyledSpan]:
    """
    Convert a line's tokens into styled spans using a theme.

    Callers highlighting many lines should keep a `Highlighter` so resolved
    styles are cached.

    Args:
        tokens: The line's tokens, in order
        theme: Theme to resolve styles from

    Returns:
        Styled spans whose text concatenates to the original line
    """
    return Highlighter(theme).highlight_line(tokens)


class HighlightLines:
    """
    A highlighting session for one file.

    Lines must be passed in order, starting from the first line of the file.
    A session is not thread safe; use one session per file.
    """

    _logger = logging.getLogger("HighlightLines")

    def __init__(self, grammar: Grammar, theme: Theme, registry: GrammarRegistry) -> None:
        """
        Start a session.

        Args:
            grammar: Grammar to tokenize with
            theme: Theme to resolve styles from
            registry: Registry the grammar was loaded from

        Raises:
            ResolutionError: If the grammar was not loaded by the registry
        """
        self._tokenizer = Tokenizer(registry)
        self._highlighter = Highlighter(theme)
        self._state = self._tokenizer.initial_state(grammar)
        self._logger.debug("Highlighting with grammar '%s' and theme '%s'", grammar.scope, theme.name)

    @property
    def state(self) -> ParseState:
        """The parse state at the start of the next line."""
        return self._state

    def tokenize_line(self, line: str) -> List[Token]:
        """
        Advance the session by one line without resolving styles.

        Args:
            line: The next line, including its terminator if it has one

        Returns:
            The line's tokens
        """
        return self._tokenizer.tokenize_line(self._state, line)

    def highlight_line(self, line: str) -> List[StyledSpan]:
        """
        Highlight the next line of the file.

        Args:
            line: The next line, including its terminator if it has one

        Returns:
            Styled spans whose text concatenates to the line
        """
        return self._highlighter.highlight_line(self._tokenizer.iter_tokens(self._state, line))


def highlight(
    lines: Iterable[str],
    grammar: Grammar,
    theme: Theme,
    registry: GrammarRegistry
) -> Iterator[Tuple[int, List[StyledSpan]]]:
    """
    Lazily highlight a sequence of lines.

    Args:
        lines: Lines of a file, in order, including their terminators
        grammar: Grammar to tokenize with
        theme: Theme to resolve styles from
        registry: Registry the grammar was loaded from

    Yields:
        (line number, styled spans) pairs; line numbers start at 1

    Raises:
        ResolutionError: If the grammar was not loaded by the registry
    """
    session = HighlightLines(grammar, theme, registry)
    for line_number, line in enumerate(lines, start=1):
        yield line_number, session.highlight_line(line)
