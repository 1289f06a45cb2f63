"""
Writes a file's lines to a stream, highlighted or plain.
"""

from dataclasses import dataclass, field
import logging
from typing import Iterable, TextIO

from hilite.grammar import Grammar
from hilite.grammar_registry import GrammarRegistry
from hilite.highlighter import HighlightLines
from hilite.text_lines import lines_with_endings
from hilite.theme import Theme

from cath.line_range import LineRange
from cath.terminal_renderer import as_24_bit_terminal_escaped


@dataclass
class ViewOptions:
    """
    How a file is shown.

    Attributes:
        plain: Write the text without highlighting
        line_numbers: Prefix every line with its line number
        background: Paint the theme's background colour
        line_range: Lines to show
    """
    plain: bool = False
    line_numbers: bool = False
    background: bool = False
    line_range: LineRange = field(default_factory=LineRange)


class FileViewer:
    """
    Shows text using the grammars of one registry.
    """

    _logger = logging.getLogger("FileViewer")

    def __init__(self, registry: GrammarRegistry, options: ViewOptions) -> None:
        self._registry = registry
        self._options = options

    def select_grammar(self, path: str, first_line: str, language: str | None = None) -> Grammar:
        """
        Choose the grammar for a file.

        An explicit language wins, then the file's name, then its first line.
        Anything unrecognized is shown as plain text.

        Args:
            path: File path
            first_line: First line of the file
            language: Language name, scope or extension requested by the user

        Returns:
            The grammar to use
        """
        if language:
            grammar = self._registry.find_by_name(language)
            if grammar is not None:
                return grammar

            self._logger.debug("No grammar for language '%s', trying the file name", language)

        grammar = self._registry.find_for_file(path, first_line)
        if grammar is not None:
            self._logger.debug("Using grammar '%s' for %s", grammar.scope, path)
            return grammar

        self._logger.debug("No grammar for %s, using plain text", path)
        return self._registry.plain_text_grammar()

    def _prefix(self, line_number: int) -> str:
        if not self._options.line_numbers:
            return ""

        return f"{line_number:4} "

    def write_plain(self, lines: Iterable[str], out: TextIO) -> None:
        """
        Write lines without highlighting.

        Args:
            lines: Lines of the file, including their terminators
            out: Stream to write to
        """
        line_range = self._options.line_range
        if line_range.is_empty():
            return

        for line_number, line in enumerate(lines, start=1):
            if line_range.is_past(line_number):
                break

            if line_range.contains(line_number):
                out.write(f"{self._prefix(line_number)}{line}")

    def write_highlighted(self, lines: Iterable[str], grammar: Grammar, theme: Theme, out: TextIO) -> None:
        """
        Write lines with highlighting.

        Lines before the range are still tokenized so that constructs spanning
        several lines are coloured correctly at the first line shown.

        Args:
            lines: Lines of the file, including their terminators
            grammar: Grammar to tokenize with
            theme: Theme to resolve styles from
            out: Stream to write to

        Raises:
            ResolutionError: If the grammar was not loaded by this viewer's registry
        """
        line_range = self._options.line_range
        if line_range.is_empty():
            return

        session = HighlightLines(grammar, theme, self._registry)
        for line_number, line in enumerate(lines, start=1):
            if line_range.is_past(line_number):
                break

            if not line_range.contains(line_number):
                session.tokenize_line(line)
                continue

            spans = session.highlight_line(line)
            out.write(self._prefix(line_number))
            out.write(as_24_bit_terminal_escaped(spans, self._options.background))

    def show(self, text: str, path: str, theme: Theme, out: TextIO, language: str | None = None) -> None:
        """
        Show the text of a file.

        Args:
            text: The file's content
            path: The file's path, used to choose a grammar
            theme: Theme to resolve styles from
            out: Stream to write to
            language: Language requested by the user, if any
        """
        lines = lines_with_endings(text)
        if self._options.plain:
            self.write_plain(lines, out)
            return

        first_line = text.split('\n', 1)[0]
        grammar = self.select_grammar(path, first_line, language)
        self.write_highlighted(lines, grammar, theme, out)
