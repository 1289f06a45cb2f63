"""
Conversion of styled spans into 24-bit colour terminal escape sequences.
"""

from typing import Iterable

from hilite.style import Color, FontStyle, StyledSpan


RESET = '\x1b[0m'


def foreground_escape(color: Color) -> str:
    """Get the escape sequence that sets a 24-bit foreground colour."""
    return f'\x1b[38;2;{color.r};{color.g};{color.b}m'


def background_escape(color: Color) -> str:
    """Get the escape sequence that sets a 24-bit background colour."""
    return f'\x1b[48;2;{color.r};{color.g};{color.b}m'


def as_24_bit_terminal_escaped(spans: Iterable[StyledSpan], background: bool = False) -> str:
    """
    Render styled spans as text with terminal escape sequences.

    Every span sets its own attributes and undoes them afterwards, so text
    written between rendered spans keeps the terminal's default style.

    Args:
        spans: The spans of a line
        background: Whether to paint each span's background colour

    Returns:
        The escaped text
    """
    parts = []
    for span in spans:
        color_s = foreground_escape(span.style.foreground)
        undo_s = '\x1b[39m'
        if background:
            color_s += background_escape(span.style.background)
            undo_s += '\x1b[49m'

        if span.style.font_style & FontStyle.BOLD:
            color_s += '\x1b[1m'
            undo_s += '\x1b[22m'

        if span.style.font_style & FontStyle.ITALIC:
            color_s += '\x1b[3m'
            undo_s += '\x1b[23m'

        if span.style.font_style & FontStyle.UNDERLINE:
            color_s += '\x1b[4m'
            undo_s += '\x1b[24m'

        parts.append(f'{color_s}{span.text}{undo_s}')

    return ''.join(parts)
