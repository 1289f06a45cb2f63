"""Colours, font styles and resolved styles used by themes and the highlighter."""

from dataclasses import dataclass
from enum import IntFlag
from typing import NamedTuple


class Color(NamedTuple):
    """An RGBA colour."""
    r: int
    g: int
    b: int
    a: int = 0xff

    @classmethod
    def parse(cls, s: str) -> "Color":
        """
        Parse a colour in `#rgb`, `#rrggbb` or `#rrggbbaa` notation.

        Args:
            s: The colour string

        Returns:
            The parsed colour

        Raises:
            ValueError: If the string is not a valid colour
        """
        if not isinstance(s, str) or not s.startswith('#'):
            raise ValueError(f"Invalid colour: {s!r}")

        digits = s[1:]
        if len(digits) == 3:
            digits = ''.join(ch * 2 for ch in digits)

        if len(digits) not in (6, 8):
            raise ValueError(f"Invalid colour: {s!r}")

        try:
            r = int(digits[0:2], 16)
            g = int(digits[2:4], 16)
            b = int(digits[4:6], 16)
            a = int(digits[6:8], 16) if len(digits) == 8 else 0xff

        except ValueError as e:
            raise ValueError(f"Invalid colour: {s!r}") from e

        return cls(r, g, b, a)

    def to_hex(self) -> str:
        """Return the colour in `#rrggbb` notation (alpha is dropped)."""
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


class FontStyle(IntFlag):
    """Font style flags."""
    NONE = 0
    BOLD = 1
    ITALIC = 2
    UNDERLINE = 4

    @classmethod
    def parse(cls, s: str) -> "FontStyle":
        """
        Parse a space separated list of font style names.

        Args:
            s: Font style string, e.g. "bold italic", or "" for no style

        Returns:
            The combined font style flags

        Raises:
            ValueError: If an unknown style name is used
        """
        if not isinstance(s, str):
            raise ValueError(f"Invalid font style: {s!r}")

        style = cls.NONE
        for name in s.replace(',', ' ').split():
            try:
                style |= cls[name.upper()]

            except KeyError as e:
                raise ValueError(f"Unknown font style: {name!r}") from e

        return style


@dataclass(frozen=True)
class Style:
    """
    A fully resolved style for a piece of text.

    Attributes:
        foreground: Text colour
        background: Background colour
        font_style: Bold/italic/underline flags
    """
    foreground: Color
    background: Color
    font_style: FontStyle = FontStyle.NONE


@dataclass(frozen=True)
class StyledSpan:
    """
    A contiguous run of text rendered with one style.

    Attributes:
        style: The resolved style
        text: The text of the span
    """
    style: Style
    text: str
