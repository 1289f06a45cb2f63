"""Errors raised while loading definitions and highlighting text."""

from typing import Any


class HiliteError(Exception):
    """Base class for grammar, theme and parse state errors."""

    def __init__(self, message: str, error_details: dict[str, Any] | None = None):
        """
        Create the error.

        Args:
            message: What went wrong, usually prefixed with the definition's origin
            error_details: Context such as the origin, context name or pattern involved
        """
        super().__init__(message)
        self.error_details = error_details


class GrammarLoadError(HiliteError):
    """Raised when a grammar definition cannot be loaded.

    Raised for:
    - YAML syntax errors in the definition
    - Missing required keys (scope, contexts, main context)
    - Invalid regular expressions
    - References to unknown contexts or grammars
    - Include chains that loop back on themselves
    """


class ThemeLoadError(HiliteError):
    """Raised when a theme definition cannot be loaded.

    Raised for:
    - JSON syntax errors in the definition
    - Missing theme name
    - Invalid colours or font styles
    - Invalid scope selectors
    """


class ResolutionError(HiliteError):
    """Raised when a parse state, grammar and registry do not belong together.

    This indicates a programming error in how grammars, parse states and
    themes have been paired, not bad input text.
    """
