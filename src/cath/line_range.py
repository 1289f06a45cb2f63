"""Selection of a range of line numbers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LineRange:
    """
    An inclusive range of 1-indexed line numbers.

    Attributes:
        start: First line to show, at least 1
        end: Last line to show, or None for the end of the file
    """
    start: int = 1
    end: int | None = None

    @classmethod
    def from_options(cls, start: int | None, end: int | None) -> "LineRange":
        """
        Build a range from optional command line values.

        A start below 1 is clamped to 1.  An end beyond the file needs no
        clamping because lines past the end of the file are never reached.

        Args:
            start: Requested first line, or None for the first line of the file
            end: Requested last line, or None for the last line of the file

        Returns:
            The range
        """
        return cls(start=max(1, start if start is not None else 1), end=end)

    def is_empty(self) -> bool:
        """Check if the range can contain no lines at all."""
        return self.end is not None and self.start > self.end

    def contains(self, line_number: int) -> bool:
        """Check if a line is within the range."""
        if line_number < self.start:
            return False

        return self.end is None or line_number <= self.end

    def is_past(self, line_number: int) -> bool:
        """Check if a line, and so every later line, is after the range."""
        return self.end is not None and line_number > self.end
