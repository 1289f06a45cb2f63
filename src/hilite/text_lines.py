"""Splitting text into lines that keep their terminators."""

from typing import Iterator


def lines_with_endings(text: str) -> Iterator[str]:
    """
    Split text into lines, keeping each line's terminator.

    Only `\\n` ends a line, so `\\r\\n` stays attached to its line and other
    characters that `str.splitlines` treats as breaks (form feeds, `\\u2028`)
    stay inside the line.  Concatenating the result gives back the original text.

    Args:
        text: The text to split

    Yields:
        Lines including their `\\n` terminator; the last line may have none
    """
    start = 0
    text_len = len(text)
    while start < text_len:
        end = text.find('\n', start)
        if end == -1:
            yield text[start:]
            return

        yield text[start:end + 1]
        start = end + 1
