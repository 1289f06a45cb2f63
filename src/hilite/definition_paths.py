"""Helpers for locating grammar and theme definition files."""

from pathlib import Path
from typing import Iterable, List, Tuple


def expand_paths(paths: Iterable[str | Path], suffixes: Tuple[str, ...]) -> List[Path]:
    """
    Expand directories into the definition files they contain.

    Args:
        paths: Files or directories
        suffixes: File suffixes to pick up from directories

    Returns:
        Files in a stable order: directories contribute their files sorted by name
    """
    result: List[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            result.extend(sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in suffixes))
            continue

        result.append(path)

    return result
