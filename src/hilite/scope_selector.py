"""
Scope selectors, as used by theme rules.

A selector is a comma separated list of alternatives.  Each alternative is a
space separated descendant path of dotted atoms, optionally followed by
exclusions introduced by " - ".  An atom matches a scope when the atom's
segments are a prefix of the scope's segments, so `string` matches
`string.quoted.double.python`.

Selectors are scored against a scope path so that the most specific selector
wins: atoms are matched right to left, the last atom against the innermost
scope it can match.  Every matched atom adds its segment count weighted by the
depth of the scope it matched.
"""

from typing import List, Tuple

from hilite.grammar import ScopePath


# An atom such as "string.quoted", split into segments
Atom = Tuple[str, ...]

# Atom segment counts are capped so that a deeper match always outweighs a longer one
_MAX_ATOM_WEIGHT = 7
_DEPTH_BASE = 8

_INVALID_CHARS = set("()|&^$")


def _match_path(path: Tuple[Atom, ...], scopes: Tuple[Atom, ...]) -> int | None:
    """
    Score a descendant path against a scope path.

    Args:
        path: Selector atoms, outermost first
        scopes: Scope path split into segments, outermost first

    Returns:
        The score, or None if the path does not match
    """
    score = 0
    index = len(scopes) - 1
    for atom in reversed(path):
        while index >= 0 and scopes[index][:len(atom)] != atom:
            index -= 1

        if index < 0:
            return None

        score += min(len(atom), _MAX_ATOM_WEIGHT) * _DEPTH_BASE ** index
        index -= 1

    return score


class ScopeSelector:
    """
    A single selector alternative with optional exclusions.
    """

    def __init__(self, path: Tuple[Atom, ...], excludes: Tuple[Tuple[Atom, ...], ...] = ()) -> None:
        self.path = path
        self.excludes = excludes

    @classmethod
    def parse(cls, text: str) -> "ScopeSelector":
        """
        Parse one selector alternative, e.g. "source.python string - string.quoted".

        Args:
            text: Selector text with no commas

        Returns:
            The parsed selector

        Raises:
            ValueError: If the selector is empty or uses unsupported syntax
        """
        if any(ch in _INVALID_CHARS for ch in text):
            raise ValueError(f"Unsupported scope selector syntax: {text!r}")

        parts = text.split(' - ')
        path = cls._parse_path(parts[0])
        if not path:
            raise ValueError(f"Empty scope selector: {text!r}")

        excludes = []
        for part in parts[1:]:
            exclude = cls._parse_path(part)
            if not exclude:
                raise ValueError(f"Empty exclusion in scope selector: {text!r}")

            excludes.append(exclude)

        return cls(path, tuple(excludes))

    @staticmethod
    def _parse_path(text: str) -> Tuple[Atom, ...]:
        atoms = []
        for atom in text.split():
            segments = tuple(s for s in atom.split('.') if s)
            if not segments:
                raise ValueError(f"Invalid scope selector atom: {atom!r}")

            atoms.append(segments)

        return tuple(atoms)

    def score(self, scopes: Tuple[Atom, ...]) -> int | None:
        """
        Score this selector against a scope path.

        Args:
            scopes: Scope path split into segments

        Returns:
            The score, or None if the selector does not match
        """
        for exclude in self.excludes:
            if _match_path(exclude, scopes) is not None:
                return None

        return _match_path(self.path, scopes)

    def __repr__(self) -> str:
        text = ' '.join('.'.join(atom) for atom in self.path)
        for exclude in self.excludes:
            text += ' - ' + ' '.join('.'.join(atom) for atom in exclude)

        return f"ScopeSelector({text!r})"


class ScopeSelectors:
    """
    A comma separated list of selector alternatives.
    """

    def __init__(self, selectors: List[ScopeSelector]) -> None:
        self.selectors = tuple(selectors)

    @classmethod
    def parse(cls, text: str) -> "ScopeSelectors":
        """
        Parse a selector list such as "comment, string.quoted".

        Empty alternatives (e.g. from a trailing comma) are ignored.

        Args:
            text: Selector list text

        Returns:
            The parsed selectors

        Raises:
            ValueError: If no alternative is present or one is malformed
        """
        if not isinstance(text, str):
            raise ValueError(f"Scope selector must be a string: {text!r}")

        selectors = [ScopeSelector.parse(part.strip()) for part in text.split(',') if part.strip()]
        if not selectors:
            raise ValueError(f"Empty scope selector: {text!r}")

        return cls(selectors)

    def score(self, scopes: ScopePath) -> int | None:
        """
        Score the best matching alternative against a scope path.

        Args:
            scopes: Scope path, outermost first

        Returns:
            The highest score of any matching alternative, or None if none match
        """
        return self.score_segments(split_scope_path(scopes))

    def score_segments(self, segments: Tuple[Atom, ...]) -> int | None:
        """Score against a scope path that has already been split into segments."""
        best: int | None = None
        for selector in self.selectors:
            score = selector.score(segments)
            if score is not None and (best is None or score > best):
                best = score

        return best

    def __repr__(self) -> str:
        return f"ScopeSelectors({list(self.selectors)!r})"


def split_scope_path(scopes: ScopePath) -> Tuple[Atom, ...]:
    """Split each scope of a path into its dotted segments."""
    return tuple(tuple(scope.split('.')) for scope in scopes)
