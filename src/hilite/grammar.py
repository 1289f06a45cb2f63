"""Grammar data model: rules, contexts and grammars."""

from dataclasses import dataclass, field
from enum import IntEnum, auto
import functools
import re
from typing import FrozenSet, Pattern, Tuple


# Scope names applied to a token, outermost first
ScopePath = Tuple[str, ...]

# Capture group number paired with the scopes for that group
Captures = Tuple[Tuple[int, ScopePath], ...]

# Text captured by the match that pushed a context (None for non-participating groups)
BoundGroups = Tuple[str | None, ...]

_BACKREF_RE = re.compile(r'\\(.)', re.DOTALL)

compile_pattern = functools.lru_cache(maxsize=1024)(re.compile)


def has_backrefs(pattern: str, local_groups: int = 0) -> bool:
    """
    Determine if a pattern refers to groups captured by the match that pushed its context.

    A back-reference to a group the pattern defines itself is an ordinary
    regular expression back-reference, not a reference to the entry match.

    Args:
        pattern: Regular expression source
        local_groups: Number of groups the pattern defines itself

    Returns:
        True if the pattern contains a `\\N` escape for some N above `local_groups`
    """
    return any(
        m.group(1) in '123456789' and int(m.group(1)) > local_groups
        for m in _BACKREF_RE.finditer(pattern)
    )


def count_groups(pattern: str) -> int:
    """
    Count the groups a pattern defines itself.

    Raises:
        re.error: If the pattern does not compile
    """
    return compile_pattern(substitute_backrefs(pattern, ())).groups


def substitute_backrefs(pattern: str, groups: BoundGroups, local_groups: int = 0) -> str:
    """
    Replace `\\1` to `\\9` in a pattern with the escaped text of previously captured groups.

    Groups that did not participate, or do not exist, are replaced by nothing.
    References to groups the pattern defines itself are left alone.

    Args:
        pattern: Regular expression source
        groups: Captured groups from the entry match; index 0 is group 1
        local_groups: Number of groups the pattern defines itself

    Returns:
        The pattern with back-references replaced by literal text
    """
    def replace(m: re.Match[str]) -> str:
        ch = m.group(1)
        if ch not in '123456789' or int(ch) <= local_groups:
            return m.group(0)

        index = int(ch) - 1
        if index >= len(groups) or groups[index] is None:
            return ''

        return re.escape(groups[index])

    return _BACKREF_RE.sub(replace, pattern)


class RuleKind(IntEnum):
    """What a rule does to the context stack when it matches."""
    MATCH = auto()
    PUSH = auto()
    POP = auto()


@dataclass(frozen=True)
class Rule:
    """
    A single pattern rule within a context.

    Attributes:
        kind: Whether the rule stays, pushes a context or pops the current one
        pattern: Regular expression source, after variable expansion
        scopes: Scopes applied to the whole matched text
        captures: Extra scopes for individual capture groups
        push_context: Arena index of the context to push (PUSH rules only)
        uses_backrefs: True if the pattern needs the entry match's groups
        local_groups: Number of groups the pattern defines itself
    """
    kind: RuleKind
    pattern: str
    scopes: ScopePath = ()
    captures: Captures = ()
    push_context: int = -1
    uses_backrefs: bool = False
    local_groups: int = 0

    def regex(self, groups: BoundGroups) -> Pattern[str]:
        """
        Get the compiled regular expression for this rule.

        Args:
            groups: Groups captured by the match that pushed the current context

        Returns:
            The compiled pattern
        """
        if self.uses_backrefs:
            return compile_pattern(substitute_backrefs(self.pattern, groups, self.local_groups))

        return compile_pattern(self.pattern)


@dataclass(frozen=True)
class Context:
    """
    A named set of rules that is active while it is on the top of the stack.

    Attributes:
        name: Context name (anonymous contexts are named after their parent)
        grammar_scope: Base scope of the grammar that defines this context
        meta_scope: Scopes applied to all text in the context, including delimiters
        meta_content_scope: Scopes applied to the text inside the delimiters only
        rules: Ordered rules, with includes already flattened
    """
    name: str
    grammar_scope: str
    meta_scope: ScopePath = ()
    meta_content_scope: ScopePath = ()
    rules: Tuple[Rule, ...] = ()


@dataclass(frozen=True)
class Grammar:
    """
    A language grammar.

    Attributes:
        name: Human readable language name, e.g. "Python"
        scope: Base scope for every token, e.g. "source.python"
        root_context: Arena index of the grammar's `main` context
        file_extensions: Extensions (without leading dot) handled by this grammar
        file_names: Whole file names handled by this grammar, e.g. "Makefile"
        first_line_match: Pattern tested against the first line of a file
        origin: Where the definition was loaded from
    """
    name: str
    scope: str
    root_context: int
    file_extensions: FrozenSet[str] = frozenset()
    file_names: FrozenSet[str] = frozenset()
    first_line_match: Pattern[str] | None = field(default=None, compare=False)
    origin: str = ""

    def matches_first_line(self, line: str) -> bool:
        """
        Determine if the first line of a file identifies this grammar.

        Args:
            line: First line of the file

        Returns:
            True if the grammar's first line pattern matches
        """
        if self.first_line_match is None:
            return False

        return self.first_line_match.search(line) is not None


def split_scopes(s: str | None) -> ScopePath:
    """Split a whitespace separated scope string into a scope path."""
    if not s:
        return ()

    return tuple(s.split())
