"""
Line-by-line tokenizer driven by grammar contexts.

The tokenizer is a state machine.  Its state is a stack of contexts; the
context on top of the stack decides which rules are tried.  Each line is
scanned left to right: at every position the earliest match among the top
context's rules is taken (the first declared rule wins a tie), the text before
it is emitted with the current scopes, and the rule's effect on the stack is
applied.  Whatever is left on the stack at the end of a line carries into the
next line.
"""

from dataclasses import dataclass
import logging
import re
from typing import Iterator, List, Tuple

from hilite.grammar import BoundGroups, Captures, Context, Grammar, Rule, RuleKind, ScopePath
from hilite.grammar_registry import GrammarRegistry
from hilite.hilite_exceptions import ResolutionError


@dataclass(frozen=True)
class Token:
    """
    A piece of a line with its syntactic classification.

    Attributes:
        scopes: Scope path, outermost first; the first entry is the grammar's base scope
        value: The text of the token
        start: Offset of the token within the line
    """
    scopes: ScopePath
    value: str
    start: int

    @property
    def end(self) -> int:
        """Offset just past the end of the token."""
        return self.start + len(self.value)


@dataclass(frozen=True)
class StackFrame:
    """
    An active context.

    Attributes:
        context: Arena index of the context
        groups: Groups captured by the match that pushed the context, for back-references
    """
    context: int
    groups: BoundGroups = ()


class ParseState:
    """
    The context stack carried from one line to the next.

    The root frame (the grammar's main context) is always present.  A parse state
    belongs to exactly one highlighting session and is changed in place as lines
    are tokenized.
    """

    def __init__(self, grammar: Grammar, registry: GrammarRegistry) -> None:
        """
        Create the state for the start of a file.

        Args:
            grammar: The grammar used for the file
            registry: The registry the grammar was loaded from
        """
        self.grammar = grammar
        self.registry = registry
        self.stack: List[StackFrame] = [StackFrame(grammar.root_context)]

    @property
    def depth(self) -> int:
        """Number of contexts open above the grammar's main context."""
        return len(self.stack) - 1

    def copy(self) -> "ParseState":
        """Get an independent snapshot of this state."""
        state = ParseState(self.grammar, self.registry)
        state.stack = list(self.stack)
        return state

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseState):
            return NotImplemented

        return (
            self.grammar == other.grammar and
            self.registry is other.registry and
            self.stack == other.stack
        )

    def __repr__(self) -> str:
        return f"ParseState(grammar={self.grammar.scope!r}, stack={self.stack!r})"


class Tokenizer:
    """
    Tokenizes lines of text using the grammars of one registry.

    A tokenizer holds no per-file state, so one instance can serve any number of
    parse states.
    """

    # Zero-length pushes and pops allowed at a single position before only
    # non-empty matches are accepted there
    MAX_EMPTY_TRANSITIONS = 16

    _logger = logging.getLogger("Tokenizer")

    def __init__(self, registry: GrammarRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> GrammarRegistry:
        """The registry whose grammars this tokenizer understands."""
        return self._registry

    def initial_state(self, grammar: Grammar) -> ParseState:
        """
        Create the parse state for the start of a file.

        Args:
            grammar: Grammar to tokenize with

        Returns:
            A new parse state

        Raises:
            ResolutionError: If the grammar was not loaded by this tokenizer's registry
        """
        if not self._registry.owns(grammar):
            raise ResolutionError(
                f"Grammar '{grammar.scope}' does not belong to this registry",
                {"grammar": grammar.scope}
            )

        return ParseState(grammar, self._registry)

    def _content_scopes(self, state: ParseState) -> ScopePath:
        scopes: ScopePath = (state.grammar.scope,)
        for frame in state.stack:
            context = self._registry.context(frame.context)
            scopes += context.meta_scope + context.meta_content_scope

        return scopes

    def _find_match(
        self,
        context: Context,
        groups: BoundGroups,
        line: str,
        pos: int,
        allow_empty: bool
    ) -> Tuple[Rule, re.Match[str]] | None:
        """
        Find the earliest match among a context's rules.

        Args:
            context: The active context
            groups: Groups bound when the context was pushed
            line: The line being tokenized
            pos: Position to search from
            allow_empty: Whether zero-length pushes and pops are acceptable

        Returns:
            The winning rule and its match, or None if no rule matches
        """
        best: Tuple[Rule, re.Match[str]] | None = None
        for rule in context.rules:
            regex = rule.regex(groups)
            match = regex.search(line, pos)
            while match is not None and match.end() == match.start():
                if allow_empty and rule.kind != RuleKind.MATCH:
                    break

                if match.start() >= len(line):
                    match = None
                    break

                match = regex.search(line, match.start() + 1)

            if match is None:
                continue

            if best is None or match.start() < best[1].start():
                best = (rule, match)
                if match.start() == pos:
                    break

        return best

    def _match_tokens(self, match: re.Match[str], scopes: ScopePath, captures: Captures) -> Iterator[Token]:
        """
        Split a match into tokens according to its capture groups.

        Each piece of the match carries the scopes of every capture group covering it.

        Args:
            match: The regular expression match
            scopes: Scopes for the whole match
            captures: Capture group scopes

        Yields:
            Tokens covering exactly the matched text
        """
        line = match.string
        start, end = match.span()
        if start == end:
            return

        spans = []
        for group, group_scopes in captures:
            if group > match.re.groups:
                continue

            group_start, group_end = match.span(group)
            group_start = max(group_start, start)
            group_end = min(group_end, end)
            if group_start < group_end:
                spans.append((group_start, group_end, group_scopes))

        if not spans:
            yield Token(scopes, line[start:end], start)
            return

        boundaries = sorted({start, end} | {s for s, _, _ in spans} | {e for _, e, _ in spans})
        for piece_start, piece_end in zip(boundaries, boundaries[1:]):
            extra = tuple(
                scope
                for s, e, group_scopes in spans if s <= piece_start and piece_end <= e
                for scope in group_scopes
            )
            yield Token(scopes + extra, line[piece_start:piece_end], piece_start)

    def iter_tokens(self, state: ParseState, line: str) -> Iterator[Token]:
        """
        Tokenize one line lazily.

        The parse state is advanced as tokens are produced; it describes the start
        of the next line once the iterator is exhausted.

        Args:
            state: The state at the start of the line, updated in place
            line: The line, including its terminator if it has one

        Yields:
            Tokens that together cover the whole line, in order

        Raises:
            ResolutionError: If the state was created for a different registry
        """
        if state.registry is not self._registry:
            raise ResolutionError(
                f"Parse state for '{state.grammar.scope}' belongs to a different registry",
                {"grammar": state.grammar.scope}
            )

        pos = 0
        line_len = len(line)
        empty_transitions = 0
        content_scopes = self._content_scopes(state)

        while pos < line_len:
            frame = state.stack[-1]
            context = self._registry.context(frame.context)
            found = self._find_match(
                context, frame.groups, line, pos, empty_transitions < self.MAX_EMPTY_TRANSITIONS
            )

            if found is None:
                yield Token(content_scopes, line[pos:], pos)
                break

            rule, match = found
            if match.start() > pos:
                yield Token(content_scopes, line[pos:match.start()], pos)
                empty_transitions = 0

            if rule.kind == RuleKind.PUSH:
                target = self._registry.context(rule.push_context)
                yield from self._match_tokens(match, content_scopes + target.meta_scope + rule.scopes, rule.captures)
                state.stack.append(StackFrame(rule.push_context, match.groups()))
                content_scopes += target.meta_scope + target.meta_content_scope

            elif rule.kind == RuleKind.POP and state.depth > 0:
                content_len = len(context.meta_content_scope)
                delimiter_scopes = content_scopes[:len(content_scopes) - content_len]
                yield from self._match_tokens(match, delimiter_scopes + rule.scopes, rule.captures)
                state.stack.pop()
                content_scopes = self._content_scopes(state)

            else:
                # Plain matches, and pops in the main context which has nothing to pop
                yield from self._match_tokens(match, content_scopes + rule.scopes, rule.captures)

            if match.end() == match.start():
                empty_transitions += 1
                if empty_transitions == self.MAX_EMPTY_TRANSITIONS:
                    self._logger.debug(
                        "Too many empty transitions at offset %d in '%s', context '%s'",
                        pos,
                        state.grammar.scope,
                        context.name
                    )

            else:
                empty_transitions = 0

            pos = match.end()

    def tokenize_line(self, state: ParseState, line: str) -> List[Token]:
        """
        Tokenize one line.

        Args:
            state: The state at the start of the line, updated in place
            line: The line, including its terminator if it has one

        Returns:
            Tokens that together cover the whole line, in order
        """
        return list(self.iter_tokens(state, line))
