"""
Loading and linking of grammar definitions.

Grammar definitions are YAML documents using a subset of the sublime-syntax
format.  Loading happens in two steps:

1. Each definition is parsed on its own into a `GrammarDefinition`.
2. A `GrammarLinker` compiles all definitions together into a single arena of
   `Context` objects, resolving `push` targets to arena indices and flattening
   `include` references so that every context ends up with a plain, ordered
   rule list.  Includes may cross grammar boundaries, which is why linking is
   done for all grammars at once.

A definition that fails either step is reported and skipped; any grammar that
depends on a failed grammar is skipped too.
"""

from dataclasses import dataclass, field
import logging
import re
from typing import Any, Dict, List, Set, Tuple

import yaml

from hilite.grammar import (
    Captures, Context, Grammar, Rule, RuleKind, ScopePath, compile_pattern, count_groups,
    has_backrefs, split_scopes, substitute_backrefs
)
from hilite.hilite_exceptions import GrammarLoadError


_VARIABLE_RE = re.compile(r'\{\{(\w+)\}\}')

# Limit on nested variable references, to catch variables that refer to themselves
_MAX_VARIABLE_DEPTH = 16

_META_KEYS = {'meta_scope', 'meta_content_scope', 'meta_include_prototype'}


@dataclass
class GrammarDefinition:
    """
    A parsed, but not yet linked, grammar definition.

    Attributes:
        origin: Where the definition came from (usually a file path)
        name: Language name
        scope: Base scope of the grammar
        file_extensions: Extensions handled by the grammar
        file_names: Whole file names handled by the grammar
        first_line_match: Optional first-line pattern source
        variables: Named pattern fragments referenced as {{name}}
        contexts: Raw context entry lists keyed by context name
    """
    origin: str
    name: str
    scope: str
    file_extensions: List[str] = field(default_factory=list)
    file_names: List[str] = field(default_factory=list)
    first_line_match: str | None = None
    variables: Dict[str, str] = field(default_factory=dict)
    contexts: Dict[str, List[Any]] = field(default_factory=dict)


def _string_list(value: Any, key: str, origin: str) -> List[str]:
    if value is None:
        return []

    if not isinstance(value, list) or not all(isinstance(v, (str, int)) for v in value):
        raise GrammarLoadError(f"{origin}: '{key}' must be a list of strings", {"origin": origin, "key": key})

    return [str(v) for v in value]


def parse_grammar_definition(origin: str, text: str) -> GrammarDefinition:
    """
    Parse the YAML text of a grammar definition.

    Args:
        origin: Where the text came from, used in error messages
        text: The YAML source

    Returns:
        The parsed definition

    Raises:
        GrammarLoadError: If the YAML is invalid or required keys are missing
    """
    try:
        data = yaml.safe_load(text)

    except yaml.YAMLError as e:
        raise GrammarLoadError(f"{origin}: invalid YAML: {e}", {"origin": origin}) from e

    if not isinstance(data, dict):
        raise GrammarLoadError(f"{origin}: grammar must be a mapping", {"origin": origin})

    scope = data.get('scope')
    if not isinstance(scope, str) or not scope.strip():
        raise GrammarLoadError(f"{origin}: missing 'scope'", {"origin": origin})

    contexts = data.get('contexts')
    if not isinstance(contexts, dict) or 'main' not in contexts:
        raise GrammarLoadError(f"{origin}: missing 'main' context", {"origin": origin})

    for context_name, entries in contexts.items():
        if not isinstance(entries, list):
            raise GrammarLoadError(
                f"{origin}: context '{context_name}' must be a list",
                {"origin": origin, "context": context_name}
            )

    variables = data.get('variables') or {}
    if not isinstance(variables, dict) or not all(isinstance(v, str) for v in variables.values()):
        raise GrammarLoadError(f"{origin}: 'variables' must map names to strings", {"origin": origin})

    first_line_match = data.get('first_line_match')
    if first_line_match is not None and not isinstance(first_line_match, str):
        raise GrammarLoadError(f"{origin}: 'first_line_match' must be a string", {"origin": origin})

    scope = scope.strip()
    return GrammarDefinition(
        origin=origin,
        name=str(data.get('name') or scope.split('.')[-1]),
        scope=scope,
        file_extensions=_string_list(data.get('file_extensions'), 'file_extensions', origin),
        file_names=_string_list(data.get('file_names'), 'file_names', origin),
        first_line_match=first_line_match,
        variables={str(k): v for k, v in variables.items()},
        contexts={str(k): v for k, v in contexts.items()}
    )


@dataclass
class _Include:
    """An unresolved include of another context."""
    grammar_scope: str
    context_name: str


@dataclass
class _PendingRule:
    """A compiled rule whose push target may belong to another grammar."""
    kind: RuleKind
    pattern: str
    scopes: ScopePath
    captures: Captures
    push_target: int | Tuple[str, str] | None
    uses_backrefs: bool
    local_groups: int


@dataclass
class _PendingContext:
    name: str
    grammar_scope: str
    meta_scope: ScopePath = ()
    meta_content_scope: ScopePath = ()
    include_prototype: bool = True
    entries: List[_PendingRule | _Include] = field(default_factory=list)


class _GrammarBuilder:
    """Compiles the contexts of one grammar definition into pending contexts."""

    def __init__(self, definition: GrammarDefinition, arena: List[_PendingContext | None]) -> None:
        self.definition = definition
        self.scope = definition.scope
        self.slots: Dict[str, int] = {}
        self.owned_slots: List[int] = []
        self.dependencies: Set[str] = set()
        self.first_line_pattern: re.Pattern[str] | None = None
        self._arena = arena

    def error(self, message: str, **details: Any) -> GrammarLoadError:
        details["origin"] = self.definition.origin
        return GrammarLoadError(f"{self.definition.origin}: {message}", details)

    def _allocate(self) -> int:
        index = len(self._arena)
        self._arena.append(None)
        self.owned_slots.append(index)
        return index

    def _expand_variables(self, pattern: str, depth: int = 0) -> str:
        if depth > _MAX_VARIABLE_DEPTH:
            raise self.error(f"variables nested too deeply in '{pattern}'", pattern=pattern)

        def replace(m: re.Match[str]) -> str:
            name = m.group(1)
            if name not in self.definition.variables:
                raise self.error(f"unknown variable '{name}'", variable=name)

            return self._expand_variables(self.definition.variables[name], depth + 1)

        return _VARIABLE_RE.sub(replace, pattern)

    def _compile(self, pattern: str) -> Tuple[str, int]:
        expanded = self._expand_variables(pattern)
        try:
            # References to the entry match are checked with empty groups; they are substituted when matching
            local_groups = count_groups(expanded)
            compile_pattern(substitute_backrefs(expanded, (), local_groups))

        except re.error as e:
            raise self.error(f"invalid pattern '{expanded}': {e}", pattern=expanded) from e

        return expanded, local_groups

    def _parse_reference(self, ref: str) -> Tuple[str, str]:
        """Turn `name`, `scope:source.x` or `scope:source.x#name` into (grammar scope, context name)."""
        if ref.startswith('scope:'):
            target_scope, _, context_name = ref[len('scope:'):].partition('#')
            target_scope = target_scope.strip()
            if target_scope != self.scope:
                self.dependencies.add(target_scope)

            return target_scope, context_name or 'main'

        if ref == '$self':
            return self.scope, 'main'

        if ref not in self.definition.contexts:
            raise self.error(f"unknown context '{ref}'", context=ref)

        return self.scope, ref

    def _scopes(self, value: Any, key: str, owner: str) -> ScopePath:
        if value is None:
            return ()

        if not isinstance(value, str):
            raise self.error(f"'{key}' in context '{owner}' must be a string", context=owner, key=key)

        return split_scopes(value)

    def _parse_captures(self, value: Any, owner: str) -> Captures:
        if value is None:
            return ()

        if not isinstance(value, dict):
            raise self.error("'captures' must be a mapping")

        captures = []
        for group, scopes in value.items():
            try:
                group_index = int(group)

            except (TypeError, ValueError) as e:
                raise self.error(f"invalid capture group '{group}'") from e

            captures.append((group_index, self._scopes(scopes, "captures", owner)))

        captures.sort(key=lambda c: c[0])
        return tuple(captures)

    def _parse_push_target(self, value: Any, owner: str) -> int | Tuple[str, str]:
        if isinstance(value, str):
            target = self._parse_reference(value.strip())
            if target[0] == self.scope:
                if target[1] not in self.slots:
                    raise self.error(f"unknown context '{target[1]}'", context=target[1])

                return self.slots[target[1]]

            return target

        if isinstance(value, list):
            index = self._allocate()
            self._arena[index] = self._build_context(f"{owner}/anonymous", value)
            return index

        raise self.error(f"invalid push target in context '{owner}'", context=owner)

    def _build_rule(self, entry: Dict[str, Any], owner: str) -> _PendingRule:
        pattern = entry.get('match')
        if not isinstance(pattern, str):
            raise self.error(f"rule in context '{owner}' has no 'match'", context=owner)

        if 'push' in entry and entry.get('pop'):
            raise self.error(f"rule in context '{owner}' both pushes and pops", context=owner)

        expanded, local_groups = self._compile(pattern)
        kind = RuleKind.MATCH
        push_target: int | Tuple[str, str] | None = None
        if 'push' in entry:
            kind = RuleKind.PUSH
            push_target = self._parse_push_target(entry['push'], owner)

        elif entry.get('pop'):
            kind = RuleKind.POP

        return _PendingRule(
            kind=kind,
            pattern=expanded,
            scopes=self._scopes(entry.get('scope'), "scope", owner),
            captures=self._parse_captures(entry.get('captures'), owner),
            push_target=push_target,
            uses_backrefs=has_backrefs(expanded, local_groups),
            local_groups=local_groups
        )

    def _build_context(self, name: str, entries: List[Any]) -> _PendingContext:
        context = _PendingContext(name=name, grammar_scope=self.scope)
        for entry in entries:
            if not isinstance(entry, dict):
                raise self.error(f"invalid entry in context '{name}'", context=name)

            if entry and set(entry) <= _META_KEYS:
                if 'meta_scope' in entry:
                    context.meta_scope = self._scopes(entry['meta_scope'], "meta_scope", name)

                if 'meta_content_scope' in entry:
                    context.meta_content_scope = self._scopes(entry['meta_content_scope'], "meta_content_scope", name)

                if 'meta_include_prototype' in entry:
                    context.include_prototype = bool(entry['meta_include_prototype'])

                continue

            if 'include' in entry:
                target_scope, target_name = self._parse_reference(str(entry['include']).strip())
                context.entries.append(_Include(target_scope, target_name))
                continue

            context.entries.append(self._build_rule(entry, name))

        return context

    def build(self) -> None:
        """
        Compile every context of the definition into the arena.

        Raises:
            GrammarLoadError: If any context is malformed
        """
        for name in self.definition.contexts:
            self.slots[name] = self._allocate()

        for name, entries in self.definition.contexts.items():
            self._arena[self.slots[name]] = self._build_context(name, entries)

    def compile_first_line_match(self) -> re.Pattern[str] | None:
        """Compile the definition's first line pattern, if it has one."""
        if self.definition.first_line_match is None:
            return None

        try:
            return re.compile(self._expand_variables(self.definition.first_line_match))

        except re.error as e:
            raise self.error(f"invalid first_line_match: {e}") from e


class GrammarLinker:
    """
    Links grammar definitions into a shared arena of contexts.

    Contexts reference each other by integer index into the arena, so grammars
    that push or include each other's contexts (including themselves) need no
    object cycles.
    """

    _logger = logging.getLogger("GrammarLinker")

    def __init__(self) -> None:
        self._pending: List[_PendingContext | None] = []
        self._builders: Dict[str, _GrammarBuilder] = {}
        # Earlier definitions of a scope, used if the one that replaced them fails to link
        self._fallbacks: Dict[str, List[_GrammarBuilder]] = {}
        self._flattened: Dict[int, Tuple[Rule, ...]] = {}
        self.errors: List[GrammarLoadError] = []

    def _fail(self, builder: _GrammarBuilder, error: GrammarLoadError) -> None:
        self._logger.warning("Skipping grammar: %s", error)
        self.errors.append(error)
        fallbacks = self._fallbacks.get(builder.scope)
        if fallbacks:
            fallback = fallbacks.pop()
            self._logger.info("Keeping grammar %s from %s", builder.scope, fallback.definition.origin)
            self._builders[builder.scope] = fallback
            return

        del self._builders[builder.scope]

    def _slot_for(self, grammar_scope: str, context_name: str, origin: _GrammarBuilder) -> int:
        builder = self._builders.get(grammar_scope)
        if builder is None:
            raise origin.error(f"reference to unknown grammar '{grammar_scope}'", grammar=grammar_scope)

        slot = builder.slots.get(context_name)
        if slot is None:
            raise origin.error(
                f"reference to unknown context '{grammar_scope}#{context_name}'",
                grammar=grammar_scope,
                context=context_name
            )

        return slot

    def _resolve_rule(self, pending: _PendingRule, origin: _GrammarBuilder) -> Rule:
        push_context = -1
        if isinstance(pending.push_target, int):
            push_context = pending.push_target

        elif pending.push_target is not None:
            push_context = self._slot_for(pending.push_target[0], pending.push_target[1], origin)

        return Rule(
            kind=pending.kind,
            pattern=pending.pattern,
            scopes=pending.scopes,
            captures=pending.captures,
            push_context=push_context,
            uses_backrefs=pending.uses_backrefs,
            local_groups=pending.local_groups
        )

    def _flatten(self, slot: int, origin: _GrammarBuilder, visiting: List[int]) -> Tuple[Rule, ...]:
        """
        Produce the ordered rule list of a context with all includes expanded.

        Args:
            slot: Arena index of the context
            origin: Builder of the grammar being linked, for error reporting
            visiting: Contexts currently being expanded, to detect include cycles

        Returns:
            The flattened rules

        Raises:
            GrammarLoadError: If an include chain loops back on itself
        """
        if slot in self._flattened:
            return self._flattened[slot]

        context = self._pending[slot]
        assert context is not None, f"Unbuilt context slot {slot}"

        if slot in visiting:
            chain = [self._pending[s].name for s in visiting[visiting.index(slot):]]  # type: ignore[union-attr]
            chain.append(context.name)
            raise origin.error(f"cyclic include: {' -> '.join(chain)}", chain=chain)

        visiting.append(slot)
        rules: List[Rule] = []
        for entry in context.entries:
            if isinstance(entry, _Include):
                target = self._slot_for(entry.grammar_scope, entry.context_name, origin)
                rules.extend(self._flatten(target, origin, visiting))
                continue

            rules.append(self._resolve_rule(entry, origin))

        visiting.pop()
        result = tuple(rules)
        self._flattened[slot] = result
        return result

    def _link_grammar(self, builder: _GrammarBuilder) -> None:
        for slot in builder.owned_slots:
            self._flatten(slot, builder, [])

    def _depends_on_missing(self, builder: _GrammarBuilder) -> str | None:
        for dependency in builder.dependencies:
            if dependency not in self._builders:
                return dependency

        return None

    def link(self, definitions: List[GrammarDefinition]) -> Tuple[Tuple[Context | None, ...], List[Grammar]]:
        """
        Link grammar definitions.

        Args:
            definitions: Parsed definitions; later definitions replace earlier ones
                with the same base scope, unless they fail to load

        Returns:
            Tuple of (context arena, successfully linked grammars).  Arena slots
            belonging to grammars that failed to link are None.
        """
        candidates: Dict[str, List[_GrammarBuilder]] = {}
        for definition in definitions:
            builder = _GrammarBuilder(definition, self._pending)
            try:
                builder.build()
                builder.first_line_pattern = builder.compile_first_line_match()

            except GrammarLoadError as e:
                self._logger.warning("Skipping grammar: %s", e)
                self.errors.append(e)
                continue

            previous = candidates.setdefault(definition.scope, [])
            if previous:
                self._logger.info(
                    "Grammar %s from %s replaces %s",
                    definition.scope,
                    definition.origin,
                    previous[-1].definition.origin
                )

            previous.append(builder)

        for scope, builders in candidates.items():
            self._builders[scope] = builders.pop()
            self._fallbacks[scope] = builders

        # Resolving can expose a failure in one grammar that breaks others that use it
        changed = True
        while changed:
            changed = False
            self._flattened = {}
            for builder in list(self._builders.values()):
                missing = self._depends_on_missing(builder)
                try:
                    if missing is not None:
                        raise builder.error(f"depends on unavailable grammar '{missing}'", grammar=missing)

                    self._link_grammar(builder)

                except GrammarLoadError as e:
                    self._fail(builder, e)
                    changed = True
                    break

        live_slots = {slot for builder in self._builders.values() for slot in builder.owned_slots}
        arena: List[Context | None] = []
        for slot, pending in enumerate(self._pending):
            if slot not in live_slots or pending is None:
                arena.append(None)
                continue

            rules = self._flattened[slot]
            builder = self._builders[pending.grammar_scope]
            prototype_slot = builder.slots.get('prototype')
            if prototype_slot is not None and prototype_slot != slot and pending.include_prototype:
                rules = self._flattened[prototype_slot] + rules

            arena.append(Context(
                name=pending.name,
                grammar_scope=pending.grammar_scope,
                meta_scope=pending.meta_scope,
                meta_content_scope=pending.meta_content_scope,
                rules=rules
            ))

        grammars = []
        for builder in self._builders.values():
            definition = builder.definition
            grammars.append(Grammar(
                name=definition.name,
                scope=definition.scope,
                root_context=builder.slots['main'],
                file_extensions=frozenset(ext.lstrip('.').lower() for ext in definition.file_extensions),
                file_names=frozenset(definition.file_names),
                first_line_match=builder.first_line_pattern,
                origin=definition.origin
            ))

        return tuple(arena), grammars
