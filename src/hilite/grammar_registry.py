"""Registry of language grammars with lookup by extension, file name, name and first line."""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from hilite.definition_paths import expand_paths
from hilite.grammar import Context, Grammar
from hilite.grammar_loader import GrammarDefinition, GrammarLinker, parse_grammar_definition
from hilite.hilite_exceptions import GrammarLoadError, ResolutionError


PLAIN_TEXT_SCOPE = "text.plain"

BUNDLED_GRAMMARS_DIR = Path(__file__).parent / "grammars"


class GrammarRegistry:
    """
    An immutable collection of grammars sharing one context arena.

    Registries are built once and then only read, so a single registry can be
    shared by any number of highlighting sessions.
    """

    _logger = logging.getLogger("GrammarRegistry")

    def __init__(
        self,
        contexts: Tuple[Context | None, ...],
        grammars: List[Grammar],
        errors: List[GrammarLoadError] | None = None
    ) -> None:
        """
        Create a registry from linked contexts and grammars.

        Most callers should use `load`, `from_sources` or `load_defaults` instead.

        Args:
            contexts: The context arena shared by all grammars
            grammars: Grammars whose root contexts index into the arena
            errors: Load errors for definitions that were skipped
        """
        # The plain text grammar gets its own root context at the end of the arena
        plain_context = Context(name="main", grammar_scope=PLAIN_TEXT_SCOPE)
        self._contexts: Tuple[Context | None, ...] = contexts + (plain_context,)
        self._plain_text = Grammar(
            name="Plain Text",
            scope=PLAIN_TEXT_SCOPE,
            root_context=len(self._contexts) - 1,
            file_extensions=frozenset({"txt"}),
            origin="<builtin>"
        )
        self.errors: List[GrammarLoadError] = list(errors or [])

        self._by_scope: Dict[str, Grammar] = {self._plain_text.scope: self._plain_text}
        self._by_name: Dict[str, Grammar] = {self._plain_text.name.lower(): self._plain_text}
        self._by_extension: Dict[str, Grammar] = {"txt": self._plain_text}
        self._by_file_name: Dict[str, Grammar] = {}
        self._first_line_grammars: List[Grammar] = []

        for grammar in grammars:
            self._by_scope[grammar.scope] = grammar
            self._by_name[grammar.name.lower()] = grammar
            for ext in grammar.file_extensions:
                self._by_extension[ext] = grammar

            for file_name in grammar.file_names:
                self._by_file_name[file_name] = grammar

            if grammar.first_line_match is not None:
                self._first_line_grammars.append(grammar)

    @classmethod
    def from_sources(cls, sources: Iterable[Tuple[str, str]]) -> "GrammarRegistry":
        """
        Build a registry from grammar definition text.

        Malformed definitions are logged and skipped.

        Args:
            sources: (origin, YAML text) pairs; origin is used in error messages

        Returns:
            The new registry

        Raises:
            GrammarLoadError: If definitions were supplied but none of them loaded
        """
        errors: List[GrammarLoadError] = []
        definitions: List[GrammarDefinition] = []
        source_count = 0
        for origin, text in sources:
            source_count += 1
            try:
                definitions.append(parse_grammar_definition(origin, text))

            except GrammarLoadError as e:
                cls._logger.warning("Skipping grammar: %s", e)
                errors.append(e)

        linker = GrammarLinker()
        contexts, grammars = linker.link(definitions)
        errors.extend(linker.errors)

        if source_count > 0 and not grammars:
            raise GrammarLoadError(
                f"No grammars could be loaded ({len(errors)} failed)",
                {"errors": [str(e) for e in errors]}
            )

        cls._logger.debug("Loaded %d grammars, skipped %d", len(grammars), len(errors))
        return cls(contexts, grammars, errors)

    @classmethod
    def load(cls, paths: Iterable[str | Path]) -> "GrammarRegistry":
        """
        Build a registry from grammar definition files and directories.

        Directories are scanned (non-recursively) for `.yaml` and `.yml` files.
        Files that cannot be read are logged and skipped like malformed ones.

        Args:
            paths: Files or directories to load

        Returns:
            The new registry

        Raises:
            GrammarLoadError: If definitions were found but none of them loaded
        """
        sources: List[Tuple[str, str]] = []
        read_errors: List[GrammarLoadError] = []
        for path in expand_paths(paths, (".yaml", ".yml")):
            try:
                sources.append((str(path), path.read_text(encoding="utf-8")))

            except (OSError, UnicodeDecodeError) as e:
                error = GrammarLoadError(f"{path}: cannot read grammar: {e}", {"origin": str(path)})
                cls._logger.warning("Skipping grammar: %s", error)
                read_errors.append(error)

        if read_errors and not sources:
            raise GrammarLoadError(
                f"No grammars could be loaded ({len(read_errors)} failed)",
                {"errors": [str(e) for e in read_errors]}
            )

        registry = cls.from_sources(sources)
        registry.errors[:0] = read_errors
        return registry

    @classmethod
    def load_defaults(cls, extra_paths: Iterable[str | Path] = ()) -> "GrammarRegistry":
        """
        Build a registry from the bundled grammars plus any extra files or directories.

        Extra grammars are loaded after the bundled ones, so a grammar with the same
        base scope replaces the bundled version.

        Args:
            extra_paths: Additional grammar files or directories

        Returns:
            The new registry
        """
        return cls.load([BUNDLED_GRAMMARS_DIR, *extra_paths])

    def context(self, index: int) -> Context:
        """
        Get a context from the arena.

        Args:
            index: Arena index

        Returns:
            The context

        Raises:
            ResolutionError: If the index does not refer to a loaded context
        """
        if index < 0 or index >= len(self._contexts):
            raise ResolutionError(f"Context index {index} is outside the grammar registry", {"index": index})

        context = self._contexts[index]
        if context is None:
            raise ResolutionError(f"Context index {index} belongs to a grammar that failed to load", {"index": index})

        return context

    def owns(self, grammar: Grammar) -> bool:
        """Determine if a grammar was loaded by this registry."""
        return self._by_scope.get(grammar.scope) is grammar

    def plain_text_grammar(self) -> Grammar:
        """Get the fallback grammar that leaves text undifferentiated."""
        return self._plain_text

    def grammars(self) -> List[Grammar]:
        """Get all grammars, sorted by name."""
        return sorted(self._by_scope.values(), key=lambda g: g.name.lower())

    def find_by_scope(self, scope: str) -> Grammar | None:
        """Find a grammar by its base scope, e.g. "source.python"."""
        return self._by_scope.get(scope)

    def find_by_name(self, name: str) -> Grammar | None:
        """
        Find a grammar by language name, base scope or extension.

        Args:
            name: e.g. "Python", "source.python" or "py"

        Returns:
            The grammar, or None if there is no match
        """
        if not name:
            return None

        normalized = name.strip()
        grammar = self._by_name.get(normalized.lower())
        if grammar is not None:
            return grammar

        grammar = self._by_scope.get(normalized)
        if grammar is not None:
            return grammar

        return self._by_extension.get(normalized.lstrip('.').lower())

    def find_by_extension(self, name: str) -> Grammar | None:
        """
        Find a grammar by file extension or file name.

        Args:
            name: An extension ("py" or ".py"), a file name ("Makefile") or a path

        Returns:
            The grammar, or None if there is no match
        """
        if not name:
            return None

        base_name = os.path.basename(name)
        grammar = self._by_file_name.get(base_name)
        if grammar is not None:
            return grammar

        ext = os.path.splitext(base_name)[1]
        if not ext:
            # A bare extension such as "py", or a dot file such as ".bashrc"
            ext = base_name

        return self._by_extension.get(ext.lstrip('.').lower())

    def find_by_first_line(self, text: str) -> Grammar | None:
        """
        Find a grammar from the first line of a file, e.g. a `#!` line.

        Args:
            text: The first line (any following lines are ignored)

        Returns:
            The first grammar whose first-line pattern matches, or None
        """
        if not text:
            return None

        first_line = text.split('\n', 1)[0]
        for grammar in self._first_line_grammars:
            if grammar.matches_first_line(first_line):
                return grammar

        return None

    def find_for_file(self, path: str, first_line: str = "") -> Grammar | None:
        """
        Find a grammar for a file, trying its name first and then its first line.

        Args:
            path: File path
            first_line: First line of the file's content

        Returns:
            The grammar, or None if neither heuristic matches
        """
        grammar = self.find_by_extension(path)
        if grammar is not None:
            return grammar

        return self.find_by_first_line(first_line)
