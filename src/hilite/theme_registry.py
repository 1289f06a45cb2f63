"""Registry of colour themes with lookup by name."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from hilite.definition_paths import expand_paths
from hilite.hilite_exceptions import ThemeLoadError
from hilite.theme import Theme, parse_theme


DEFAULT_THEME_NAME = "base16-ocean.dark"

BUNDLED_THEMES_DIR = Path(__file__).parent / "themes"


class ThemeRegistry:
    """
    An immutable collection of themes keyed by name.
    """

    _logger = logging.getLogger("ThemeRegistry")

    def __init__(self, themes: List[Theme], errors: List[ThemeLoadError] | None = None) -> None:
        """
        Create a registry.

        Args:
            themes: Themes to register; later themes replace earlier ones with the same name
            errors: Load errors for definitions that were skipped
        """
        self._themes: Dict[str, Theme] = {}
        for theme in themes:
            if theme.name in self._themes:
                self._logger.info(
                    "Theme %s from %s replaces %s", theme.name, theme.origin, self._themes[theme.name].origin
                )

            self._themes[theme.name] = theme

        self.errors: List[ThemeLoadError] = list(errors or [])

    @classmethod
    def from_sources(cls, sources: Iterable[Tuple[str, str]]) -> "ThemeRegistry":
        """
        Build a registry from theme definition text.

        Malformed themes are logged and skipped.

        Args:
            sources: (origin, JSON text) pairs; origin is used in error messages

        Returns:
            The new registry

        Raises:
            ThemeLoadError: If no theme could be loaded
        """
        themes: List[Theme] = []
        errors: List[ThemeLoadError] = []
        for origin, text in sources:
            try:
                themes.append(parse_theme(origin, text))

            except ThemeLoadError as e:
                cls._logger.warning("Skipping theme: %s", e)
                errors.append(e)

        if not themes:
            raise ThemeLoadError(
                f"No themes could be loaded ({len(errors)} failed)",
                {"errors": [str(e) for e in errors]}
            )

        cls._logger.debug("Loaded %d themes, skipped %d", len(themes), len(errors))
        return cls(themes, errors)

    @classmethod
    def load(cls, paths: Iterable[str | Path]) -> "ThemeRegistry":
        """
        Build a registry from theme files and directories.

        Directories are scanned (non-recursively) for `.json` files.

        Args:
            paths: Files or directories to load

        Returns:
            The new registry

        Raises:
            ThemeLoadError: If no theme could be loaded
        """
        sources: List[Tuple[str, str]] = []
        read_errors: List[ThemeLoadError] = []
        for path in expand_paths(paths, (".json",)):
            try:
                sources.append((str(path), path.read_text(encoding="utf-8")))

            except (OSError, UnicodeDecodeError) as e:
                error = ThemeLoadError(f"{path}: cannot read theme: {e}", {"origin": str(path)})
                cls._logger.warning("Skipping theme: %s", error)
                read_errors.append(error)

        if read_errors and not sources:
            raise ThemeLoadError(
                f"No themes could be loaded ({len(read_errors)} failed)",
                {"errors": [str(e) for e in read_errors]}
            )

        registry = cls.from_sources(sources)
        registry.errors[:0] = read_errors
        return registry

    @classmethod
    def load_defaults(cls, extra_paths: Iterable[str | Path] = ()) -> "ThemeRegistry":
        """
        Build a registry from the bundled themes plus any extra files or directories.

        Args:
            extra_paths: Additional theme files or directories

        Returns:
            The new registry
        """
        return cls.load([BUNDLED_THEMES_DIR, *extra_paths])

    def find_by_name(self, name: str) -> Theme | None:
        """
        Find a theme by name.

        Args:
            name: Theme name, e.g. "base16-ocean.dark"

        Returns:
            The theme, or None if there is no theme with that name
        """
        return self._themes.get(name)

    def names(self) -> List[str]:
        """Get the names of all themes, sorted."""
        return sorted(self._themes)

    def __len__(self) -> int:
        return len(self._themes)
