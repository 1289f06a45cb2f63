"""Colour themes: scope selector rules mapped to styles."""

from dataclasses import dataclass
import json
from typing import Any, Dict, Tuple

from hilite.hilite_exceptions import ThemeLoadError
from hilite.scope_selector import ScopeSelectors
from hilite.style import Color, FontStyle, Style


DEFAULT_FOREGROUND = Color(0xff, 0xff, 0xff)
DEFAULT_BACKGROUND = Color(0x00, 0x00, 0x00)


@dataclass(frozen=True)
class ThemeRule:
    """
    One theme rule.  Attributes left as None are not set by this rule.

    Attributes:
        selector: Scopes the rule applies to
        foreground: Text colour
        background: Background colour
        font_style: Font style flags
        name: Optional descriptive name
    """
    selector: ScopeSelectors
    foreground: Color | None = None
    background: Color | None = None
    font_style: FontStyle | None = None
    name: str = ""


@dataclass(frozen=True)
class Theme:
    """
    A named colour theme.

    Attributes:
        name: Theme name used for lookup
        default: Style for text that no rule matches
        rules: Rules in declaration order
        origin: Where the definition was loaded from
    """
    name: str
    default: Style
    rules: Tuple[ThemeRule, ...] = ()
    origin: str = ""


def _color(value: Any, where: str, origin: str) -> Color | None:
    if value is None:
        return None

    try:
        return Color.parse(value)

    except ValueError as e:
        raise ThemeLoadError(f"{origin}: {where}: {e}", {"origin": origin}) from e


def _font_style(value: Any, where: str, origin: str) -> FontStyle | None:
    if value is None:
        return None

    try:
        return FontStyle.parse(value)

    except ValueError as e:
        raise ThemeLoadError(f"{origin}: {where}: {e}", {"origin": origin}) from e


def theme_from_dict(origin: str, data: Dict[str, Any]) -> Theme:
    """
    Build a theme from its decoded JSON representation.

    Args:
        origin: Where the data came from, used in error messages
        data: The decoded theme definition

    Returns:
        The theme

    Raises:
        ThemeLoadError: If the definition is malformed
    """
    if not isinstance(data, dict):
        raise ThemeLoadError(f"{origin}: theme must be an object", {"origin": origin})

    name = data.get('name')
    if not isinstance(name, str) or not name.strip():
        raise ThemeLoadError(f"{origin}: missing theme 'name'", {"origin": origin})

    settings = data.get('settings')
    if settings is None:
        settings = {}

    if not isinstance(settings, dict):
        raise ThemeLoadError(f"{origin}: 'settings' must be an object", {"origin": origin})

    default = Style(
        foreground=_color(settings.get('foreground'), "settings", origin) or DEFAULT_FOREGROUND,
        background=_color(settings.get('background'), "settings", origin) or DEFAULT_BACKGROUND,
        font_style=_font_style(settings.get('fontStyle'), "settings", origin) or FontStyle.NONE
    )

    raw_rules = data.get('rules')
    if raw_rules is None:
        raw_rules = []

    if not isinstance(raw_rules, list):
        raise ThemeLoadError(f"{origin}: 'rules' must be a list", {"origin": origin})

    rules = []
    for i, raw in enumerate(raw_rules):
        where = f"rule {i}"
        if not isinstance(raw, dict):
            raise ThemeLoadError(f"{origin}: {where} must be an object", {"origin": origin, "rule": i})

        try:
            selector = ScopeSelectors.parse(raw.get('scope'))

        except ValueError as e:
            raise ThemeLoadError(f"{origin}: {where}: {e}", {"origin": origin, "rule": i}) from e

        rules.append(ThemeRule(
            selector=selector,
            foreground=_color(raw.get('foreground'), where, origin),
            background=_color(raw.get('background'), where, origin),
            font_style=_font_style(raw.get('fontStyle'), where, origin),
            name=str(raw.get('name', ""))
        ))

    return Theme(name=name.strip(), default=default, rules=tuple(rules), origin=origin)


def parse_theme(origin: str, text: str) -> Theme:
    """
    Parse the JSON text of a theme definition.

    Args:
        origin: Where the text came from, used in error messages
        text: The JSON source

    Returns:
        The theme

    Raises:
        ThemeLoadError: If the JSON is invalid or the definition is malformed
    """
    try:
        data = json.loads(text)

    except json.JSONDecodeError as e:
        raise ThemeLoadError(f"{origin}: invalid JSON: {e}", {"origin": origin}) from e

    return theme_from_dict(origin, data)
