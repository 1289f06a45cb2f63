"""Tests for theme parsing."""

import json

import pytest

from hilite.hilite_exceptions import ThemeLoadError
from hilite.style import Color, FontStyle
from hilite.theme import DEFAULT_BACKGROUND, DEFAULT_FOREGROUND, parse_theme, theme_from_dict


class TestThemeParse:
    """Test building themes from definitions."""

    def test_parse_theme(self, demo_theme):
        """Test that the default style and rules are read in order."""
        assert demo_theme.name == "demo-theme"
        assert demo_theme.default.foreground == Color(0xc0, 0xc0, 0xc0)
        assert demo_theme.default.background == Color(0x10, 0x10, 0x10)
        assert demo_theme.default.font_style == FontStyle.NONE
        assert len(demo_theme.rules) == 8

        comment = demo_theme.rules[0]
        assert comment.foreground == Color(0x80, 0x80, 0x80)
        assert comment.background is None
        assert comment.font_style == FontStyle.ITALIC

    def test_missing_settings_use_defaults(self):
        """Test that a theme without settings gets the fallback colours."""
        theme = theme_from_dict("t.json", {"name": "bare"})
        assert theme.default.foreground == DEFAULT_FOREGROUND
        assert theme.default.background == DEFAULT_BACKGROUND
        assert theme.rules == ()

    def test_null_sections_use_defaults(self):
        """Test that null settings and rules are treated as absent."""
        theme = theme_from_dict("t.json", {"name": "t", "settings": None, "rules": None})
        assert theme.default.foreground == DEFAULT_FOREGROUND
        assert theme.rules == ()

    def test_empty_font_style_is_set(self):
        """Test that an empty fontStyle clears the style rather than leaving it unset."""
        theme = theme_from_dict("t.json", {"name": "t", "rules": [{"scope": "a", "fontStyle": ""}]})
        assert theme.rules[0].font_style == FontStyle.NONE

    @pytest.mark.parametrize("data,message", [
        ([], "must be an object"),
        ({}, "missing theme 'name'"),
        ({"name": "t", "settings": []}, "'settings' must be an object"),
        ({"name": "t", "settings": 0}, "'settings' must be an object"),
        ({"name": "t", "settings": {"foreground": "red"}}, "Invalid colour"),
        ({"name": "t", "rules": {}}, "'rules' must be a list"),
        ({"name": "t", "rules": ""}, "'rules' must be a list"),
        ({"name": "t", "rules": ["comment"]}, "rule 0 must be an object"),
        ({"name": "t", "rules": [{"scope": "(a)"}]}, "rule 0"),
        ({"name": "t", "rules": [{"foreground": "#fff"}]}, "rule 0"),
        ({"name": "t", "rules": [{"scope": "a", "fontStyle": "blink"}]}, "Unknown font style"),
    ])
    def test_malformed(self, data, message):
        """Test that malformed definitions are rejected with a useful message."""
        with pytest.raises(ThemeLoadError) as exc_info:
            theme_from_dict("t.json", data)

        assert message in str(exc_info.value)
        assert exc_info.value.error_details["origin"] == "t.json"

    def test_invalid_json(self):
        """Test that a JSON syntax error is reported."""
        with pytest.raises(ThemeLoadError, match="invalid JSON"):
            parse_theme("t.json", "{not json")

    def test_round_trip_through_json(self):
        """Test that parse_theme accepts the JSON text of a definition."""
        theme = parse_theme("t.json", json.dumps({"name": " spaced "}))
        assert theme.name == "spaced"
        assert theme.origin == "t.json"
