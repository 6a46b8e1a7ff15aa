import pytest

from plugin_updater.templates import file_name_placeholders, replace_placeholders

pytestmark = [pytest.mark.unit, pytest.mark.infrastructure]


class TestReplacePlaceholders:
    """Test replace_placeholders function."""

    def test_replaces_all_occurrences(self):
        result = replace_placeholders("%a%/%b%/%a%", {"a": "x", "b": "y"})
        assert result == "x/y/x"

    def test_unknown_tokens_stay(self):
        assert replace_placeholders("%user%/%missing%", {"user": "me"}) == "me/%missing%"

    def test_percent_encoding_passes_through(self):
        """Percent sequences such as %2F are not placeholders."""
        result = replace_placeholders(
            "%apiurl%projects/%user%%2F%repository%/releases",
            {"apiurl": "https://gitlab.com/api/v4/", "user": "me", "repository": "repo"},
        )
        assert result == "https://gitlab.com/api/v4/projects/me%2Frepo/releases"

    def test_none_becomes_empty(self):
        assert replace_placeholders("a%x%b", {"x": None}) == "ab"

    def test_no_values(self):
        assert replace_placeholders("%name%", {}) == "%name%"


class TestFileNamePlaceholders:
    """Test file_name_placeholders function."""

    def test_version_is_sanitized(self):
        values = file_name_placeholders("MyPlugin", "1.2.3-SNAPSHOT")
        assert values == {
            "name": "MyPlugin",
            "version": "1.2.3",
            "rawversion": "1.2.3-SNAPSHOT",
        }
