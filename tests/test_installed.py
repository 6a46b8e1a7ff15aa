import pytest
import yaml

from plugin_updater.update.installed import InstalledVersions

pytestmark = [pytest.mark.unit, pytest.mark.infrastructure]


class TestInstalledVersions:
    """Test the installed versions record."""

    def test_missing_file_is_empty(self, target_dir):
        installed = InstalledVersions.for_target(target_dir)
        assert installed.as_dict() == {}
        assert installed.path == target_dir / "versions.yaml"

    def test_load_lowercases_names(self, target_dir):
        (target_dir / "versions.yaml").write_text(
            "plugins:\n  MyPlugin: '1.2'\n  Other: 7\n  Empty:\n"
        )
        installed = InstalledVersions.for_target(target_dir)

        assert installed.get("myplugin") == "1.2"
        assert installed.get("MYPLUGIN") == "1.2"
        assert installed.get("other") == "7"
        assert installed.get("empty") is None

    def test_unquoted_versions_are_read_verbatim(self, target_dir):
        """Hand-edited values such as 1.10 are not turned into numbers."""
        (target_dir / "versions.yaml").write_text(
            "plugins:\n  MyPlugin: 1.10\n  Other: 2.0\n  Build: 007\n"
        )
        installed = InstalledVersions.for_target(target_dir)

        assert installed.as_dict() == {"myplugin": "1.10", "other": "2.0", "build": "007"}

    @pytest.mark.parametrize(
        "content", ["plugins: [1, 2]", "- a\n- b\n", "plugins: {unclosed"]
    )
    def test_malformed_file_is_empty(self, target_dir, content, plugin_log):
        (target_dir / "versions.yaml").write_text(content)
        installed = InstalledVersions.for_target(target_dir)
        assert installed.as_dict() == {}
        assert plugin_log.records

    def test_set_marks_dirty_only_on_change(self, tmp_path):
        installed = InstalledVersions(tmp_path / "versions.yaml", {"a": "1"})
        installed.set("A", "1")
        assert not installed.dirty
        installed.set("A", "2")
        assert installed.dirty

    def test_flush_writes_sorted_yaml(self, tmp_path):
        path = tmp_path / "versions.yaml"
        installed = InstalledVersions(path)
        installed.set("Zeta", "2")
        installed.set("alpha", "1.0")

        assert installed.flush()
        assert not installed.dirty
        assert yaml.safe_load(path.read_text()) == {"plugins": {"alpha": "1.0", "zeta": "2"}}
        assert path.read_text().index("alpha") < path.read_text().index("zeta")

    def test_flush_without_changes_does_not_write(self, tmp_path):
        path = tmp_path / "versions.yaml"
        assert InstalledVersions(path).flush()
        assert not path.exists()

    def test_round_trip(self, target_dir):
        installed = InstalledVersions.for_target(target_dir)
        installed.set("Plugin", "1.4.2-SNAPSHOT (build 5)")
        installed.flush()

        assert InstalledVersions.for_target(target_dir).get("plugin") == "1.4.2-SNAPSHOT (build 5)"
