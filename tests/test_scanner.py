import zipfile

import pytest
import yaml

from plugin_updater.scanner import read_plugin_description, scan_existing_jars
from plugin_updater.update.interfaces import PluginConfig
from plugin_updater.update.registry import Registry
from plugin_updater.update.sources import SourceType

pytestmark = [pytest.mark.unit, pytest.mark.configuration]


def _jar(path, description_name="plugin.yml", description=""):
    with zipfile.ZipFile(path, "w") as jar:
        jar.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
        if description_name:
            jar.writestr(description_name, description)
    return path


@pytest.fixture
def registry(source_context):
    return Registry.with_builtin_sources(source_context)


class TestScanExistingJars:
    """Test scan_existing_jars function."""

    def test_suggests_sources_from_links(self, target_dir, registry, plugin_log):
        _jar(
            target_dir / "Essentials.jar",
            description=(
                "name: Essentials\n"
                "website: https://hangar.papermc.io/EssentialsX/Essentials\n"
            ),
        )
        _jar(
            target_dir / "Chat.JAR",
            description_name="paper-plugin.yml",
            description="website: https://www.spigotmc.org/resources/chat-plugin.4567/\n",
        )
        _jar(
            target_dir / "Proxy.jar",
            description_name="bungee.yml",
            description="# source https://github.com/someone/proxy-plugin#readme\n",
        )

        suggestions = scan_existing_jars(target_dir, registry)

        by_plugin = {suggestion.plugin: suggestion for suggestion in suggestions}
        assert by_plugin["Essentials"].source is SourceType.HANGAR
        assert by_plugin["Essentials"].parameters == {"user": "EssentialsX", "project": "Essentials"}
        assert by_plugin["Chat"].source is SourceType.SPIGOT
        assert by_plugin["Chat"].parameters == {"resourceid": "4567"}
        assert by_plugin["Proxy"].source is SourceType.GITHUB
        assert by_plugin["Proxy"].parameters == {"user": "someone", "repository": "proxy-plugin"}
        assert "Found link to a Hangar project in Essentials.jar" in plugin_log.text

    def test_snippet_is_valid_configuration(self, target_dir, registry):
        _jar(
            target_dir / "Essentials.jar",
            description="website: https://hangar.papermc.io/EssentialsX/Essentials\n",
        )

        suggestion = scan_existing_jars(target_dir, registry)[0]

        assert yaml.safe_load(suggestion.to_yaml()) == {
            "plugins": {
                "Essentials": {
                    "source": "hangar",
                    "parameters": {"user": "EssentialsX", "project": "Essentials"},
                }
            }
        }

    def test_configured_plugins_are_skipped(self, target_dir, registry):
        registry.add_plugin(
            PluginConfig("Essentials", registry.get_source("hangar"), parameters={"user": "x"})
        )
        _jar(
            target_dir / "essentials.jar",
            description="website: https://hangar.papermc.io/EssentialsX/Essentials\n",
        )

        assert scan_existing_jars(target_dir, registry) == []

    def test_ignores_other_files_and_jars_without_links(self, target_dir, registry):
        (target_dir / "Plugin.jar-1.0").write_bytes(b"versioned")
        (target_dir / "versions.yaml").write_text("plugins: {}\n")
        _jar(target_dir / "Quiet.jar", description="name: Quiet\n")
        _jar(target_dir / "Library.jar", description_name=None)

        assert scan_existing_jars(target_dir, registry) == []

    def test_broken_jar_is_logged(self, target_dir, registry, plugin_log):
        (target_dir / "Broken.jar").write_bytes(b"not a zip")

        assert scan_existing_jars(target_dir, registry) == []
        assert "Error while trying to check content of Broken.jar" in plugin_log.text


class TestReadPluginDescription:
    """Test read_plugin_description function."""

    def test_prefers_plugin_yml(self, tmp_path):
        path = tmp_path / "a.jar"
        with zipfile.ZipFile(path, "w") as jar:
            jar.writestr("bungee.yml", "name: bungee")
            jar.writestr("plugin.yml", "name: bukkit")
        assert read_plugin_description(path) == "name: bukkit"

    def test_none_without_description(self, tmp_path):
        assert read_plugin_description(_jar(tmp_path / "a.jar", description_name=None)) is None
