"""
Constants and configuration values for plugin-updater.

This module contains all hardcoded values, URL templates, timeouts, and other
constants used throughout the application.
"""

APP_NAME = "plugin-updater"

# Source API URL templates (placeholders are expanded with plugin parameters)
GITHUB_RELEASES_URL = "https://api.github.com/repos/%user%/%repository%/releases"
GITHUB_API_ACCEPT = "application/vnd.github.v3+json"
GITLAB_API_URL = "https://gitlab.com/api/v4/"
GITLAB_RELEASES_URL = "%apiurl%projects/%user%%2F%repository%/releases"
HANGAR_VERSIONS_URL = (
    "https://hangar.papermc.io/api/v1/projects/%user%/%project%/versions"
    "?limit=1&offset=0"
)
MODRINTH_VERSIONS_URL = (
    "https://api.modrinth.com/v2/project/%project%/version?featured=%featured%"
)
SPIGET_LATEST_VERSION_URL = (
    "https://api.spiget.org/v2/resources/%resourceid%/versions/latest"
)
SPIGET_DOWNLOAD_URL = (
    "https://api.spiget.org/v2/resources/%resourceid%/versions/%versionid%/download"
)
SPIGET_DETAILS_URL = "https://api.spiget.org/v2/resources/%resourceid%"
TEAMCITY_BUILD_URL = (
    "%apiurl%/app/rest/builds/"
    "project:%project%,status:SUCCESS,branch:%branch%,buildType:%buildtype%"
)
TEAMCITY_ARTIFACTS_URL = "%apiurl%/app/rest/builds/id:%buildid%/artifacts"
TEAMCITY_ARTIFACT_DOWNLOAD_URL = (
    "%apiurl%/app/rest/builds/id:%buildid%/artifacts/content/%filename%"
)
TEAMCITY_DEFAULT_BRANCH = "master"
BUKKIT_FILES_URL = "https://api.curseforge.com/servermods/files?projectIds=%pluginid%"
JSON_ACCEPT = "application/json"

# Patterns used to find project links in plugin descriptions and resource pages
GITHUB_LINK_PATTERN = (
    r".*https?://(?:www\.)?github\.com/(?P<user>[\w\-]+)/(?P<repo>[\w\-]+)(?:[/#].*)?.*"
)
HANGAR_LINK_PATTERN = (
    r".*https?://hangar\.papermc\.io/(?P<author>[\w\-]+)/(?P<project>[\w\-]+)(?:[/#].*)?.*"
)
SPIGOT_LINK_PATTERN = (
    r".*https?://(?:www\.)?spigotmc\.org/resources/.*\.(?P<id>\d+)(?:[/#].*)?.*"
)
PLUGIN_DESCRIPTION_FILES = ("plugin.yml", "paper-plugin.yml", "bungee.yml")

# Network timeouts (in seconds): (connect, read)
DEFAULT_REQUEST_TIMEOUT = (10, 60)
DEFAULT_CHUNK_SIZE = 8192
HTTP_STATUS_OK = 200
HTTP_STATUS_SERVICE_UNAVAILABLE = 503

# Query cache
QUERY_CACHE_EXPIRY_SECONDS = 30

# Plugin defaults
DEFAULT_FILE_NAME_FORMAT = "%name%.jar-%version%"
JAR_EXTENSION = ".jar"
EXCLUDED_JAR_SUFFIXES = ("-sources.jar", "-javadoc.jar")
ZIP_ENTRY_PATTERN_PARAMETER = "zip-entry-pattern"

# Content types
APPLICATION_PREFIX = "application/"
JAR_CONTENT_SUBTYPES = frozenset(
    {"jar", "octet-stream", "java-archive", "x-java-archive"}
)
ZIP_CONTENT_SUBTYPES = frozenset({"zip", "x-zip", "x-zip-compressed", "x-compressed"})
JAR_MANIFEST_ENTRY = "META-INF/MANIFEST.MF"

# File and directory names
CONFIG_FILE_NAME = "config.yaml"
VERSIONS_FILE_NAME = "versions.yaml"
VERSIONS_SECTION = "plugins"
TEMP_DIR_PREFIX = "plugin-updater-"

# Worker pool
DEFAULT_WORKERS = 1
MAX_WORKERS = 16

# Logging configuration
LOGGER_NAME = "plugin_updater"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "plugin-updater.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Environment variable names
LOG_LEVEL_ENV_VAR = "PLUGIN_UPDATER_LOG_LEVEL"
CONFIG_PATH_ENV_VAR = "PLUGIN_UPDATER_CONFIG"

# CLI exit codes
EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
