"""Constants shared across the updater modules."""

from __future__ import annotations

API_HOST = "https://api.github.com"
RELEASES_QUERY = "/repos/{repository}/releases"
ACCEPT_HEADER = "application/vnd.github.v3+json"
USER_AGENT = "hexosse"
CONNECT_TIMEOUT_MS = 6000

# If the version tag contains one of these, don't update.
NO_UPDATE_TAGS = ("-DEV", "-PRE", "-SNAPSHOT")

BUFFER_SIZE = 1024
ARCHIVE_EXTENSION = ".zip"
PACKAGE_EXTENSION = ".jar"

MAX_ARCHIVE_TOTAL_BYTES = 500 * 1024 * 1024  # 500 MiB
MAX_ARCHIVE_ENTRIES = 5000

DOWNLOAD_KEY = "browser_download_url"
DRAFT_KEY = "draft"
PRERELEASE_KEY = "prerelease"
TAG_KEY = "tag_name"
ASSETS_KEY = "assets"

CONFIG_FILE_ENV = "UPDATER_CONFIG_FILE"
DISABLE_ENV = "UPDATER_DISABLED"
