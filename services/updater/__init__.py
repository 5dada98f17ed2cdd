"""Public API for the updater package."""

from __future__ import annotations

from services.updater.config import (
    ArchiveLimits,
    UpdaterConfig,
    get_updater_config,
    load_updater_config,
    reset_updater_config_cache,
)
from services.updater.constants import (
    API_HOST,
    ARCHIVE_EXTENSION,
    CONFIG_FILE_ENV,
    DISABLE_ENV,
    NO_UPDATE_TAGS,
    PACKAGE_EXTENSION,
)
from services.updater.decision import Decision, decide
from services.updater.host import MainThreadScheduler, PluginHost, UpdateHost
from services.updater.installers import ArchiveInstaller, Installer
from services.updater.models import (
    ReleaseDescriptor,
    ReleaseType,
    UpdateError,
    UpdateOutcome,
    UpdateResult,
    UpdateState,
    UpdateType,
)
from services.updater.providers import GitHubReleaseProvider, ReleaseProvider
from services.updater.service import UpdateService
from services.updater.updater import GitHubUpdater, UpdateCallback
from services.updater.versioning import Version, is_valid, pep440_newer, strictly_newer

__all__ = [
    "API_HOST",
    "ARCHIVE_EXTENSION",
    "CONFIG_FILE_ENV",
    "DISABLE_ENV",
    "NO_UPDATE_TAGS",
    "PACKAGE_EXTENSION",
    "ArchiveInstaller",
    "ArchiveLimits",
    "Decision",
    "GitHubReleaseProvider",
    "GitHubUpdater",
    "Installer",
    "MainThreadScheduler",
    "PluginHost",
    "ReleaseDescriptor",
    "ReleaseProvider",
    "ReleaseType",
    "UpdateCallback",
    "UpdateError",
    "UpdateHost",
    "UpdateOutcome",
    "UpdateResult",
    "UpdateService",
    "UpdateState",
    "UpdateType",
    "UpdaterConfig",
    "Version",
    "decide",
    "get_updater_config",
    "is_valid",
    "load_updater_config",
    "pep440_newer",
    "reset_updater_config_cache",
    "strictly_newer",
]
