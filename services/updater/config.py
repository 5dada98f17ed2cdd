"""Updater configuration loaded from JSON resources."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from importlib import resources
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit

from services.updater import constants

_CONFIG_RESOURCE = "updater.json"
_UPDATER_CONFIG_CACHE: UpdaterConfig | None = None
_RELEASE_TYPE_NAMES = ("draft", "prerelease", "release")
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ArchiveLimits:
    """Upper bounds applied while unpacking downloaded archives."""

    max_entries: int = constants.MAX_ARCHIVE_ENTRIES
    max_total_bytes: int = constants.MAX_ARCHIVE_TOTAL_BYTES


@dataclass(frozen=True)
class UpdaterConfig:
    """Immutable settings handed to the updater at construction."""

    api_host: str = constants.API_HOST
    releases_query: str = constants.RELEASES_QUERY
    user_agent: str = constants.USER_AGENT
    connect_timeout_ms: int = constants.CONNECT_TIMEOUT_MS
    no_update_tags: tuple[str, ...] = constants.NO_UPDATE_TAGS
    accepted_release_types: tuple[str, ...] = _RELEASE_TYPE_NAMES
    buffer_size: int = constants.BUFFER_SIZE
    archive_extension: str = constants.ARCHIVE_EXTENSION
    package_extension: str = constants.PACKAGE_EXTENSION
    archive_limits: ArchiveLimits = field(default_factory=ArchiveLimits)
    disabled: bool = False

    @property
    def connect_timeout(self) -> float:
        return self.connect_timeout_ms / 1000.0

    def releases_url(self, repository: str) -> str:
        """Return the release index URL for ``owner/repo``.

        Raises :class:`ValueError` when the query template names other
        placeholders or the configured host cannot form an absolute HTTP(S)
        URL.
        """

        try:
            query = self.releases_query.format(repository=repository)
        except (AttributeError, IndexError, KeyError) as exc:
            raise ValueError(f"Invalid release query template: {self.releases_query!r}") from exc
        url = self.api_host.rstrip("/") + query
        parts = urlsplit(url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ValueError(f"Invalid release index URL: {url}")
        return url


def get_updater_config() -> UpdaterConfig:
    """Return the cached updater configuration."""

    global _UPDATER_CONFIG_CACHE
    if _UPDATER_CONFIG_CACHE is None:
        _UPDATER_CONFIG_CACHE = load_updater_config()
    return _UPDATER_CONFIG_CACHE


def reset_updater_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _UPDATER_CONFIG_CACHE
    _UPDATER_CONFIG_CACHE = None


def load_updater_config(path: str | Path | None = None) -> UpdaterConfig:
    """Load configuration from ``path``, ``UPDATER_CONFIG_FILE`` or the bundled resource."""

    if path is None:
        path = os.environ.get(constants.CONFIG_FILE_ENV) or None
    data = _read_config_data(path)
    defaults = UpdaterConfig()
    config = UpdaterConfig(
        api_host=_coerce_text(data.get("api_host"), default=defaults.api_host),
        releases_query=_coerce_query(data.get("releases_query"), default=defaults.releases_query),
        user_agent=_coerce_text(data.get("user_agent"), default=defaults.user_agent),
        connect_timeout_ms=_coerce_positive_int(
            data.get("connect_timeout_ms"), default=defaults.connect_timeout_ms
        ),
        no_update_tags=_coerce_text_tuple(
            data.get("no_update_tags"), default=defaults.no_update_tags
        ),
        accepted_release_types=_coerce_release_types(data.get("accepted_release_types")),
        buffer_size=_coerce_positive_int(data.get("buffer_size"), default=defaults.buffer_size),
        archive_extension=_coerce_extension(
            data.get("archive_extension"), default=defaults.archive_extension
        ),
        package_extension=_coerce_extension(
            data.get("package_extension"), default=defaults.package_extension
        ),
        archive_limits=_parse_archive_limits(data.get("archive_limits")),
        disabled=_coerce_bool(data.get("disable"), default=False),
    )
    if os.environ.get(constants.DISABLE_ENV, "").strip().lower() in _TRUTHY:
        config = replace(config, disabled=True)
    return config


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_archive_limits(section: Any) -> ArchiveLimits:
    defaults = ArchiveLimits()
    if not isinstance(section, Mapping):
        return defaults
    return ArchiveLimits(
        max_entries=_coerce_positive_int(section.get("max_entries"), default=defaults.max_entries),
        max_total_bytes=_coerce_positive_int(
            section.get("max_total_bytes"), default=defaults.max_total_bytes
        ),
    )


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_query(value: Any, *, default: str) -> str:
    text = _coerce_text(value, default=default)
    if "{repository}" not in text:
        return default
    try:
        text.format(repository="owner/repo")
    except (AttributeError, IndexError, KeyError, ValueError):
        return default
    return text


def _coerce_extension(value: Any, *, default: str) -> str:
    text = _coerce_text(value, default=default)
    if not text.startswith("."):
        text = f".{text}"
    return text


def _coerce_text_tuple(value: Any, *, default: tuple[str, ...]) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return default
    return tuple(item for item in value if isinstance(item, str) and item)


def _coerce_release_types(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return _RELEASE_TYPE_NAMES
    names = tuple(
        item.strip().lower()
        for item in value
        if isinstance(item, str) and item.strip().lower() in _RELEASE_TYPE_NAMES
    )
    return names or _RELEASE_TYPE_NAMES


def _coerce_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return default


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except ValueError:
            return default
    else:
        return default
    if candidate <= 0:
        return default
    return candidate


__all__ = [
    "ArchiveLimits",
    "UpdaterConfig",
    "get_updater_config",
    "load_updater_config",
    "reset_updater_config_cache",
]
