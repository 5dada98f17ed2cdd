"""Decide whether a fetched release should be installed."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from enum import Enum

from services.updater.constants import NO_UPDATE_TAGS
from services.updater.models import ReleaseDescriptor, ReleaseType, UpdateResult, UpdateType
from services.updater.versioning import Comparator, Version, strictly_newer


_LOGGER = logging.getLogger(__name__)

_UNVERSIONED = Version(0, 0, 0)


class Decision(Enum):
    PROCEED = "proceed"
    NO_UPDATE = "no_update"
    FAIL_NOVERSION = "fail_noversion"

    @property
    def result(self) -> UpdateResult | None:
        """Terminal result for the decision, ``None`` when the run continues."""

        if self is Decision.NO_UPDATE:
            return UpdateResult.NO_UPDATE
        if self is Decision.FAIL_NOVERSION:
            return UpdateResult.FAIL_NOVERSION
        return None


def has_no_update_tag(tag: str, tags: Iterable[str] = NO_UPDATE_TAGS) -> bool:
    """Return ``True`` when ``tag`` carries a marker that suppresses updating."""

    return any(marker in tag for marker in tags)


def decide(
    current: Version | None,
    release: ReleaseDescriptor,
    update_type: UpdateType,
    *,
    should_update: Comparator = strictly_newer,
    no_update_tags: Iterable[str] = NO_UPDATE_TAGS,
    accepted_types: Collection[ReleaseType] = tuple(ReleaseType),
) -> Decision:
    """Return whether the update run should continue past the version check.

    ``should_update`` receives ``(current, remote)`` and is only consulted
    once both versions are known.
    """

    if update_type is UpdateType.NO_VERSION_CHECK:
        return Decision.PROCEED

    if has_no_update_tag(release.tag, no_update_tags):
        _LOGGER.debug("Release %s is tagged to never trigger an update", release.tag)
        return Decision.NO_UPDATE

    if release.release_type not in accepted_types:
        _LOGGER.debug(
            "Ignoring %s release %s", release.release_type.value, release.tag
        )
        return Decision.NO_UPDATE

    remote = release.version
    if remote is None:
        _LOGGER.warning(
            "Release tag %r is not a semantic version; versions should follow 'vMAJOR.MINOR.PATCH'",
            release.tag,
        )
        return Decision.FAIL_NOVERSION

    if current is None:
        _LOGGER.warning("Current version is not a semantic version; treating it as %s", _UNVERSIONED)
        current = _UNVERSIONED

    if not should_update(current, remote):
        _LOGGER.debug("Current version %s is up to date (remote %s)", current, remote)
        return Decision.NO_UPDATE

    _LOGGER.info("Update available: %s -> %s", current, remote)
    return Decision.PROCEED


__all__ = ["Decision", "decide", "has_no_update_tag"]
