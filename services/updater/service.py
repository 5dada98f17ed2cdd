"""Service running one fetch, decide and install pass."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from typing import Callable

from services.updater.constants import NO_UPDATE_TAGS
from services.updater.decision import Decision, decide
from services.updater.installers import Installer
from services.updater.models import (
    ReleaseDescriptor,
    ReleaseType,
    UpdateError,
    UpdateOutcome,
    UpdateResult,
    UpdateState,
    UpdateType,
)
from services.updater.providers import ReleaseProvider
from services.updater.versioning import Comparator, Version, strictly_newer


_LOGGER = logging.getLogger(__name__)


class UpdateService:
    """Coordinate release discovery, the update decision and installation.

    :meth:`run` never raises for pipeline failures; every path ends in an
    :class:`UpdateOutcome`.
    """

    def __init__(
        self,
        provider: ReleaseProvider,
        installer: Installer,
        *,
        current_version: str,
        update_type: UpdateType = UpdateType.DEFAULT,
        should_update: Comparator = strictly_newer,
        no_update_tags: Iterable[str] = NO_UPDATE_TAGS,
        accepted_types: Collection[ReleaseType] = tuple(ReleaseType),
    ) -> None:
        self._provider = provider
        self._installer = installer
        self._current = Version.parse(current_version)
        self._update_type = update_type
        self._should_update = should_update
        self._no_update_tags = tuple(no_update_tags)
        self._accepted_types = tuple(accepted_types)

    @property
    def current_version(self) -> Version | None:
        return self._current

    def run(self, on_state: Callable[[UpdateState], None] | None = None) -> UpdateOutcome:
        def enter(state: UpdateState) -> None:
            _LOGGER.debug("Update pipeline entering %s", state.name)
            if on_state is not None:
                on_state(state)

        enter(UpdateState.FETCHING)
        try:
            release = self._provider.fetch_latest()
        except UpdateError as exc:
            _LOGGER.warning("Release lookup failed (%s): %s", exc.result.name, exc)
            return UpdateOutcome(exc.result)

        enter(UpdateState.DECIDING)
        decision = self.decide(release)
        if decision.result is not None:
            enter(UpdateState.SKIPPED)
            return UpdateOutcome(decision.result, release)

        if release.download_url is None or self._update_type is UpdateType.NO_DOWNLOAD:
            enter(UpdateState.AWAITING_CHOICE)
            _LOGGER.info("Update %s is available but will not be downloaded", release.tag)
            return UpdateOutcome(UpdateResult.UPDATE_AVAILABLE, release)

        enter(UpdateState.INSTALLING)
        try:
            self._installer.install(release)
        except UpdateError as exc:
            _LOGGER.warning("Installing %s failed (%s): %s", release.tag, exc.result.name, exc)
            return UpdateOutcome(exc.result, release)
        _LOGGER.info("Staged update %s", release.tag)
        return UpdateOutcome(UpdateResult.SUCCESS, release)

    def decide(self, release: ReleaseDescriptor) -> Decision:
        return decide(
            self._current,
            release,
            self._update_type,
            should_update=self._should_update,
            no_update_tags=self._no_update_tags,
            accepted_types=self._accepted_types,
        )


__all__ = ["UpdateService"]
