"""Background update check for a plugin host."""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Callable

from services.updater.config import UpdaterConfig, get_updater_config
from services.updater.host import UpdateHost
from services.updater.installers import ArchiveInstaller, Installer
from services.updater.models import (
    ReleaseDescriptor,
    ReleaseType,
    UpdateOutcome,
    UpdateResult,
    UpdateState,
    UpdateType,
)
from services.updater.providers import GitHubReleaseProvider, ReleaseProvider
from services.updater.service import UpdateService
from services.updater.versioning import Comparator, strictly_newer


_LOGGER = logging.getLogger(__name__)

_REPOSITORY_PATTERN = re.compile(r"[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+")

UpdateCallback = Callable[["GitHubUpdater"], None]


class GitHubUpdater:
    """Check a GitHub repository for a newer release and stage it.

    The check starts on a dedicated thread as soon as the updater is
    constructed. Every accessor that exposes a pipeline result waits for that
    thread first. ``callback`` receives the updater once the run is finished
    and always runs through ``host.run_task``.
    """

    def __init__(
        self,
        host: UpdateHost,
        repository: str,
        file: Path | None = None,
        update_type: UpdateType = UpdateType.DEFAULT,
        *,
        announce: bool = False,
        callback: UpdateCallback | None = None,
        config: UpdaterConfig | None = None,
        should_update: Comparator = strictly_newer,
        provider: ReleaseProvider | None = None,
        installer: Installer | None = None,
    ) -> None:
        self._host = host
        self._repository = repository
        self._file = Path(file) if file is not None else None
        self._update_type = update_type
        self._announce = announce
        self._callback = callback
        self._config = config or get_updater_config()
        self._state = UpdateState.INIT
        self._outcome: UpdateOutcome | None = None
        self._thread: threading.Thread | None = None

        if self._config.disabled:
            _LOGGER.info("Updater disabled by configuration; skipping %s", repository)
            self._outcome = UpdateOutcome(UpdateResult.DISABLED)
            self._state = UpdateState.DONE
            return

        try:
            service = self._build_service(should_update, provider, installer)
        except ValueError as exc:
            self._host.logger.error("Invalid update repository or URL, return failed response.", exc_info=exc)
            self._outcome = UpdateOutcome(UpdateResult.FAIL_API)
            self._state = UpdateState.DONE
            return

        self._thread = threading.Thread(
            target=self._run,
            args=(service,),
            name=f"updater-{repository}",
            daemon=True,
        )
        self._thread.start()

    @property
    def repository(self) -> str:
        return self._repository

    @property
    def file(self) -> Path | None:
        return self._file

    @property
    def update_type(self) -> UpdateType:
        return self._update_type

    @property
    def state(self) -> UpdateState:
        """Current pipeline state; does not wait for the run to finish."""

        return self._state

    @property
    def outcome(self) -> UpdateOutcome:
        self.wait_for_thread()
        assert self._outcome is not None
        return self._outcome

    @property
    def result(self) -> UpdateResult:
        return self.outcome.result

    @property
    def latest_release(self) -> ReleaseDescriptor | None:
        return self.outcome.release

    @property
    def latest_version(self) -> str | None:
        """Tag name of the newest release, e.g. ``v1.2.0``."""

        release = self.latest_release
        return release.tag if release is not None else None

    @property
    def latest_type(self) -> ReleaseType | None:
        release = self.latest_release
        return release.release_type if release is not None else None

    @property
    def latest_file_link(self) -> str | None:
        release = self.latest_release
        return release.download_url if release is not None else None

    def wait_for_thread(self) -> None:
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        if thread.is_alive():
            thread.join()

    def _build_service(
        self,
        should_update: Comparator,
        provider: ReleaseProvider | None,
        installer: Installer | None,
    ) -> UpdateService:
        if not _REPOSITORY_PATTERN.fullmatch(self._repository or ""):
            raise ValueError(f"Repository must look like 'owner/repo': {self._repository!r}")
        if provider is None:
            provider = GitHubReleaseProvider(self._repository, self._config)
        if installer is None:
            installer = ArchiveInstaller(self._host, self._config, announce=self._announce)
        accepted = tuple(ReleaseType(name) for name in self._config.accepted_release_types)
        return UpdateService(
            provider,
            installer,
            current_version=self._host.version,
            update_type=self._update_type,
            should_update=should_update,
            no_update_tags=self._config.no_update_tags,
            accepted_types=accepted,
        )

    def _set_state(self, state: UpdateState) -> None:
        self._state = state

    def _run(self, service: UpdateService) -> None:
        try:
            outcome = service.run(on_state=self._set_state)
        except Exception:  # pragma: no cover
            _LOGGER.exception("Unexpected error while checking %s for updates", self._repository)
            outcome = UpdateOutcome(UpdateResult.FAIL_DBO)
        self._report(outcome.result)
        self._outcome = outcome

        self._set_state(UpdateState.NOTIFYING)
        if self._callback is not None:
            self._host.run_task(self._run_callback)
        self._set_state(UpdateState.DONE)

    def _run_callback(self) -> None:
        assert self._callback is not None
        self._callback(self)

    def _report(self, result: UpdateResult) -> None:
        logger = self._host.logger
        if result is UpdateResult.FAIL_BADID:
            logger.warning("The updater could not find any files on repository %s", self._repository)
        elif result is UpdateResult.FAIL_API:
            logger.error("The release index rejected the updater's request for %s", self._repository)
            logger.error("Please double-check your configuration to ensure it is correct.")
        elif result is UpdateResult.FAIL_DBO:
            logger.error("The updater could not contact the release index for %s.", self._repository)
        elif result is UpdateResult.FAIL_NOVERSION:
            logger.warning("The author of this plugin has misconfigured their Auto Update system")
            logger.warning("File versions should follow the format 'vVERSION' as defined by semver")
        elif result is UpdateResult.FAIL_DOWNLOAD:
            logger.warning("The updater found an update for %s but could not install it.", self._repository)
        else:
            _LOGGER.info("Update check for %s finished with %s", self._repository, result.name)


__all__ = ["GitHubUpdater", "UpdateCallback"]
