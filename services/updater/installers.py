"""Installer that stages a downloaded release for the host's next restart."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from services.updater.archive import extract_archive, extraction_folder, promote_packages
from services.updater.config import UpdaterConfig
from services.updater.download import download_asset
from services.updater.fileops import FileOperations
from services.updater.host import UpdateHost
from services.updater.merge import apply_merge_plan, plan_companion_merge, scan_tree
from services.updater.models import ReleaseDescriptor, UpdateError, UpdateResult

_LOGGER = logging.getLogger(__name__)


class Installer(Protocol):
    """Protocol describing how a selected release is installed."""

    def install(self, release: ReleaseDescriptor) -> None:
        """Install ``release`` or raise :class:`UpdateError`."""


class ArchiveInstaller:
    """Download a release asset into the update folder and unpack archives.

    Network failures abort the install. Failures of individual file
    operations are logged and the remaining files are still processed.
    """

    def __init__(
        self,
        host: UpdateHost,
        config: UpdaterConfig | None = None,
        *,
        announce: bool = False,
    ) -> None:
        self._host = host
        self._config = config or UpdaterConfig()
        self._announce = announce

    def install(self, release: ReleaseDescriptor) -> None:
        if release.download_url is None:
            raise UpdateError(f"Release {release.tag} has no download link", UpdateResult.FAIL_DOWNLOAD)

        folder = self._host.update_folder
        ops = FileOperations(self._host.logger)
        self.delete_old_files(folder, ops)
        if not folder.exists():
            ops.make_dirs(folder)

        if self._announce:
            self._host.logger.info("About to download a new update: %s", release.tag)
        downloaded = download_asset(
            release.download_url,
            folder,
            buffer_size=self._config.buffer_size,
            user_agent=self._config.user_agent,
            announce=self._announce,
            logger=self._host.logger,
        )

        if downloaded.name.endswith(self._config.archive_extension):
            self.unzip(downloaded, ops)
        if self._announce:
            self._host.logger.info("Finished updating.")

    def delete_old_files(self, folder: Path, ops: FileOperations) -> None:
        """Remove archives left in ``folder`` by an earlier run."""

        if not folder.is_dir():
            return
        for entry in ops.list_dir(folder):
            if entry.name.endswith(self._config.archive_extension):
                _LOGGER.debug("Removing leftover update file %s", entry)
                ops.delete(entry)

    def unzip(self, archive_path: Path, ops: FileOperations) -> None:
        """Extract ``archive_path`` and merge its contents into the host folders."""

        extract_root = extraction_folder(archive_path, self._config.archive_extension)
        if extract_root.exists():
            ops.delete(extract_root)
        try:
            files = extract_archive(
                archive_path,
                extract_root,
                limits=self._config.archive_limits,
                buffer_size=self._config.buffer_size,
            )
            live_plugins = self._host.list_plugins()
            promote_packages(
                files,
                self._host.update_folder,
                live_plugins,
                self._config.package_extension,
                ops,
            )
            plan = plan_companion_merge(
                scan_tree(extract_root),
                scan_tree(self._host.data_folder, follow_symlinks=True),
                live_plugins,
                self._config.package_extension,
            )
            apply_merge_plan(plan, extract_root, self._host.data_folder, ops)
        except UpdateError:
            self._host.logger.error(
                "The auto-updater tried to unzip a new update file, but was unsuccessful."
            )
            raise
        finally:
            ops.delete(extract_root)
            ops.delete(archive_path)


__all__ = ["ArchiveInstaller", "Installer"]
