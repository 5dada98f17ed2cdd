"""Best-effort filesystem operations that log failures instead of raising."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path


_LOGGER = logging.getLogger(__name__)


class FileOperations:
    """Perform single filesystem operations and report the ones that fail.

    Every failure is logged with the offending path and whether a file was
    being created or deleted. Each operation returns whether it succeeded so
    callers can carry on with the rest of the batch.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _LOGGER

    def _report(self, path: Path, create: bool, exc: OSError | None = None) -> None:
        action = "create" if create else "delete"
        self._logger.error(
            "The updater could not %s file at: %s", action, path.absolute(), exc_info=exc
        )

    def make_dirs(self, path: Path) -> bool:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._report(path, True, exc)
            return False
        return True

    def delete(self, path: Path) -> bool:
        """Delete a file, or a directory together with its contents."""

        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            return True
        except OSError as exc:
            self._report(path, False, exc)
            return False
        return True

    def move(self, source: Path, target: Path) -> bool:
        """Move ``source`` to ``target``, replacing an existing file at ``target``."""

        try:
            os.replace(source, target)
        except OSError:
            try:
                shutil.move(str(source), str(target))
            except OSError as exc:
                self._report(target, True, exc)
                return False
        return True

    def list_dir(self, path: Path) -> list[Path]:
        try:
            return sorted(path.iterdir())
        except OSError:
            self._logger.error("The updater could not access files at: %s", path.absolute())
            return []


__all__ = ["FileOperations"]
