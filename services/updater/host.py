"""Host application contract used by the updater."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol


_LOGGER = logging.getLogger(__name__)

Task = Callable[[], None]


class UpdateHost(Protocol):
    """Capabilities the updater needs from the application hosting it."""

    version: str
    update_folder: Path
    plugin_folder: Path
    data_folder: Path
    logger: logging.Logger

    def list_plugins(self) -> list[str]:
        """Return the entry names found in the live plugin directory."""

    def run_task(self, callback: Task) -> None:
        """Run ``callback`` on the host's own thread."""


class MainThreadScheduler:
    """Queue callbacks from worker threads until the owning thread drains them.

    Hosts without an event loop of their own call :meth:`run_pending` from
    their main loop; callbacks never execute on the thread that scheduled them.
    """

    def __init__(self) -> None:
        self._tasks: queue.Queue[Task] = queue.Queue()
        self._owner = threading.current_thread()

    @property
    def owner(self) -> threading.Thread:
        return self._owner

    def __call__(self, callback: Task) -> None:
        self._tasks.put(callback)

    def pending(self) -> int:
        return self._tasks.qsize()

    def run_pending(self, *, block: bool = False, timeout: float | None = None) -> int:
        """Run queued callbacks and return how many ran.

        With ``block`` the call waits up to ``timeout`` seconds for the first
        callback to arrive.
        """

        executed = 0
        wait = block
        while True:
            try:
                callback = self._tasks.get(block=wait, timeout=timeout if wait else None)
            except queue.Empty:
                return executed
            wait = False
            try:
                callback()
            except Exception:
                _LOGGER.exception("Scheduled callback %r failed", callback)
            executed += 1


@dataclass
class PluginHost:
    """Plain :class:`UpdateHost` implementation for plugin-style applications.

    ``data_folder`` is the data root holding one data directory per plugin;
    it defaults to ``plugin_folder``.
    """

    name: str
    version: str
    plugin_folder: Path
    update_folder: Path
    scheduler: Callable[[Task], None]
    data_folder: Path | None = None
    logger: logging.Logger | None = None

    def __post_init__(self) -> None:
        self.plugin_folder = Path(self.plugin_folder)
        self.update_folder = Path(self.update_folder)
        self.data_folder = Path(self.data_folder) if self.data_folder is not None else self.plugin_folder
        if self.logger is None:
            self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def list_plugins(self) -> list[str]:
        try:
            return sorted(entry.name for entry in self.plugin_folder.iterdir())
        except OSError:
            self.logger.error("The updater could not access files at: %s", self.plugin_folder)
            return []

    def run_task(self, callback: Task) -> None:
        self.scheduler(callback)


__all__ = ["MainThreadScheduler", "PluginHost", "Task", "UpdateHost"]
