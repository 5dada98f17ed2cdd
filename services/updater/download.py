"""Stream release assets into the staging directory."""

from __future__ import annotations

import logging
from http.client import HTTPException, IncompleteRead
from pathlib import Path
from urllib.error import URLError
from urllib.parse import unquote, urlsplit
from urllib.request import Request, urlopen

from services.updater import constants
from services.updater.models import UpdateError, UpdateResult


_LOGGER = logging.getLogger(__name__)

__all__ = ["DownloadProgress", "download_asset", "file_name_from_url"]


def file_name_from_url(url: str) -> str:
    """Return the trailing path segment of ``url``."""

    name = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    if not name or name in {".", ".."}:
        raise UpdateError(f"Download link {url} does not name a file", UpdateResult.FAIL_DOWNLOAD)
    return name


class DownloadProgress:
    """Report download progress once per completed 10% step."""

    def __init__(self, total: int | None, logger: logging.Logger) -> None:
        self._total = total if total and total > 0 else None
        self._logger = logger
        self._downloaded = 0
        self._last_step = -1

    @property
    def downloaded(self) -> int:
        return self._downloaded

    def advance(self, count: int) -> None:
        self._downloaded += count
        if self._total is None:
            return
        percent = min(100, (self._downloaded * 100) // self._total)
        step = percent // 10
        if step > self._last_step:
            self._last_step = step
            self._logger.info("Downloading update: %s%% of %s bytes.", step * 10, self._total)


def download_asset(
    url: str,
    folder: Path,
    *,
    buffer_size: int = constants.BUFFER_SIZE,
    user_agent: str = constants.USER_AGENT,
    announce: bool = False,
    logger: logging.Logger | None = None,
) -> Path:
    """Download ``url`` into ``folder`` and return the written file.

    Any transport or disk failure raises :class:`UpdateError` with
    ``FAIL_DOWNLOAD``. A body shorter than its ``Content-Length`` is a
    transport failure. The partial file is removed whenever the download
    does not complete.
    """

    logger = logger or _LOGGER
    target = folder / file_name_from_url(url)
    _LOGGER.info("Downloading %s to %s", url, target)
    request = Request(url, headers={"User-Agent": user_agent})
    try:
        with urlopen(request) as response, target.open("wb") as destination:  # nosec - release asset over HTTPS
            expected = _content_length(response)
            progress = DownloadProgress(expected, logger) if announce else None
            written = 0
            for chunk in iter(lambda: response.read(buffer_size), b""):
                destination.write(chunk)
                written += len(chunk)
                if progress is not None:
                    progress.advance(len(chunk))
        if expected is not None and written < expected:
            raise IncompleteRead(b"", expected - written)
    except (OSError, URLError, ValueError, HTTPException) as exc:
        logger.warning(
            "The auto-updater tried to download a new update, but was unsuccessful.",
            exc_info=exc,
        )
        _discard_partial(target)
        raise UpdateError(f"Failed to download {url}: {exc!r}", UpdateResult.FAIL_DOWNLOAD) from exc
    except BaseException:
        _discard_partial(target)
        raise
    _LOGGER.debug("Downloaded %s bytes to %s", written, target)
    return target


def _discard_partial(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        _LOGGER.debug("Unable to remove partial download at %s", path, exc_info=True)


def _content_length(response: object) -> int | None:
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    raw = headers.get("Content-Length")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None
