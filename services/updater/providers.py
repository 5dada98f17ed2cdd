"""Release index provider backed by the GitHub Releases API."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from services.updater import constants
from services.updater.config import UpdaterConfig
from services.updater.models import ReleaseDescriptor, ReleaseType, UpdateError, UpdateResult


_LOGGER = logging.getLogger(__name__)

# Authorisation and rate-limit failures share the FAIL_API classification.
_API_REJECTION_CODES = {401, 403, 429}


class ReleaseProvider(Protocol):
    """Protocol describing release index providers."""

    def fetch_latest(self) -> ReleaseDescriptor:
        """Return the newest release or raise :class:`UpdateError`."""


class GitHubReleaseProvider:
    """Fetch the newest release of a repository from the GitHub Releases API."""

    def __init__(self, repository: str, config: UpdaterConfig | None = None) -> None:
        self._repository = repository
        self._config = config or UpdaterConfig()
        self._url = self._config.releases_url(repository)

    @property
    def url(self) -> str:
        return self._url

    def fetch_latest(self) -> ReleaseDescriptor:
        payload = self._request_json()
        if not isinstance(payload, list):
            raise UpdateError(
                f"Release index for {self._repository} did not return a list",
                UpdateResult.FAIL_DBO,
            )
        if not payload:
            raise UpdateError(
                f"The updater could not find any files on repository {self._repository}",
                UpdateResult.FAIL_BADID,
            )
        return self._build_descriptor(payload[0])

    def _request_json(self) -> Any:
        request = Request(
            self._url,
            headers={
                "Accept": constants.ACCEPT_HEADER,
                "User-Agent": self._config.user_agent,
            },
        )
        _LOGGER.debug("Querying release index %s", self._url)
        try:
            with urlopen(request, timeout=self._config.connect_timeout) as response:  # nosec - GitHub API over HTTPS
                status = getattr(response, "status", 200)
                if status != 200:
                    raise UpdateError(
                        f"Release index answered with HTTP {status}", UpdateResult.FAIL_DBO
                    )
                content_type = response.headers.get("Content-Type", "")
                if not _is_json_content_type(content_type):
                    raise UpdateError(
                        f"Release index answered with unexpected content type {content_type!r}",
                        UpdateResult.FAIL_DBO,
                    )
                return json.load(response)
        except HTTPError as exc:
            if exc.code in _API_REJECTION_CODES:
                raise UpdateError(
                    f"{self._url} rejected the request (HTTP {exc.code})", UpdateResult.FAIL_API
                ) from exc
            raise UpdateError(
                f"The updater could not contact {self._url}: HTTP {exc.code}", UpdateResult.FAIL_DBO
            ) from exc
        except (OSError, URLError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpdateError(
                f"The updater could not contact {self._url}: {exc}", UpdateResult.FAIL_DBO
            ) from exc

    def _build_descriptor(self, release: Any) -> ReleaseDescriptor:
        if not isinstance(release, dict):
            raise UpdateError("Newest release entry is not an object", UpdateResult.FAIL_DBO)

        tag = release.get(constants.TAG_KEY)
        if not isinstance(tag, str):
            raise UpdateError("Newest release entry has no tag name", UpdateResult.FAIL_DBO)

        assets = release.get(constants.ASSETS_KEY) or []
        if not isinstance(assets, list):
            raise UpdateError(f"Release {tag} has a malformed asset list", UpdateResult.FAIL_DBO)
        if not assets:
            raise UpdateError(
                f"The updater could not find any files on repository {self._repository}",
                UpdateResult.FAIL_BADID,
            )

        # The last listed asset is the distributable.
        asset = assets[-1]
        link = asset.get(constants.DOWNLOAD_KEY) if isinstance(asset, dict) else None
        if not isinstance(link, str) or not link.strip():
            link = None

        release_type = ReleaseType.classify(
            draft=bool(release.get(constants.DRAFT_KEY)),
            prerelease=bool(release.get(constants.PRERELEASE_KEY)),
        )
        _LOGGER.info(
            "Release index for %s reports %s (%s, asset=%s)",
            self._repository,
            tag,
            release_type.value,
            link,
        )
        return ReleaseDescriptor(tag=tag, release_type=release_type, download_url=link)


def _is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


__all__ = ["GitHubReleaseProvider", "ReleaseProvider"]
