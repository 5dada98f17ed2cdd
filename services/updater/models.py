"""Data models used by the updater."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from services.updater.versioning import Version


class UpdateResult(Enum):
    """Terminal outcome of one update run."""

    SUCCESS = "success"
    """An update was found and staged for the next host restart."""
    NO_UPDATE = "no_update"
    DISABLED = "disabled"
    FAIL_DOWNLOAD = "fail_download"
    FAIL_DBO = "fail_dbo"
    """The release index could not be contacted or its response was unusable."""
    FAIL_NOVERSION = "fail_noversion"
    FAIL_BADID = "fail_badid"
    """The repository has no releases, or the newest release has no assets."""
    FAIL_API = "fail_api"
    UPDATE_AVAILABLE = "update_available"

    @property
    def is_failure(self) -> bool:
        return self.name.startswith("FAIL_")


class UpdateType(Enum):
    """How far the update run should go."""

    DEFAULT = "default"
    NO_VERSION_CHECK = "no_version_check"
    NO_DOWNLOAD = "no_download"


class ReleaseType(Enum):
    DRAFT = "draft"
    PRERELEASE = "prerelease"
    RELEASE = "release"

    @classmethod
    def classify(cls, *, draft: bool, prerelease: bool) -> "ReleaseType":
        if draft:
            return cls.DRAFT
        if prerelease:
            return cls.PRERELEASE
        return cls.RELEASE


class UpdateState(Enum):
    """Pipeline states of :class:`services.updater.updater.GitHubUpdater`."""

    INIT = "init"
    FETCHING = "fetching"
    DECIDING = "deciding"
    SKIPPED = "skipped"
    INSTALLING = "installing"
    AWAITING_CHOICE = "awaiting_choice"
    NOTIFYING = "notifying"
    DONE = "done"


@dataclass(frozen=True)
class ReleaseDescriptor:
    """Metadata for the newest release of a repository."""

    tag: str
    release_type: ReleaseType
    download_url: str | None = None

    @property
    def is_draft(self) -> bool:
        return self.release_type is ReleaseType.DRAFT

    @property
    def is_prerelease(self) -> bool:
        return self.release_type is ReleaseType.PRERELEASE

    @property
    def version(self) -> Version | None:
        return Version.parse(self.tag)


@dataclass(frozen=True)
class UpdateOutcome:
    """Values published once the update run reaches its terminal state."""

    result: UpdateResult
    release: ReleaseDescriptor | None = None


class UpdateError(RuntimeError):
    """Raised when a pipeline step fails; carries the terminal result."""

    def __init__(self, message: str, result: UpdateResult) -> None:
        super().__init__(message)
        self.result = result
