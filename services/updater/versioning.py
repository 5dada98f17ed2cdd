"""Semantic version parsing and the comparators used to detect updates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from packaging.version import InvalidVersion
from packaging.version import Version as PackagingVersion


__all__ = [
    "Comparator",
    "Version",
    "is_valid",
    "pep440_newer",
    "strictly_newer",
]


_LOGGER = logging.getLogger(__name__)

_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_SEMVER_PATTERN = re.compile(
    rf"v?(\d+)\.(\d+)\.(\d+)(?:-({_IDENTIFIERS}))?(?:\+({_IDENTIFIERS}))?",
    re.IGNORECASE,
)


@dataclass(frozen=True, order=True)
class Version:
    """``major.minor.patch`` triple.

    Only the numeric fields take part in equality and ordering; the
    pre-release suffix and build metadata are kept for display and for
    comparators that want them.
    """

    major: int
    minor: int
    patch: int
    prerelease: str | None = field(default=None, compare=False)
    build: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"Version {name} must be a non-negative integer: {value!r}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def full_text(self) -> str:
        text = str(self)
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    def compare_to(self, other: "Version") -> int:
        """Return ``-1``, ``0`` or ``1`` as ``self`` sorts before, with or after ``other``."""

        if self < other:
            return -1
        if self > other:
            return 1
        return 0

    @classmethod
    def parse(cls, text: object) -> "Version | None":
        """Return the version described by ``text`` or ``None`` when it is not semver.

        Release tags come from remote data, so malformed input never raises.
        """

        if not isinstance(text, str):
            return None
        match = _SEMVER_PATTERN.fullmatch(text.strip())
        if match is None:
            return None
        major, minor, patch, prerelease, build = match.groups()
        try:
            return cls(int(major), int(minor), int(patch), prerelease, build)
        except ValueError:
            # Integer strings beyond the interpreter's digit limit.
            return None


def is_valid(text: object) -> bool:
    """Return ``True`` when ``text`` is a semantic version string."""

    return Version.parse(text) is not None


Comparator = Callable[[Version, Version], bool]
"""``(local, remote) -> True`` when ``remote`` should count as an update."""


def strictly_newer(local: Version, remote: Version) -> bool:
    """Default comparator: strict precedence over ``major.minor.patch``."""

    return remote > local


def pep440_newer(local: Version, remote: Version) -> bool:
    """Compare the full version strings with PEP 440 precedence.

    Unlike :func:`strictly_newer`, ``1.2.0-rc1`` sorts before ``1.2.0``.
    Suffixes that PEP 440 cannot express fall back to numeric precedence.
    """

    try:
        return PackagingVersion(remote.full_text) > PackagingVersion(local.full_text)
    except InvalidVersion:
        _LOGGER.debug(
            "Falling back to numeric comparison for %s -> %s",
            local.full_text,
            remote.full_text,
        )
        return strictly_newer(local, remote)
