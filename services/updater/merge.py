"""Merge companion data folders from an extracted archive into the data root.

The merge is split in two: :func:`plan_companion_merge` compares two
directory listings and returns the actions to take, and
:func:`apply_merge_plan` carries them out on disk. Files that already exist
in the data root always win; the extracted duplicate is discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional

from services.updater.fileops import FileOperations


_LOGGER = logging.getLogger(__name__)

# Directory contents by entry name; files map to ``None``.
DirectoryListing = Mapping[str, Optional["DirectoryListing"]]


class MergeActionKind(Enum):
    MOVE = "move"
    DISCARD = "discard"
    REMOVE = "remove"


@dataclass(frozen=True)
class MergeAction:
    """One step of a merge plan.

    ``MOVE`` relocates ``path`` from the extraction root to the same relative
    path under the data root. ``DISCARD`` drops an extracted entry that lost
    a name collision and ``REMOVE`` deletes extracted leftovers.
    """

    kind: MergeActionKind
    path: PurePosixPath


@dataclass
class MergeReport:
    moved: list[PurePosixPath] = field(default_factory=list)
    discarded: list[PurePosixPath] = field(default_factory=list)
    removed: list[PurePosixPath] = field(default_factory=list)
    failed: list[MergeAction] = field(default_factory=list)


def scan_tree(root: Path, *, follow_symlinks: bool = False) -> dict[str, dict | None]:
    """Return the :data:`DirectoryListing` of ``root`` (empty when missing).

    With ``follow_symlinks`` a link to a directory is listed as that
    directory; a link back to one of its own ancestors is listed as empty.
    """

    return _scan(root, follow_symlinks, frozenset({_resolved(root)}))


def _scan(root: Path, follow_symlinks: bool, ancestors: frozenset[Path]) -> dict[str, dict | None]:
    listing: dict[str, dict | None] = {}
    try:
        entries = list(root.iterdir())
    except OSError:
        return listing
    for entry in entries:
        if not entry.is_dir() or (entry.is_symlink() and not follow_symlinks):
            listing[entry.name] = None
            continue
        resolved = _resolved(entry)
        if resolved in ancestors:
            listing[entry.name] = {}
        else:
            listing[entry.name] = _scan(entry, follow_symlinks, ancestors | {resolved})
    return listing


def _resolved(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return path.absolute()


def is_companion_folder(name: str, live_plugins: Collection[str], package_extension: str) -> bool:
    """Return ``True`` when ``name`` matches an installed plugin."""

    return name in live_plugins or f"{name}{package_extension}" in live_plugins


def plan_companion_merge(
    extracted: DirectoryListing,
    existing: DirectoryListing,
    live_plugins: Collection[str],
    package_extension: str,
) -> list[MergeAction]:
    """Plan how the extraction root ``extracted`` merges into ``existing``.

    Only top-level directories named after a live plugin are merged, into the
    data directory of the same name. Every top-level entry is removed from
    the extraction root once handled.
    """

    actions: list[MergeAction] = []
    for name in sorted(extracted):
        child = extracted[name]
        path = PurePosixPath(name)
        if child is not None and is_companion_folder(name, live_plugins, package_extension):
            target = existing.get(name)
            if name in existing and target is None:
                _LOGGER.warning("Data root holds a file named %s; skipping companion folder", name)
            else:
                actions.extend(_plan_directory(path, child, target))
        actions.append(MergeAction(MergeActionKind.REMOVE, path))
    return actions


def _plan_directory(
    path: PurePosixPath,
    source: DirectoryListing,
    target: DirectoryListing | None,
) -> list[MergeAction]:
    actions: list[MergeAction] = []
    target = target or {}
    for name in sorted(source):
        child = source[name]
        child_path = path / name
        if name not in target:
            actions.append(MergeAction(MergeActionKind.MOVE, child_path))
            continue
        existing = target[name]
        if child is not None and existing is not None:
            actions.extend(_plan_directory(child_path, child, existing))
            continue
        actions.append(MergeAction(MergeActionKind.DISCARD, child_path))
    return actions


def apply_merge_plan(
    actions: list[MergeAction],
    source_root: Path,
    target_root: Path,
    ops: FileOperations,
) -> MergeReport:
    """Carry out ``actions``; individual failures are logged and skipped."""

    report = MergeReport()
    for action in actions:
        source = source_root.joinpath(*action.path.parts)
        if action.kind is MergeActionKind.MOVE:
            target = target_root.joinpath(*action.path.parts)
            ok = ops.make_dirs(target.parent) and ops.move(source, target)
            bucket = report.moved
        else:
            ok = ops.delete(source)
            bucket = report.discarded if action.kind is MergeActionKind.DISCARD else report.removed
        if ok:
            bucket.append(action.path)
        else:
            report.failed.append(action)
    _LOGGER.debug(
        "Merge finished: %s moved, %s discarded, %s removed, %s failed",
        len(report.moved),
        len(report.discarded),
        len(report.removed),
        len(report.failed),
    )
    return report


__all__ = [
    "DirectoryListing",
    "MergeAction",
    "MergeActionKind",
    "MergeReport",
    "apply_merge_plan",
    "is_companion_folder",
    "plan_companion_merge",
    "scan_tree",
]
