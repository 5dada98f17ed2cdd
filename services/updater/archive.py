"""Archive handling helpers for the updater."""

from __future__ import annotations

import logging
import shutil
import zipfile
import zlib
from collections.abc import Iterable
from pathlib import Path

from services.updater.config import ArchiveLimits
from services.updater.fileops import FileOperations
from services.updater.models import UpdateError, UpdateResult


_LOGGER = logging.getLogger(__name__)

# Raised by zipfile while reading a damaged, encrypted or unsupported member.
_EXTRACTION_ERRORS = (
    OSError,
    EOFError,
    NotImplementedError,
    RuntimeError,
    zipfile.BadZipFile,
    zlib.error,
)

__all__ = ["extract_archive", "extract_zip_safely", "extraction_folder", "promote_packages"]


def extraction_folder(archive_path: Path, archive_extension: str) -> Path:
    """Return the sibling directory named by stripping ``archive_extension``.

    An archive named only ``archive_extension`` extracts into
    ``<name>_contents``.
    """

    name = archive_path.name
    if name.lower().endswith(archive_extension.lower()):
        name = name[: -len(archive_extension)]
    if not name.strip():
        name = f"{archive_path.name}_contents"
    return archive_path.with_name(name)


def extract_archive(
    archive_path: Path,
    target_dir: Path,
    *,
    limits: ArchiveLimits | None = None,
    buffer_size: int = 1024,
) -> list[Path]:
    """Extract ``archive_path`` into ``target_dir`` and return the files written."""

    _LOGGER.info("Extracting update archive %s", archive_path)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            files = extract_zip_safely(
                archive, target_dir, limits=limits or ArchiveLimits(), buffer_size=buffer_size
            )
    except UpdateError:
        raise
    except _EXTRACTION_ERRORS as exc:
        raise UpdateError(
            f"Failed to extract update archive {archive_path.name}: {exc}",
            UpdateResult.FAIL_DOWNLOAD,
        ) from exc
    _LOGGER.debug("Archive extracted to %s", target_dir)
    return files


def extract_zip_safely(
    archive: zipfile.ZipFile,
    target_dir: Path,
    *,
    limits: ArchiveLimits,
    buffer_size: int = 1024,
) -> list[Path]:
    target_dir.mkdir(parents=True, exist_ok=True)
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    written: list[Path] = []
    for member in archive.infolist():
        name = member.filename
        if not name:
            continue
        processed_entries += 1
        if processed_entries > limits.max_entries:
            _LOGGER.error(
                "Archive entry count %s exceeded limit %s",
                processed_entries,
                limits.max_entries,
            )
            raise UpdateError("Update archive contained too many entries", UpdateResult.FAIL_DOWNLOAD)
        path = Path(name)
        if path.is_absolute():
            raise UpdateError(
                "Update archive contained an absolute path entry", UpdateResult.FAIL_DOWNLOAD
            )
        destination = (root / path).resolve()
        try:
            destination.relative_to(root)
        except ValueError:
            raise UpdateError(
                "Update archive contained an unsafe relative path", UpdateResult.FAIL_DOWNLOAD
            )
        if member.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        total_bytes += member.file_size
        if total_bytes > limits.max_total_bytes:
            _LOGGER.error(
                "Archive expanded to %s bytes which exceeds limit %s",
                total_bytes,
                limits.max_total_bytes,
            )
            raise UpdateError(
                "Update archive expanded beyond safe limits", UpdateResult.FAIL_DOWNLOAD
            )
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(member) as source, destination.open("wb") as target:
            shutil.copyfileobj(source, target, buffer_size)
        written.append(destination)
        _LOGGER.debug("Extracted archive member %s to %s", name, destination)

    _LOGGER.info(
        "Extracted %s entries totalling %s bytes", processed_entries, total_bytes
    )
    return written


def promote_packages(
    files: Iterable[Path],
    staging_dir: Path,
    live_plugins: Iterable[str],
    package_extension: str,
    ops: FileOperations,
) -> list[Path]:
    """Move extracted packages that replace a live plugin into ``staging_dir``.

    A staged file with the same name is overwritten. Returns the new paths.
    """

    live = set(live_plugins)
    promoted: list[Path] = []
    for path in files:
        if not path.name.endswith(package_extension) or path.name not in live:
            continue
        output = staging_dir / path.name
        if ops.move(path, output):
            _LOGGER.info("Staged plugin package %s", output)
            promoted.append(output)
    return promoted
