"""Run one update check from the command line."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from services.updater.config import load_updater_config
from services.updater.host import MainThreadScheduler, PluginHost
from services.updater.models import UpdateResult, UpdateType
from services.updater.updater import GitHubUpdater
from shared.logging_config import ensure_app_logging

_SUCCESSFUL_RESULTS = {
    UpdateResult.SUCCESS,
    UpdateResult.NO_UPDATE,
    UpdateResult.DISABLED,
    UpdateResult.UPDATE_AVAILABLE,
}

_UPDATE_TYPES = {
    "default": UpdateType.DEFAULT,
    "no-version-check": UpdateType.NO_VERSION_CHECK,
    "no-download": UpdateType.NO_DOWNLOAD,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("repository", help="GitHub repository as 'owner/repo'.")
    parser.add_argument("--current-version", required=True, help="Version currently installed.")
    parser.add_argument(
        "--plugins",
        type=Path,
        default=Path("plugins"),
        help="Live plugin directory.",
    )
    parser.add_argument(
        "--update-folder",
        type=Path,
        default=None,
        help="Staging directory (defaults to <plugins>/update).",
    )
    parser.add_argument("--data-folder", type=Path, default=None, help="Plugin data root.")
    parser.add_argument(
        "--mode",
        choices=sorted(_UPDATE_TYPES),
        default="default",
        help="How far the update run should go.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Updater JSON configuration.")
    parser.add_argument("--verbose", action="store_true", help="Report download progress.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    ensure_app_logging(verbose=args.verbose)

    scheduler = MainThreadScheduler()
    host = PluginHost(
        name="cli",
        version=args.current_version,
        plugin_folder=args.plugins,
        update_folder=args.update_folder or args.plugins / "update",
        data_folder=args.data_folder,
        scheduler=scheduler,
    )
    finished: list[GitHubUpdater] = []
    updater = GitHubUpdater(
        host,
        args.repository,
        update_type=_UPDATE_TYPES[args.mode],
        announce=args.verbose,
        callback=finished.append,
        config=load_updater_config(args.config),
    )
    result = updater.result
    scheduler.run_pending()

    logging.getLogger(__name__).info(
        "Update check finished with %s (latest=%s, callbacks=%s)",
        result.name,
        updater.latest_version,
        len(finished),
    )
    print(result.name)
    return 0 if result in _SUCCESSFUL_RESULTS else 1


if __name__ == "__main__":
    raise SystemExit(main())
