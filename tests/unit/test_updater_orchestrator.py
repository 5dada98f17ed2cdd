from __future__ import annotations

import threading
from http.client import IncompleteRead
from pathlib import Path

import pytest

from services.updater import (
    GitHubUpdater,
    ReleaseDescriptor,
    ReleaseType,
    UpdateError,
    UpdateResult,
    UpdateService,
    UpdateState,
    UpdateType,
    UpdaterConfig,
)
from tests.unit.updater_test_utils import (
    API_HOST,
    RELEASES_URL,
    InterruptedResponse,
    RecordingInstaller,
    RecordingScheduler,
    StaticReleaseProvider,
    install_fake_network,
    make_host,
    release_entry,
    zip_bytes,
)

ZIP_URL = "https://downloads.example.invalid/v1.2.0/MyPlugin-1.2.0.zip"
JAR_URL = "https://downloads.example.invalid/v1.2.0/MyPlugin.jar"
CONFIG = UpdaterConfig(api_host=API_HOST)


def _release(tag: str = "v1.2.0", url: str | None = ZIP_URL) -> ReleaseDescriptor:
    return ReleaseDescriptor(tag=tag, release_type=ReleaseType.RELEASE, download_url=url)


def test_update_cycle_stages_new_release(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    network = install_fake_network(monkeypatch)
    network.add_json(RELEASES_URL, [release_entry("v1.2.0", ZIP_URL)])
    network.add_bytes(ZIP_URL, zip_bytes(tmp_path, {"MyPlugin.jar": b"new-jar"}))
    scheduler = RecordingScheduler()
    host = make_host(tmp_path, version="1.1.0", scheduler=scheduler)
    finished: list[GitHubUpdater] = []

    updater = GitHubUpdater(host, "hexosse/MyPlugin", callback=finished.append, config=CONFIG)

    assert updater.result is UpdateResult.SUCCESS
    assert updater.latest_version == "v1.2.0"
    assert updater.latest_type is ReleaseType.RELEASE
    assert updater.latest_file_link == ZIP_URL
    assert updater.state is UpdateState.DONE
    assert (host.update_folder / "MyPlugin.jar").read_bytes() == b"new-jar"
    assert network.requested_urls == [RELEASES_URL, ZIP_URL]

    assert finished == []
    scheduler.run_all()
    assert finished == [updater]


def test_update_cycle_stages_release_package(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    network = install_fake_network(monkeypatch)
    network.add_json(RELEASES_URL, [release_entry("v1.2.0", JAR_URL)])
    network.add_bytes(JAR_URL, b"new-jar")
    host = make_host(tmp_path, version="1.1.0")

    updater = GitHubUpdater(host, "hexosse/MyPlugin", config=CONFIG)

    assert updater.result is UpdateResult.SUCCESS
    assert updater.latest_version == "v1.2.0"
    assert updater.latest_type is ReleaseType.RELEASE
    assert updater.latest_file_link == JAR_URL
    assert (host.update_folder / "MyPlugin.jar").read_bytes() == b"new-jar"


def test_interrupted_package_download_is_not_staged(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    network = install_fake_network(monkeypatch)
    network.add_json(RELEASES_URL, [release_entry("v1.2.0", JAR_URL)])
    network.add(JAR_URL, lambda: InterruptedResponse(b"x" * 4096, IncompleteRead(b"", 3072)))
    host = make_host(tmp_path, version="1.1.0")

    updater = GitHubUpdater(host, "hexosse/MyPlugin", config=CONFIG)

    assert updater.result is UpdateResult.FAIL_DOWNLOAD
    assert not (host.update_folder / "MyPlugin.jar").exists()


def test_empty_release_list_stops_before_download(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    network = install_fake_network(monkeypatch)
    network.add_json(RELEASES_URL, [])
    host = make_host(tmp_path)

    updater = GitHubUpdater(host, "hexosse/MyPlugin", config=CONFIG)

    assert updater.result is UpdateResult.FAIL_BADID
    assert updater.latest_version is None
    assert updater.latest_release is None
    assert network.requested_urls == [RELEASES_URL]


def test_no_download_mode_reports_available_update(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    network = install_fake_network(monkeypatch)
    network.add_json(RELEASES_URL, [release_entry("v1.2.0", ZIP_URL)])
    host = make_host(tmp_path)

    updater = GitHubUpdater(
        host, "hexosse/MyPlugin", update_type=UpdateType.NO_DOWNLOAD, config=CONFIG
    )

    assert updater.result is UpdateResult.UPDATE_AVAILABLE
    assert updater.latest_file_link == ZIP_URL
    assert network.requested_urls == [RELEASES_URL]
    assert not host.update_folder.exists()


def test_up_to_date_host_skips_download(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    network = install_fake_network(monkeypatch)
    network.add_json(RELEASES_URL, [release_entry("v1.1.0", ZIP_URL)])
    host = make_host(tmp_path, version="1.1.0")

    updater = GitHubUpdater(host, "hexosse/MyPlugin", config=CONFIG)

    assert updater.result is UpdateResult.NO_UPDATE
    assert updater.latest_version == "v1.1.0"
    assert network.requested_urls == [RELEASES_URL]


@pytest.mark.parametrize("repository", ["", "MyPlugin", "owner/repo/extra", "owner repo/x"])
def test_invalid_repository_fails_without_thread_or_callback(
    tmp_path: Path, repository: str, caplog
) -> None:  # type: ignore[no-untyped-def]
    scheduler = RecordingScheduler()
    host = make_host(tmp_path, scheduler=scheduler)
    finished: list[GitHubUpdater] = []

    with caplog.at_level("ERROR"):
        updater = GitHubUpdater(host, repository, callback=finished.append, config=CONFIG)

    assert updater.result is UpdateResult.FAIL_API
    assert updater.state is UpdateState.DONE
    assert scheduler.callbacks == []
    assert finished == []
    assert "Invalid update repository or URL" in caplog.text


def test_invalid_api_host_fails_with_api_result(tmp_path: Path) -> None:
    host = make_host(tmp_path)

    updater = GitHubUpdater(host, "hexosse/MyPlugin", config=UpdaterConfig(api_host="ftp://x"))

    assert updater.result is UpdateResult.FAIL_API


def test_unusable_query_template_fails_with_api_result(tmp_path: Path) -> None:
    scheduler = RecordingScheduler()
    config = UpdaterConfig(api_host=API_HOST, releases_query="/repos/{repository}/releases?per_page={n}")

    updater = GitHubUpdater(make_host(tmp_path, scheduler=scheduler), "hexosse/MyPlugin", config=config)

    assert updater.result is UpdateResult.FAIL_API
    assert updater.state is UpdateState.DONE
    assert scheduler.callbacks == []


def test_disabled_updater_does_nothing(tmp_path: Path) -> None:
    scheduler = RecordingScheduler()
    host = make_host(tmp_path, scheduler=scheduler)
    provider = StaticReleaseProvider(_release())

    updater = GitHubUpdater(
        host,
        "hexosse/MyPlugin",
        callback=lambda _: None,
        config=UpdaterConfig(disabled=True),
        provider=provider,
    )

    assert updater.result is UpdateResult.DISABLED
    assert updater.state is UpdateState.DONE
    assert provider.calls == 0
    assert scheduler.callbacks == []


def test_callback_is_scheduled_once_from_worker_thread(tmp_path: Path) -> None:
    scheduler = RecordingScheduler()
    host = make_host(tmp_path, scheduler=scheduler)
    calls: list[tuple[GitHubUpdater, threading.Thread]] = []

    updater = GitHubUpdater(
        host,
        "hexosse/MyPlugin",
        callback=lambda u: calls.append((u, threading.current_thread())),
        config=CONFIG,
        provider=StaticReleaseProvider(_release("v1.0.0")),
        installer=RecordingInstaller(),
    )
    updater.wait_for_thread()

    assert updater.result is UpdateResult.NO_UPDATE
    assert len(scheduler.callbacks) == 1
    assert scheduler.scheduling_threads[0] is not threading.current_thread()
    assert calls == []

    scheduler.run_all()

    assert calls == [(updater, threading.current_thread())]


def test_accessors_wait_for_the_background_run(tmp_path: Path) -> None:
    entered = threading.Event()
    gate = threading.Event()

    class GatedProvider:
        def fetch_latest(self) -> ReleaseDescriptor:
            entered.set()
            gate.wait(timeout=5)
            return _release("v1.2.0")

    installer = RecordingInstaller()
    updater = GitHubUpdater(
        make_host(tmp_path),
        "hexosse/MyPlugin",
        config=CONFIG,
        provider=GatedProvider(),
        installer=installer,
    )
    assert entered.wait(timeout=5)
    assert updater.state is UpdateState.FETCHING

    results: list[UpdateResult] = []
    reader = threading.Thread(target=lambda: results.append(updater.result))
    reader.start()
    reader.join(timeout=0.2)
    assert reader.is_alive()
    assert results == []

    gate.set()
    reader.join(timeout=5)

    assert results == [UpdateResult.SUCCESS]
    assert [release.tag for release in installer.installed] == ["v1.2.0"]


def test_constructor_keeps_arguments(tmp_path: Path) -> None:
    updater = GitHubUpdater(
        make_host(tmp_path),
        "hexosse/MyPlugin",
        tmp_path / "MyPlugin.jar",
        UpdateType.NO_VERSION_CHECK,
        config=CONFIG,
        provider=StaticReleaseProvider(_release("v0.1.0")),
        installer=RecordingInstaller(),
    )

    assert updater.repository == "hexosse/MyPlugin"
    assert updater.file == tmp_path / "MyPlugin.jar"
    assert updater.update_type is UpdateType.NO_VERSION_CHECK
    assert updater.result is UpdateResult.SUCCESS


def test_service_reports_state_sequence() -> None:
    states: list[UpdateState] = []
    service = UpdateService(
        StaticReleaseProvider(_release("v1.2.0")),
        RecordingInstaller(),
        current_version="1.1.0",
    )

    outcome = service.run(on_state=states.append)

    assert outcome.result is UpdateResult.SUCCESS
    assert outcome.release == _release("v1.2.0")
    assert states == [UpdateState.FETCHING, UpdateState.DECIDING, UpdateState.INSTALLING]


@pytest.mark.parametrize(
    ("release", "update_type", "expected_result", "expected_state"),
    [
        (_release("v1.0.0"), UpdateType.DEFAULT, UpdateResult.NO_UPDATE, UpdateState.SKIPPED),
        (_release("latest"), UpdateType.DEFAULT, UpdateResult.FAIL_NOVERSION, UpdateState.SKIPPED),
        (_release("v1.2.0", None), UpdateType.DEFAULT, UpdateResult.UPDATE_AVAILABLE, UpdateState.AWAITING_CHOICE),
        (_release("v1.2.0"), UpdateType.NO_DOWNLOAD, UpdateResult.UPDATE_AVAILABLE, UpdateState.AWAITING_CHOICE),
    ],
)
def test_service_stops_before_install(
    release: ReleaseDescriptor,
    update_type: UpdateType,
    expected_result: UpdateResult,
    expected_state: UpdateState,
) -> None:
    states: list[UpdateState] = []
    installer = RecordingInstaller()
    service = UpdateService(
        StaticReleaseProvider(release), installer, current_version="1.1.0", update_type=update_type
    )

    outcome = service.run(on_state=states.append)

    assert outcome.result is expected_result
    assert states[-1] is expected_state
    assert installer.installed == []


def test_service_converts_pipeline_errors_to_outcomes() -> None:
    lookup_failure = UpdateService(
        StaticReleaseProvider(error=UpdateError("down", UpdateResult.FAIL_DBO)),
        RecordingInstaller(),
        current_version="1.1.0",
    )
    install_failure = UpdateService(
        StaticReleaseProvider(_release("v1.2.0")),
        RecordingInstaller(UpdateError("disk full", UpdateResult.FAIL_DOWNLOAD)),
        current_version="1.1.0",
    )

    assert lookup_failure.run().result is UpdateResult.FAIL_DBO
    outcome = install_failure.run()
    assert outcome.result is UpdateResult.FAIL_DOWNLOAD
    assert outcome.release is not None and outcome.release.tag == "v1.2.0"


def test_failed_lookup_is_reported_to_host_logger(tmp_path: Path, caplog) -> None:  # type: ignore[no-untyped-def]
    host = make_host(tmp_path)

    with caplog.at_level("WARNING"):
        updater = GitHubUpdater(
            host,
            "hexosse/MyPlugin",
            config=CONFIG,
            provider=StaticReleaseProvider(error=UpdateError("forbidden", UpdateResult.FAIL_API)),
        )
        result = updater.result

    assert result is UpdateResult.FAIL_API
    host_messages = [r.getMessage() for r in caplog.records if r.name == host.logger.name]
    assert "Please double-check your configuration to ensure it is correct." in host_messages
