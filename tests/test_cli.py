from __future__ import annotations

import asyncio
import functools
import logging
import signal
from pathlib import Path
from typing import Callable

import httpx
import pytest

from tide import cli
from tide.cli import build_parser, install_cancel_handlers, main, resolve_config
from tide.loadgen import LoadScheduler


def _write_config(tmp_path: Path) -> Path:
    path = tmp_path / "tide.toml"
    path.write_text('url = "https://example.com"\nconcurrency = 7\nduration = 3\n')
    return path


def test_cli_flags_override_config_file(tmp_path: Path) -> None:
    path = _write_config(tmp_path)
    args = build_parser().parse_args(["--config", str(path), "-n", "2", "--retries", "0"])
    config = resolve_config(args)
    assert config.target_url == "https://example.com"
    assert config.concurrency == 2
    assert config.duration_sec == 3.0
    assert config.max_retries == 0


def test_missing_default_config_falls_back_to_arguments(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TIDE_CONFIG", str(tmp_path / "absent.toml"))
    args = build_parser().parse_args(["--url", "http://localhost:9000/", "-t", "1"])
    config = resolve_config(args)
    assert config.target_url == "http://localhost:9000/"
    assert config.duration_sec == 1.0


def test_invalid_url_exits_with_usage_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIDE_CONFIG", str(tmp_path / "absent.toml"))
    with pytest.raises(SystemExit) as exc_info:
        main(["--url", "invalid-url", "--no-banner"])
    assert exc_info.value.code == 2


def test_explicit_missing_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(tmp_path / "absent.toml"), "--no-banner"])
    assert exc_info.value.code == 2


def test_main_runs_a_short_test_end_to_end(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    requests: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        await asyncio.sleep(0.01)
        return httpx.Response(200, text="ok")

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(cli, "LoadScheduler", functools.partial(LoadScheduler, transport=transport))
    monkeypatch.setenv("TIDE_CONFIG", str(tmp_path / "absent.toml"))
    caplog.set_level(logging.INFO)

    code = main(["--url", "http://tide.test/", "-n", "2", "-t", "0.3", "--interval", "0.1", "--no-banner"])

    assert code == 0
    out = capsys.readouterr().out
    assert "*** Summary Report ***" in out
    assert f"| {'Total Requests':<25} | {len(requests)}" in out
    assert requests
    assert any(r.name == "tide.cli" and "Time elapsed" in r.getMessage() for r in caplog.records)


class _LoopWithoutSignals:
    def __init__(self) -> None:
        self.scheduled: list[Callable[[], None]] = []

    def add_signal_handler(self, sig: int, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        self.scheduled.append(callback)


def test_fallback_signal_handlers_are_restored() -> None:
    before = signal.getsignal(signal.SIGTERM)
    loop = _LoopWithoutSignals()
    calls: list[str] = []

    restore = install_cancel_handlers(loop, lambda: calls.append("cancel"))
    try:
        handler = signal.getsignal(signal.SIGTERM)
        assert handler is not before
        handler(signal.SIGTERM, None)
        assert len(loop.scheduled) == 1
        loop.scheduled[0]()
        assert calls == ["cancel"]
    finally:
        restore()

    assert signal.getsignal(signal.SIGTERM) == before
