from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Callable, Sequence

from tide import __version__
from tide.config import ConfigError, TestConfig, build_config, config_path_from_env, load_config_file
from tide.loadgen import LoadScheduler
from tide.metrics import MetricsSnapshot
from tide.report import render_report

logger = logging.getLogger(__name__)

BANNER = r"""
 _____ ___ ____  _____
|_   _|_ _|  _ \| ____|
  | |  | || | | |  _|
  | |  | || |_| | |___
  |_| |___|____/|_____|
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tide", description="A concurrent HTTP load testing tool")
    parser.add_argument("--url", help="Target URL")
    parser.add_argument("-n", "--concurrency", type=int, help="Concurrent requests per interval (default 5)")
    parser.add_argument("-t", "--duration", type=float, help="Test duration in seconds (default 10)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default 10)")
    parser.add_argument("--retries", type=int, help="Retries for failed requests (default 2)")
    parser.add_argument("--method", help="HTTP method (default GET)")
    parser.add_argument("--interval", type=float, dest="tick_interval", help="Seconds between batches (default 1)")
    parser.add_argument("--config", type=Path, help="TOML config file (default $TIDE_CONFIG or config.toml)")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--no-banner", action="store_true")
    parser.add_argument("--version", action="version", version=f"tide {__version__}")
    return parser


def _file_values(args: argparse.Namespace) -> dict[str, Any]:
    if args.config is not None:
        return load_config_file(args.config)
    path = config_path_from_env()
    try:
        return load_config_file(path)
    except ConfigError as exc:
        logger.warning("%s, using command-line arguments", exc)
        return {}


def resolve_config(args: argparse.Namespace) -> TestConfig:
    overrides = {
        "url": args.url,
        "concurrency": args.concurrency,
        "duration": args.duration,
        "timeout": args.timeout,
        "retries": args.retries,
        "method": args.method,
        "tick_interval": args.tick_interval,
    }
    return build_config(_file_values(args), overrides)


def install_cancel_handlers(loop: asyncio.AbstractEventLoop, cancel: Callable[[], None]) -> Callable[[], None]:
    """Route SIGINT and SIGTERM to ``cancel``; returns a function undoing it."""
    installed: list[signal.Signals] = []
    previous: dict[signal.Signals, Any] = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            previous[sig] = signal.signal(sig, lambda *_: loop.call_soon_threadsafe(cancel))

    def restore() -> None:
        for sig in installed:
            loop.remove_signal_handler(sig)
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return restore


async def run_with_signals(config: TestConfig) -> MetricsSnapshot:
    async def on_progress(tick: int, launched: int) -> None:
        elapsed = scheduler.elapsed()
        remaining = max(0.0, config.duration_sec - elapsed)
        logger.info(
            "Time elapsed: %.0fs - Time remaining: %.0fs (batch %d, %d requests launched)",
            elapsed,
            remaining,
            tick,
            launched,
        )

    scheduler = LoadScheduler(config, progress=on_progress)
    restore = install_cancel_handlers(asyncio.get_running_loop(), scheduler.cancel)
    try:
        return await scheduler.run()
    finally:
        restore()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not args.no_banner:
        print(BANNER)

    try:
        config = resolve_config(args)
    except ConfigError as exc:
        parser.error(str(exc))

    logger.info(
        "Running for %gs with concurrency=%d, timeout=%gs, retries=%d",
        config.duration_sec,
        config.concurrency,
        config.timeout_sec,
        config.max_retries,
    )
    snapshot = asyncio.run(run_with_signals(config))
    print()
    print(render_report(config.target_url, config.concurrency, snapshot))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
