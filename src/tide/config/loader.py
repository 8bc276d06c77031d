from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import httpx

from tide.config.models import RetryConfig, SuccessPolicy, TargetConfig, TestConfig

DEFAULT_CONFIG_PATH = "config.toml"
CONFIG_ENV_VAR = "TIDE_CONFIG"

_FLAT_KEYS = ("url", "method", "concurrency", "duration", "timeout", "retries", "tick_interval")


class ConfigError(ValueError):
    pass


def validate_config(config: TestConfig) -> TestConfig:
    _validate_url(config.target.url)
    if config.concurrency < 1:
        raise ConfigError("Concurrency must be > 0")
    if config.duration_sec < 0:
        raise ConfigError("Duration must be >= 0")
    if config.target.timeout_sec <= 0:
        raise ConfigError("Timeout must be > 0")
    if config.tick_interval_sec <= 0:
        raise ConfigError("Tick interval must be > 0")
    if not config.target.method.strip():
        raise ConfigError("HTTP method is required")
    _validate_headers(config.target.headers)
    retry = config.retry
    if retry.max_retries < 0:
        raise ConfigError("Retries must be >= 0")
    if retry.base_delay_sec < 0 or retry.max_delay_sec < 0:
        raise ConfigError("Backoff delays must be >= 0")
    if retry.multiplier < 1:
        raise ConfigError("Backoff multiplier must be >= 1")
    success = config.success
    if success.min_status > success.max_status:
        msg = f"Invalid success status range: {success.min_status}-{success.max_status}"
        raise ConfigError(msg)
    return config


def _validate_url(url: str) -> None:
    if not url or not url.strip():
        raise ConfigError("Target URL is required")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ConfigError("Invalid target URL") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError("Invalid target URL")


def _validate_headers(headers: Mapping[str, str]) -> None:
    for name, value in headers.items():
        if not isinstance(name, str) or not isinstance(value, str):
            msg = f"Header {name!r} must map a string name to a string value"
            raise ConfigError(msg)
        try:
            name.encode("ascii")
            value.encode("ascii")
        except UnicodeEncodeError as exc:
            msg = f"Header {name!r} must contain only ASCII characters"
            raise ConfigError(msg) from exc


def config_path_from_env(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    return Path(env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise ConfigError(msg)
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Malformed config file {path}: {exc}"
        raise ConfigError(msg) from exc


def build_config(
    file_values: Mapping[str, Any] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> TestConfig:
    """Layer defaults, config file values and explicit overrides into a validated config.

    Keys follow the config file format: ``url``, ``method``, ``concurrency``,
    ``duration``, ``timeout``, ``retries``, ``tick_interval`` and ``headers``,
    plus optional ``[retry]`` and ``[success]`` tables. Override values of
    ``None`` are treated as not given.
    """
    values: dict[str, Any] = dict(file_values or {})
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    unknown = set(values) - set(_FLAT_KEYS) - {"headers", "retry", "success"}
    if unknown:
        msg = f"Unknown config keys: {', '.join(sorted(unknown))}"
        raise ConfigError(msg)

    target_defaults = TargetConfig(url="")
    retry_values = dict(values.get("retry") or {})
    success_values = dict(values.get("success") or {})
    defaults = TestConfig(target=target_defaults)
    try:
        target = TargetConfig(
            url=str(values.get("url", "")),
            method=str(values.get("method", target_defaults.method)).upper(),
            timeout_sec=float(values.get("timeout", target_defaults.timeout_sec)),
            headers=dict(values.get("headers") or {}),
        )
        retry = RetryConfig(
            max_retries=int(values.get("retries", defaults.retry.max_retries)),
            base_delay_sec=float(retry_values.get("base_delay", defaults.retry.base_delay_sec)),
            multiplier=float(retry_values.get("multiplier", defaults.retry.multiplier)),
            max_delay_sec=float(retry_values.get("max_delay", defaults.retry.max_delay_sec)),
        )
        success = SuccessPolicy(
            min_status=int(success_values.get("min_status", defaults.success.min_status)),
            max_status=int(success_values.get("max_status", defaults.success.max_status)),
        )
        config = TestConfig(
            target=target,
            concurrency=int(values.get("concurrency", defaults.concurrency)),
            duration_sec=float(values.get("duration", defaults.duration_sec)),
            tick_interval_sec=float(values.get("tick_interval", defaults.tick_interval_sec)),
            retry=retry,
            success=success,
        )
    except (TypeError, ValueError) as exc:
        msg = f"Invalid config value: {exc}"
        raise ConfigError(msg) from exc
    return validate_config(config)
