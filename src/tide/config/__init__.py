from __future__ import annotations

from tide.config.loader import (
    CONFIG_ENV_VAR,
    ConfigError,
    build_config,
    config_path_from_env,
    load_config_file,
    validate_config,
)
from tide.config.models import RetryConfig, SuccessPolicy, TargetConfig, TestConfig

__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigError",
    "RetryConfig",
    "SuccessPolicy",
    "TargetConfig",
    "TestConfig",
    "build_config",
    "config_path_from_env",
    "load_config_file",
    "validate_config",
]
