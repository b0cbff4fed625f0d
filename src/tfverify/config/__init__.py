"""Configuration providers and verification options."""

from tfverify.config.models import FileSettings, VerificationOptions
from tfverify.config.providers import (
    ChainConfigProvider,
    ConfigProvider,
    DotEnvConfigProvider,
    EnvConfigProvider,
    YamlConfigProvider,
    check_required_variables,
    create_config_manager,
)

__all__ = [
    "ChainConfigProvider",
    "ConfigProvider",
    "DotEnvConfigProvider",
    "EnvConfigProvider",
    "FileSettings",
    "VerificationOptions",
    "YamlConfigProvider",
    "check_required_variables",
    "create_config_manager",
]
