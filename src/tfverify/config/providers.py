"""Key/value configuration providers and the default provider chain."""

import os
import stat
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from tfverify.config.models import FileSettings
from tfverify.utils.errors import ConfigurationError, ErrorContext
from tfverify.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ENV_FILE_NAME = ".env.terraform"
DEFAULT_YAML_PATH = "tfverify.yaml"

REQUIRED_VARIABLES = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION",
)


class ConfigProvider(ABC):
    """Read-only source of string configuration values."""

    @abstractmethod
    def get(self, key: str) -> Tuple[str, bool]:
        """Return ``(value, found)`` for a key; value is "" when not found."""

    def get_with_default(self, key: str, default: str) -> str:
        value, found = self.get(key)
        return value if found else default

    def get_required(self, key: str) -> str:
        """Return a value or raise when the key is absent.

        Raises:
            ConfigurationError: If the key is not set
        """
        value, found = self.get(key)
        if not found:
            raise ConfigurationError(
                f"Required setting {key} is not set",
                context=ErrorContext(additional_info={'key': key}),
                suggestions=[f"export {key}=<value>", f"Add {key}=<value> to ~/{DEFAULT_ENV_FILE_NAME}"]
            )
        return value


class EnvConfigProvider(ConfigProvider):
    """Values from the process environment."""

    def get(self, key: str) -> Tuple[str, bool]:
        value = os.environ.get(key)
        if value is None:
            return "", False
        return value, True


class DotEnvConfigProvider(ConfigProvider):
    """Values from KEY=VALUE files such as ~/.env.terraform.

    Later loads override earlier ones for the same key.
    """

    def __init__(self):
        self.values: Dict[str, str] = {}

    def load(self, path) -> None:
        """Load a dotenv file; a missing file is ignored.

        Raises:
            ConfigurationError: If the file is readable by group or others
            OSError: If the file exists but cannot be read
        """
        path = Path(path)
        if not path.exists():
            return

        if sys.platform != "win32":
            mode = path.stat().st_mode
            if mode & (stat.S_IRWXG | stat.S_IRWXO):
                raise ConfigurationError(
                    f"Config file {path} has unsafe permissions "
                    f"({stat.S_IMODE(mode):o}, expected 600)",
                    suggestions=[f"chmod 600 {path}"]
                )

        with open(path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                    value = value[1:-1]
                self.values[key] = value

        logger.debug(f"Loaded config file {path}")

    def get(self, key: str) -> Tuple[str, bool]:
        if key in self.values:
            return self.values[key], True
        return "", False


class YamlConfigProvider(ConfigProvider):
    """Values from tfverify.yaml, validated against FileSettings."""

    def __init__(self):
        self.values: Dict[str, str] = {}

    def load(self, path) -> None:
        """Load a YAML settings file; a missing file is ignored.

        Raises:
            ConfigurationError: If the file is not valid YAML or fails validation
        """
        path = Path(path)
        if not path.exists():
            return

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML in {path}: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level")

        try:
            settings = FileSettings(**data)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid settings in {path}: {details}", cause=e) from e

        self.values.update(settings.to_config_values())
        logger.debug(f"Loaded settings file {path}")

    def get(self, key: str) -> Tuple[str, bool]:
        if key in self.values:
            return self.values[key], True
        return "", False


class ChainConfigProvider(ConfigProvider):
    """Looks a key up in each provider in turn; the first hit wins."""

    def __init__(self, providers: Optional[Sequence[ConfigProvider]] = None):
        self.providers: List[ConfigProvider] = list(providers or [])

    def add_provider(self, provider: ConfigProvider) -> None:
        self.providers.append(provider)

    def get(self, key: str) -> Tuple[str, bool]:
        for provider in self.providers:
            value, found = provider.get(key)
            if found:
                return value, True
        return "", False


def create_config_manager(
    env_file_name: str = DEFAULT_ENV_FILE_NAME,
    yaml_path: Optional[str] = DEFAULT_YAML_PATH,
    home_dir: Optional[Path] = None
) -> ChainConfigProvider:
    """Build the default chain: environment, dotenv files, then YAML settings.

    The global ``~/<env_file_name>`` is loaded before the local one so local
    values override it. Load failures are logged and do not abort.

    Args:
        env_file_name: Dotenv file name looked up in the home and current directory
        yaml_path: Path of the YAML settings file, or None to skip it
        home_dir: Home directory override

    Returns:
        Configured ChainConfigProvider
    """
    chain = ChainConfigProvider()
    chain.add_provider(EnvConfigProvider())

    dotenv = DotEnvConfigProvider()
    home = home_dir if home_dir is not None else Path.home()
    for path in (home / env_file_name, Path(env_file_name)):
        try:
            dotenv.load(path)
        except (ConfigurationError, OSError) as e:
            logger.warning(f"Failed to load config file {path}: {e}")
    chain.add_provider(dotenv)

    if yaml_path:
        yaml_provider = YamlConfigProvider()
        try:
            yaml_provider.load(yaml_path)
        except ConfigurationError as e:
            logger.warning(f"Failed to load settings file {yaml_path}: {e.message}")
        chain.add_provider(yaml_provider)

    return chain


def check_required_variables(
    provider: ConfigProvider,
    keys: Sequence[str] = REQUIRED_VARIABLES
) -> None:
    """Check that every required key is configured.

    Raises:
        ConfigurationError: Listing all missing keys
    """
    missing = [key for key in keys if not provider.get(key)[1]]
    if not missing:
        return

    first = missing[0]
    raise ConfigurationError(
        f"Missing required settings: {', '.join(missing)}",
        context=ErrorContext(additional_info={'missing': missing}),
        suggestions=[
            f"Set an environment variable: export {first}=<value>",
            f"Add it to ~/{DEFAULT_ENV_FILE_NAME}: {first}=<value>",
            "Use the AWS credentials file (~/.aws/credentials)",
        ]
    )
