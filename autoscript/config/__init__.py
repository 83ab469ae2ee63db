"""YAML configuration loader and session context for autoscript."""

import copy
import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Mapping
import logging

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable carrying the ID of the session a process runs inside
SESSION_ENV_VAR = "AUTOSCRIPT_SESSION"

CONFIG_FILENAME = "config.yaml"


def get_config_directory(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Resolve the autoscript configuration directory.

    Follows the XDG convention: ``$XDG_CONFIG_HOME/autoscript``, falling back
    to ``~/.config/autoscript`` when the variable is unset or empty.
    """
    environ = os.environ if environ is None else environ
    base = environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "autoscript"
    return Path.home() / ".config" / "autoscript"


def _default_config(config_dir: Path) -> Dict[str, Any]:
    return {
        "storage": {
            "directory": str(config_dir / "sessions"),
        },
        "recorder": {
            "command": "script",
            "flush": True,
        },
        "replayer": {
            "command": "scriptreplay",
        },
        "logging": {
            "level": "WARNING",
            "file_path": str(config_dir / "autoscript.log"),
            "console_output": True,
        },
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class AutoscriptConfig:
    """autoscript configuration loader."""

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses config.yaml in
                        the configuration directory when it exists, and the
                        built-in defaults otherwise.
            environ: Environment used to resolve the configuration directory
        """
        self.config_dir = get_config_directory(environ)

        if config_path is not None:
            self.config_file: Optional[Path] = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        else:
            candidate = self.config_dir / CONFIG_FILENAME
            self.config_file = candidate if candidate.exists() else None

        defaults = _default_config(self.config_dir)
        if self.config_file is None:
            logger.debug("No configuration file, using defaults")
            self.config = defaults
        else:
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = _merge(defaults, self._load_config())

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file {self.config_file}: {e}")

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Configuration file {self.config_file} must contain a mapping"
            )

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve storage directory
        if isinstance(config.get('storage'), dict) and config['storage'].get('directory'):
            data_dir = os.path.expanduser(str(config['storage']['directory']))
            if not os.path.isabs(data_dir):
                data_dir = str(config_dir / data_dir)
            config['storage']['directory'] = data_dir

        # Resolve log file path
        if isinstance(config.get('logging'), dict) and config['logging'].get('file_path'):
            log_path = os.path.expanduser(str(config['logging']['file_path']))
            if not os.path.isabs(log_path):
                log_path = str(config_dir / log_path)
            config['logging']['file_path'] = log_path

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recorder.command').

        Args:
            key_path: Dot-separated key path (e.g., 'storage.directory')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_storage_directory(self) -> Path:
        """Get the session storage root."""
        storage_dir = self.get('storage.directory')
        if not storage_dir:
            raise ConfigurationError("storage.directory is not configured")
        return Path(storage_dir).absolute()


@dataclass(frozen=True)
class SessionContext:
    """Explicit invocation context threaded through every controller.

    Attributes:
        storage_root: Directory holding all session artifacts
        current_session: ID of the session this process runs inside, if any
    """
    storage_root: Path
    current_session: Optional[int] = None

    @property
    def inside_session(self) -> bool:
        return self.current_session is not None

    @classmethod
    def from_config(cls, config: AutoscriptConfig,
                    environ: Optional[Mapping[str, str]] = None) -> "SessionContext":
        environ = os.environ if environ is None else environ
        return cls(
            storage_root=config.get_storage_directory(),
            current_session=parse_session_env(environ.get(SESSION_ENV_VAR)),
        )


def parse_session_env(value: Optional[str]) -> Optional[int]:
    """Interpret the inherited session-identity variable."""
    if value is None or value == "":
        return None
    try:
        session_id = int(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {SESSION_ENV_VAR}={value!r}")
        return None
    if session_id < 1:
        logger.warning(f"Ignoring invalid {SESSION_ENV_VAR}={value!r}")
        return None
    return session_id
