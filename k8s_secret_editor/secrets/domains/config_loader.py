"""Configuration loader for k8s-secret-editor."""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
import yaml

from ...errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "K8S_SECRET_EDITOR_CONFIG"
KUBECONFIG_ENV_VAR = "KUBECONFIG"
DEFAULT_REQUEST_TIMEOUT = 30.0

_STRING_FIELDS = ("editor", "kubeconfig")
_KNOWN_FIELDS = _STRING_FIELDS + ("request_timeout",)


def default_config_path() -> Path:
    """XDG Base Directory location of the config file."""
    return Path.home() / ".config" / "k8s-secret-editor" / "config.yml"


def _get_config_path(explicit: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Get config file path.

    Priority order:
    1. Explicit path (--config)
    2. K8S_SECRET_EDITOR_CONFIG environment variable
    3. Default location: ~/.config/k8s-secret-editor/config.yml

    Returns:
        Path to the config file, or None if the default file does not exist

    Raises:
        ConfigError: If an explicitly requested config file doesn't exist
    """
    if environ is None:
        environ = os.environ

    requested = explicit or environ.get(CONFIG_ENV_VAR)
    if requested:
        config_path = Path(requested).expanduser()
        if not config_path.is_file():
            raise ConfigError(f"Configuration file not found at: {config_path}")
        logger.info(f"Using config from {config_path}")
        return config_path

    default_config = default_config_path()
    if default_config.is_file():
        logger.info(f"Using default config location: {default_config}")
        return default_config

    logger.debug(f"No config file at {default_config}, using built-in defaults")
    return None


def load_config(explicit: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Load and validate the optional YAML config file.

    Returns:
        Dict with any of the keys:
        - editor: path or name of the editor program
        - kubeconfig: path to the kubeconfig file
        - request_timeout: per-call cluster timeout in seconds

    Raises:
        ConfigError: If the file is missing (when requested explicitly), invalid,
            or holds a field of the wrong type
    """
    config_path = _get_config_path(explicit, environ)
    if config_path is None:
        return {}

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}") from e

    if config is None:
        logger.warning(f"Config file at {config_path} is empty")
        return {}

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    for key in config:
        if key not in _KNOWN_FIELDS:
            logger.warning(f"Ignoring unknown config key '{key}' in {config_path}")

    for key in _STRING_FIELDS:
        if key in config and not isinstance(config[key], str):
            raise ConfigError(f"'{key}' in {config_path} must be a string")

    if "request_timeout" in config:
        timeout = config["request_timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(f"'request_timeout' in {config_path} must be a positive number")

    logger.debug(f"Configuration loaded successfully from {config_path}")
    return {key: config[key] for key in _KNOWN_FIELDS if key in config}


@dataclass(frozen=True)
class Settings:
    """Effective settings for one run, after flags, environment and config file."""
    editor_path: Optional[str]
    editor_fallback: Optional[str]
    kubeconfig: Optional[str]
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def resolve_settings(
    editor: Optional[str] = None,
    kubeconfig: Optional[str] = None,
    timeout: Optional[float] = None,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Merge command-line values with the environment and config file.

    Each setting follows: flag -> environment -> config file -> default.
    The editor is the exception: editor_path holds only the --editor value and
    editor_fallback the config-file value, because EDITOR is consulted between
    them when the editor is resolved.

    Raises:
        ConfigError: If the config file is invalid or the timeout is not positive
    """
    if environ is None:
        environ = os.environ

    config = load_config(config_path, environ)

    if timeout is not None and timeout <= 0:
        raise ConfigError("timeout must be a positive number of seconds")

    return Settings(
        editor_path=editor,
        editor_fallback=config.get("editor"),
        kubeconfig=kubeconfig or environ.get(KUBECONFIG_ENV_VAR) or config.get("kubeconfig"),
        request_timeout=float(timeout or config.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
    )
