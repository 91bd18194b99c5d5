"""Configuration loading: YAML settings file, poll policies, credentials."""

import logging
import os
from dataclasses import dataclass

import yaml

from cloudawait.polling import PollPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.cloudawait.yaml"
CONFIG_ENV_VAR = "CLOUDAWAIT_CONFIG"

# Built-in poll policies, keyed by the condition being awaited
DEFAULT_POLICIES = {
    "instance_running": {"max_wait": 180, "period": 5},
    "port_open": {"max_wait": 300, "period": 1},
    "server_active": {"max_wait": 600, "period": 10, "initial_delay": 10},
    "snapshot_available": {"max_wait": 1200, "period": 5},
    "nodes_deleted": {"max_wait": 600, "period": 20},
    "http_ok": {"max_wait": 300, "period": 5},
}

_POLICY_KEYS = {"max_wait", "period", "initial_delay", "max_period"}

DEFAULT_EC2_REGION = "us-east-1"
DEFAULT_RACKSPACE_REGION = "dfw"
DEFAULT_RACKSPACE_REGIONS = ["dfw", "ord", "iad"]


class ConfigError(Exception):
    """Config file missing, unreadable, or structurally invalid."""


@dataclass(frozen=True)
class Credentials:
    identity: str
    credential: str


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path))


def _section(config: dict, key: str, label: str | None = None) -> dict:
    """Return ``config[key]`` as a mapping; a missing or null section is empty."""
    value = config.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{label or key} must be a mapping, got {type(value).__name__}")
    return value


def load_config(config_path: str | None = None) -> dict:
    """Load the YAML settings file.

    Resolution order: *config_path*, ``$CLOUDAWAIT_CONFIG``, then
    ``~/.cloudawait.yaml``. Only the implicit default may be absent.

    Raises:
        ConfigError: explicit file missing, invalid YAML, or not a mapping.
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    path = _expand_path(explicit or DEFAULT_CONFIG_PATH)

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        if explicit:
            raise ConfigError(f"Config file '{path}' not found.") from None
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config '{path}': {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level.")
    logger.debug(f"Loaded config from {path}")
    return config


def poll_policy(config: dict, name: str) -> PollPolicy:
    """Build the PollPolicy for *name*, overlaying config values on built-in defaults.

    Raises:
        ConfigError: unknown policy name or unknown keys.
        ConfigurationError: values rejected by PollPolicy.
    """
    if name not in DEFAULT_POLICIES:
        raise ConfigError(f"Unknown poll policy '{name}'")
    overrides = _section(_section(config, "polling"), name, f"polling.{name}")
    unknown = set(overrides) - _POLICY_KEYS
    if unknown:
        raise ConfigError(f"Unknown key(s) in polling.{name}: {', '.join(sorted(unknown))}")
    return PollPolicy(**{**DEFAULT_POLICIES[name], **overrides})


def provider_setting(config: dict, provider: str, key: str, default=None):
    """Return ``config[provider][key]`` or *default*.

    Raises:
        ConfigError: if the provider section is not a mapping.
    """
    return _section(config, provider).get(key, default)


def provider_list(config: dict, provider: str, key: str, default: list[str]) -> list[str]:
    """Return ``config[provider][key]`` as a list of strings; a single string becomes a one-item list.

    Raises:
        ConfigError: if the value is neither a string nor a list of strings.
    """
    value = provider_setting(config, provider, key, default)
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{provider}.{key} must be a string or a list of strings, got {value!r}")
    return value


def resolve_credentials(identity, credential, identity_env, credential_env) -> Credentials:
    """Return credentials from CLI flags, falling back to environment variables.

    Raises:
        ConfigError: if either half is missing.
    """
    identity = identity or os.environ.get(identity_env)
    credential = credential or os.environ.get(credential_env)
    if not identity or not credential:
        raise ConfigError(
            f"Credentials required. Use --identity/--credential or set {identity_env} and {credential_env}."
        )
    return Credentials(identity, credential)
