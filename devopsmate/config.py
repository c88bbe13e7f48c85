"""Settings: YAML config file, environment and CLI flag resolution."""

import logging
import os
import sys
from dataclasses import dataclass, fields, replace

import yaml

from devopsmate.provisioning.civo import DEFAULT_API_URL, DEFAULT_DISK_IMAGE, DEFAULT_SIZE
from devopsmate.provisioning.installers import DEFAULT_STEP_TIMEOUT
from devopsmate.provisioning.provisioner import DEFAULT_DEADLINE, DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = ("CIVO_API_KEY", "CIVO_TOKEN")

# YAML section -> {yaml key: Settings field}
_SECTIONS = {
    "civo": {"region": "region", "size": "size", "disk_image": "disk_image", "api_url": "api_url", "hostname": "hostname"},
    "provision": {
        "timeout": "timeout",
        "poll_interval": "poll_interval",
        "upload_key": "upload_key",
        "wait_ssh": "wait_ssh",
        "install": "install",
    },
    "install": {"step_timeout": "step_timeout"},
    "kubernetes": {"cluster_name": "cluster_name", "size": "cluster_size", "nodes": "cluster_nodes"},
}


_BOOL_FIELDS = {"upload_key", "wait_ssh", "install"}
_NUMBER_FIELDS = {"timeout", "poll_interval", "step_timeout"}
_INT_FIELDS = {"cluster_nodes"}


@dataclass
class Settings:
    """Everything a provisioning run needs apart from the API key."""

    region: str | None = None
    ssh_key: str = "~/.ssh/id_ed25519"  # path to SSH private key
    size: str = DEFAULT_SIZE
    disk_image: str = DEFAULT_DISK_IMAGE
    hostname: str | None = None
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_DEADLINE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    upload_key: bool = False
    wait_ssh: bool = True
    install: bool = True
    step_timeout: float = DEFAULT_STEP_TIMEOUT
    cluster_name: str = "my-cluster"
    cluster_size: str = "g3.k3s.medium"
    cluster_nodes: int = 3

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if v is not None and k in known})


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    try:
        with open(expand_path(config_path)) as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Error: Config file '{config_path}' not found.")
        sys.exit(1)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML config: {e}")
        sys.exit(1)
    return config or {}


def validate_config(config: dict) -> None:
    """Validate the config layout and the type of every value."""
    if not isinstance(config, dict):
        logger.error("Error: Config file must contain a mapping.")
        sys.exit(1)
    for section, mapping in _SECTIONS.items():
        values = config.get(section) or {}
        if not isinstance(values, dict):
            logger.error(f"Error: '{section}' section must be a mapping.")
            sys.exit(1)
        for key in values:
            if key not in mapping:
                logger.error(f"Error: Unknown key '{key}' in '{section}' section.")
                sys.exit(1)
            expected = _expected_type(mapping[key], values[key])
            if expected:
                logger.error(f"Error: '{section}.{key}' must be {expected}, got {values[key]!r}.")
                sys.exit(1)
    if "ssh_key" in config and _expected_type("ssh_key", config["ssh_key"]):
        logger.error(f"Error: 'ssh_key' must be a string, got {config['ssh_key']!r}.")
        sys.exit(1)


def _expected_type(field, value):
    """Describe the type ``field`` needs, or return None when ``value`` fits."""
    if value is None:
        return None
    if field in _BOOL_FIELDS:
        return None if isinstance(value, bool) else "true or false"
    # bool is an int subclass; reject it for numeric fields
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if field in _NUMBER_FIELDS:
        return None if is_number and value > 0 else "a positive number"
    if field in _INT_FIELDS:
        return None if is_number and isinstance(value, int) and value >= 1 else "a positive integer"
    return None if isinstance(value, str) else "a string"


def settings_from_config(config: dict) -> Settings:
    """Flatten a validated config dict into Settings."""
    values = {}
    if config.get("ssh_key"):
        values["ssh_key"] = config["ssh_key"]
    for section, mapping in _SECTIONS.items():
        for key, value in (config.get(section) or {}).items():
            values[mapping[key]] = value
    return Settings().with_overrides(**values)


def load_settings(config_path: str | None = None) -> Settings:
    """Settings from the config file if given, defaults otherwise."""
    if not config_path:
        return Settings()
    config = load_config(config_path)
    validate_config(config)
    return settings_from_config(config)


def resolve_api_key(flag_value: str | None) -> str | None:
    """Return the API key from the CLI flag or the CIVO_API_KEY / CIVO_TOKEN env vars."""
    if flag_value:
        return flag_value
    for var in API_KEY_ENV_VARS:
        value = os.environ.get(var)
        if value:
            return value
    return None


def expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path))
