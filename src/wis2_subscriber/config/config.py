"""Subscriber configuration from CLI flags, environment and an optional YAML file.

Precedence (highest first): CLI flag, WIS2_* environment variable, the
``subscriber:`` section of the YAML file, dataclass default.

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import logging
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from wis2_subscriber.core.errors.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "WIS2_"

# scheme -> (default port, paho transport, TLS)
BROKER_SCHEMES: dict[str, tuple[int, str, bool]] = {
    "tcp": (1883, "tcp", False),
    "mqtt": (1883, "tcp", False),
    "ssl": (8883, "tcp", True),
    "tls": (8883, "tcp", True),
    "mqtts": (8883, "tcp", True),
    "ws": (80, "websockets", False),
    "wss": (443, "websockets", True),
}

DEFAULT_WS_PATH = "/mqtt"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} in config data."""
    environ = os.environ if environ is None else environ
    if isinstance(data, dict):
        return {key: _expand_env_vars(value, environ) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item, environ) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return environ.get(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


@dataclass(frozen=True)
class BrokerAddress:
    scheme: str
    host: str
    port: int
    transport: str
    use_tls: bool
    path: str = DEFAULT_WS_PATH

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class SubscriberConfig:
    """Subscriber configuration.

    Built once at startup and handed to the broker session, dispatcher and
    fetcher. Durations are in seconds.
    """

    # =========================================================================
    # BROKER
    # =========================================================================
    server: str
    topic: str
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    cafile: str | None = None
    cert: str | None = None
    key: str | None = field(default=None, repr=False)
    client_id: str = "wis2-mqtt-subscriber"
    qos: int = 0
    keepalive: int = 60
    connect_retry_interval: float = 5.0
    reconnect_min_delay: int = 2
    reconnect_max_delay: int = 60
    disconnect_timeout: float = 0.25

    # =========================================================================
    # DOWNLOADS
    # =========================================================================
    download_dir: str = "downloads"
    max_concurrent_fetches: int = 10
    fetch_timeout: float = 300.0
    shutdown_grace_period: float = 30.0

    def broker_address(self) -> BrokerAddress:
        """Split the server URL into host, port, transport and TLS flag.

        Raises:
            ConfigError: On an unsupported scheme, missing host or bad port
        """
        parsed = urlsplit(self.server)
        scheme = parsed.scheme.lower()
        if scheme not in BROKER_SCHEMES:
            raise ConfigError(
                f"Unsupported broker URL scheme: {scheme or '(none)'} "
                f"(expected one of {', '.join(BROKER_SCHEMES)})"
            )

        host = parsed.hostname
        if not host:
            raise ConfigError(f"Broker URL has no host: {self.server}")

        try:
            port = parsed.port
        except ValueError as e:
            raise ConfigError(f"Invalid broker port in {self.server}", cause=e) from e

        default_port, transport, use_tls = BROKER_SCHEMES[scheme]
        return BrokerAddress(
            scheme=scheme,
            host=host,
            port=port or default_port,
            transport=transport,
            use_tls=use_tls,
            path=parsed.path or DEFAULT_WS_PATH,
        )

    def validate(self) -> None:
        """Validate configuration for correctness and constraints.

        Collects every problem before raising so a misconfigured deployment
        is fixed in one pass.

        Raises:
            ConfigError: Listing all problems found
        """
        errors: list[str] = []

        if not self.server:
            errors.append("server is required")
        else:
            try:
                self.broker_address()
            except ConfigError as e:
                errors.append(e.message)

        if not self.topic:
            errors.append("topic is required")

        if bool(self.cert) != bool(self.key):
            errors.append("cert and key must be provided together")

        if self.qos not in (0, 1, 2):
            errors.append(f"qos must be one of [0, 1, 2], got {self.qos}")

        self._validate_min(errors, "keepalive", 0, inclusive=True)
        self._validate_min(errors, "connect_retry_interval", 0, inclusive=False)
        self._validate_min(errors, "reconnect_min_delay", 1, inclusive=True)
        self._validate_min(errors, "reconnect_max_delay", self.reconnect_min_delay, inclusive=True)
        self._validate_min(errors, "max_concurrent_fetches", 1, inclusive=True)
        self._validate_min(errors, "fetch_timeout", 0, inclusive=False)
        self._validate_min(errors, "shutdown_grace_period", 0, inclusive=True)
        self._validate_min(errors, "disconnect_timeout", 0, inclusive=True)

        if errors:
            raise ConfigError(
                "Invalid configuration: " + "; ".join(errors),
                context={"errors": errors},
            )

    def _validate_min(
        self,
        errors: list[str],
        key: str,
        min_value: float,
        inclusive: bool,
    ) -> None:
        value = getattr(self, key)
        if inclusive and value < min_value:
            errors.append(f"{key} must be >= {min_value}, got {value}")
        elif not inclusive and value <= min_value:
            errors.append(f"{key} must be > {min_value}, got {value}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    return float(value)


def _to_str(value: Any) -> str:
    return str(value)


# field -> (argparse dest, converter). Env var is WIS2_<FIELD>.
SETTINGS: dict[str, tuple[str | None, Callable[[Any], Any]]] = {
    "server": ("server", _to_str),
    "topic": ("topic", _to_str),
    "username": ("username", _to_str),
    "password": ("password", _to_str),
    "cafile": ("cafile", _to_str),
    "cert": ("cert", _to_str),
    "key": ("key", _to_str),
    "client_id": ("clientid", _to_str),
    "qos": ("qos", _to_int),
    "keepalive": (None, _to_int),
    "connect_retry_interval": (None, _to_float),
    "reconnect_min_delay": (None, _to_int),
    "reconnect_max_delay": (None, _to_int),
    "disconnect_timeout": (None, _to_float),
    "download_dir": ("download", _to_str),
    "max_concurrent_fetches": ("max_concurrent_fetches", _to_int),
    "fetch_timeout": (None, _to_float),
    "shutdown_grace_period": ("shutdown_grace_period", _to_float),
}


def env_var_name(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


def _load_yaml_section(config_path: Path, environ: Mapping[str, str]) -> dict[str, Any]:
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from file: {config_path}")
    try:
        yaml_data = load_yaml(config_path)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read configuration file: {config_path}", cause=e) from e

    if not isinstance(yaml_data, dict) or not isinstance(yaml_data.get("subscriber"), dict):
        raise ConfigError(
            f"Invalid config file {config_path}: missing 'subscriber:' section"
        )

    section = _expand_env_vars(yaml_data["subscriber"], environ)
    unknown = sorted(set(section) - set(SETTINGS))
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
    return section


def load_config(
    args: Any = None,
    environ: Mapping[str, str] | None = None,
) -> SubscriberConfig:
    """Build and validate the subscriber configuration.

    Args:
        args: argparse namespace (None-valued attributes count as unset)
        environ: Environment mapping (default: os.environ)

    Raises:
        ConfigError: On an unreadable config file, a value that cannot be
            converted, or a failed validation
    """
    environ = os.environ if environ is None else environ

    config_path = getattr(args, "config", None)
    section = _load_yaml_section(Path(config_path), environ) if config_path else {}

    values: dict[str, Any] = {}
    errors: list[str] = []

    for config_field in fields(SubscriberConfig):
        name = config_field.name
        dest, convert = SETTINGS[name]
        env_name = env_var_name(name)

        cli_value = getattr(args, dest, None) if dest else None
        if cli_value is not None:
            raw, source = cli_value, "command line"
        elif environ.get(env_name):
            raw, source = environ[env_name], env_name
        elif section.get(name) is not None:
            raw, source = section[name], "config file"
        else:
            continue

        try:
            values[name] = convert(raw)
        except (TypeError, ValueError):
            errors.append(f"{name}: invalid value {raw!r} from {source}")

    if errors:
        raise ConfigError("Invalid configuration: " + "; ".join(errors), context={"errors": errors})

    config = SubscriberConfig(
        server=values.pop("server", ""),
        topic=values.pop("topic", ""),
        **values,
    )

    logger.debug("Validating configuration...")
    config.validate()
    logger.debug("Configuration validation passed")
    return config


__all__ = [
    "BROKER_SCHEMES",
    "BrokerAddress",
    "SubscriberConfig",
    "env_var_name",
    "load_config",
    "load_yaml",
]
