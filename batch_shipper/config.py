"""Configuration: frozen dataclasses loaded from YAML, env vars and CLI args."""

import os
import argparse
import logging
from dataclasses import dataclass, field
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_TIME_THRESHOLD_MS = 5 * 60 * 1000

# camelCase option names accepted alongside the snake_case field names
_ALIASES = {
    "streamName": "stream_name",
    "batchSize": "batch_size",
    "timeThreshold": "time_threshold_ms",
    "time_threshold": "time_threshold_ms",
    "silentSuccess": "silent_success",
    "silentError": "silent_error",
    "requestTimeout": "request_timeout",
}


_FIELDS = {
    "url",
    "organization",
    "stream_name",
    "auth",
    "batch_size",
    "time_threshold_ms",
    "silent_success",
    "silent_error",
    "request_timeout",
}


class ConfigError(ValueError):
    """Raised when the shipper configuration is incomplete or invalid."""


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _convert(name: str, value, kind):
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class AuthConfig:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ShipperConfig:
    url: str
    organization: str
    stream_name: str
    auth: AuthConfig
    batch_size: int = DEFAULT_BATCH_SIZE
    time_threshold_ms: int = DEFAULT_TIME_THRESHOLD_MS
    silent_success: bool = False
    silent_error: bool = False
    # None means no deadline on the HTTP request
    request_timeout: Optional[float] = None

    def __post_init__(self):
        for name in ("url", "organization", "stream_name"):
            if not getattr(self, name):
                raise ConfigError(f"'{name}' is required")
        if not isinstance(self.auth, AuthConfig) or not self.auth.username:
            raise ConfigError("'auth' with a username and password is required")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.time_threshold_ms < 0:
            raise ConfigError(
                f"time_threshold_ms must not be negative, got {self.time_threshold_ms}"
            )
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )

    @property
    def time_threshold(self) -> float:
        """Quiescence window in seconds."""
        return self.time_threshold_ms / 1000

    @classmethod
    def from_dict(cls, data: dict) -> "ShipperConfig":
        """Build a config from a mapping of option names.

        Accepts the transport's camelCase names (``streamName``, ``batchSize``,
        ``timeThreshold``, ...) as well as the dataclass field names. ``auth``
        is a mapping with ``username`` and ``password``.
        """
        kwargs = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in _FIELDS:
                logger.warning("Ignoring unknown config option %r", key)
                continue
            kwargs[name] = value

        auth = kwargs.get("auth")
        if isinstance(auth, dict):
            kwargs["auth"] = AuthConfig(
                username=str(auth.get("username", "")),
                password=str(auth.get("password", "")),
            )
        elif auth is None:
            raise ConfigError("'auth' with a username and password is required")

        missing = [name for name in ("url", "organization", "stream_name") if name not in kwargs]
        if missing:
            raise ConfigError(f"missing required option(s): {', '.join(missing)}")

        for name in ("batch_size", "time_threshold_ms"):
            if name in kwargs:
                kwargs[name] = _convert(name, kwargs[name], int)
        for name in ("silent_success", "silent_error"):
            if name in kwargs:
                kwargs[name] = _parse_bool(kwargs[name])
        if kwargs.get("request_timeout") is not None:
            kwargs["request_timeout"] = _convert(
                "request_timeout", kwargs["request_timeout"], float
            )

        return cls(**kwargs)


# env var -> (option name, nested auth key or None)
_ENV_VARS = {
    "OPENOBSERVE_URL": ("url", None),
    "OPENOBSERVE_ORGANIZATION": ("organization", None),
    "OPENOBSERVE_STREAM": ("stream_name", None),
    "OPENOBSERVE_USERNAME": ("auth", "username"),
    "OPENOBSERVE_PASSWORD": ("auth", "password"),
    "BATCH_SIZE": ("batch_size", None),
    "TIME_THRESHOLD_MS": ("time_threshold_ms", None),
    "SILENT_SUCCESS": ("silent_success", None),
    "SILENT_ERROR": ("silent_error", None),
    "REQUEST_TIMEOUT": ("request_timeout", None),
}


def load_yaml_config(path: str | None) -> dict:
    """Load shipper options from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    logger.info("Loaded YAML config from %s", path)
    return data


def _merge(options: dict, name: str, auth_key: str | None, value) -> None:
    if auth_key is None:
        options[name] = value
        return
    auth = dict(options.get("auth") or {})
    auth[auth_key] = value
    options["auth"] = auth


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OpenObserve Batch Log Shipper")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--url", type=str, default=None)
    parser.add_argument("--organization", type=str, default=None)
    parser.add_argument("--stream-name", type=str, default=None)
    parser.add_argument("--username", type=str, default=None)
    parser.add_argument("--password", type=str, default=None)
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--time-threshold-ms", type=int, default=None)
    parser.add_argument("--request-timeout", type=float, default=None)
    parser.add_argument("--silent-success", action="store_true", default=False)
    parser.add_argument("--silent-error", action="store_true", default=False)
    parser.add_argument(
        "--logs-per-second", type=int, default=5,
        help="Sample logs generated per second (demo producer)",
    )
    parser.add_argument(
        "--run-time", type=int, default=30,
        help="Seconds to run the demo producer for",
    )
    return parser


def load_config(argv=None, environ=None) -> tuple[ShipperConfig, argparse.Namespace]:
    """Build ShipperConfig from YAML file <- env vars <- CLI args (highest priority).

    Pass argv for testability; when None, argparse reads sys.argv. Returns the
    config together with the parsed CLI namespace so callers can read the
    demo-only flags.
    """
    environ = os.environ if environ is None else environ
    args = build_cli_parser().parse_args(argv)

    options = {
        _ALIASES.get(key, key): value
        for key, value in load_yaml_config(args.config).items()
    }
    if isinstance(options.get("auth"), dict):
        options["auth"] = dict(options["auth"])

    for var, (name, auth_key) in _ENV_VARS.items():
        if var in environ:
            _merge(options, name, auth_key, environ[var])

    cli_values = {
        "url": args.url,
        "organization": args.organization,
        "stream_name": args.stream_name,
        "batch_size": args.batch_size,
        "time_threshold_ms": args.time_threshold_ms,
        "request_timeout": args.request_timeout,
    }
    for name, value in cli_values.items():
        if value is not None:
            options[name] = value
    if args.username is not None:
        _merge(options, "auth", "username", args.username)
    if args.password is not None:
        _merge(options, "auth", "password", args.password)
    if args.silent_success:
        options["silent_success"] = True
    if args.silent_error:
        options["silent_error"] = True

    return ShipperConfig.from_dict(options), args
