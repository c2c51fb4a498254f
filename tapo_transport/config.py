"""Client configuration loading.

Configuration comes from an optional YAML file and the ``TPLINK_LOGIN`` /
``TPLINK_PASSWORD`` environment variables, which take precedence::

    username: someone@example.com
    password: hunter2
    hosts:
      - 192.168.1.110
      - 192.168.1.114
    request_timeout: 5
    max_retries: 3
    retry_delay: 0.25
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import TapoConfigError
from .http import DEFAULT_TIMEOUT
from .session import DEFAULT_MAX_RETRIES

ENV_USERNAME = "TPLINK_LOGIN"
ENV_PASSWORD = "TPLINK_PASSWORD"


@dataclass(frozen=True)
class TapoConfig:
    """Credentials and client tuning shared by all configured devices.

    Attributes:
        username: Cloud account login used for every device.
        password: Cloud account password.
        hosts: Device IP addresses or hostnames.
        request_timeout: Per-request timeout in seconds.
        max_retries: Retries after the first attempt for transient errors.
        retry_delay: Pause between retry attempts in seconds.
    """

    username: str
    password: str = field(repr=False)
    hosts: tuple[str, ...] = ()
    request_timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = 0.0


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise TapoConfigError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise TapoConfigError(f"Invalid YAML in {path}") from err
    if not isinstance(data, dict):
        raise TapoConfigError(f"Expected a mapping at the top of {path}")
    return data


def _number(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TapoConfigError(f"{key} must be a number")
    if value < 0:
        raise TapoConfigError(f"{key} must not be negative")
    return value


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> TapoConfig:
    """Build a TapoConfig from ``path`` and the environment.

    Args:
        path: Optional YAML file. When omitted only the environment is used.
        environ: Environment mapping, defaults to ``os.environ``.

    Raises:
        TapoConfigError: If the file is missing or malformed, or no
            credentials are available.
    """
    env = os.environ if environ is None else environ
    data = _load_yaml(path) if path is not None else {}

    username = env.get(ENV_USERNAME) or data.get("username")
    password = env.get(ENV_PASSWORD) or data.get("password")
    if not username or not password:
        raise TapoConfigError(
            f"Credentials missing: set {ENV_USERNAME}/{ENV_PASSWORD} "
            "or username/password in the config file"
        )

    hosts_raw = data.get("hosts", [])
    if isinstance(hosts_raw, str) or not isinstance(hosts_raw, list):
        raise TapoConfigError("hosts must be a list")

    max_retries = data.get("max_retries", DEFAULT_MAX_RETRIES)
    if isinstance(max_retries, bool) or not isinstance(max_retries, int):
        raise TapoConfigError("max_retries must be an integer")
    if max_retries < 0:
        raise TapoConfigError("max_retries must not be negative")

    return TapoConfig(
        username=str(username),
        password=str(password),
        hosts=tuple(str(host) for host in hosts_raw),
        request_timeout=float(_number(data, "request_timeout", DEFAULT_TIMEOUT)),
        max_retries=max_retries,
        retry_delay=float(_number(data, "retry_delay", 0.0)),
    )
