"""Configuration for robust socket connections.

Options can be given directly, as a mapping, or loaded from YAML:

    connect_timeout: 4.0
    min_reconnect_delay: 1.0
    max_reconnect_delay: 30.0
    reconnect_backoff_factor: 1.5
    max_reconnect_attempts: 10
    all_clear_reset_time: 30.0
    debug: false

The camelCase option names of browser reconnecting-socket libraries are
accepted too (``connectTimeout``, ``minReconnectDelay``, ...); their
durations are in milliseconds.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import RobustSocketConfigError
from .policy import ReconnectPolicy, always_reconnect
from .transport.base import SocketHandle

SocketFactory = Callable[[str, str | list[str] | None], SocketHandle]

_DURATION_FIELDS = (
    "connect_timeout",
    "min_reconnect_delay",
    "max_reconnect_delay",
    "all_clear_reset_time",
)

_CAMEL_CASE_NAMES = {
    "connectTimeout": "connect_timeout",
    "minReconnectDelay": "min_reconnect_delay",
    "maxReconnectDelay": "max_reconnect_delay",
    "reconnectBackoffFactor": "reconnect_backoff_factor",
    "maxReconnectAttempts": "max_reconnect_attempts",
    "allClearResetTime": "all_clear_reset_time",
    "shouldReconnect": "should_reconnect",
    "wsFactory": "socket_factory",
    "constructor": "socket_factory",
}


@dataclass(frozen=True)
class RobustSocketOptions:
    """Timing, policy and transport settings.

    Attributes:
        connect_timeout: Seconds an attempt may take to open before it is
            abandoned.
        min_reconnect_delay: Lower bound for every retry delay after the
            first (seconds).
        max_reconnect_delay: Upper bound for retry delays (seconds).
        reconnect_backoff_factor: Multiplier applied to the delay after each
            attempt. Values below 1 are allowed.
        max_reconnect_attempts: Attempts allowed before the socket closes
            permanently (None: unbounded).
        all_clear_reset_time: Seconds a connection must stay open before the
            backoff state is reset.
        should_reconnect: Policy deciding whether to reconnect after a close.
            May return a bool or an awaitable bool.
        socket_factory: ``(url, protocols) -> SocketHandle``. None selects the
            websockets-based default transport.
        debug: Log lifecycle transitions at INFO instead of DEBUG.
    """

    connect_timeout: float = 4.0
    min_reconnect_delay: float = 1.0
    max_reconnect_delay: float = 30.0
    reconnect_backoff_factor: float = 1.5
    max_reconnect_attempts: int | None = None
    all_clear_reset_time: float = 30.0
    should_reconnect: ReconnectPolicy = field(default=always_reconnect, compare=False)
    socket_factory: SocketFactory | None = field(default=None, compare=False)
    debug: bool = False

    def __post_init__(self) -> None:
        for name in _DURATION_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise RobustSocketConfigError(
                    f"{name} must be a non-negative number, got {value!r}"
                )
        if self.min_reconnect_delay > self.max_reconnect_delay:
            raise RobustSocketConfigError(
                "min_reconnect_delay must not exceed max_reconnect_delay"
            )
        if self.reconnect_backoff_factor <= 0:
            raise RobustSocketConfigError("reconnect_backoff_factor must be positive")
        if self.max_reconnect_attempts is not None and self.max_reconnect_attempts < 0:
            raise RobustSocketConfigError("max_reconnect_attempts must not be negative")
        if not callable(self.should_reconnect):
            raise RobustSocketConfigError("should_reconnect must be callable")
        if self.socket_factory is not None and not callable(self.socket_factory):
            raise RobustSocketConfigError(
                "socket_factory must be a callable returning a socket handle"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RobustSocketOptions:
        """Build options from a mapping of snake_case or camelCase names.

        Raises:
            RobustSocketConfigError: On unknown option names or invalid values.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in _CAMEL_CASE_NAMES:
                name = _CAMEL_CASE_NAMES[key]
                if name in _DURATION_FIELDS and isinstance(value, (int, float)):
                    value = value / 1000
            elif key in known:
                name = key
            else:
                raise RobustSocketConfigError(f"Unknown option: {key}")
            kwargs[name] = value
        return cls(**kwargs)


def load_options(path: Path) -> RobustSocketOptions:
    """Load options from a YAML file.

    Raises:
        RobustSocketConfigError: If the file is missing or malformed.
    """
    if not path.exists():
        raise RobustSocketConfigError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise RobustSocketConfigError(f"Invalid YAML in {path}") from err
    if not isinstance(data, Mapping):
        raise RobustSocketConfigError(f"Expected a mapping in {path}")
    return RobustSocketOptions.from_mapping(data)
