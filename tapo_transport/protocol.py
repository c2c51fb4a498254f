"""Protocol helpers for Tapo request envelopes and method payloads."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, TypeVar

from .codec import TapoRequest

ParamsT = TypeVar("ParamsT")

METHOD_HANDSHAKE = "handshake"
METHOD_LOGIN_DEVICE = "login_device"
METHOD_SECURE_PASSTHROUGH = "securePassthrough"
METHOD_SET_DEVICE_INFO = "set_device_info"


def now_millis() -> int:
    """Return wall-clock epoch milliseconds."""
    return round(time.time() * 1000)


def build_request(
    method: str,
    params: ParamsT,
    *,
    timestamp_ms: int | None = None,
) -> TapoRequest[ParamsT]:
    """Build a request envelope.

    Args:
        method: Device method name (e.g., "handshake").
        params: JSON-serializable params object or dataclass.
        timestamp_ms: Optional epoch milliseconds override.
    """
    return TapoRequest(
        method=method,
        params=params,
        request_time_mils=timestamp_ms if timestamp_ms is not None else now_millis(),
    )


@dataclass(frozen=True)
class HandshakeParams:
    key: str


@dataclass(frozen=True)
class HandshakeResult:
    key: str


@dataclass(frozen=True)
class LoginParams:
    username: str
    password: str


@dataclass(frozen=True)
class LoginResult:
    token: str


@dataclass(frozen=True)
class SecurePassthroughParams:
    request: str


@dataclass(frozen=True)
class SecurePassthroughResult:
    response: str


@dataclass(frozen=True)
class DeviceInfo:
    """Partial device state update.

    Only the fields that are set are sent; ``None`` means "leave unchanged"
    and is omitted from the payload rather than sent as null.
    """

    brightness: int | None = None
    hue: int | None = None
    saturation: int | None = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.brightness is not None:
            params["brightness"] = self.brightness
        if self.hue is not None:
            params["hue"] = self.hue
        if self.saturation is not None:
            params["saturation"] = self.saturation
        return params


def build_handshake(public_key_pem: str) -> TapoRequest[HandshakeParams]:
    return build_request(METHOD_HANDSHAKE, HandshakeParams(key=public_key_pem))


def build_login(username: str, password: str) -> TapoRequest[LoginParams]:
    """Construct a login_device request from already-encoded credentials."""
    return build_request(
        METHOD_LOGIN_DEVICE, LoginParams(username=username, password=password)
    )


def build_secure_passthrough(
    request: str,
) -> TapoRequest[SecurePassthroughParams]:
    return build_request(
        METHOD_SECURE_PASSTHROUGH, SecurePassthroughParams(request=request)
    )


def build_set_device_info(info: DeviceInfo) -> TapoRequest[dict[str, Any]]:
    return build_request(METHOD_SET_DEVICE_INFO, info.to_params())
