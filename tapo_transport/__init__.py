"""Tapo secure passthrough client."""

__version__ = "0.1.0"

from .auth import AuthenticationFlow, AuthState, authenticate
from .channel import (
    RETRYABLE_ERROR_CODE,
    CommandError,
    CommandSuccess,
    TapoCommandChannel,
    send_command,
)
from .codec import TapoRequest, TapoResponse
from .config import TapoConfig, load_config
from .device import SetColorOptions, connect_devices, set_color, set_device_info
from .errors import (
    TapoClientError,
    TapoCommandError,
    TapoConfigError,
    TapoConnectionError,
    TapoCryptoError,
    TapoDecodeError,
    TapoDeviceError,
    TapoHandshakeError,
    TapoLoginError,
    TapoResponseError,
    TapoRetriesExhausted,
    TapoSecurePassthroughError,
    TapoTimeout,
    TapoTransportError,
)
from .http import TapoHttpClient
from .protocol import DeviceInfo, build_request
from .session import TapoSession

__all__ = [
    "RETRYABLE_ERROR_CODE",
    "AuthState",
    "AuthenticationFlow",
    "CommandError",
    "CommandSuccess",
    "DeviceInfo",
    "SetColorOptions",
    "TapoClientError",
    "TapoCommandChannel",
    "TapoCommandError",
    "TapoConfig",
    "TapoConfigError",
    "TapoConnectionError",
    "TapoCryptoError",
    "TapoDecodeError",
    "TapoDeviceError",
    "TapoHandshakeError",
    "TapoHttpClient",
    "TapoLoginError",
    "TapoRequest",
    "TapoResponse",
    "TapoResponseError",
    "TapoRetriesExhausted",
    "TapoSecurePassthroughError",
    "TapoSession",
    "TapoTimeout",
    "TapoTransportError",
    "__version__",
    "authenticate",
    "build_request",
    "connect_devices",
    "load_config",
    "send_command",
    "set_color",
    "set_device_info",
]
