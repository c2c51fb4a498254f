"""Client error types for Tapo device interactions."""

from __future__ import annotations


class TapoClientError(Exception):
    """Base error for Tapo client failures."""


class TapoTransportError(TapoClientError):
    """The request never produced a device response."""


class TapoTimeout(TapoTransportError):
    """Timeout while communicating with the device."""


class TapoConnectionError(TapoTransportError):
    """Network connection to the device failed."""


class TapoResponseError(TapoClientError):
    """HTTP response error from the device."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class TapoCryptoError(TapoClientError):
    """Key exchange or symmetric cipher failure."""


class TapoDecodeError(TapoClientError):
    """Codec failure: a malformed or type-mismatched payload, or a value
    that cannot be encoded."""


class TapoConfigError(TapoClientError):
    """Invalid or incomplete client configuration."""


class TapoDeviceError(TapoClientError):
    """The device answered with a nonzero error code."""

    def __init__(self, code: int, message: str | None = None) -> None:
        super().__init__(message or f"Device returned error_code={code}")
        self.code = code


class TapoHandshakeError(TapoDeviceError):
    """Handshake request was rejected."""


class TapoSecurePassthroughError(TapoDeviceError):
    """Outer secure passthrough envelope was rejected."""


class TapoLoginError(TapoDeviceError):
    """Login request inside the secure passthrough was rejected."""


class TapoCommandError(TapoDeviceError):
    """Authenticated command failed with a non-retryable code."""


class TapoRetriesExhausted(TapoDeviceError):
    """Retryable failures persisted past the retry bound."""

    def __init__(self, code: int, attempts: int) -> None:
        super().__init__(
            code, f"Command failed after {attempts} attempts (last error_code={code})"
        )
        self.attempts = attempts
