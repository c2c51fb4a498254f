"""Handshake and login flow producing an authenticated TapoSession.

The flow is a small state machine::

    START -> KEY_EXCHANGED -> LOGGED_IN
      \\            \\
       +-----------+--> FAILED

START performs the RSA handshake, KEY_EXCHANGED performs the encrypted
login. Any failure moves the flow to FAILED and no session is returned;
callers start over with a new flow.
"""

from __future__ import annotations

import hashlib
import logging
from enum import Enum

import aiohttp

from .codec import b64encode_lines
from .crypto import (
    DEFAULT_RSA_KEY_BITS,
    HandshakeKeyMaterial,
    decrypt_handshake_key,
    derive_session,
    generate_key_pair,
    wrap_public_key_pem,
)
from .errors import (
    TapoClientError,
    TapoHandshakeError,
    TapoLoginError,
    TapoSecurePassthroughError,
)
from .http import DEFAULT_TIMEOUT, TapoHttpClient
from .passthrough import decode_secure_passthrough, encode_secure_passthrough
from .protocol import (
    HandshakeResult,
    LoginResult,
    SecurePassthroughResult,
    build_handshake,
    build_login,
)
from .session import DEFAULT_MAX_RETRIES, TapoSession

_LOGGER = logging.getLogger(__name__)


class AuthState(Enum):
    """Authentication flow states."""

    START = "start"
    KEY_EXCHANGED = "key_exchanged"
    LOGGED_IN = "logged_in"
    FAILED = "failed"


def encode_username(username: str) -> str:
    """Base64 of the lower-case hex SHA-1 digest of ``username``."""
    digest = hashlib.sha1(username.encode("utf-8")).hexdigest().lower()
    return b64encode_lines(digest.encode("utf-8"))


def encode_password(password: str) -> str:
    return b64encode_lines(password.encode("utf-8"))


class AuthenticationFlow:
    """Single-use handshake + login against one device."""

    def __init__(
        self,
        http: TapoHttpClient,
        username: str,
        password: str,
        *,
        key_bits: int = DEFAULT_RSA_KEY_BITS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = 0.0,
    ) -> None:
        self._http = http
        self._username = username
        self._password = password
        self._key_bits = key_bits
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._state = AuthState.START

    @property
    def state(self) -> AuthState:
        return self._state

    async def run(self) -> TapoSession:
        """Run handshake and login.

        Returns:
            Authenticated session bound to this flow's HTTP client.

        Raises:
            TapoHandshakeError: Device rejected the handshake.
            TapoSecurePassthroughError: Device rejected the login envelope.
            TapoLoginError: Device rejected the credentials.
            TapoCryptoError, TapoDecodeError, TapoTransportError: Protocol or
                network failure during either step.
        """
        if self._state is not AuthState.START:
            raise TapoClientError(
                f"Authentication flow cannot be reused (state={self._state.value})"
            )
        try:
            material = await self._exchange_keys()
            self._state = AuthState.KEY_EXCHANGED
            session = await self._login(material)
        except BaseException:
            self._state = AuthState.FAILED
            raise

        self._state = AuthState.LOGGED_IN
        _LOGGER.info("[%s] Authenticated", self._http.host)
        return session

    async def _exchange_keys(self) -> HandshakeKeyMaterial:
        # A new key pair for every attempt, never shared between devices
        private_key, public_der = generate_key_pair(self._key_bits)
        request = build_handshake(wrap_public_key_pem(public_der))

        _LOGGER.debug("[%s] Sending handshake", self._http.host)
        response = await self._http.post(request, HandshakeResult)
        if response.error_code != 0 or response.result is None:
            raise TapoHandshakeError(
                response.error_code,
                f"Handshake failed with error_code={response.error_code}",
            )
        return decrypt_handshake_key(private_key, response.result.key)

    async def _login(self, material: HandshakeKeyMaterial) -> TapoSession:
        encryptor, decryptor = derive_session(material)
        login = build_login(
            encode_username(self._username), encode_password(self._password)
        )

        _LOGGER.debug("[%s] Sending secure login", self._http.host)
        secured = await self._http.post(
            encode_secure_passthrough(encryptor, login), SecurePassthroughResult
        )
        if secured.error_code != 0 or secured.result is None:
            raise TapoSecurePassthroughError(
                secured.error_code,
                f"Secure login failed with error_code={secured.error_code}",
            )

        response = decode_secure_passthrough(decryptor, secured.result, LoginResult)
        if response.error_code != 0 or response.result is None:
            raise TapoLoginError(
                response.error_code,
                f"Login failed with error_code={response.error_code}",
            )

        return TapoSession(
            host=self._http.host,
            token=response.result.token,
            encryptor=encryptor,
            decryptor=decryptor,
            http=self._http,
            max_retries=self._max_retries,
            retry_delay=self._retry_delay,
        )


async def authenticate(
    host: str,
    username: str,
    password: str,
    *,
    session: aiohttp.ClientSession | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = 0.0,
) -> TapoSession:
    """Authenticate against ``host`` and return a ready session.

    When no aiohttp session is supplied one is created and owned by the
    returned TapoSession. On failure the owned session is closed before the
    error propagates. ``max_retries`` and ``retry_delay`` become the
    session's defaults for commands.
    """
    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession()
    http = TapoHttpClient(session, host, timeout=timeout, owns_session=owns_session)

    try:
        return await AuthenticationFlow(
            http,
            username,
            password,
            max_retries=max_retries,
            retry_delay=retry_delay,
        ).run()
    except BaseException:
        await http.close()
        raise
