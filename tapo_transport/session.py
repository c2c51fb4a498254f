"""Authenticated session value for one Tapo device."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Final

from .crypto import AesDecryptor, AesEncryptor
from .http import TapoHttpClient

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES: Final = 3


@dataclass(frozen=True)
class TapoSession:
    """Negotiated cipher, login token and HTTP client for one device.

    Created by the authentication flow and never mutated afterwards. The
    session owns its HTTP client; release it with ``close()`` or by using the
    session as an async context manager. ``max_retries`` and ``retry_delay``
    are the defaults for commands sent over this session.

    Usage:
        async with await authenticate("192.168.1.110", user, password) as session:
            await set_color(session, SetColorOptions(50, 200, 80))
    """

    host: str
    token: str = field(repr=False)
    encryptor: AesEncryptor = field(repr=False)
    decryptor: AesDecryptor = field(repr=False)
    http: TapoHttpClient = field(repr=False, compare=False)
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = 0.0

    async def close(self) -> None:
        _LOGGER.info("[%s] Closing session", self.host)
        await self.http.close()

    async def __aenter__(self) -> TapoSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
