"""HTTP client for Tapo device RPC endpoints."""

from __future__ import annotations

import logging
from typing import Any, Final, TypeVar

import aiohttp

from .codec import TapoRequest, TapoResponse, deserialize_response, serialize
from .errors import (
    TapoConnectionError,
    TapoResponseError,
    TapoTimeout,
)

_LOGGER = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

DEFAULT_TIMEOUT: Final = 5.0
RPC_PATH: Final = "/app"

_JSON_HEADERS: Final = {"Content-Type": "application/json"}


class TapoHttpClient:
    """HTTP client wrapper for one Tapo device's RPC endpoint.

    Sends request envelopes and decodes response envelopes. It never retries
    and never interprets ``error_code``.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        host: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        owns_session: bool = False,
    ) -> None:
        self._session = session
        self._host = host
        self._timeout = timeout
        self._owns_session = owns_session

    @property
    def host(self) -> str:
        return self._host

    def _url(self, path: str) -> str:
        return f"http://{self._host}{path}"

    async def post(
        self,
        request: TapoRequest[Any],
        result_type: type[ResultT] | None,
        *,
        path: str = RPC_PATH,
    ) -> TapoResponse[ResultT]:
        """POST an unauthenticated request envelope."""
        return await self._post(request, result_type, path=path, params=None)

    async def post_with_token(
        self,
        token: str,
        request: TapoRequest[Any],
        result_type: type[ResultT] | None,
        *,
        path: str = RPC_PATH,
    ) -> TapoResponse[ResultT]:
        """POST a request envelope authenticated by ``?token=``."""
        return await self._post(
            request, result_type, path=path, params={"token": token}
        )

    async def _post(
        self,
        request: TapoRequest[Any],
        result_type: type[ResultT] | None,
        *,
        path: str,
        params: dict[str, str] | None,
    ) -> TapoResponse[ResultT]:
        url = self._url(path)
        _LOGGER.debug("[%s] POST %s method=%s", self._host, path, request.method)
        try:
            async with self._session.post(
                url,
                data=serialize(request),
                headers=_JSON_HEADERS,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    raise TapoResponseError(
                        resp.status,
                        f"{request.method} failed with HTTP {resp.status}",
                    )
                body = await resp.read()
        except TimeoutError as err:
            raise TapoTimeout(f"{request.method} request timed out") from err
        except aiohttp.ClientError as err:
            raise TapoConnectionError(f"{request.method} request failed") from err

        return deserialize_response(body, result_type)

    async def close(self) -> None:
        """Close the underlying aiohttp session if this client created it."""
        if self._owns_session and not self._session.closed:
            await self._session.close()
