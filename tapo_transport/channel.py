"""Retrying secure passthrough command channel."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Final, Generic, TypeVar, Union

from .codec import TapoRequest, TapoResponse
from .crypto import AesDecryptor
from .errors import TapoCommandError, TapoRetriesExhausted, TapoTransportError
from .passthrough import decode_secure_passthrough, encode_secure_passthrough
from .protocol import SecurePassthroughResult
from .session import TapoSession

_LOGGER = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

# Device reports this for a transient "too many requests" condition
RETRYABLE_ERROR_CODE: Final = -1301
# Stands in for a device code when the request timed out or never connected
TRANSPORT_FAILURE_CODE: Final = -100000


@dataclass(frozen=True)
class CommandSuccess(Generic[ResultT]):
    result: ResultT | None


@dataclass(frozen=True)
class CommandError:
    code: int


CommandOutcome = Union[CommandSuccess[ResultT], CommandError]


def classify_passthrough(
    decryptor: AesDecryptor,
    response: TapoResponse[SecurePassthroughResult],
    result_type: type[ResultT] | None,
) -> CommandOutcome[ResultT]:
    """Classify both layers of a securePassthrough response.

    The outer code is checked first; the inner payload is only decrypted when
    the outer envelope succeeded.
    """
    if response.error_code != 0 or response.result is None:
        return CommandError(response.error_code)
    inner = decode_secure_passthrough(decryptor, response.result, result_type)
    if inner.error_code != 0:
        return CommandError(inner.error_code)
    return CommandSuccess(inner.result)


def is_retryable(
    outcome: CommandOutcome[Any], transport_error: TapoTransportError | None = None
) -> bool:
    """Return True for a transport failure or the transient device code."""
    if transport_error is not None:
        return True
    return isinstance(outcome, CommandError) and outcome.code == RETRYABLE_ERROR_CODE


class TapoCommandChannel:
    """Send authenticated commands over a session, retrying transient errors.

    Every attempt reuses the same session token and cipher; an expired token
    is reported as an ordinary TapoCommandError. Retry settings default to
    the ones stored on the session.
    """

    def __init__(
        self,
        session: TapoSession,
        *,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        if max_retries is None:
            max_retries = session.max_retries
        if retry_delay is None:
            retry_delay = session.retry_delay
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self._session = session
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    async def _attempt(
        self,
        request: TapoRequest[Any],
        result_type: type[ResultT] | None,
    ) -> tuple[CommandOutcome[ResultT], TapoTransportError | None]:
        session = self._session
        secured = encode_secure_passthrough(session.encryptor, request)
        try:
            response = await session.http.post_with_token(
                session.token, secured, SecurePassthroughResult
            )
        except TapoTransportError as err:
            return CommandError(TRANSPORT_FAILURE_CODE), err
        return classify_passthrough(session.decryptor, response, result_type), None

    async def send(
        self,
        request: TapoRequest[Any],
        result_type: type[ResultT] | None = None,
    ) -> ResultT | None:
        """Send ``request`` and return the decoded inner result.

        Raises:
            TapoCommandError: The device returned a non-retryable code.
            TapoRetriesExhausted: Retryable failures outlasted the retry bound.
        """
        attempts = self._max_retries + 1
        last_code = TRANSPORT_FAILURE_CODE
        last_error: TapoTransportError | None = None

        for attempt in range(1, attempts + 1):
            outcome, transport_error = await self._attempt(request, result_type)

            if isinstance(outcome, CommandSuccess):
                return outcome.result
            if not is_retryable(outcome, transport_error):
                raise TapoCommandError(
                    outcome.code,
                    f"{request.method} failed with error_code={outcome.code}",
                )

            last_code = outcome.code
            last_error = transport_error
            if attempt < attempts:
                _LOGGER.warning(
                    "[%s] %s attempt %d/%d failed (%s), retrying",
                    self._session.host,
                    request.method,
                    attempt,
                    attempts,
                    transport_error or f"error_code={outcome.code}",
                )
                # Caller cancellation lands here, between attempts
                await asyncio.sleep(self._retry_delay)

        _LOGGER.warning(
            "[%s] %s gave up after %d attempts",
            self._session.host,
            request.method,
            attempts,
        )
        raise TapoRetriesExhausted(last_code, attempts) from last_error


async def send_command(
    session: TapoSession,
    request: TapoRequest[Any],
    result_type: type[ResultT] | None = None,
    *,
    max_retries: int | None = None,
    retry_delay: float | None = None,
) -> ResultT | None:
    """Send one command through a retrying channel bound to ``session``."""
    channel = TapoCommandChannel(
        session, max_retries=max_retries, retry_delay=retry_delay
    )
    return await channel.send(request, result_type)
