"""Device-level commands for Tapo lights."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

from .auth import authenticate
from .channel import send_command
from .config import TapoConfig
from .protocol import DeviceInfo, build_set_device_info
from .session import TapoSession

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetColorOptions:
    """Full color state: brightness and saturation in percent, hue in degrees."""

    brightness: int
    hue: int
    saturation: int


async def set_device_info(
    session: TapoSession,
    info: DeviceInfo,
    *,
    max_retries: int | None = None,
    retry_delay: float | None = None,
) -> None:
    """Apply a partial state update, retrying transient failures.

    Retry settings default to the ones stored on ``session``.
    """
    await send_command(
        session,
        build_set_device_info(info),
        None,
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


async def set_color(
    session: TapoSession,
    options: SetColorOptions,
    *,
    max_retries: int | None = None,
    retry_delay: float | None = None,
) -> None:
    _LOGGER.debug(
        "[%s] Setting color brightness=%d hue=%d saturation=%d",
        session.host,
        options.brightness,
        options.hue,
        options.saturation,
    )
    await set_device_info(
        session,
        DeviceInfo(
            brightness=options.brightness,
            hue=options.hue,
            saturation=options.saturation,
        ),
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


async def connect_devices(
    config: TapoConfig,
    *,
    session: aiohttp.ClientSession | None = None,
) -> dict[str, TapoSession]:
    """Authenticate every configured host concurrently.

    Returns:
        Sessions keyed by host. If any host fails, the sessions that did
        authenticate are closed and the first failure is raised.
    """
    results = await asyncio.gather(
        *(
            authenticate(
                host,
                config.username,
                config.password,
                session=session,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
                retry_delay=config.retry_delay,
            )
            for host in config.hosts
        ),
        return_exceptions=True,
    )

    sessions: dict[str, TapoSession] = {}
    failures: list[BaseException] = []
    for host, result in zip(config.hosts, results):
        if isinstance(result, BaseException):
            _LOGGER.warning("[%s] Authentication failed: %s", host, result)
            failures.append(result)
        else:
            sessions[host] = result

    if failures:
        await asyncio.gather(*(s.close() for s in sessions.values()))
        raise failures[0]
    return sessions
