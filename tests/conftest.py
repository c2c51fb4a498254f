"""Pytest configuration and fixtures for tapo_transport tests."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from tapo_transport.crypto import HandshakeKeyMaterial, derive_session
from tapo_transport.http import TapoHttpClient
from tapo_transport.session import TapoSession

DEVICE_HOST = "192.168.1.110"
DEVICE_TOKEN = "tok123"
KEY_MATERIAL = bytes(range(32))


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    session = MagicMock(spec=aiohttp.ClientSession)
    session.closed = False
    return session


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | None = None,
    read_data: bytes | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Body to return from read(), encoded as JSON
        read_data: Raw body to return from read()

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.read.return_value = json.dumps(json_data).encode()
    if read_data is not None:
        response.read.return_value = read_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


@dataclass(frozen=True)
class OuterError:
    """Scripted outer securePassthrough error code."""

    code: int


class FakeTapoDevice:
    """Device side of the handshake, login and secure passthrough.

    Install with ``mock_session.post.side_effect = device.handle``. Commands
    after login consume ``command_script`` in order: an int is the inner
    error code, an OuterError fails the outer envelope and an exception is
    raised from the POST call itself. An exhausted script answers success.
    """

    def __init__(
        self,
        *,
        key_material: bytes = KEY_MATERIAL,
        token: str = DEVICE_TOKEN,
        handshake_error: int = 0,
        login_outer_error: int = 0,
        login_error: int = 0,
    ) -> None:
        self.key_material = key_material
        self.token = token
        self.handshake_error = handshake_error
        self.login_outer_error = login_outer_error
        self.login_error = login_error
        self.command_script: list[int | OuterError | BaseException] = []
        self.requests: list[dict[str, Any]] = []
        self.query_params: list[dict[str, str] | None] = []
        self.inner_requests: list[dict[str, Any]] = []

    def _cipher(self) -> Cipher:
        return Cipher(
            algorithms.AES(self.key_material[:16]), modes.CBC(self.key_material[16:32])
        )

    def encrypt(self, plaintext: bytes) -> bytes:
        padder = sym_padding.PKCS7(128).padder()
        encryptor = self._cipher().encryptor()
        padded = padder.update(plaintext) + padder.finalize()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes) -> bytes:
        decryptor = self._cipher().decryptor()
        unpadder = sym_padding.PKCS7(128).unpadder()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        return unpadder.update(padded) + unpadder.finalize()

    @property
    def command_requests(self) -> list[dict[str, Any]]:
        return [r for r in self.inner_requests if r["method"] != "login_device"]

    def _secured_reply(self, inner: dict[str, Any]) -> AsyncMock:
        payload = base64.b64encode(self.encrypt(json.dumps(inner).encode())).decode()
        return create_mock_response(
            json_data={"error_code": 0, "result": {"response": payload}}
        )

    def handle(self, url: str, **kwargs: Any) -> AsyncMock:
        body = json.loads(kwargs["data"])
        self.requests.append(body)
        self.query_params.append(kwargs.get("params"))

        if body["method"] == "handshake":
            if self.handshake_error:
                return create_mock_response(
                    json_data={"error_code": self.handshake_error}
                )
            public_key = serialization.load_pem_public_key(
                body["params"]["key"].encode()
            )
            blob = public_key.encrypt(self.key_material, padding.PKCS1v15())
            return create_mock_response(
                json_data={
                    "error_code": 0,
                    "result": {"key": base64.b64encode(blob).decode()},
                }
            )

        assert body["method"] == "securePassthrough"
        inner = json.loads(self.decrypt(base64.b64decode(body["params"]["request"])))
        self.inner_requests.append(inner)

        if inner["method"] == "login_device":
            if self.login_outer_error:
                return create_mock_response(
                    json_data={"error_code": self.login_outer_error}
                )
            if self.login_error:
                return self._secured_reply({"error_code": self.login_error})
            return self._secured_reply(
                {"error_code": 0, "result": {"token": self.token}}
            )

        step: int | OuterError | BaseException = (
            self.command_script.pop(0) if self.command_script else 0
        )
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, OuterError):
            return create_mock_response(json_data={"error_code": step.code})
        if step:
            return self._secured_reply({"error_code": step})
        return self._secured_reply({"error_code": 0, "result": {}})


@pytest.fixture
def fake_device(mock_session: MagicMock) -> FakeTapoDevice:
    device = FakeTapoDevice()
    mock_session.post.side_effect = device.handle
    return device


@pytest.fixture
def tapo_session(mock_session: MagicMock, fake_device: FakeTapoDevice) -> TapoSession:
    """Session as produced by a successful login, without running the flow."""
    encryptor, decryptor = derive_session(HandshakeKeyMaterial.from_bytes(KEY_MATERIAL))
    return TapoSession(
        host=DEVICE_HOST,
        token=DEVICE_TOKEN,
        encryptor=encryptor,
        decryptor=decryptor,
        http=TapoHttpClient(mock_session, DEVICE_HOST),
    )
