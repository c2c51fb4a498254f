"""Tests for TapoHttpClient request execution."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import aiohttp
import pytest

from tapo_transport.errors import (
    TapoConnectionError,
    TapoDecodeError,
    TapoResponseError,
    TapoTimeout,
    TapoTransportError,
)
from tapo_transport.http import TapoHttpClient
from tapo_transport.protocol import HandshakeResult, build_handshake, build_request

from .conftest import create_mock_response


class TestPost:
    """Test unauthenticated POST /app."""

    async def test_post_sends_json_envelope(self, mock_session: MagicMock) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.return_value = create_mock_response(
            json_data={"error_code": 0, "result": {"key": "abc"}}
        )

        response = await client.post(build_handshake("pem"), HandshakeResult)

        assert response.result == HandshakeResult(key="abc")
        call_args = mock_session.post.call_args
        assert call_args.args[0] == "http://192.168.1.110/app"
        assert call_args.kwargs["headers"] == {"Content-Type": "application/json"}
        assert call_args.kwargs["params"] is None
        body = json.loads(call_args.kwargs["data"])
        assert body["method"] == "handshake"
        assert body["params"] == {"key": "pem"}
        assert isinstance(body["request_time_mils"], int)

    async def test_post_does_not_interpret_error_code(
        self, mock_session: MagicMock
    ) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.return_value = create_mock_response(
            json_data={"error_code": -1010}
        )

        response = await client.post(build_handshake("pem"), HandshakeResult)

        assert response.error_code == -1010
        assert response.result is None

    async def test_post_uses_5_second_timeout(self, mock_session: MagicMock) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.return_value = create_mock_response(
            json_data={"error_code": 0}
        )

        await client.post(build_request("get_device_info", {}), None)

        timeout = mock_session.post.call_args.kwargs.get("timeout")
        assert timeout is not None
        assert timeout.total == 5

    async def test_timeout_raises_tapo_timeout(self, mock_session: MagicMock) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.side_effect = TimeoutError("Request timed out")

        with pytest.raises(TapoTimeout, match="handshake request timed out"):
            await client.post(build_handshake("pem"), HandshakeResult)

    async def test_client_error_raises_connection_error(
        self, mock_session: MagicMock
    ) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.side_effect = aiohttp.ClientError("Connection refused")

        with pytest.raises(TapoConnectionError) as exc_info:
            await client.post(build_handshake("pem"), HandshakeResult)
        assert isinstance(exc_info.value, TapoTransportError)

    async def test_non_200_raises_response_error(
        self, mock_session: MagicMock
    ) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.return_value = create_mock_response(status=500)

        with pytest.raises(TapoResponseError) as exc_info:
            await client.post(build_handshake("pem"), HandshakeResult)
        assert exc_info.value.status == 500

    async def test_malformed_body_raises_decode_error(
        self, mock_session: MagicMock
    ) -> None:
        client = TapoHttpClient(mock_session, "192.168.1.110")
        mock_session.post.return_value = create_mock_response(read_data=b"<html>")

        with pytest.raises(TapoDecodeError):
            await client.post(build_handshake("pem"), HandshakeResult)


class TestPostWithToken:
    """Test authenticated POST /app?token=."""

    async def test_token_is_query_parameter(self, mock_session: MagicMock) -> None:
        client = TapoHttpClient(mock_session, "10.0.0.5", timeout=2.5)
        mock_session.post.return_value = create_mock_response(
            json_data={"error_code": 0}
        )

        await client.post_with_token("tok123", build_request("get_device_info", {}), None)

        call_args = mock_session.post.call_args
        assert call_args.args[0] == "http://10.0.0.5/app"
        assert call_args.kwargs["params"] == {"token": "tok123"}
        assert call_args.kwargs["timeout"].total == 2.5


class TestClose:
    """Test ownership of the aiohttp session."""

    async def test_close_owned_session(self, mock_session: MagicMock) -> None:
        client = TapoHttpClient(mock_session, "10.0.0.5", owns_session=True)
        await client.close()
        mock_session.close.assert_awaited_once()

    async def test_borrowed_session_is_left_open(
        self, mock_session: MagicMock
    ) -> None:
        client = TapoHttpClient(mock_session, "10.0.0.5")
        await client.close()
        mock_session.close.assert_not_called()
