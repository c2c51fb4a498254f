"""JSON and base64 codec for Tapo protocol envelopes.

Wire field names are the dataclass field names, which already follow the
device's lower_case_with_underscores convention (``error_code``,
``request_time_mils``).
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import types
import typing
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .errors import TapoDecodeError

T = TypeVar("T")
ParamsT = TypeVar("ParamsT")
ResultT = TypeVar("ResultT")

# Width used by the device's base64 "insert line breaks" formatting
BASE64_LINE_LENGTH = 76


@dataclass(frozen=True)
class TapoRequest(Generic[ParamsT]):
    """Outbound request envelope."""

    method: str
    params: ParamsT
    request_time_mils: int


@dataclass(frozen=True)
class TapoResponse(Generic[ResultT]):
    """Inbound response envelope.

    ``result`` is only decoded when ``error_code == 0``; for any other code it
    is ``None`` and must not be used.
    """

    error_code: int
    result: ResultT | None = None

    @property
    def ok(self) -> bool:
        return self.error_code == 0


def _to_wire(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: _to_wire(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(key): _to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    return value


def serialize(value: Any) -> bytes:
    """Encode a dataclass or plain JSON value as compact UTF-8 JSON.

    Raises:
        TapoDecodeError: If the value cannot be encoded. The codec reports
            failures in both directions with this one error type.
    """
    try:
        return json.dumps(
            _to_wire(value), separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
    except (TypeError, ValueError) as err:
        raise TapoDecodeError(f"Value is not JSON serializable: {err}") from err


def _loads(data: bytes | str) -> Any:
    try:
        return json.loads(data)
    except (UnicodeDecodeError, ValueError) as err:
        raise TapoDecodeError(f"Malformed JSON payload: {err}") from err


def _decode_dataclass(value: Any, target: type[T], path: str) -> T:
    if not isinstance(value, dict):
        raise TapoDecodeError(
            f"Expected object for {target.__name__} at {path}, "
            f"got {type(value).__name__}"
        )
    hints = typing.get_type_hints(target)
    kwargs: dict[str, Any] = {}
    for field in dataclasses.fields(target):  # type: ignore[arg-type]
        if field.name not in value:
            if (
                field.default is dataclasses.MISSING
                and field.default_factory is dataclasses.MISSING
            ):
                raise TapoDecodeError(f"Missing field {path}.{field.name}")
            continue
        kwargs[field.name] = _decode_value(
            value[field.name], hints[field.name], f"{path}.{field.name}"
        )
    return target(**kwargs)


def _decode_value(value: Any, target: Any, path: str) -> Any:
    if target is Any:
        return value
    if dataclasses.is_dataclass(target):
        return _decode_dataclass(value, target, path)

    origin = typing.get_origin(target)
    if origin in (typing.Union, types.UnionType):
        args = typing.get_args(target)
        if value is None and type(None) in args:
            return None
        candidates = [arg for arg in args if arg is not type(None)]
        if len(candidates) == 1:
            return _decode_value(value, candidates[0], path)
        raise TapoDecodeError(f"Unsupported union type at {path}")
    if target is dict or origin is dict:
        if not isinstance(value, dict):
            raise TapoDecodeError(f"Expected object at {path}")
        return value
    if target is list or origin is list:
        if not isinstance(value, list):
            raise TapoDecodeError(f"Expected array at {path}")
        return value

    # bool is an int subclass; never accept it where an int is expected
    if target is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TapoDecodeError(f"Expected integer at {path}")
        return value
    if target is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TapoDecodeError(f"Expected number at {path}")
        return float(value)
    if target in (str, bool):
        if not isinstance(value, target):
            raise TapoDecodeError(f"Expected {target.__name__} at {path}")
        return value
    raise TapoDecodeError(f"Unsupported field type {target!r} at {path}")


def deserialize(data: bytes | str, target: type[T]) -> T:
    """Decode JSON into ``target``.

    Raises:
        TapoDecodeError: If the payload is malformed or does not match the
            target's field names and types.
    """
    return _decode_value(_loads(data), target, "$")


def deserialize_response(
    data: bytes | str, result_type: type[ResultT] | None
) -> TapoResponse[ResultT]:
    """Decode a ``{"error_code", "result"}`` response wrapper.

    Args:
        data: Raw JSON body.
        result_type: Dataclass describing ``result``, or None for commands
            without a meaningful result.

    Returns:
        TapoResponse whose result is decoded only for ``error_code == 0``.
    """
    raw = _loads(data)
    if not isinstance(raw, dict):
        raise TapoDecodeError("Response is not a JSON object")
    if "error_code" not in raw:
        raise TapoDecodeError("Missing field $.error_code")
    error_code = _decode_value(raw["error_code"], int, "$.error_code")

    if error_code != 0 or result_type is None:
        return TapoResponse(error_code=error_code)
    if "result" not in raw:
        raise TapoDecodeError("Missing field $.result")
    return TapoResponse(
        error_code=error_code,
        result=_decode_value(raw["result"], result_type, "$.result"),
    )


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64encode_lines(data: bytes) -> str:
    """Base64 encode with a CRLF inserted after every 76 characters.

    No line break is emitted after the final line.
    """
    encoded = b64encode(data)
    return "\r\n".join(
        encoded[start : start + BASE64_LINE_LENGTH]
        for start in range(0, len(encoded), BASE64_LINE_LENGTH)
    )


def b64decode(text: str) -> bytes:
    """Decode base64, ignoring embedded line breaks."""
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as err:
        raise TapoDecodeError("Invalid base64 payload") from err
