"""Secure passthrough envelope encoding.

The inner request is serialized to JSON, AES encrypted with the session
cipher and base64 encoded into ``params.request``. Responses carry the same
construction in ``result.response``.
"""

from __future__ import annotations

from typing import Any, TypeVar

from .codec import (
    TapoRequest,
    TapoResponse,
    b64decode,
    b64encode,
    deserialize_response,
    serialize,
)
from .crypto import AesDecryptor, AesEncryptor
from .protocol import (
    SecurePassthroughParams,
    SecurePassthroughResult,
    build_secure_passthrough,
)

ResultT = TypeVar("ResultT")


def encode_secure_passthrough(
    encryptor: AesEncryptor, request: TapoRequest[Any]
) -> TapoRequest[SecurePassthroughParams]:
    """Wrap ``request`` in an encrypted securePassthrough envelope."""
    secured = encryptor.encrypt(serialize(request))
    return build_secure_passthrough(b64encode(secured))


def decode_secure_passthrough(
    decryptor: AesDecryptor,
    result: SecurePassthroughResult,
    result_type: type[ResultT] | None,
) -> TapoResponse[ResultT]:
    """Decrypt and decode the inner response of a securePassthrough result.

    Raises:
        TapoDecodeError: If the payload is not base64 or not a valid response.
        TapoCryptoError: If the payload does not decrypt under the session key.
    """
    plaintext = decryptor.decrypt(b64decode(result.response))
    return deserialize_response(plaintext, result_type)
