"""RSA key exchange and AES session ciphers for the Tapo handshake."""

from __future__ import annotations

from dataclasses import dataclass, field

from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .codec import b64decode, b64encode
from .errors import TapoCryptoError, TapoDecodeError

DEFAULT_RSA_KEY_BITS = 1024
HANDSHAKE_KEY_LENGTH = 32
AES_BLOCK_BITS = 128

PEM_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_FOOTER = "-----END PUBLIC KEY-----"


@dataclass(frozen=True)
class HandshakeKeyMaterial:
    """The 32 bytes returned by the device: AES key followed by IV."""

    key: bytes
    iv: bytes

    @classmethod
    def from_bytes(cls, raw: bytes) -> HandshakeKeyMaterial:
        if len(raw) != HANDSHAKE_KEY_LENGTH:
            raise TapoCryptoError(
                f"Handshake key material must be {HANDSHAKE_KEY_LENGTH} bytes, "
                f"got {len(raw)}"
            )
        return cls(key=raw[:16], iv=raw[16:])


@dataclass(frozen=True)
class AesEncryptor:
    """Single-shot AES-128-CBC/PKCS#7 encryption with a fixed key and IV."""

    key: bytes = field(repr=False)
    iv: bytes = field(repr=False)

    def encrypt(self, plaintext: bytes) -> bytes:
        padder = sym_padding.PKCS7(AES_BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self.key), modes.CBC(self.iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()


@dataclass(frozen=True)
class AesDecryptor:
    """Single-shot AES-128-CBC/PKCS#7 decryption with a fixed key and IV."""

    key: bytes = field(repr=False)
    iv: bytes = field(repr=False)

    def decrypt(self, ciphertext: bytes) -> bytes:
        decryptor = Cipher(algorithms.AES(self.key), modes.CBC(self.iv)).decryptor()
        unpadder = sym_padding.PKCS7(AES_BLOCK_BITS).unpadder()
        try:
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as err:
            raise TapoCryptoError("AES decryption failed") from err


def generate_key_pair(
    bits: int = DEFAULT_RSA_KEY_BITS,
) -> tuple[rsa.RSAPrivateKey, bytes]:
    """Generate a fresh RSA key pair.

    Returns:
        The private key and the public key as SubjectPublicKeyInfo DER.
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    public_der = private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_key, public_der


def wrap_public_key_pem(der: bytes) -> str:
    """Armor a DER public key the way the device expects it.

    The base64 body is a single line; the text ends with a newline.
    """
    return f"{PEM_HEADER}\n{b64encode(der)}\n{PEM_FOOTER}\n"


def decrypt_handshake_key(
    private_key: rsa.RSAPrivateKey, b64_ciphertext: str
) -> HandshakeKeyMaterial:
    """Recover the AES key material sent back by the handshake.

    Raises:
        TapoCryptoError: If the blob is not valid base64, has the wrong length
            for the key size, or fails PKCS#1 v1.5 decryption.
    """
    try:
        ciphertext = b64decode(b64_ciphertext)
    except TapoDecodeError as err:
        raise TapoCryptoError("Handshake key is not valid base64") from err

    expected = (private_key.key_size + 7) // 8
    if len(ciphertext) != expected:
        raise TapoCryptoError(
            f"Handshake key ciphertext must be {expected} bytes, got {len(ciphertext)}"
        )
    try:
        plaintext = private_key.decrypt(ciphertext, padding.PKCS1v15())
    except ValueError as err:
        raise TapoCryptoError("Handshake key decryption failed") from err
    return HandshakeKeyMaterial.from_bytes(plaintext)


def derive_session(
    material: HandshakeKeyMaterial,
) -> tuple[AesEncryptor, AesDecryptor]:
    return (
        AesEncryptor(key=material.key, iv=material.iv),
        AesDecryptor(key=material.key, iv=material.iv),
    )
