# =============================================================================
# secp256k1 key encoding (Ethereum-style raw bytes)
# =============================================================================
"""
Ethereum encodes secp256k1 keys as raw bytes:
  - private key: 32-byte big-endian scalar
  - public key: 64 bytes X || Y (the 0x04 SEC1 prefix is dropped)

The `cryptography` backend wants SEC1 uncompressed points (65 bytes, 0x04 || X || Y),
so everything that crosses into the backend goes through the loaders below.
"""

from __future__ import annotations

from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .errors import InvalidPrivateKey, InvalidPublicKey, RandomSourceFailure


CURVE = ec.SECP256K1()
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

PRIVATE_KEY_SIZE = 32
COORD_SIZE = 32
RAW_PUBLIC_KEY_SIZE = 2 * COORD_SIZE          # 64, API surface
SEC1_PUBLIC_KEY_SIZE = RAW_PUBLIC_KEY_SIZE + 1  # 65, wire + backend
SEC1_UNCOMPRESSED_PREFIX = 0x04

BytesLike = Union[bytes, bytearray, memoryview]
PublicKeyLike = Union[BytesLike, ec.EllipticCurvePublicKey]
PrivateKeyLike = Union[BytesLike, ec.EllipticCurvePrivateKey]


def load_private_key(key: PrivateKeyLike) -> ec.EllipticCurvePrivateKey:
    if isinstance(key, ec.EllipticCurvePrivateKey):
        if not isinstance(key.curve, ec.SECP256K1):
            raise InvalidPrivateKey("private key is not on secp256k1")
        return key
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise InvalidPrivateKey("private key must be bytes")
    raw = bytes(key)
    if len(raw) != PRIVATE_KEY_SIZE:
        raise InvalidPrivateKey(f"private key must be {PRIVATE_KEY_SIZE} bytes, got {len(raw)}")

    scalar = int.from_bytes(raw, "big")
    if not 1 <= scalar < CURVE_ORDER:
        raise InvalidPrivateKey("private key scalar out of range")
    try:
        return ec.derive_private_key(scalar, CURVE)
    except ValueError as exc:
        raise InvalidPrivateKey("private key rejected by backend") from exc


def load_public_key(key: PublicKeyLike) -> ec.EllipticCurvePublicKey:
    """
    Accepts a loaded key, 64 raw bytes (X || Y), or 65 SEC1 bytes (0x04 || X || Y).
    Anything that is not an uncompressed point on secp256k1 raises InvalidPublicKey.
    """
    if isinstance(key, ec.EllipticCurvePublicKey):
        if not isinstance(key.curve, ec.SECP256K1):
            raise InvalidPublicKey("public key is not on secp256k1")
        return key
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise InvalidPublicKey("public key must be bytes")
    raw = bytes(key)

    if len(raw) == RAW_PUBLIC_KEY_SIZE:
        encoded = bytes([SEC1_UNCOMPRESSED_PREFIX]) + raw
    elif len(raw) == SEC1_PUBLIC_KEY_SIZE and raw[0] == SEC1_UNCOMPRESSED_PREFIX:
        encoded = raw
    else:
        raise InvalidPublicKey(
            f"public key must be {RAW_PUBLIC_KEY_SIZE} raw bytes or "
            f"{SEC1_PUBLIC_KEY_SIZE} uncompressed SEC1 bytes, got {len(raw)}"
        )

    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, encoded)
    except ValueError as exc:
        raise InvalidPublicKey("public key is not a point on secp256k1") from exc


def encode_public_key(key: ec.EllipticCurvePublicKey, *, prefixed: bool = True) -> bytes:
    sec1 = key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return sec1 if prefixed else sec1[1:]


def private_to_public(private_key: PrivateKeyLike) -> bytes:
    """64-byte Ethereum public key (X || Y) for a 32-byte private key."""
    return encode_public_key(load_private_key(private_key).public_key(), prefixed=False)


def private_key_bytes(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_numbers().private_value.to_bytes(PRIVATE_KEY_SIZE, "big")


def generate_key() -> ec.EllipticCurvePrivateKey:
    try:
        return ec.generate_private_key(CURVE)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceFailure("secure random source failed during key generation") from exc


def generate_private_key() -> bytes:
    """Fresh 32-byte secp256k1 private key from the backend CSPRNG."""
    return private_key_bytes(generate_key())
