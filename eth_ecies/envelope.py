# =============================================================================
# Envelope codec
# =============================================================================
"""
Fixed-layout byte envelopes, big-endian, no length prefixes.

aes128-ctr (default, Ethereum-compatible):

    offset 0        ephemeral public key   65 bytes  (0x04 || X || Y)
    offset 65       iv                     16 bytes
    offset 81       ciphertext             N bytes
    offset 81 + N   mac                    32 bytes

    concat-KDF(SHA-256), AES-128-CTR, HMAC-SHA-256 over iv || ciphertext

aes256-cbc (legacy, eccrypto wire order):

    offset 0        iv                     16 bytes
    offset 16       ephemeral public key   65 bytes
    offset 81       ciphertext             N bytes (whole AES blocks)
    offset 81 + N   mac                    32 bytes

    SHA-512 KDF, AES-256-CBC + PKCS#7, HMAC-SHA-256 over iv || ephemeral key || ciphertext

Both carry 113 bytes of overhead, but the two are NOT interchangeable. The
format is never sniffed from the bytes; callers pick it explicitly.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from .errors import MalformedEnvelope
from .keys import SEC1_PUBLIC_KEY_SIZE
from .primitives import AES_BLOCK_SIZE, IV_SIZE, MAC_SIZE


EPHEMERAL_KEY_OFFSET = 0
IV_OFFSET = EPHEMERAL_KEY_OFFSET + SEC1_PUBLIC_KEY_SIZE  # 65
CIPHERTEXT_OFFSET = IV_OFFSET + IV_SIZE                   # 81
OVERHEAD = SEC1_PUBLIC_KEY_SIZE + IV_SIZE + MAC_SIZE      # 113

# legacy header: iv first, then the ephemeral key
LEGACY_IV_OFFSET = 0
LEGACY_EPHEMERAL_KEY_OFFSET = LEGACY_IV_OFFSET + IV_SIZE  # 16

class EnvelopeFormat(str, enum.Enum):
    AES128_CTR = "aes128-ctr"
    AES256_CBC = "aes256-cbc"

    @classmethod
    def parse(cls, value: Union["EnvelopeFormat", str]) -> "EnvelopeFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(f.value for f in cls)
            raise ValueError(f"unknown envelope format {value!r} (expected one of: {allowed})") from None

    @property
    def min_size(self) -> int:
        # CBC always emits at least one padded block
        if self is EnvelopeFormat.AES256_CBC:
            return OVERHEAD + AES_BLOCK_SIZE
        return OVERHEAD


@dataclass(frozen=True)
class Envelope:
    ephemeral_public_key: bytes
    iv: bytes
    ciphertext: bytes
    mac: bytes
    fmt: EnvelopeFormat = EnvelopeFormat.AES128_CTR

    @property
    def mac_input(self) -> bytes:
        return mac_input(self.fmt, self.ephemeral_public_key, self.iv, self.ciphertext)

    def to_bytes(self) -> bytes:
        return encode(self.ephemeral_public_key, self.iv, self.ciphertext, self.mac, self.fmt)

    def __len__(self) -> int:
        return OVERHEAD + len(self.ciphertext)


def mac_input(fmt: EnvelopeFormat, ephemeral_public_key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """Bytes covered by the MAC. The MAC field itself is never included."""
    if fmt is EnvelopeFormat.AES256_CBC:
        return bytes(iv) + bytes(ephemeral_public_key) + bytes(ciphertext)
    return bytes(iv) + bytes(ciphertext)


def encode(
    ephemeral_public_key: bytes,
    iv: bytes,
    ciphertext: bytes,
    mac: bytes,
    fmt: Union[EnvelopeFormat, str] = EnvelopeFormat.AES128_CTR,
) -> bytes:
    fmt = EnvelopeFormat.parse(fmt)
    if len(ephemeral_public_key) != SEC1_PUBLIC_KEY_SIZE:
        raise MalformedEnvelope(f"ephemeral public key must be {SEC1_PUBLIC_KEY_SIZE} bytes")
    if len(iv) != IV_SIZE:
        raise MalformedEnvelope(f"iv must be {IV_SIZE} bytes")
    if len(mac) != MAC_SIZE:
        raise MalformedEnvelope(f"mac must be {MAC_SIZE} bytes")
    if fmt is EnvelopeFormat.AES256_CBC:
        header = (bytes(iv), bytes(ephemeral_public_key))
    else:
        header = (bytes(ephemeral_public_key), bytes(iv))
    return b"".join(header + (bytes(ciphertext), bytes(mac)))


def decode(
    data: Union[bytes, bytearray, memoryview],
    fmt: Union[EnvelopeFormat, str] = EnvelopeFormat.AES128_CTR,
) -> Envelope:
    fmt = EnvelopeFormat.parse(fmt)
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise MalformedEnvelope("envelope must be bytes")
    raw = bytes(data)

    if len(raw) < fmt.min_size:
        raise MalformedEnvelope(f"envelope too short: {len(raw)} < {fmt.min_size} bytes")

    mac_offset = len(raw) - MAC_SIZE
    ciphertext = raw[CIPHERTEXT_OFFSET:mac_offset]

    if fmt is EnvelopeFormat.AES256_CBC:
        if len(ciphertext) % AES_BLOCK_SIZE:
            raise MalformedEnvelope("CBC ciphertext is not a multiple of the block size")
        iv = raw[LEGACY_IV_OFFSET:LEGACY_EPHEMERAL_KEY_OFFSET]
        ephemeral_public_key = raw[LEGACY_EPHEMERAL_KEY_OFFSET:CIPHERTEXT_OFFSET]
    else:
        ephemeral_public_key = raw[EPHEMERAL_KEY_OFFSET:IV_OFFSET]
        iv = raw[IV_OFFSET:CIPHERTEXT_OFFSET]

    return Envelope(
        ephemeral_public_key=ephemeral_public_key,
        iv=iv,
        ciphertext=ciphertext,
        mac=raw[mac_offset:],
        fmt=fmt,
    )
