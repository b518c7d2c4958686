# =============================================================================
# ECIES building blocks: key agreement, KDF, cipher, authenticator
# =============================================================================
"""
Thin, bit-exact wrappers around `cryptography` primitives.

Nothing here knows about envelopes; the orchestrators in eth_ecies.ecies wire
these together. Every function is stateless and safe to call from many threads.

Key material that we own (shared secret copies, derived keys) lives in
bytearrays so it can be zeroed once the call is done. `bytes` handed back by
the backend are immutable and cannot be wiped; that is a Python limitation.
"""

from __future__ import annotations

import os
from typing import Union

from cryptography.hazmat.primitives import constant_time, hashes, hmac, padding
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import InvalidPublicKey, MalformedEnvelope, RandomSourceFailure
from .keys import COORD_SIZE, PrivateKeyLike, PublicKeyLike, load_private_key, load_public_key

BytesLike = Union[bytes, bytearray, memoryview]

IV_SIZE = 16
MAC_SIZE = 32
AES128_KEY_SIZE = 16
AES256_KEY_SIZE = 32
AES_BLOCK_SIZE = 16

# NIST SP 800-56 concatenation KDF, single round: counter is big-endian uint32 = 1
_CONCAT_KDF_COUNTER = b"\x00\x00\x00\x01"


def wipe(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


def _sha256(data: BytesLike) -> bytes:
    h = hashes.Hash(hashes.SHA256())
    h.update(data)
    return h.finalize()


def _sha512(data: BytesLike) -> bytes:
    h = hashes.Hash(hashes.SHA512())
    h.update(data)
    return h.finalize()


# =============================================================================
# Random source
# =============================================================================

def random_bytes(n: int) -> bytes:
    try:
        out = os.urandom(n)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceFailure(f"secure random source could not supply {n} bytes") from exc
    if len(out) != n:
        raise RandomSourceFailure(f"secure random source returned {len(out)} of {n} bytes")
    return out


# =============================================================================
# Key agreement (ECDH on secp256k1)
# =============================================================================

def agree(local_private: PrivateKeyLike, remote_public: PublicKeyLike) -> bytes:
    """
    ECDH shared secret: X coordinate of local_private * remote_public,
    big-endian, left-padded to 32 bytes.
    """
    priv = load_private_key(local_private)
    pub = load_public_key(remote_public)
    try:
        shared = priv.exchange(ec.ECDH(), pub)
    except ValueError as exc:
        # OpenSSL refuses the point at infinity and off-curve points here
        raise InvalidPublicKey("degenerate key agreement") from exc

    if not shared or len(shared) > COORD_SIZE:
        raise InvalidPublicKey("degenerate key agreement")
    return shared.rjust(COORD_SIZE, b"\x00")


# =============================================================================
# Key derivation
# =============================================================================

class DerivedKeys:
    """
    Encryption key + MAC key derived from one shared secret.

    Use as a context manager (or call wipe()) so the buffers are zeroed
    as soon as the caller is done with them.
    """
    __slots__ = ("enc_key", "mac_key")

    def __init__(self, enc_key: BytesLike, mac_key: BytesLike):
        self.enc_key = bytearray(enc_key)
        self.mac_key = bytearray(mac_key)

    def wipe(self) -> None:
        wipe(self.enc_key)
        wipe(self.mac_key)

    def __enter__(self) -> "DerivedKeys":
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"DerivedKeys(enc_key=<{len(self.enc_key)} bytes>, mac_key=<{len(self.mac_key)} bytes>)"


def concat_kdf(shared_secret: BytesLike) -> DerivedKeys:
    """
    Ethereum ECIES key schedule:

        digest  = SHA-256(0x00000001 || shared_secret)
        enc_key = digest[0:16]
        mac_key = SHA-256(digest[16:32])

    The second hash is part of the format. Taking digest[16:32] directly as
    the MAC key yields envelopes no other implementation can open.
    """
    digest = bytearray(_sha256(_CONCAT_KDF_COUNTER + bytes(shared_secret)))
    try:
        return DerivedKeys(
            enc_key=digest[:AES128_KEY_SIZE],
            mac_key=_sha256(digest[AES128_KEY_SIZE:]),
        )
    finally:
        wipe(digest)


def sha512_kdf(shared_secret: BytesLike) -> DerivedKeys:
    """Legacy key schedule: SHA-512(shared_secret) split into enc_key(32) || mac_key(32)."""
    digest = bytearray(_sha512(bytes(shared_secret)))
    try:
        return DerivedKeys(enc_key=digest[:AES256_KEY_SIZE], mac_key=digest[AES256_KEY_SIZE:])
    finally:
        wipe(digest)


# =============================================================================
# Symmetric ciphers
# =============================================================================

def _check_iv(iv: BytesLike) -> None:
    if len(iv) != IV_SIZE:
        raise ValueError(f"iv must be {IV_SIZE} bytes")


def cipher_encrypt(iv: BytesLike, key: BytesLike, plaintext: BytesLike) -> bytes:
    """AES-128-CTR. The 16-byte IV is the initial counter block; no padding."""
    _check_iv(iv)
    if len(key) != AES128_KEY_SIZE:
        raise ValueError(f"AES-128 key must be {AES128_KEY_SIZE} bytes")
    enc = Cipher(algorithms.AES(key), modes.CTR(bytes(iv))).encryptor()
    return enc.update(bytes(plaintext)) + enc.finalize()


def cipher_decrypt(iv: BytesLike, key: BytesLike, ciphertext: BytesLike) -> bytes:
    # CTR is symmetric; a wrong key or iv just yields garbage of the same length
    _check_iv(iv)
    if len(key) != AES128_KEY_SIZE:
        raise ValueError(f"AES-128 key must be {AES128_KEY_SIZE} bytes")
    dec = Cipher(algorithms.AES(key), modes.CTR(bytes(iv))).decryptor()
    return dec.update(bytes(ciphertext)) + dec.finalize()


def cbc_encrypt(iv: BytesLike, key: BytesLike, plaintext: BytesLike) -> bytes:
    """AES-256-CBC with PKCS#7 padding (legacy envelope format)."""
    _check_iv(iv)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(bytes(plaintext)) + padder.finalize()
    enc = Cipher(algorithms.AES(key), modes.CBC(bytes(iv))).encryptor()
    return enc.update(padded) + enc.finalize()


def cbc_decrypt(iv: BytesLike, key: BytesLike, ciphertext: BytesLike) -> bytes:
    _check_iv(iv)
    if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
        raise MalformedEnvelope("CBC ciphertext must be a non-empty multiple of the block size")
    dec = Cipher(algorithms.AES(key), modes.CBC(bytes(iv))).decryptor()
    padded = dec.update(bytes(ciphertext)) + dec.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise MalformedEnvelope("invalid CBC padding") from exc


# =============================================================================
# Authenticator
# =============================================================================

def mac(mac_key: BytesLike, data: BytesLike) -> bytes:
    """HMAC-SHA-256 tag (32 bytes)."""
    h = hmac.HMAC(bytes(mac_key), hashes.SHA256())
    h.update(bytes(data))
    return h.finalize()


def bytes_equal(a: BytesLike, b: BytesLike) -> bool:
    """
    Constant-time comparison.

    Length is checked first (lengths are public); the content comparison
    accumulates OR-of-XOR over every byte without an early exit.
    """
    if len(a) != len(b):
        return False
    return constant_time.bytes_eq(bytes(a), bytes(b))


def verify(mac_key: BytesLike, data: BytesLike, expected_tag: BytesLike) -> bool:
    return bytes_equal(mac(mac_key, data), expected_tag)
