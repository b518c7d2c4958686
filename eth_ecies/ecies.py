# =============================================================================
# ECIES encrypt / decrypt with Ethereum keys
# =============================================================================
"""
Encrypt an arbitrary message to a 64-byte secp256k1 public key; only the
holder of the matching 32-byte private key can open it, and any change to
the iv or ciphertext is detected.

Pipeline (default aes128-ctr format, interoperable with Ethereum's ECIES):

  encrypt:
    ephemeral key -> ECDH(ephemeral, recipient) -> concat-KDF -> AES-128-CTR
    -> HMAC-SHA-256(iv || ciphertext) -> ephem_pub || iv || ciphertext || mac

  decrypt:
    decode -> ECDH(recipient, ephem_pub) -> concat-KDF
    -> verify MAC (fail closed) -> AES-128-CTR

Decryption only ever runs after the MAC has been verified. Each call is
independent and stateless; the functions are safe to call from many threads.

Usage:
    envelope = encrypt(recipient_pub64, b"hello")
    plaintext = decrypt(recipient_priv32, envelope)

Reproducible test vectors:
    encrypt(pub, msg, EncryptOptions(iv=iv16, ephemeral_private_key=eph32))
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from . import primitives
from .envelope import Envelope, EnvelopeFormat, decode, encode, mac_input
from .errors import InvalidPublicKey, MacMismatch, MalformedEnvelope
from .keys import (
    PRIVATE_KEY_SIZE,
    PrivateKeyLike,
    PublicKeyLike,
    encode_public_key,
    generate_key,
    load_private_key,
    load_public_key,
)
from .primitives import IV_SIZE, DerivedKeys

logger = logging.getLogger(__name__)

Plaintext = Union[bytes, bytearray, memoryview, str]
FormatLike = Union[EnvelopeFormat, str]

_KDF: dict[EnvelopeFormat, Callable[[bytes], DerivedKeys]] = {
    EnvelopeFormat.AES128_CTR: primitives.concat_kdf,
    EnvelopeFormat.AES256_CBC: primitives.sha512_kdf,
}
_SEAL: dict[EnvelopeFormat, Callable[[bytes, bytes, bytes], bytes]] = {
    EnvelopeFormat.AES128_CTR: primitives.cipher_encrypt,
    EnvelopeFormat.AES256_CBC: primitives.cbc_encrypt,
}
_UNSEAL: dict[EnvelopeFormat, Callable[[bytes, bytes, bytes], bytes]] = {
    EnvelopeFormat.AES128_CTR: primitives.cipher_decrypt,
    EnvelopeFormat.AES256_CBC: primitives.cbc_decrypt,
}


# =============================================================================
# Options
# =============================================================================

def _fixed_bytes(v: Any, size: int, name: str) -> Optional[bytes]:
    if v is None:
        return None
    if not isinstance(v, (bytes, bytearray, memoryview)):
        raise ValueError(f"{name} must be bytes")
    raw = bytes(v)
    if len(raw) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


class EncryptOptions(BaseModel):
    """
    Optional deterministic inputs for encrypt().

    Leave both unset in production. Supplying them makes encrypt() a pure
    function, which is only useful for test vectors; reusing an iv or
    ephemeral key across messages breaks confidentiality.

    A wrong-length or non-bytes value raises pydantic's ValidationError (a
    ValueError, not an EciesError) when the options are built.
    """
    model_config = {"extra": "forbid", "frozen": True}

    iv: Optional[bytes] = Field(default=None, repr=False, description="16-byte IV / initial counter block.")
    ephemeral_private_key: Optional[bytes] = Field(
        default=None, repr=False, description="32-byte ephemeral secp256k1 scalar."
    )

    @field_validator("iv", mode="before")
    @classmethod
    def check_iv(cls, v):
        return _fixed_bytes(v, IV_SIZE, "iv")

    @field_validator("ephemeral_private_key", mode="before")
    @classmethod
    def check_ephemeral_private_key(cls, v):
        return _fixed_bytes(v, PRIVATE_KEY_SIZE, "ephemeral_private_key")


def _coerce_options(options: Union[EncryptOptions, Mapping[str, Any], None]) -> EncryptOptions:
    if options is None:
        return EncryptOptions()
    if isinstance(options, EncryptOptions):
        return options
    if isinstance(options, Mapping):
        return EncryptOptions.model_validate(dict(options))
    raise TypeError("options must be EncryptOptions, a dict, or None")


def _resolve_format(fmt: Optional[FormatLike]) -> EnvelopeFormat:
    if fmt is None:
        return EnvelopeFormat.AES128_CTR
    return EnvelopeFormat.parse(fmt)


def _derive_keys(fmt: EnvelopeFormat, local_private: PrivateKeyLike, remote_public: PublicKeyLike) -> DerivedKeys:
    shared = bytearray(primitives.agree(local_private, remote_public))
    try:
        return _KDF[fmt](shared)
    finally:
        primitives.wipe(shared)


# =============================================================================
# Encrypt
# =============================================================================

def encrypt(
    public_key: PublicKeyLike,
    plaintext: Plaintext,
    options: Union[EncryptOptions, Mapping[str, Any], None] = None,
    *,
    fmt: Optional[FormatLike] = None,
) -> bytes:
    """
    ECIES-encrypt plaintext to an Ethereum public key.

    Parameters
    - public_key: 64 bytes X || Y (65-byte 0x04-prefixed form is accepted too)
    - plaintext: bytes, or str (encoded as UTF-8)
    - options: EncryptOptions / dict with optional iv (16) and ephemeral_private_key (32)
    - fmt: envelope format; aes128-ctr unless the legacy "aes256-cbc" is asked for

    Returns the serialized envelope: ephem_pub(65) || iv(16) || ciphertext || mac(32)
    (iv and ephem_pub swap places in the legacy format).

    Raises InvalidPublicKey if public_key is not a secp256k1 point (for example
    when a 32-byte private key is passed by mistake), RandomSourceFailure if
    the OS random source fails.
    """
    fmt = _resolve_format(fmt)
    opts = _coerce_options(options)

    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    elif not isinstance(plaintext, (bytes, bytearray, memoryview)):
        raise TypeError("plaintext must be bytes or str")

    try:
        recipient = load_public_key(public_key)
    except InvalidPublicKey as exc:
        logger.info("encrypt rejected: %s", exc.kind)
        raise

    if opts.ephemeral_private_key is not None:
        ephemeral = load_private_key(opts.ephemeral_private_key)
    else:
        ephemeral = generate_key()
    iv = opts.iv if opts.iv is not None else primitives.random_bytes(IV_SIZE)

    logger.debug(
        "encrypt: fmt=%s plaintext_len=%d iv=%s ephemeral=%s",
        fmt.value,
        len(plaintext),
        "fixed" if opts.iv is not None else "random",
        "fixed" if opts.ephemeral_private_key is not None else "random",
    )

    ephemeral_pub = encode_public_key(ephemeral.public_key())
    with _derive_keys(fmt, ephemeral, recipient) as keys:
        ciphertext = _SEAL[fmt](iv, keys.enc_key, plaintext)
        tag = primitives.mac(keys.mac_key, mac_input(fmt, ephemeral_pub, iv, ciphertext))

    return encode(ephemeral_pub, iv, ciphertext, tag, fmt)


# =============================================================================
# Decrypt
# =============================================================================

def open_envelope(private_key: PrivateKeyLike, env: Envelope) -> bytes:
    """
    Authenticate and decrypt an already-decoded Envelope.

    The MAC is verified first; on mismatch MacMismatch is raised and the
    ciphertext is never fed to the cipher.
    """
    try:
        keys = _derive_keys(env.fmt, private_key, env.ephemeral_public_key)
    except InvalidPublicKey as exc:
        logger.info("decrypt rejected: %s (ephemeral key)", exc.kind)
        raise

    with keys:
        if not primitives.verify(keys.mac_key, env.mac_input, env.mac):
            logger.info("decrypt rejected: %s", MacMismatch.kind)
            raise MacMismatch("MAC mismatch")
        return _UNSEAL[env.fmt](env.iv, keys.enc_key, env.ciphertext)


def decrypt(
    private_key: PrivateKeyLike,
    envelope: Union[bytes, bytearray, memoryview],
    *,
    fmt: Optional[FormatLike] = None,
) -> bytes:
    """
    Recover plaintext from an envelope produced by encrypt().

    Raises
    - MalformedEnvelope: shorter than 113 bytes (before any crypto work)
    - InvalidPrivateKey: private_key is not a valid 32-byte scalar
    - InvalidPublicKey: the embedded ephemeral key is not a curve point
    - MacMismatch: wrong key or tampered iv/ciphertext/mac; nothing was decrypted
    """
    fmt = _resolve_format(fmt)
    try:
        env = decode(envelope, fmt)
    except MalformedEnvelope as exc:
        logger.info("decrypt rejected: %s", exc.kind)
        raise

    logger.debug("decrypt: fmt=%s envelope_len=%d", fmt.value, len(env))
    return open_envelope(load_private_key(private_key), env)
