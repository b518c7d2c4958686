# =============================================================================
# Error taxonomy
# =============================================================================
"""
All failures raised by eth_ecies derive from EciesError (itself a ValueError),
so callers can either catch the whole family or branch on the concrete class.

Each class carries a stable `kind` string for logs and metrics. Never put key
material or plaintext into an error message.
"""

from __future__ import annotations


class EciesError(ValueError):
    kind: str = "ecies_error"


class InvalidPublicKey(EciesError):
    """Key bytes do not decode to a secp256k1 point, or the exchange is degenerate."""
    kind = "invalid_public_key"


class InvalidPrivateKey(EciesError):
    """Private scalar has the wrong length or lies outside [1, n-1]."""
    kind = "invalid_private_key"


class MalformedEnvelope(EciesError):
    """Envelope is too short or a field slice would be out of bounds."""
    kind = "malformed_envelope"


class MacMismatch(EciesError):
    """
    Recomputed MAC differs from the envelope's MAC.

    Raised before any decryption happens; no plaintext exists when you see this.
    """
    kind = "mac_mismatch"


class RandomSourceFailure(EciesError):
    kind = "random_source_failure"
