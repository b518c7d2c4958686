import logging

from .ecies import (
    encrypt,
    decrypt,
    open_envelope,
    EncryptOptions,
    )
from .envelope import (
    Envelope,
    EnvelopeFormat,
    decode as decode_envelope,
    encode as encode_envelope,
    )
from .errors import (
    EciesError,
    InvalidPublicKey,
    InvalidPrivateKey,
    MalformedEnvelope,
    MacMismatch,
    RandomSourceFailure,
    )
from .keys import (
    private_to_public,
    generate_private_key,
    load_private_key,
    load_public_key,
    )
from .settings import (
    EciesSettings,
    load_settings,
    get_settings,
    reset_settings,
    configure_logging,
    )

logging.getLogger(__name__).addHandler(logging.NullHandler())
