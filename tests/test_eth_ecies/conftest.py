import pytest

import sys, os
target_path = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "../.."))
if target_path not in sys.path:
    sys.path.insert(0, target_path)

from eth_ecies import generate_private_key, private_to_public, reset_settings
from eth_ecies.settings import ENV_LOG_LEVEL


# Cross-implementation vector: Ethereum ECIES output for a fixed iv and ephemeral key
VECTOR_PRIVATE_KEY = bytes.fromhex("d0b043b4c5d657670778242d82d68a29d25d7d711127d17b8e299f156dad361a")
VECTOR_EPHEMERAL_KEY = bytes.fromhex("1f264057916c537739c9a0581914c72cf986abb64d63265929356bc760777749")
VECTOR_IV = bytes.fromhex("cb3de3aeef5c4b46465e8057a1c71b94")
VECTOR_PLAINTEXT = b"Hello, world."
VECTOR_ENVELOPE = bytes.fromhex(
    "0420642e5c476a6c0d631b0990c9b1691cf717c0ccb0bdc9fab4a9ffc83784b1c7"
    "a8324f30f860fa080ac03bfab2e9e20e8c1eb71e29c7cecee3214501f1096692"
    "cb3de3aeef5c4b46465e8057a1c71b94"
    "7690c3817cb949a4acb38071ad"
    "3c9e2eaca126730e6bd7506cf94e27fac82bbf1090bd491c5060466cb91a5da9"
)


def make_party(name: str) -> dict:
    priv = generate_private_key()
    return {"id": name, "priv": priv, "pub": private_to_public(priv)}


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    # Every test starts from built-in defaults, regardless of the developer's env
    monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def alice() -> dict:
    return make_party("alice")


@pytest.fixture
def bob() -> dict:
    return make_party("bob")


@pytest.fixture
def vector() -> dict:
    return {
        "priv": VECTOR_PRIVATE_KEY,
        "pub": private_to_public(VECTOR_PRIVATE_KEY),
        "ephemeral": VECTOR_EPHEMERAL_KEY,
        "iv": VECTOR_IV,
        "plaintext": VECTOR_PLAINTEXT,
        "envelope": VECTOR_ENVELOPE,
    }
