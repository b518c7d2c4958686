import logging

import pytest
from pydantic import ValidationError

from eth_ecies import EciesSettings, configure_logging, get_settings, load_settings, reset_settings
from eth_ecies.settings import ENV_LOG_LEVEL


def test_defaults():
    s = load_settings()
    assert s.log_level == "WARNING"


def test_env_is_read(monkeypatch):
    monkeypatch.setenv(ENV_LOG_LEVEL, "debug")
    s = load_settings()
    assert s.log_level == "DEBUG"


def test_explicit_mapping_beats_env(monkeypatch):
    monkeypatch.setenv(ENV_LOG_LEVEL, "ERROR")
    s = load_settings({ENV_LOG_LEVEL: "info"})
    assert s.log_level == "INFO"


def test_invalid_values_fail_at_load():
    with pytest.raises(ValidationError):
        load_settings({ENV_LOG_LEVEL: "loud"})


def test_envelope_format_is_not_a_setting():
    with pytest.raises(ValidationError):
        EciesSettings.model_validate({"envelope_format": "aes256-cbc"})


def test_settings_are_frozen():
    s = load_settings()
    with pytest.raises(ValidationError):
        s.log_level = "DEBUG"


def test_dotenv_file(tmp_path, monkeypatch):
    # Register the var with monkeypatch so whatever load_dotenv sets is undone
    monkeypatch.setenv(ENV_LOG_LEVEL, "placeholder")
    monkeypatch.delenv(ENV_LOG_LEVEL)

    env_file = tmp_path / ".env"
    env_file.write_text(f"{ENV_LOG_LEVEL}=error\n", encoding="utf-8")

    s = load_settings(auto_dotenv=True, dotenv_path=str(env_file))
    assert s.log_level == "ERROR"

def test_get_settings_is_cached_until_reset(monkeypatch):
    first = get_settings()
    monkeypatch.setenv(ENV_LOG_LEVEL, "ERROR")
    assert get_settings() is first

    reset_settings()
    assert get_settings().log_level == "ERROR"

    pinned = load_settings({ENV_LOG_LEVEL: "INFO"})
    reset_settings(pinned)
    assert get_settings() is pinned


def test_configure_logging_uses_settings_level():
    reset_settings(load_settings({ENV_LOG_LEVEL: "DEBUG"}))
    logger = logging.getLogger("eth_ecies")
    handler = configure_logging()
    try:
        assert handler in logger.handlers
        assert logger.level == logging.DEBUG
    finally:
        logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_rejections_are_logged_without_key_material(alice, bob, caplog):
    from eth_ecies import MacMismatch, decrypt, encrypt

    envelope = encrypt(alice["pub"], b"top secret")
    with caplog.at_level(logging.DEBUG, logger="eth_ecies"):
        with pytest.raises(MacMismatch):
            decrypt(bob["priv"], envelope)

    text = caplog.text
    assert "mac_mismatch" in text
    assert bob["priv"].hex() not in text
    assert "top secret" not in text


def test_configure_logging_twice_keeps_one_handler():
    logger = logging.getLogger("eth_ecies")
    first = configure_logging("INFO")
    second = configure_logging("DEBUG")
    try:
        assert first not in logger.handlers
        owned = [h for h in logger.handlers if getattr(h, "_eth_ecies", False)]
        assert owned == [second]
        assert logger.level == logging.DEBUG
    finally:
        logger.removeHandler(second)
        logger.setLevel(logging.NOTSET)


def test_configure_logging_leaves_foreign_handlers():
    logger = logging.getLogger("eth_ecies")
    app_handler = logging.NullHandler()
    logger.addHandler(app_handler)
    configure_logging()
    try:
        configure_logging()
        assert app_handler in logger.handlers
    finally:
        for h in list(logger.handlers):
            if h is app_handler or getattr(h, "_eth_ecies", False):
                logger.removeHandler(h)
        logger.setLevel(logging.NOTSET)
