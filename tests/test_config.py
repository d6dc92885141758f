"""Tests for config module."""

import pytest

from podcast_producer.config import Settings, load_settings
from podcast_producer.constants import GEMINI_TTS_MODEL, OUTPUT_DIR
from podcast_producer.errors import InputMissingError


def test_load_settings_defaults():
    """Empty environment → defaults, no credentials."""
    settings = load_settings({})
    assert settings == Settings()
    assert settings.tts_provider == "gemini"
    assert settings.tts_model == GEMINI_TTS_MODEL
    assert settings.output_dir == OUTPUT_DIR


def test_load_settings_reads_environment():
    """Every key is picked up from the given mapping."""
    settings = load_settings({
        "GEMINI_API_KEY": "g",
        "FIRECRAWL_API_KEY": "f",
        "GOOGLE_CLOUD_TTS_API_KEY": "c",
        "PODCAST_TTS_PROVIDER": " Edge ",
        "PODCAST_TEXT_MODEL": "text-x",
        "PODCAST_TTS_MODEL": "tts-x",
        "PODCAST_LANGUAGE_CODE": "en-US",
        "PODCAST_OUTPUT_DIR": "/tmp/out",
    })
    assert settings == Settings(
        gemini_api_key="g",
        firecrawl_api_key="f",
        google_tts_api_key="c",
        tts_provider="edge",
        text_model="text-x",
        tts_model="tts-x",
        language_code="en-US",
        output_dir="/tmp/out",
    )


def test_gemini_key_falls_back_to_api_key():
    """API_KEY is accepted when GEMINI_API_KEY is absent."""
    assert load_settings({"API_KEY": "legacy"}).gemini_api_key == "legacy"
    assert load_settings({"API_KEY": "legacy", "GEMINI_API_KEY": "new"}).gemini_api_key == "new"


def test_unknown_provider_rejected():
    """Provider names are validated at load time."""
    with pytest.raises(ValueError, match="Unknown TTS provider"):
        load_settings({"PODCAST_TTS_PROVIDER": "polly"})


def test_require_names_variable():
    """Missing credentials name the environment variable to set."""
    with pytest.raises(InputMissingError, match="FIRECRAWL_API_KEY"):
        Settings().require("firecrawl_api_key")
    assert Settings(firecrawl_api_key="f").require("firecrawl_api_key") == "f"
