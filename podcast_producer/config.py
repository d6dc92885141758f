"""Runtime settings resolved once from the environment (and an optional .env)."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from podcast_producer.constants import (
    GEMINI_TEXT_MODEL,
    GEMINI_TTS_MODEL,
    LANGUAGE_CODE,
    OUTPUT_DIR,
    TTS_PROVIDER,
)
from podcast_producer.errors import InputMissingError

TTS_PROVIDERS = ("gemini", "google", "edge")

# Settings field → environment variable, for error messages
_ENV_NAMES = {
    "gemini_api_key": "GEMINI_API_KEY",
    "firecrawl_api_key": "FIRECRAWL_API_KEY",
    "google_tts_api_key": "GOOGLE_CLOUD_TTS_API_KEY",
}


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str = ""
    firecrawl_api_key: str = ""
    google_tts_api_key: str = ""
    tts_provider: str = TTS_PROVIDER
    text_model: str = GEMINI_TEXT_MODEL
    tts_model: str = GEMINI_TTS_MODEL
    language_code: str = LANGUAGE_CODE
    output_dir: str = OUTPUT_DIR

    def require(self, name: str) -> str:
        """Return a credential, or raise InputMissingError naming its variable."""
        value = getattr(self, name)
        if not value:
            env_name = _ENV_NAMES.get(name, name.upper())
            raise InputMissingError(
                f"{env_name} not found. Configure it in the environment or a .env file."
            )
        return value


def load_settings(environ=None, dotenv: bool = True) -> Settings:
    """Build Settings from environment variables.

    GEMINI_API_KEY falls back to API_KEY. Unknown TTS provider names raise
    ValueError.
    """
    if dotenv and environ is None:
        load_dotenv()
    env = os.environ if environ is None else environ

    provider = env.get("PODCAST_TTS_PROVIDER", TTS_PROVIDER).strip().lower() or TTS_PROVIDER
    if provider not in TTS_PROVIDERS:
        raise ValueError(
            f"Unknown TTS provider: {provider} (expected one of {', '.join(TTS_PROVIDERS)})"
        )

    return Settings(
        gemini_api_key=env.get("GEMINI_API_KEY") or env.get("API_KEY", ""),
        firecrawl_api_key=env.get("FIRECRAWL_API_KEY", ""),
        google_tts_api_key=env.get("GOOGLE_CLOUD_TTS_API_KEY", ""),
        tts_provider=provider,
        text_model=env.get("PODCAST_TEXT_MODEL") or GEMINI_TEXT_MODEL,
        tts_model=env.get("PODCAST_TTS_MODEL") or GEMINI_TTS_MODEL,
        language_code=env.get("PODCAST_LANGUAGE_CODE") or LANGUAGE_CODE,
        output_dir=env.get("PODCAST_OUTPUT_DIR") or OUTPUT_DIR,
    )
