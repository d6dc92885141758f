"""Speech synthesis providers: Gemini TTS, Google Cloud TTS, and edge-tts.

Every provider answers a SynthesisRequest with a ProviderAudio: a base64
payload plus its MIME type. Decoding and containerizing happen in codec.
"""

import base64
import logging

import edge_tts
import httpx

from podcast_producer.config import Settings
from podcast_producer.constants import (
    CLOUD_TTS_ENDPOINT,
    EDGE_RATE_DEFAULT,
    EDGE_RATE_FAST,
    EDGE_RATE_SLOW,
    GEMINI_API_BASE,
    JOINT_MAX_SPEAKERS,
)
from podcast_producer.errors import AudioContentMissingError, PreconditionError, ProviderError
from podcast_producer.models import Pace, ProviderAudio, SynthesisRequest
from podcast_producer.services import post_json

logger = logging.getLogger(__name__)

_EDGE_RATES = {
    Pace.NORMAL: EDGE_RATE_DEFAULT,
    Pace.SLOW: EDGE_RATE_SLOW,
    Pace.FAST: EDGE_RATE_FAST,
}

_CLOUD_SPEAKING_RATES = {
    Pace.NORMAL: 1.0,
    Pace.SLOW: 0.85,
    Pace.FAST: 1.15,
}


class SpeechProvider:
    """Base class for speech synthesis backends."""

    name = ""
    supports_joint = False       # can render a whole multi-speaker conversation in one call
    follows_instructions = False  # reads voice directives instead of speaking them

    async def synthesize(self, request: SynthesisRequest) -> ProviderAudio:
        raise NotImplementedError


def speech_input(request: SynthesisRequest, provider: SpeechProvider) -> str:
    """Text sent for synthesis: directive first when the provider understands one."""
    if request.instruction and provider.follows_instructions:
        return f"{request.instruction}\n{request.text}"
    return request.text


class GeminiSpeechProvider(SpeechProvider):
    """Gemini speech generation over the REST API. Returns raw 24 kHz PCM."""

    name = "gemini"
    supports_joint = True
    follows_instructions = True

    def __init__(self, api_key: str, model: str, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self.model = model
        self.client = client

    def _speech_config(self, request: SynthesisRequest) -> dict:
        speaker_voices = request.speaker_voices or {}
        if len(speaker_voices) > JOINT_MAX_SPEAKERS:
            raise PreconditionError(
                f"Gemini multi-speaker audio supports up to {JOINT_MAX_SPEAKERS} speakers"
            )
        if len(speaker_voices) == JOINT_MAX_SPEAKERS:
            return {
                "multiSpeakerVoiceConfig": {
                    "speakerVoiceConfigs": [
                        {
                            "speaker": speaker,
                            "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                        }
                        for speaker, voice in speaker_voices.items()
                    ]
                }
            }
        voice = next(iter(speaker_voices.values()), request.voice)
        return {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}}

    async def synthesize(self, request: SynthesisRequest) -> ProviderAudio:
        payload = {
            "contents": [{"parts": [{"text": speech_input(request, self)}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": self._speech_config(request),
            },
        }
        body = await post_json(
            f"{GEMINI_API_BASE}/models/{self.model}:generateContent",
            payload,
            service="Gemini TTS",
            headers={"x-goog-api-key": self.api_key},
            client=self.client,
        )
        try:
            inline = body["candidates"][0]["content"]["parts"][0]["inlineData"]
        except (KeyError, IndexError, TypeError) as e:
            raise AudioContentMissingError(
                "Gemini TTS did not return audio content in the expected format."
            ) from e
        return ProviderAudio(
            audio_content=inline.get("data", ""),
            mime_type=inline.get("mimeType", "audio/L16;codec=pcm;rate=24000"),
        )


class CloudSpeechProvider(SpeechProvider):
    """Google Cloud Text-to-Speech `text:synthesize`. Returns MP3."""

    name = "google"

    def __init__(self, api_key: str, language_code: str, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self.language_code = language_code
        self.client = client

    async def synthesize(self, request: SynthesisRequest) -> ProviderAudio:
        payload = {
            "input": {"text": speech_input(request, self)},
            "voice": {"languageCode": self.language_code, "name": request.voice},
            "audioConfig": {
                "audioEncoding": "MP3",
                "speakingRate": _CLOUD_SPEAKING_RATES.get(request.pace, 1.0),
            },
        }
        body = await post_json(
            CLOUD_TTS_ENDPOINT,
            payload,
            service="Cloud Text-to-Speech",
            params={"key": self.api_key},
            client=self.client,
        )
        if not body.get("audioContent"):
            raise AudioContentMissingError(
                "Cloud Text-to-Speech did not return audio content in the expected format."
            )
        return ProviderAudio(audio_content=body["audioContent"], mime_type="audio/mpeg")


class EdgeSpeechProvider(SpeechProvider):
    """Microsoft Edge online voices via edge-tts. No credential needed; MP3 out."""

    name = "edge"

    async def synthesize(self, request: SynthesisRequest) -> ProviderAudio:
        rate = _EDGE_RATES.get(request.pace, EDGE_RATE_DEFAULT)
        audio = bytearray()
        try:
            communicate = edge_tts.Communicate(speech_input(request, self), request.voice, rate=rate)
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
        except Exception as e:
            raise ProviderError(f"edge-tts synthesis failed: {e}") from e

        return ProviderAudio(
            audio_content=base64.b64encode(bytes(audio)).decode("ascii"),
            mime_type="audio/mpeg",
        )


def get_speech_provider(settings: Settings, client: httpx.AsyncClient | None = None) -> SpeechProvider:
    """Build the configured provider; its credential must be present."""
    if settings.tts_provider == "edge":
        return EdgeSpeechProvider()
    if settings.tts_provider == "google":
        return CloudSpeechProvider(
            settings.require("google_tts_api_key"), settings.language_code, client=client
        )
    return GeminiSpeechProvider(settings.require("gemini_api_key"), settings.tts_model, client=client)
