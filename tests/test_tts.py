"""Tests for tts module."""

import asyncio
import base64
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from podcast_producer.config import Settings
from podcast_producer.errors import (
    AudioContentMissingError,
    InputMissingError,
    PreconditionError,
    ProviderError,
)
from podcast_producer.models import Pace, SynthesisRequest
from podcast_producer.tts import (
    CloudSpeechProvider,
    EdgeSpeechProvider,
    GeminiSpeechProvider,
    get_speech_provider,
    speech_input,
)


def _call(make_provider, handler, request):
    """Run one synthesize() against a mocked HTTP transport."""
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await make_provider(client).synthesize(request)
    return asyncio.run(go())


def _gemini_audio_response(request):
    return httpx.Response(200, json={
        "candidates": [{"content": {"parts": [{"inlineData": {
            "data": base64.b64encode(b"\x00\x00").decode(),
            "mimeType": "audio/L16;codec=pcm;rate=24000",
        }}]}}],
    })


# --- Gemini ---

def test_gemini_single_voice_request():
    """Single voice config; directive prepended to the text; key in header."""
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return _gemini_audio_response(request)

    req = SynthesisRequest(text="Hello.", voice="Kore", instruction="Alice should sound calm.")
    audio = _call(lambda c: GeminiSpeechProvider("k123", "tts-model", client=c), handler, req)

    assert seen["url"].endswith("/models/tts-model:generateContent")
    assert seen["key"] == "k123"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "Alice should sound calm.\nHello."
    speech = seen["body"]["generationConfig"]["speechConfig"]
    assert speech == {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": "Kore"}}}
    assert seen["body"]["generationConfig"]["responseModalities"] == ["AUDIO"]
    assert audio.mime_type.startswith("audio/L16")


def test_gemini_multi_speaker_request():
    """Two speaker voices → multiSpeakerVoiceConfig keyed by name."""
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return _gemini_audio_response(request)

    req = SynthesisRequest(text="A: hi\nB: yo", voice="Kore", speaker_voices={"A": "Kore", "B": "Puck"})
    _call(lambda c: GeminiSpeechProvider("k", "m", client=c), handler, req)

    configs = seen["body"]["generationConfig"]["speechConfig"]["multiSpeakerVoiceConfig"]["speakerVoiceConfigs"]
    assert [(c["speaker"], c["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"]) for c in configs] == [
        ("A", "Kore"),
        ("B", "Puck"),
    ]


def test_gemini_too_many_speakers():
    """More than two voices cannot be rendered jointly."""
    req = SynthesisRequest(text="t", voice="Kore", speaker_voices={"A": "1", "B": "2", "C": "3"})
    with pytest.raises(PreconditionError):
        _call(lambda c: GeminiSpeechProvider("k", "m", client=c), _gemini_audio_response, req)


def test_gemini_error_message_from_provider():
    """Non-2xx answers raise ProviderError with the provider's message."""
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "Resource exhausted"}})

    with pytest.raises(ProviderError) as exc:
        _call(lambda c: GeminiSpeechProvider("k", "m", client=c), handler, SynthesisRequest("t", "Kore"))
    assert str(exc.value) == "Resource exhausted"
    assert exc.value.status_code == 429


def test_gemini_missing_inline_data():
    """A 200 without audio is a content-shape failure."""
    def handler(request):
        return httpx.Response(200, json={"candidates": []})

    with pytest.raises(AudioContentMissingError):
        _call(lambda c: GeminiSpeechProvider("k", "m", client=c), handler, SynthesisRequest("t", "Kore"))


def test_transport_error_is_provider_error():
    """Network failures surface as ProviderError."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderError, match="connection refused"):
        _call(lambda c: GeminiSpeechProvider("k", "m", client=c), handler, SynthesisRequest("t", "Kore"))


# --- Cloud TTS ---

def test_cloud_request_and_response():
    """Key in query, language and voice in body, pace mapped to speaking rate."""
    seen = {}

    def handler(request):
        seen["key"] = request.url.params["key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"audioContent": base64.b64encode(b"ID3").decode()})

    req = SynthesisRequest(text="你好", voice="cmn-TW-Wavenet-A", instruction="ignored", pace=Pace.FAST)
    audio = _call(lambda c: CloudSpeechProvider("ck", "cmn-TW", client=c), handler, req)

    assert seen["key"] == "ck"
    assert seen["body"]["input"] == {"text": "你好"}
    assert seen["body"]["voice"] == {"languageCode": "cmn-TW", "name": "cmn-TW-Wavenet-A"}
    assert seen["body"]["audioConfig"]["audioEncoding"] == "MP3"
    assert seen["body"]["audioConfig"]["speakingRate"] == 1.15
    assert audio.mime_type == "audio/mpeg"


def test_cloud_missing_audio_content():
    """A response without audioContent is rejected."""
    def handler(request):
        return httpx.Response(200, json={})

    with pytest.raises(AudioContentMissingError):
        _call(lambda c: CloudSpeechProvider("ck", "cmn-TW", client=c), handler, SynthesisRequest("t", "v"))


# --- edge-tts ---

def _mock_communicate(chunks):
    """Create a mock edge_tts.Communicate whose stream yields `chunks`."""
    calls = []

    def factory(text, voice, **kwargs):
        calls.append((text, voice, kwargs))
        mock = MagicMock()

        async def stream():
            for chunk in chunks:
                yield chunk
        mock.stream = stream
        return mock
    return factory, calls


@patch("podcast_producer.tts.edge_tts.Communicate")
def test_edge_collects_audio_chunks(mock_comm):
    """Audio chunks are concatenated; metadata chunks ignored."""
    factory, calls = _mock_communicate([
        {"type": "audio", "data": b"abc"},
        {"type": "WordBoundary", "offset": 0},
        {"type": "audio", "data": b"def"},
    ])
    mock_comm.side_effect = factory

    req = SynthesisRequest(text="Hi.", voice="en-US-GuyNeural", instruction="Bob should speak slowly.", pace=Pace.SLOW)
    audio = asyncio.run(EdgeSpeechProvider().synthesize(req))

    assert base64.b64decode(audio.audio_content) == b"abcdef"
    assert audio.mime_type == "audio/mpeg"
    assert calls == [("Hi.", "en-US-GuyNeural", {"rate": "-15%"})]


@patch("podcast_producer.tts.edge_tts.Communicate")
def test_edge_failure_is_provider_error(mock_comm):
    """edge-tts exceptions are wrapped."""
    def factory(text, voice, **kwargs):
        mock = MagicMock()

        async def stream():
            raise RuntimeError("No audio was received")
            yield
        mock.stream = stream
        return mock

    mock_comm.side_effect = factory
    with pytest.raises(ProviderError, match="No audio was received"):
        asyncio.run(EdgeSpeechProvider().synthesize(SynthesisRequest("Hi.", "en-US-GuyNeural")))


# --- Factory ---

def test_speech_input_literal_provider_skips_directive():
    """Providers that would read the directive aloud never get it."""
    req = SynthesisRequest(text="Hi.", voice="v", instruction="Be calm.")
    assert speech_input(req, EdgeSpeechProvider()) == "Hi."
    assert speech_input(req, GeminiSpeechProvider("k", "m")) == "Be calm.\nHi."


def test_get_speech_provider():
    """Provider chosen by settings; credentials required up front."""
    assert isinstance(get_speech_provider(Settings(tts_provider="edge")), EdgeSpeechProvider)
    assert isinstance(get_speech_provider(Settings(gemini_api_key="k")), GeminiSpeechProvider)
    cloud = get_speech_provider(Settings(tts_provider="google", google_tts_api_key="g"))
    assert isinstance(cloud, CloudSpeechProvider)

    with pytest.raises(InputMissingError, match="GEMINI_API_KEY"):
        get_speech_provider(Settings())
    with pytest.raises(InputMissingError, match="GOOGLE_CLOUD_TTS_API_KEY"):
        get_speech_provider(Settings(tts_provider="google"))
