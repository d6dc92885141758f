"""Shared fixtures for podcast producer tests."""

import base64

import pytest

from podcast_producer.errors import ProviderError
from podcast_producer.models import DialogueLine, ProviderAudio, Session, Speaker
from podcast_producer.tts import SpeechProvider

PCM_MIME = "audio/L16;codec=pcm;rate=24000"


def silent_pcm(seconds: float, sample_rate: int = 24000) -> bytes:
    """Raw 16-bit mono silence."""
    return b"\x00\x00" * int(sample_rate * seconds)


class FakeSpeechProvider(SpeechProvider):
    """Returns half a second of PCM per call; can fail on a given call."""

    name = "fake"
    follows_instructions = True

    def __init__(self, supports_joint=False, fail_on=None, payloads=None, mime_type=PCM_MIME):
        self.supports_joint = supports_joint
        self.fail_on = fail_on
        self.payloads = payloads
        self.mime_type = mime_type
        self.requests = []

    async def synthesize(self, request):
        self.requests.append(request)
        call = len(self.requests)
        if call == self.fail_on:
            raise ProviderError("quota exceeded", status_code=429)
        if self.payloads is not None:
            return ProviderAudio(audio_content=self.payloads[call - 1], mime_type=self.mime_type)
        payload = base64.b64encode(silent_pcm(0.5)).decode("ascii")
        return ProviderAudio(audio_content=payload, mime_type=self.mime_type)


@pytest.fixture
def speakers():
    return (
        Speaker(id="s1", name="Alice", voice="Kore"),
        Speaker(id="s2", name="Bob", voice="Puck"),
    )


@pytest.fixture
def dialogue(speakers):
    """Five lines alternating between Alice and Bob."""
    texts = ["Hello there.", "Hi Alice.", "Shall we start?", "Let's go.", "Welcome, everyone."]
    return tuple(
        DialogueLine(id=f"l{i}", speaker_id=speakers[(i - 1) % 2].id, text=text)
        for i, text in enumerate(texts, start=1)
    )


@pytest.fixture
def session(speakers, dialogue):
    return Session(speakers=speakers, lines=dialogue)


@pytest.fixture
def fake_provider():
    return FakeSpeechProvider()
