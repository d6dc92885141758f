"""Data models for podcast production."""

from dataclasses import dataclass, field
from enum import Enum


class ScriptMode(str, Enum):
    SINGLE = "single-speaker"
    MULTI = "multi-speaker"


class Emotion(str, Enum):
    DEFAULT = "default"
    EXCITED = "excited"
    HAPPY = "happy"
    CALM = "calm"
    SERIOUS = "serious"
    CURIOUS = "curious"
    SAD = "sad"


class Pace(str, Enum):
    NORMAL = "normal"
    SLOW = "slow"
    FAST = "fast"


class Tone(str, Enum):
    NEUTRAL = "neutral"
    WARM = "warm"
    FRIENDLY = "friendly"
    FORMAL = "formal"
    CASUAL = "casual"
    AUTHORITATIVE = "authoritative"


class EmphasisStyle(str, Enum):
    DEFAULT = "default"
    CONVERSATIONAL = "conversational"
    STORYTELLING = "storytelling"
    NEWSCAST = "newscast"
    WHISPER = "whisper"


class DurationSource(str, Enum):
    MEASURED = "measured"
    ESTIMATED = "estimated"
    FAILED = "failed"


@dataclass(frozen=True)
class Speaker:
    id: str
    name: str
    voice: str                                  # provider-specific voice token
    emotion: Emotion = Emotion.DEFAULT
    pace: Pace = Pace.NORMAL
    tone: Tone = Tone.NEUTRAL
    style: EmphasisStyle = EmphasisStyle.DEFAULT


@dataclass(frozen=True)
class DialogueLine:
    id: str
    speaker_id: str    # weak reference into the roster
    text: str


@dataclass(frozen=True)
class ContentSource:
    url: str = ""
    text: str = ""


@dataclass(frozen=True)
class SeoMeta:
    title: str
    description: str


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of everything the pipeline works on."""

    speakers: tuple[Speaker, ...]
    lines: tuple[DialogueLine, ...] = ()
    mode: ScriptMode = ScriptMode.MULTI
    content: ContentSource = ContentSource()
    style_instructions: str = ""
    brand_profile: str = ""
    target_minutes: float | None = None
    durations: dict[str, float] = field(default_factory=dict)         # line id -> seconds
    duration_sources: dict[str, DurationSource] = field(default_factory=dict)
    seo: SeoMeta | None = None


@dataclass(frozen=True)
class SynthesisRequest:
    text: str
    voice: str
    instruction: str = ""                       # voice directive, never part of the script
    speaker_voices: dict[str, str] | None = None   # joint mode: speaker name -> voice
    pace: Pace = Pace.NORMAL


@dataclass(frozen=True)
class ProviderAudio:
    audio_content: str     # base64 payload as returned by the service
    mime_type: str


@dataclass(frozen=True)
class SynthesizedAudio:
    data: bytes
    mime_type: str
    is_raw_pcm: bool = False


@dataclass(frozen=True)
class AudioArtifact:
    name: str
    data: bytes
    extension: str
