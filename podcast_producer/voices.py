"""Voice pools, the default speaker roster, and voice directives."""

import logging

from podcast_producer.constants import UNKNOWN_SPEAKER_NAME
from podcast_producer.models import (
    DialogueLine,
    EmphasisStyle,
    Emotion,
    Pace,
    ScriptMode,
    Session,
    Speaker,
    Tone,
)

logger = logging.getLogger(__name__)

# Hardcoded voice pools per provider (avoids a network call at startup).
# Values are the display labels used in prompts and `voices` listings.
VOICE_POOLS = {
    "gemini": {
        "Kore": "Firm",
        "Puck": "Upbeat",
        "Charon": "Informative",
        "Zephyr": "Bright",
        "Fenrir": "Excitable",
        "Leda": "Youthful",
        "Aoede": "Breezy",
        "Orus": "Firm male",
    },
    "google": {
        "cmn-TW-Wavenet-A": "Elegant female (WaveNet)",
        "cmn-TW-Wavenet-B": "Steady male (WaveNet)",
        "cmn-TW-Wavenet-C": "Sweet female (WaveNet)",
        "cmn-TW-Standard-A": "Standard female",
        "cmn-TW-Standard-B": "Standard male",
    },
    "edge": {
        "zh-TW-HsiaoChenNeural": "Taiwanese female",
        "zh-TW-YunJheNeural": "Taiwanese male",
        "zh-TW-HsiaoYuNeural": "Taiwanese female, young",
        "en-US-AriaNeural": "US English female",
        "en-US-GuyNeural": "US English male",
    },
}

# Two-speaker roster per provider: (host voice, guest voice)
_DEFAULT_VOICE_PAIRS = {
    "gemini": ("Kore", "Puck"),
    "google": ("cmn-TW-Wavenet-A", "cmn-TW-Wavenet-B"),
    "edge": ("zh-TW-HsiaoChenNeural", "zh-TW-YunJheNeural"),
}

_EMOTION_CLAUSES = {
    Emotion.EXCITED: "sound excited",
    Emotion.HAPPY: "sound happy",
    Emotion.CALM: "sound calm",
    Emotion.SERIOUS: "sound serious",
    Emotion.CURIOUS: "sound curious",
    Emotion.SAD: "sound sad",
}

_PACE_CLAUSES = {
    Pace.SLOW: "speak slowly",
    Pace.FAST: "speak quickly",
}

_TONE_CLAUSES = {
    Tone.WARM: "use a warm tone",
    Tone.FRIENDLY: "use a friendly tone",
    Tone.FORMAL: "use a formal tone",
    Tone.CASUAL: "use a casual tone",
    Tone.AUTHORITATIVE: "use an authoritative tone",
}

_STYLE_CLAUSES = {
    EmphasisStyle.CONVERSATIONAL: "deliver it conversationally",
    EmphasisStyle.STORYTELLING: "deliver it like a storyteller",
    EmphasisStyle.NEWSCAST: "deliver it like a news anchor",
    EmphasisStyle.WHISPER: "deliver it in a whisper",
}


def default_speakers(provider: str = "gemini") -> tuple[Speaker, ...]:
    """Initial two-speaker roster for a new session."""
    host_voice, guest_voice = _DEFAULT_VOICE_PAIRS.get(provider, _DEFAULT_VOICE_PAIRS["gemini"])
    return (
        Speaker(id="speaker1", name="主持人 Alpha", voice=host_voice),
        Speaker(id="speaker2", name="來賓 Beta", voice=guest_voice),
    )


def voice_label(voice: str) -> str:
    """Human-readable label for a voice id, or the id itself if unknown."""
    for pool in VOICE_POOLS.values():
        if voice in pool:
            return pool[voice]
    return voice


def active_speakers(session: Session) -> list[Speaker]:
    """Speakers allowed to appear in the script for the session's mode."""
    if not session.speakers:
        return []
    if session.mode == ScriptMode.SINGLE:
        return [session.speakers[0]]
    return list(session.speakers)


def find_speaker(speakers, speaker_id: str) -> Speaker | None:
    for speaker in speakers:
        if speaker.id == speaker_id:
            return speaker
    return None


def speaker_name_for(line: DialogueLine, speakers) -> str:
    """Resolve a line's speaker name; dangling references fall back to a placeholder."""
    speaker = find_speaker(speakers, line.speaker_id)
    if speaker is None:
        logger.debug("Line %s references unknown speaker %s", line.id, line.speaker_id)
        return UNKNOWN_SPEAKER_NAME
    return speaker.name


def compose_voice_instruction(speaker: Speaker) -> str:
    """Turn a speaker's style attributes into one directive sentence.

    Neutral attributes contribute nothing; if every attribute is neutral the
    result is an empty string.

    Speaker(name="Alpha", emotion=EXCITED, pace=SLOW) → "Alpha should sound excited, speak slowly."
    """
    clauses = []
    for table, value in (
        (_EMOTION_CLAUSES, speaker.emotion),
        (_PACE_CLAUSES, speaker.pace),
        (_TONE_CLAUSES, speaker.tone),
        (_STYLE_CLAUSES, speaker.style),
    ):
        clause = table.get(value)
        if clause:
            clauses.append(clause)

    if not clauses:
        return ""
    return f"{speaker.name} should {', '.join(clauses)}."
