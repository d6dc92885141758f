"""Session state transitions.

A Session is never mutated. Every function here takes a snapshot and returns
a new one. Any change that could invalidate rendered audio clears the
recorded durations, so a subtitle file can never be built from stale timing.
"""

import dataclasses

from podcast_producer.constants import (
    CHARS_PER_MINUTE,
    DEFAULT_BRAND_PROFILE,
    DEFAULT_STYLE_INSTRUCTIONS,
)
from podcast_producer.errors import PreconditionError
from podcast_producer.models import (
    ContentSource,
    DialogueLine,
    DurationSource,
    EmphasisStyle,
    Emotion,
    Pace,
    ScriptMode,
    Tone,
    SeoMeta,
    Session,
    Speaker,
)
from podcast_producer.parser import new_line_id, parse_script
from podcast_producer.voices import active_speakers, default_speakers

# Session fields whose change invalidates every recorded duration
INVALIDATING_FIELDS = {
    "speakers",
    "lines",
    "mode",
    "content",
    "style_instructions",
    "brand_profile",
    "target_minutes",
}

SPEAKER_STYLE_FIELDS = {
    "emotion": Emotion,
    "pace": Pace,
    "tone": Tone,
    "style": EmphasisStyle,
}


def new_session(provider: str = "gemini", content: ContentSource | None = None) -> Session:
    return Session(
        speakers=default_speakers(provider),
        content=content or ContentSource(),
        style_instructions=DEFAULT_STYLE_INSTRUCTIONS,
        brand_profile=DEFAULT_BRAND_PROFILE,
    )


def update(session: Session, **changes) -> Session:
    """Return a copy with `changes` applied, clearing durations when required."""
    invalidates = any(
        name in INVALIDATING_FIELDS and getattr(session, name) != value
        for name, value in changes.items()
    )
    if invalidates:
        changes.setdefault("durations", {})
        changes.setdefault("duration_sources", {})
    return dataclasses.replace(session, **changes)


def clear_durations(session: Session) -> Session:
    return dataclasses.replace(session, durations={}, duration_sources={})


def record_duration(
    session: Session,
    line_id: str,
    seconds: float,
    source: DurationSource,
) -> Session:
    """Record one line's duration. Does not invalidate anything."""
    durations = dict(session.durations)
    durations[line_id] = seconds
    sources = dict(session.duration_sources)
    sources[line_id] = source
    return dataclasses.replace(session, durations=durations, duration_sources=sources)


# --- Script ---

def apply_generated_script(session: Session, raw_text: str) -> Session:
    """Replace the script wholesale with lines parsed from generated text."""
    lines = parse_script(raw_text, active_speakers(session))
    return dataclasses.replace(
        session,
        lines=tuple(lines),
        durations={},
        duration_sources={},
        seo=None,
    )


def _check_index(items, index: int, what: str) -> None:
    if not 0 <= index < len(items):
        raise PreconditionError(f"No {what} at position {index + 1} (have {len(items)}).")


def add_line(session: Session, text: str, speaker_id: str | None = None) -> Session:
    text = text.strip()
    if not text:
        raise PreconditionError("Dialogue text must not be empty.")
    if speaker_id is None:
        if not session.speakers:
            raise PreconditionError("No speakers are configured.")
        speaker_id = session.speakers[0].id
    line = DialogueLine(id=new_line_id(), speaker_id=speaker_id, text=text)
    return update(session, lines=session.lines + (line,))


def edit_line(
    session: Session,
    index: int,
    text: str | None = None,
    speaker_id: str | None = None,
) -> Session:
    _check_index(session.lines, index, "dialogue line")
    line = session.lines[index]
    if text is not None:
        text = text.strip()
        if not text:
            raise PreconditionError("Dialogue text must not be empty.")
        line = dataclasses.replace(line, text=text)
    if speaker_id is not None:
        line = dataclasses.replace(line, speaker_id=speaker_id)
    lines = session.lines[:index] + (line,) + session.lines[index + 1:]
    return update(session, lines=lines)


def remove_line(session: Session, index: int) -> Session:
    _check_index(session.lines, index, "dialogue line")
    lines = session.lines[:index] + session.lines[index + 1:]
    return update(session, lines=lines)


# --- Speakers and settings ---

def replace_speaker(session: Session, index: int, **changes) -> Session:
    """Replace the speaker at `index` with an edited copy; ids never change."""
    _check_index(session.speakers, index, "speaker")
    changes.pop("id", None)
    for name, enum_cls in SPEAKER_STYLE_FIELDS.items():
        if name in changes:
            changes[name] = enum_cls(changes[name])
    speaker: Speaker = dataclasses.replace(session.speakers[index], **changes)
    speakers = session.speakers[:index] + (speaker,) + session.speakers[index + 1:]
    return update(session, speakers=speakers)


def set_mode(session: Session, mode: ScriptMode) -> Session:
    return update(session, mode=ScriptMode(mode))


def set_target_minutes(session: Session, minutes: float | None) -> Session:
    if minutes is not None and minutes <= 0:
        minutes = None
    return update(session, target_minutes=minutes)


def set_content(session: Session, content: ContentSource) -> Session:
    return update(session, content=content)


def set_style_instructions(session: Session, text: str) -> Session:
    return update(session, style_instructions=text)


def set_brand_profile(session: Session, text: str) -> Session:
    return update(session, brand_profile=text)


def set_seo(session: Session, seo: SeoMeta | None) -> Session:
    return dataclasses.replace(session, seo=seo)


def estimated_minutes(text: str) -> int | None:
    """Rough listening length of source content, at least one minute."""
    if not text:
        return None
    minutes = round(len(text) / CHARS_PER_MINUTE)
    return minutes if minutes > 0 else 1
