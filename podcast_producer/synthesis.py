"""Drive speech synthesis for a whole script and reconcile line timing.

Two topologies:
  - joint: one call renders the whole conversation (multi-speaker mode, at most
    two distinct speakers, provider supports it). Line durations are estimated.
  - per-line: one call per dialogue line, strictly in order. Durations are
    measured from the decoded audio (or estimated if measuring is switched off).

A run never retries and stops at the first failing line. Durations recorded
before the failure stay in the returned session; audio collected so far is
not packaged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from podcast_producer.codec import decode_audio, to_playable
from podcast_producer.constants import (
    ARCHIVE_FILENAME,
    DURATION_FAILED,
    JOINT_AUDIO_BASENAME,
    JOINT_MAX_SPEAKERS,
    VOICE_PREVIEW_TEXT,
)
from podcast_producer.errors import MeasurementError, PackagingError, PodcastError, PreconditionError
from podcast_producer.exporter import package_archive, segment_filename
from podcast_producer.models import (
    AudioArtifact,
    DialogueLine,
    DurationSource,
    ScriptMode,
    Session,
    Speaker,
    SynthesisRequest,
)
from podcast_producer.session import record_duration
from podcast_producer.timing import estimate_duration, measure_duration
from podcast_producer.tts import SpeechProvider
from podcast_producer.voices import compose_voice_instruction, find_speaker, voice_label

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SynthesisResult:
    state: RunState
    session: Session
    joint: bool = False
    artifacts: list[AudioArtifact] = field(default_factory=list)
    output_name: str | None = None     # zip, joint file, or the single segment
    output_data: bytes | None = None
    error: str | None = None
    failed_line: int | None = None     # 1-based


def distinct_speaker_ids(lines) -> list[str]:
    """Speaker ids in order of first appearance."""
    seen = []
    for line in lines:
        if line.speaker_id not in seen:
            seen.append(line.speaker_id)
    return seen


def uses_joint_synthesis(session: Session, provider: SpeechProvider) -> bool:
    ids = distinct_speaker_ids(session.lines)
    if not (
        provider.supports_joint
        and session.mode == ScriptMode.MULTI
        and len(ids) <= JOINT_MAX_SPEAKERS
    ):
        return False
    # The joint request maps voices by display name
    names = [s.name for s in session.speakers if s.id in ids]
    return len(names) == len(set(names))


def _resolve_speakers(session: Session) -> tuple[list[Speaker], int | None]:
    """Speaker per line, or the 1-based number of the first unresolvable line."""
    resolved = []
    for number, line in enumerate(session.lines, start=1):
        speaker = find_speaker(session.speakers, line.speaker_id)
        if speaker is None:
            return resolved, number
        resolved.append(speaker)
    return resolved, None


def build_joint_request(lines: list[DialogueLine], speakers: list[Speaker]) -> SynthesisRequest:
    """One request carrying the whole conversation and a speaker → voice map.

    `speakers` holds the resolved speaker for each line, in line order.
    """
    cast = []
    for speaker in speakers:
        if speaker not in cast:
            cast.append(speaker)

    names = " and ".join(s.name for s in cast)
    directives = [d for d in (compose_voice_instruction(s) for s in cast) if d]
    header = " ".join([f"TTS the following conversation between {names}:"] + directives)
    turns = "\n".join(f"{speaker.name}: {line.text}" for line, speaker in zip(lines, speakers))

    return SynthesisRequest(
        text=turns,
        voice=cast[0].voice,
        instruction=header,
        speaker_voices={s.name: s.voice for s in cast},
    )


async def _render(provider: SpeechProvider, request: SynthesisRequest) -> tuple[bytes, str]:
    audio = await provider.synthesize(request)
    return to_playable(decode_audio(audio.audio_content, audio.mime_type))


def _failed(session: Session, message: str, failed_line: int | None = None, joint: bool = False):
    logger.error(message)
    return SynthesisResult(
        state=RunState.FAILED,
        session=session,
        joint=joint,
        error=message,
        failed_line=failed_line,
    )


async def _synthesize_joint(
    session: Session,
    provider: SpeechProvider,
    speakers: list[Speaker],
) -> SynthesisResult:
    lines = list(session.lines)
    print(f"  Synthesizing conversation ({len(lines)} lines) in one call")
    try:
        data, extension = await _render(provider, build_joint_request(lines, speakers))
    except PodcastError as e:
        return _failed(session, f"Conversation synthesis failed: {e}", joint=True)

    # Segment boundaries are not recoverable from a merged render
    for line in lines:
        session = record_duration(
            session, line.id, estimate_duration(line.text), DurationSource.ESTIMATED
        )

    name = f"{JOINT_AUDIO_BASENAME}.{extension}"
    return SynthesisResult(
        state=RunState.COMPLETED,
        session=session,
        joint=True,
        artifacts=[AudioArtifact(name=name, data=data, extension=extension)],
        output_name=name,
        output_data=data,
    )


async def _synthesize_per_line(
    session: Session,
    provider: SpeechProvider,
    measure: bool,
) -> SynthesisResult:
    lines = list(session.lines)
    total = len(lines)
    artifacts = []

    for number, line in enumerate(lines, start=1):
        speaker = find_speaker(session.speakers, line.speaker_id)
        if speaker is None:
            return _failed(session, f"Line {number}: no speaker settings found.", number)

        print(f"  Synthesizing line {number}/{total}: {speaker.name}")
        request = SynthesisRequest(
            text=line.text,
            voice=speaker.voice,
            instruction=compose_voice_instruction(speaker),
            pace=speaker.pace,
        )
        try:
            data, extension = await _render(provider, request)
        except PodcastError as e:
            return _failed(session, f"Line {number} synthesis failed: {e}", number)

        if measure:
            try:
                seconds = await measure_duration(data, extension)
                source = DurationSource.MEASURED
            except MeasurementError as e:
                logger.warning("Could not get duration for line %d (%r): %s", number, line.text, e)
                seconds, source = DURATION_FAILED, DurationSource.FAILED
        else:
            seconds, source = estimate_duration(line.text), DurationSource.ESTIMATED
        session = record_duration(session, line.id, seconds, source)

        name = segment_filename(number, speaker.name, extension)
        artifacts.append(AudioArtifact(name=name, data=data, extension=extension))

    if len(artifacts) == 1:
        output_name, output_data = artifacts[0].name, artifacts[0].data
    else:
        try:
            output_data = package_archive([(a.name, a.data) for a in artifacts])
        except PackagingError as e:
            return _failed(session, str(e))
        output_name = ARCHIVE_FILENAME

    return SynthesisResult(
        state=RunState.COMPLETED,
        session=session,
        artifacts=artifacts,
        output_name=output_name,
        output_data=output_data,
    )


async def synthesize_podcast(
    session: Session,
    provider: SpeechProvider,
    *,
    measure: bool = True,
) -> SynthesisResult:
    """Synthesize every dialogue line of the session.

    Works on the given snapshot only; edits made elsewhere while the run is in
    flight are not seen. Returns a SynthesisResult whose session carries the
    durations recorded during the run, on success and on failure alike.
    """
    if not session.lines:
        raise PreconditionError("Please generate a script before synthesizing audio.")

    if uses_joint_synthesis(session, provider):
        speakers, missing = _resolve_speakers(session)
        if missing is not None:
            return _failed(session, f"Line {missing}: no speaker settings found.", missing, joint=True)
        logger.info("Joint synthesis of %d lines via %s", len(session.lines), provider.name)
        return await _synthesize_joint(session, provider, speakers)

    logger.info("Per-line synthesis of %d lines via %s", len(session.lines), provider.name)
    return await _synthesize_per_line(session, provider, measure)


async def preview_voice(speaker: Speaker, provider: SpeechProvider) -> tuple[bytes, str]:
    """Render a short sample sentence in a speaker's voice and style."""
    text = VOICE_PREVIEW_TEXT.format(name=speaker.name, voice=voice_label(speaker.voice))
    request = SynthesisRequest(
        text=text,
        voice=speaker.voice,
        instruction=compose_voice_instruction(speaker),
        pace=speaker.pace,
    )
    return await _render(provider, request)
