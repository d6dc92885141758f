"""Build the plain-text script and the time-coded SRT transcript."""

from decimal import ROUND_HALF_UP, Decimal

from podcast_producer.errors import IncompleteTimingError, PreconditionError
from podcast_producer.models import DialogueLine, Speaker
from podcast_producer.voices import speaker_name_for


def _to_milliseconds(seconds: float) -> int:
    # Decimal(str()) keeps 1.0005 as written instead of 1.000499999...
    return int((Decimal(str(seconds)) * 1000).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_srt_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm.

    Milliseconds round to nearest with halves going up; a round-up to 1000 ms
    carries into the seconds field.
    """
    total_ms = _to_milliseconds(seconds)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def build_script_text(lines: list[DialogueLine], speakers: list[Speaker]) -> str:
    """Render "Speaker: text" lines separated by blank lines."""
    if not lines:
        raise PreconditionError("There is no script to export.")
    return "\n\n".join(f"{speaker_name_for(line, speakers)}: {line.text}" for line in lines)


def missing_timing(lines: list[DialogueLine], durations: dict[str, float]) -> list[int]:
    """1-based numbers of lines whose duration is absent or the failure sentinel."""
    missing = []
    for number, line in enumerate(lines, start=1):
        duration = durations.get(line.id)
        if duration is None or duration < 0:
            missing.append(number)
    return missing


def build_srt(
    lines: list[DialogueLine],
    speakers: list[Speaker],
    durations: dict[str, float],
) -> str:
    """Build an SRT transcript from per-line durations.

    Intervals are contiguous: each cue starts exactly where the previous one
    ended, and the last cue ends at the sum of all durations. Refuses to build
    anything if a single line lacks a usable duration.
    """
    if not lines:
        raise PreconditionError("There is no script to export.")

    missing = missing_timing(lines, durations)
    if missing:
        raise IncompleteTimingError(missing)

    blocks = []
    elapsed = Decimal(0)
    for index, line in enumerate(lines, start=1):
        # Accumulate exactly so cue n's end and cue n+1's start are identical
        start = elapsed
        elapsed = start + Decimal(str(durations[line.id]))
        blocks.append(
            f"{index}\n"
            f"{format_srt_time(start)} --> {format_srt_time(elapsed)}\n"
            f"{speaker_name_for(line, speakers)}: {line.text}\n"
        )
    return "\n".join(blocks) + "\n"
