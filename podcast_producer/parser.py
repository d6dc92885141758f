"""Parse generated podcast text into attributed dialogue lines."""

import logging
import uuid

from podcast_producer.models import DialogueLine, Speaker

logger = logging.getLogger(__name__)


def new_line_id() -> str:
    """Fresh, never reused dialogue line id."""
    return uuid.uuid4().hex


def _match_speaker(line: str, speakers: list[Speaker]) -> tuple[Speaker, str] | None:
    """Return (speaker, text) for the first speaker whose "Name:" prefix fits.

    A prefix followed by nothing but whitespace does not count as a match,
    so a later speaker still gets a chance.
    """
    for speaker in speakers:
        prefix = f"{speaker.name}:"
        if not line.startswith(prefix):
            continue
        text = line[len(prefix):].strip()
        if text:
            return speaker, text
    return None


def parse_script(raw_text: str, speakers: list[Speaker] | None) -> list[DialogueLine]:
    """Parse raw generated text into dialogue lines.

    Each non-empty line must look like "Speaker Name: dialogue text" for one of
    the given speakers. Speakers are tried in roster order and the first match
    wins, so when one name is a prefix of another the earlier speaker takes
    the line. Anything else is dropped and logged.
    """
    if not raw_text:
        return []

    speakers = list(speakers or [])
    lines = []
    for raw_line in raw_text.split("\n"):
        stripped = raw_line.strip()
        if not stripped:
            continue

        match = _match_speaker(stripped, speakers)
        if match is None:
            logger.warning(
                "Skipping line (not in 'Speaker Name: text' format or has no text): %r",
                stripped,
            )
            continue

        speaker, text = match
        lines.append(DialogueLine(id=new_line_id(), speaker_id=speaker.id, text=text))

    return lines
