"""Package audio into archives and write final outputs with a manifest."""

import io
import json
import os
import re
import zipfile
from datetime import datetime, timezone

from podcast_producer.constants import (
    ARCHIVE_FILENAME,
    JOINT_AUDIO_BASENAME,
    MANIFEST_FILENAME,
    SCRIPT_FILENAME,
    TRANSCRIPT_FILENAME,
    VERSION,
)
from podcast_producer.errors import PackagingError
from podcast_producer.models import AudioArtifact, Session
from podcast_producer.subtitles import build_script_text, build_srt

# ASCII word characters, whitespace and CJK ideographs survive sanitizing
_UNSAFE_CHARS_RE = re.compile(r"[^\w\s\u4e00-\u9fa5]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_filename_part(name: str) -> str:
    """Make a speaker name safe for use inside a filename.

    "Host #1 (Alpha)" → "Host_1_Alpha"
    "主持人 Alpha" → "主持人_Alpha"
    """
    cleaned = _UNSAFE_CHARS_RE.sub("", name)
    return _WHITESPACE_RE.sub("_", cleaned)


def segment_filename(index: int, speaker_name: str, extension: str) -> str:
    """Archive entry name for the 1-based line `index`."""
    return f"podcast_segment_{index:02d}_{sanitize_filename_part(speaker_name)}.{extension}"


def package_archive(entries: list[tuple[str, bytes]]) -> bytes:
    """Zip (filename, data) pairs into one archive held in memory."""
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for filename, data in entries:
                zf.writestr(filename, data)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError, TypeError) as e:
        raise PackagingError(f"Failed to build ZIP archive: {e}") from e
    return buffer.getvalue()


def _final_dir(project_dir: str) -> str:
    final_dir = os.path.join(project_dir, "final")
    os.makedirs(final_dir, exist_ok=True)
    return final_dir


def write_script_text(project_dir: str, session: Session) -> str:
    """Write final/podcast_script.txt (UTF-8). Returns its path."""
    content = build_script_text(list(session.lines), list(session.speakers))
    path = os.path.join(_final_dir(project_dir), SCRIPT_FILENAME)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def write_transcript(project_dir: str, session: Session) -> str:
    """Write final/podcast_transcript.srt. Nothing is written if timing is incomplete."""
    content = build_srt(list(session.lines), list(session.speakers), session.durations)
    path = os.path.join(_final_dir(project_dir), TRANSCRIPT_FILENAME)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def remove_transcript(project_dir: str) -> bool:
    """Delete final/podcast_transcript.srt if present. Returns True if one was removed."""
    path = os.path.join(project_dir, "final", TRANSCRIPT_FILENAME)
    if not os.path.exists(path):
        return False
    os.remove(path)
    return True


def _remove_previous_outputs(project_dir: str) -> None:
    # Subtitles describe the audio they were timed against
    final_dir = _final_dir(project_dir)
    for name in os.listdir(final_dir):
        if (
            name == ARCHIVE_FILENAME
            or name == TRANSCRIPT_FILENAME
            or name.startswith(JOINT_AUDIO_BASENAME + ".")
            or name.startswith("podcast_segment_")
        ):
            os.remove(os.path.join(final_dir, name))


def write_audio(project_dir: str, filename: str, data: bytes) -> str:
    path = os.path.join(_final_dir(project_dir), filename)
    with open(path, "wb") as f:
        f.write(data)
    return path


def export(
    project_dir: str,
    slug: str,
    session: Session,
    output_filename: str,
    output_data: bytes,
    artifacts: list[AudioArtifact],
    provider: str,
) -> str:
    """Write the synthesized audio output plus a provenance manifest.

    Creates:
      - output/<slug>/final/<output_filename> (zip, joint file or single segment)
      - output/<slug>/final/output.json (provenance manifest)

    Returns path to the audio output.
    """
    _remove_previous_outputs(project_dir)
    output_path = write_audio(project_dir, output_filename, output_data)

    known = [d for d in session.durations.values() if d >= 0]
    manifest = {
        "project": slug,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "provider": provider,
        "mode": session.mode.value,
        "output": output_filename,
        "files": [a.name for a in artifacts],
        "speakers": [
            {
                "name": s.name,
                "voice": s.voice,
                "emotion": s.emotion.value,
                "pace": s.pace.value,
                "tone": s.tone.value,
                "style": s.style.value,
            }
            for s in session.speakers
        ],
        "stats": {
            "lines": len(session.lines),
            "duration_seconds": round(sum(known), 1),
            "duration_sources": sorted({s.value for s in session.duration_sources.values()}),
        },
    }

    manifest_path = os.path.join(_final_dir(project_dir), MANIFEST_FILENAME)
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)

    return output_path
