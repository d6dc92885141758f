"""Project directories, the persisted session snapshot, run records, and status."""

import json
import os
import re

from podcast_producer.constants import (
    ARCHIVE_FILENAME,
    JOINT_AUDIO_BASENAME,
    MANIFEST_FILENAME,
    OUTPUT_DIR,
    RUN_FILENAME,
    SCRIPT_FILENAME,
    SESSION_FILENAME,
    TRANSCRIPT_FILENAME,
)
from podcast_producer.errors import PreconditionError
from podcast_producer.exporter import remove_transcript, sanitize_filename_part
from podcast_producer.models import (
    ContentSource,
    DialogueLine,
    DurationSource,
    EmphasisStyle,
    Emotion,
    Pace,
    ScriptMode,
    SeoMeta,
    Session,
    Speaker,
    Tone,
)

PROJECT_SUBDIRS = ["voice_demos", "final"]


def slug_from_name(name: str) -> str:
    """Convert a project name to its output directory slug.

    "Tech Weekly #12" → "tech_weekly_12"
    "/path/to/AI News.txt" → "ai_news"
    """
    basename = os.path.splitext(os.path.basename(name))[0]
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", basename).strip("_").lower()
    if not slug:
        raise PreconditionError(f"Cannot derive a project name from '{name}'. Use letters or digits.")
    return slug


def init_output_dir(name: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ and its subdirectories. Returns the project directory."""
    project_dir = os.path.join(output_base, slug_from_name(name))
    for subdir in PROJECT_SUBDIRS:
        os.makedirs(os.path.join(project_dir, subdir), exist_ok=True)
    return project_dir


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


# --- Session snapshot (de)serialization ---

def session_to_dict(session: Session) -> dict:
    return {
        "mode": session.mode.value,
        "content": {"url": session.content.url, "text": session.content.text},
        "style_instructions": session.style_instructions,
        "brand_profile": session.brand_profile,
        "target_minutes": session.target_minutes,
        "speakers": [
            {
                "id": s.id,
                "name": s.name,
                "voice": s.voice,
                "emotion": s.emotion.value,
                "pace": s.pace.value,
                "tone": s.tone.value,
                "style": s.style.value,
            }
            for s in session.speakers
        ],
        "lines": [
            {"id": line.id, "speaker_id": line.speaker_id, "text": line.text}
            for line in session.lines
        ],
        "durations": dict(session.durations),
        "duration_sources": {k: v.value for k, v in session.duration_sources.items()},
        "seo": (
            {"title": session.seo.title, "description": session.seo.description}
            if session.seo else None
        ),
    }


def session_from_dict(data: dict) -> Session:
    content = data.get("content") or {}
    seo = data.get("seo")
    return Session(
        speakers=tuple(
            Speaker(
                id=s["id"],
                name=s["name"],
                voice=s["voice"],
                emotion=Emotion(s.get("emotion", Emotion.DEFAULT.value)),
                pace=Pace(s.get("pace", Pace.NORMAL.value)),
                tone=Tone(s.get("tone", Tone.NEUTRAL.value)),
                style=EmphasisStyle(s.get("style", EmphasisStyle.DEFAULT.value)),
            )
            for s in data.get("speakers", [])
        ),
        lines=tuple(
            DialogueLine(id=line["id"], speaker_id=line["speaker_id"], text=line["text"])
            for line in data.get("lines", [])
        ),
        mode=ScriptMode(data.get("mode", ScriptMode.MULTI.value)),
        content=ContentSource(url=content.get("url", ""), text=content.get("text", "")),
        style_instructions=data.get("style_instructions", ""),
        brand_profile=data.get("brand_profile", ""),
        target_minutes=data.get("target_minutes"),
        durations={k: float(v) for k, v in data.get("durations", {}).items()},
        duration_sources={
            k: DurationSource(v) for k, v in data.get("duration_sources", {}).items()
        },
        seo=SeoMeta(title=seo["title"], description=seo["description"]) if seo else None,
    )


def save_session(project_dir: str, session: Session) -> str:
    return write_artifact(project_dir, SESSION_FILENAME, session_to_dict(session))


def load_session(project_dir: str) -> Session | None:
    data = load_artifact(project_dir, SESSION_FILENAME)
    if data is None:
        return None
    return session_from_dict(data)


def invalidate_transcript(project_dir: str, session: Session) -> list[str]:
    """Delete the exported transcript if `session` changes the stored durations.

    Returns list of deleted filenames.
    """
    previous = load_session(project_dir)
    if previous is None or previous.durations == session.durations:
        return []
    return [TRANSCRIPT_FILENAME] if remove_transcript(project_dir) else []


def write_run_record(
    project_dir: str,
    state: str,
    output: str | None = None,
    error: str | None = None,
    failed_line: int | None = None,
) -> str:
    """Record the state of the latest synthesis run (run.json)."""
    return write_artifact(
        project_dir,
        RUN_FILENAME,
        {"state": state, "output": output, "error": error, "failed_line": failed_line},
    )


def write_voice_demo(project_dir: str, speaker: Speaker, data: bytes, extension: str) -> str:
    """Save a voice preview to voice_demos/<speaker>_<voice>.<ext>."""
    demo_dir = os.path.join(project_dir, "voice_demos")
    os.makedirs(demo_dir, exist_ok=True)
    name = f"{sanitize_filename_part(speaker.name)}_{sanitize_filename_part(speaker.voice)}"
    path = os.path.join(demo_dir, f"{name}.{extension}")
    with open(path, "wb") as f:
        f.write(data)
    return path


# --- Status ---

def get_project_status(project_dir: str) -> dict:
    """Return dict describing current state of each pipeline step."""
    status = {}
    session = load_session(project_dir)

    if session and session.content.text:
        status["content"] = {"state": "done", "chars": len(session.content.text)}
    else:
        status["content"] = {"state": "pending"}

    if session and session.lines:
        status["script"] = {"state": "done", "lines": len(session.lines)}
    else:
        status["script"] = {"state": "pending"}

    # Timing is complete only when every line has a usable duration
    if session and session.lines:
        known = [
            line for line in session.lines
            if session.durations.get(line.id, -1.0) >= 0
        ]
        if len(known) == len(session.lines):
            status["timing"] = {"state": "done", "lines": len(known)}
        elif session.durations:
            status["timing"] = {
                "state": "partial", "lines": len(known), "expected": len(session.lines),
            }
        else:
            status["timing"] = {"state": "pending"}
    else:
        status["timing"] = {"state": "pending"}

    run = load_artifact(project_dir, RUN_FILENAME)
    if run:
        status["synth"] = {k: v for k, v in run.items() if v is not None}
        # An output from a run on an older session snapshot is stale
        if run.get("state") == "completed" and not (session and session.durations):
            status["synth"]["state"] = "stale"
    else:
        status["synth"] = {"state": "pending"}

    final_dir = os.path.join(project_dir, "final")
    files = sorted(os.listdir(final_dir)) if os.path.isdir(final_dir) else []
    audio = [
        f for f in files
        if f == ARCHIVE_FILENAME
        or f.startswith(JOINT_AUDIO_BASENAME + ".")
        or f.startswith("podcast_segment_")
    ]
    status["export"] = {
        "state": "done" if audio and MANIFEST_FILENAME in files else "pending",
        "script": SCRIPT_FILENAME in files,
        "transcript": TRANSCRIPT_FILENAME in files,
    }
    return status


def list_projects(output_base: str = OUTPUT_DIR) -> list[str]:
    """List all project slugs under the output directory.

    Returns sorted list of directory names that contain a session.json.
    """
    if not os.path.exists(output_base):
        return []
    projects = []
    for name in os.listdir(output_base):
        project_dir = os.path.join(output_base, name)
        if os.path.isdir(project_dir):
            if os.path.exists(os.path.join(project_dir, SESSION_FILENAME)):
                projects.append(name)
    return sorted(projects)
