"""CLI interface with subcommand routing.

Every mutating command loads the project's session snapshot, applies one
transition and saves the result.
"""

import argparse
import asyncio
import logging
import os
import sys

from podcast_producer.artifacts import (
    get_project_status,
    init_output_dir,
    invalidate_transcript,
    list_projects,
    load_session,
    save_session,
    slug_from_name,
    write_run_record,
    write_voice_demo,
)
from podcast_producer.config import TTS_PROVIDERS, load_settings
from podcast_producer.constants import SESSION_FILENAME, VERSION
from podcast_producer.errors import PodcastError, PreconditionError
from podcast_producer.exporter import export, write_script_text, write_transcript
from podcast_producer.models import (
    ContentSource,
    EmphasisStyle,
    Emotion,
    Pace,
    ScriptMode,
    Tone,
)
from podcast_producer.services import (
    content_from_fetch,
    fetch_web_content,
    generate_script,
    generate_seo_meta,
)
from podcast_producer.session import (
    add_line,
    apply_generated_script,
    edit_line,
    estimated_minutes,
    new_session,
    remove_line,
    replace_speaker,
    set_brand_profile,
    set_content,
    set_mode,
    set_seo,
    set_style_instructions,
    set_target_minutes,
)
from podcast_producer.subtitles import missing_timing
from podcast_producer.synthesis import RunState, preview_voice, synthesize_podcast
from podcast_producer.tts import get_speech_provider
from podcast_producer.voices import VOICE_POOLS, compose_voice_instruction, speaker_name_for


MODE_NAMES = {"single": ScriptMode.SINGLE, "multi": ScriptMode.MULTI}


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _get_project_dir(args) -> str:
    """Get project directory path, verify it exists."""
    project_dir = os.path.join(args.settings.output_dir, args.slug)
    if not os.path.isdir(project_dir):
        print(f"Error: Project '{args.slug}' not found.", file=sys.stderr)
        print("Run 'podcast-producer new <name>' to create a project.", file=sys.stderr)
        raise SystemExit(1)
    if not os.path.exists(os.path.join(project_dir, SESSION_FILENAME)):
        _fail(f"Project '{args.slug}' is incomplete (no {SESSION_FILENAME}).")
    return project_dir


def _load(args):
    project_dir = _get_project_dir(args)
    return project_dir, load_session(project_dir)


def _save(project_dir: str, session) -> None:
    """Persist the session, dropping a transcript its new timing no longer matches."""
    deleted = invalidate_transcript(project_dir, session)
    if deleted:
        print(f"Invalidated: {', '.join(deleted)} (run 'export srt' to rebuild)")
    save_session(project_dir, session)


def _index(value: str, what: str) -> int:
    """1-based command-line position → 0-based index."""
    try:
        number = int(value)
    except ValueError:
        _fail(f"Invalid {what} number: {value}")
    if number < 1:
        _fail(f"Invalid {what} number: {value}")
    return number - 1


def _speaker_id(session, value: str) -> str:
    index = _index(value, "speaker")
    if index >= len(session.speakers):
        _fail(f"No speaker at position {index + 1} (have {len(session.speakers)}).")
    return session.speakers[index].id


def _read_text_file(path: str) -> str:
    if not os.path.exists(path):
        _fail(f"File not found: {path}")
    with open(path, encoding="utf-8") as f:
        text = f.read()
    if not text.strip():
        _fail(f"File is empty: {path}")
    return text


def _print_script(session):
    for number, line in enumerate(session.lines, start=1):
        print(f"  {number:>3}. {speaker_name_for(line, session.speakers)}: {line.text}")


# --- Commands ---

def cmd_new(args):
    """Create a new project, optionally seeded with content."""
    settings = args.settings
    slug = slug_from_name(args.name)
    project_dir = os.path.join(settings.output_dir, slug)
    if os.path.exists(os.path.join(project_dir, SESSION_FILENAME)):
        print(f"Error: Project '{slug}' already exists.", file=sys.stderr)
        print(f"Use 'podcast-producer status {slug}' to review it.", file=sys.stderr)
        raise SystemExit(1)

    content = None
    if args.text_file:
        content = ContentSource(text=_read_text_file(args.text_file))
    elif args.url:
        print(f"Fetching {args.url}...")
        content = content_from_fetch(asyncio.run(fetch_web_content(args.url, settings)))

    session = new_session(settings.tts_provider, content)
    project_dir = init_output_dir(args.name, output_base=settings.output_dir)
    _save(project_dir, session)

    print(f"Created project: {slug}")
    if content:
        print(f"Content: {len(content.text)} characters")
    print(f"Run 'podcast-producer script {slug}' to generate a dialogue script.")


def cmd_fetch(args):
    """Replace the project's source content with a scraped web page."""
    project_dir, session = _load(args)
    print(f"Fetching {args.url}...")
    fetched = asyncio.run(fetch_web_content(args.url, args.settings))
    session = set_content(session, content_from_fetch(fetched))
    _save(project_dir, session)
    print(f"Content: {len(fetched.markdown)} characters")
    minutes = estimated_minutes(fetched.markdown)
    if minutes:
        print(f"Estimated audio length: ~{minutes} min")


def cmd_script(args):
    """Generate a dialogue script from the project's content."""
    project_dir, session = _load(args)
    print("Generating script...")
    raw = asyncio.run(generate_script(session, args.settings))
    session = apply_generated_script(session, raw)
    _save(project_dir, session)

    if not session.lines:
        print("Warning: no dialogue lines matched the configured speaker names.")
        return
    print(f"Script: {len(session.lines)} lines")
    _print_script(session)


def cmd_seo(args):
    """Generate an SEO title and description for the current script."""
    project_dir, session = _load(args)
    print("Generating SEO metadata...")
    seo = asyncio.run(generate_seo_meta(session, args.settings))
    _save(project_dir, set_seo(session, seo))
    print(f"Title:       {seo.title}")
    print(f"Description: {seo.description}")


def cmd_mode(args):
    """Switch between single- and multi-speaker scripts."""
    project_dir, session = _load(args)
    session = set_mode(session, MODE_NAMES[args.mode])
    _save(project_dir, session)
    print(f"Updated: mode → {session.mode.value}")


def cmd_speaker(args):
    """Edit one speaker's name, voice or style."""
    project_dir, session = _load(args)
    index = _index(args.index, "speaker")
    changes = {
        key: getattr(args, key)
        for key in ("name", "voice", "emotion", "pace", "tone", "style")
        if getattr(args, key) is not None
    }
    if not changes:
        _fail("Nothing to change. Use --name, --voice, --emotion, --pace, --tone or --style.")
    session = replace_speaker(session, index, **changes)
    _save(project_dir, session)

    speaker = session.speakers[index]
    print(f"Updated: speaker {index + 1} → {speaker.name} ({speaker.voice})")
    directive = compose_voice_instruction(speaker)
    if directive:
        print(f"Directive: {directive}")


def cmd_set(args):
    """Update project settings."""
    project_dir, session = _load(args)
    key, value = args.key, args.value

    if key == "style":
        session = set_style_instructions(session, value)
    elif key == "brand":
        session = set_brand_profile(session, value)
    elif key == "target-length":
        try:
            minutes = float(value)
        except ValueError:
            _fail(f"Invalid value: {value}")
        session = set_target_minutes(session, minutes)
        value = f"{session.target_minutes:g} min" if session.target_minutes else "unset"

    _save(project_dir, session)
    print(f"Updated: {key} → {value}")


def cmd_line(args):
    """Add, edit, re-assign or remove dialogue lines."""
    project_dir, session = _load(args)
    action, values = args.action, args.values
    speaker_id = _speaker_id(session, args.speaker) if args.speaker else None

    if action == "list":
        if not session.lines:
            print("No dialogue lines.")
        _print_script(session)
        return
    elif action == "add":
        if not values:
            _fail("'line add' requires <text>")
        session = add_line(session, " ".join(values), speaker_id)
    elif action == "edit":
        if len(values) < 2:
            _fail("'line edit' requires <number> and <text>")
        session = edit_line(session, _index(values[0], "line"), " ".join(values[1:]), speaker_id)
    elif action == "speaker":
        if len(values) < 2:
            _fail("'line speaker' requires <number> and <speaker number>")
        session = edit_line(
            session, _index(values[0], "line"), speaker_id=_speaker_id(session, values[1])
        )
    elif action == "remove":
        if not values:
            _fail("'line remove' requires <number>")
        session = remove_line(session, _index(values[0], "line"))

    _save(project_dir, session)
    print(f"Script: {len(session.lines)} lines")


def cmd_synth(args):
    """Synthesize audio for the script and write it to final/."""
    settings = args.settings
    project_dir, session = _load(args)
    if not session.lines:
        raise PreconditionError("Please generate a script before synthesizing audio.")

    provider = get_speech_provider(settings)
    print(f"Synthesizing {len(session.lines)} lines with {provider.name}...")
    write_run_record(project_dir, RunState.RUNNING.value)
    try:
        result = asyncio.run(synthesize_podcast(session, provider, measure=not args.estimate))
    except PodcastError as e:
        write_run_record(project_dir, RunState.FAILED.value, error=str(e))
        raise

    # Durations recorded before a failure are kept
    _save(project_dir, result.session)
    if result.state == RunState.FAILED:
        write_run_record(
            project_dir,
            RunState.FAILED.value,
            error=result.error,
            failed_line=result.failed_line,
        )
        _fail(result.error)

    output_path = export(
        project_dir,
        args.slug,
        result.session,
        result.output_name,
        result.output_data,
        result.artifacts,
        provider.name,
    )
    write_run_record(project_dir, RunState.COMPLETED.value, output=result.output_name)

    missing = missing_timing(list(result.session.lines), result.session.durations)
    if missing:
        numbers = ", ".join(str(n) for n in missing)
        print(f"Warning: durations unknown for line(s) {numbers}; subtitles unavailable.")
    print(f"Done: {output_path}")


def cmd_preview(args):
    """Render a short sample in one speaker's voice."""
    project_dir, session = _load(args)
    index = _index(args.index, "speaker")
    if index >= len(session.speakers):
        _fail(f"No speaker at position {index + 1} (have {len(session.speakers)}).")
    speaker = session.speakers[index]

    provider = get_speech_provider(args.settings)
    print(f"Previewing {speaker.name} ({speaker.voice})...")
    data, extension = asyncio.run(preview_voice(speaker, provider))
    path = write_voice_demo(project_dir, speaker, data, extension)
    print(f"Saved: {path}")


def cmd_export(args):
    """Write the plain-text script or the SRT transcript."""
    project_dir, session = _load(args)
    if args.format == "txt":
        path = write_script_text(project_dir, session)
    else:
        path = write_transcript(project_dir, session)
    print(f"Saved: {path}")


def cmd_status(args):
    """Show project status."""
    project_dir, session = _load(args)
    status = get_project_status(project_dir)

    print(f"Project: {args.slug}")
    print(f"Source:  {session.content.url or ('text' if session.content.text else 'none')}")
    minutes = estimated_minutes(session.content.text)
    if minutes:
        print(f"Estimated audio length: ~{minutes} min")
    if session.target_minutes:
        print(f"Target length: {session.target_minutes:g} min")
    print(f"Mode:    {session.mode.value}")

    print("Speakers:")
    for number, speaker in enumerate(session.speakers, start=1):
        print(f"  {number}. {speaker.name:<15} → {speaker.voice}")
        directive = compose_voice_instruction(speaker)
        if directive:
            print(f"     {directive}")

    if session.seo:
        print(f"SEO title: {session.seo.title}")

    print("Steps:")
    for step in ("content", "script", "timing", "synth", "export"):
        info = status.get(step, {"state": "pending"})
        state = info["state"]
        marker = {"done": "[done]", "completed": "[done]", "partial": "[part]",
                  "failed": "[fail]", "stale": "[old ]", "running": "[run ]"}.get(state, "[----]")
        details = ""
        if "lines" in info and "expected" in info:
            details = f" ({info['lines']}/{info['expected']} lines)"
        elif "lines" in info:
            details = f" ({info['lines']} lines)"
        elif "chars" in info:
            details = f" ({info['chars']} chars)"
        elif info.get("error"):
            details = f" ({info['error']})"
        print(f"  {marker} {step:<12}{details}")


def cmd_list(args):
    """List all projects."""
    output_dir = args.settings.output_dir
    projects = list_projects(output_base=output_dir)
    if not projects:
        print("No projects found.")
        return
    print("Projects:")
    for name in projects:
        status = get_project_status(os.path.join(output_dir, name))
        export_state = status.get("export", {}).get("state", "pending")
        marker = "[done]" if export_state == "done" else "[----]"
        print(f"  {marker} {name}")


def cmd_voices(args):
    """List available voices."""
    provider = args.provider or args.settings.tts_provider
    filter_str = args.filter.lower() if args.filter else None
    voices = VOICE_POOLS.get(provider, {})
    if filter_str:
        voices = {
            v: label for v, label in voices.items()
            if filter_str in v.lower() or filter_str in label.lower()
        }
    if not voices:
        print("No matching voices found.")
        return
    print(f"Available voices ({provider}):")
    for voice, label in voices.items():
        print(f"  {voice:<24} {label}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="podcast-producer",
        description="Podcast Producer: turn web content into a multi-speaker podcast",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show diagnostic logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # new
    new_parser = subparsers.add_parser("new", help="Create a new project")
    new_parser.add_argument("name", help="Project name")
    source = new_parser.add_mutually_exclusive_group()
    source.add_argument("--text-file", help="Seed content from a text file")
    source.add_argument("--url", help="Seed content from a web page (Firecrawl)")
    new_parser.set_defaults(func=cmd_new)

    # fetch
    fetch_parser = subparsers.add_parser("fetch", help="Fetch source content from a URL")
    fetch_parser.add_argument("slug", help="Project slug")
    fetch_parser.add_argument("url", help="Page to scrape")
    fetch_parser.set_defaults(func=cmd_fetch)

    # script
    script_parser = subparsers.add_parser("script", help="Generate the dialogue script")
    script_parser.add_argument("slug", help="Project slug")
    script_parser.set_defaults(func=cmd_script)

    # seo
    seo_parser = subparsers.add_parser("seo", help="Generate SEO title and description")
    seo_parser.add_argument("slug", help="Project slug")
    seo_parser.set_defaults(func=cmd_seo)

    # mode
    mode_parser = subparsers.add_parser("mode", help="Set single- or multi-speaker mode")
    mode_parser.add_argument("slug", help="Project slug")
    mode_parser.add_argument("mode", choices=sorted(MODE_NAMES))
    mode_parser.set_defaults(func=cmd_mode)

    # speaker
    speaker_parser = subparsers.add_parser("speaker", help="Edit a speaker")
    speaker_parser.add_argument("slug", help="Project slug")
    speaker_parser.add_argument("index", help="Speaker number (1-based)")
    speaker_parser.add_argument("--name")
    speaker_parser.add_argument("--voice")
    speaker_parser.add_argument("--emotion", choices=[e.value for e in Emotion])
    speaker_parser.add_argument("--pace", choices=[p.value for p in Pace])
    speaker_parser.add_argument("--tone", choices=[t.value for t in Tone])
    speaker_parser.add_argument("--style", choices=[s.value for s in EmphasisStyle])
    speaker_parser.set_defaults(func=cmd_speaker)

    # set
    set_parser = subparsers.add_parser("set", help="Update project settings")
    set_parser.add_argument("slug", help="Project slug")
    set_parser.add_argument("key", choices=["style", "brand", "target-length"])
    set_parser.add_argument("value", help="Setting value (target-length in minutes, 0 to unset)")
    set_parser.set_defaults(func=cmd_set)

    # line
    line_parser = subparsers.add_parser("line", help="List or edit dialogue lines")
    line_parser.add_argument("slug", help="Project slug")
    line_parser.add_argument("action", choices=["list", "add", "edit", "speaker", "remove"])
    line_parser.add_argument("values", nargs="*", help="Line number and/or text")
    line_parser.add_argument("--speaker", help="Speaker number for add/edit")
    line_parser.set_defaults(func=cmd_line)

    # synth
    synth_parser = subparsers.add_parser("synth", help="Synthesize podcast audio")
    synth_parser.add_argument("slug", help="Project slug")
    synth_parser.add_argument(
        "--estimate", action="store_true",
        help="Estimate line durations from text instead of measuring audio",
    )
    synth_parser.set_defaults(func=cmd_synth)

    # preview
    preview_parser = subparsers.add_parser("preview", help="Preview a speaker's voice")
    preview_parser.add_argument("slug", help="Project slug")
    preview_parser.add_argument("index", help="Speaker number (1-based)")
    preview_parser.set_defaults(func=cmd_preview)

    # export
    export_parser = subparsers.add_parser("export", help="Write the script or subtitles")
    export_parser.add_argument("slug", help="Project slug")
    export_parser.add_argument("format", choices=["txt", "srt"])
    export_parser.set_defaults(func=cmd_export)

    # status
    status_parser = subparsers.add_parser("status", help="Show project status")
    status_parser.add_argument("slug", help="Project slug")
    status_parser.set_defaults(func=cmd_status)

    # list
    list_parser = subparsers.add_parser("list", help="List all projects")
    list_parser.set_defaults(func=cmd_list)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--provider", choices=TTS_PROVIDERS)
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    return parser


def main():
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    try:
        args.settings = load_settings()
    except ValueError as e:
        _fail(str(e))

    try:
        args.func(args)
    except PodcastError as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
