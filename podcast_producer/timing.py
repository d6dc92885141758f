"""Resolve playback durations: measure decoded audio, or estimate from text."""

import asyncio
import json
import logging
import os
import tempfile
from contextlib import contextmanager

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError
from pydub.utils import get_prober_name

from podcast_producer import constants
from podcast_producer.constants import ESTIMATED_SECONDS_PER_CHAR
from podcast_producer.errors import MeasurementError, MeasurementTimeoutError

logger = logging.getLogger(__name__)


@contextmanager
def scratch_audio_file(data: bytes, extension: str):
    """Write audio bytes to a temporary file and remove it on exit, always."""
    fd, path = tempfile.mkstemp(prefix="podcast_measure_", suffix=f".{extension}")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        os.remove(path)


def metadata_command(path: str) -> list[str]:
    """ffprobe invocation printing the container's format section as JSON."""
    return [get_prober_name(), "-v", "error", "-of", "json", "-show_format", path]


def _wav_duration(data: bytes) -> float:
    # Header and frames are parsed in memory, no decoder process
    return AudioSegment(data=data).duration_seconds


async def _container_duration(path: str, timeout: float) -> float:
    try:
        process = await asyncio.create_subprocess_exec(
            *metadata_command(path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise MeasurementError(f"Could not start audio prober: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise MeasurementTimeoutError(
            f"Timed out after {timeout:g}s waiting for audio metadata."
        ) from e
    finally:
        if process.returncode is None:
            logger.debug("Killing audio prober (pid %d)", process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                pass  # exited on its own meanwhile
            await process.wait()

    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise MeasurementError(
            f"Could not measure audio duration: {detail or f'prober exited with {process.returncode}'}"
        )
    try:
        return float(json.loads(stdout)["format"]["duration"])
    except (ValueError, KeyError, TypeError) as e:
        raise MeasurementError(f"Audio prober reported no duration: {e!r}") from e


async def measure_duration(
    data: bytes,
    extension: str,
    timeout: float | None = None,
) -> float:
    """Decode an audio artifact and return its playback length in seconds.

    WAV is read in memory. Other containers go to an ffprobe child process
    bounded by `timeout` (default MEASURE_TIMEOUT_SECONDS); on timeout the
    process is killed and reaped before its scratch file is removed.
    Raises MeasurementTimeoutError when the bound is hit and MeasurementError
    when the audio cannot be decoded.
    """
    if timeout is None:
        timeout = constants.MEASURE_TIMEOUT_SECONDS

    if extension == "wav":
        try:
            duration = _wav_duration(data)
        except (CouldntDecodeError, EOFError, ValueError) as e:
            raise MeasurementError(f"Could not measure audio duration: {e}") from e
    else:
        with scratch_audio_file(data, extension) as path:
            duration = await _container_duration(path, timeout)

    if duration < 0:
        raise MeasurementError(f"Decoder reported a negative duration: {duration}")
    return duration


def estimate_duration(text: str) -> float:
    """Approximate spoken length of a line from its character count."""
    return len(text) * ESTIMATED_SECONDS_PER_CHAR
