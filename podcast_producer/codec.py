"""Decode synthesis payloads and turn them into playable audio files."""

import base64
import binascii
import io
import wave

from podcast_producer.constants import PCM_BIT_DEPTH, PCM_CHANNELS, PCM_SAMPLE_RATE
from podcast_producer.errors import AudioContentMissingError
from podcast_producer.models import SynthesizedAudio

# Container MIME types → file extension
MIME_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/opus": "ogg",
    "audio/flac": "flac",
    "audio/aac": "aac",
}

_RAW_PCM_TYPES = {"audio/l16", "audio/pcm", "audio/raw", "audio/x-raw"}


def _split_mime(mime_type: str) -> tuple[str, dict[str, str]]:
    """'audio/L16;codec=pcm;rate=24000' → ('audio/l16', {'codec': 'pcm', 'rate': '24000'})"""
    parts = [p.strip() for p in (mime_type or "").split(";") if p.strip()]
    if not parts:
        return "", {}
    params = {}
    for part in parts[1:]:
        key, _, value = part.partition("=")
        params[key.strip().lower()] = value.strip()
    return parts[0].lower(), params


def is_raw_pcm(mime_type: str) -> bool:
    base, params = _split_mime(mime_type)
    return base in _RAW_PCM_TYPES or params.get("codec", "").lower() == "pcm"


def extension_for_mime(mime_type: str) -> str:
    """File extension for the artifact a payload of this type becomes."""
    if is_raw_pcm(mime_type):
        return "wav"
    base, _ = _split_mime(mime_type)
    return MIME_EXTENSIONS.get(base, "bin")


def decode_audio(audio_content: str | None, mime_type: str) -> SynthesizedAudio:
    """Decode a base64 payload from the synthesis service.

    Raises AudioContentMissingError for an absent, empty or undecodable
    payload; a zero-length artifact is never produced.
    """
    if not audio_content:
        raise AudioContentMissingError("Speech synthesis returned no audio content.")
    try:
        data = base64.b64decode(audio_content, validate=False)
    except (binascii.Error, ValueError) as e:
        raise AudioContentMissingError(f"Speech synthesis returned an undecodable payload: {e}") from e
    if not data:
        raise AudioContentMissingError("Speech synthesis returned no audio content.")
    return SynthesizedAudio(data=data, mime_type=mime_type, is_raw_pcm=is_raw_pcm(mime_type))


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = PCM_SAMPLE_RATE,
    channels: int = PCM_CHANNELS,
    bit_depth: int = PCM_BIT_DEPTH,
) -> bytes:
    """Wrap raw little-endian PCM in a canonical 44-byte WAV header.

    The PCM bytes follow the header verbatim, so the result is len(pcm) + 44
    bytes long.
    """
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(bit_depth // 8)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm)
    return buffer.getvalue()


def pcm_params(mime_type: str) -> tuple[int, int, int]:
    """(sample_rate, channels, bit_depth) declared by a PCM MIME type, with defaults."""
    base, params = _split_mime(mime_type)
    sample_rate = int(params.get("rate") or PCM_SAMPLE_RATE)
    channels = int(params.get("channels") or PCM_CHANNELS)
    bit_depth = PCM_BIT_DEPTH
    # audio/L16 and audio/L24 carry the bit depth in the subtype
    if base.startswith("audio/l") and base[len("audio/l"):].isdigit():
        bit_depth = int(base[len("audio/l"):])
    return sample_rate, channels, bit_depth


def to_playable(audio: SynthesizedAudio) -> tuple[bytes, str]:
    """Return (file bytes, extension) for a decoded payload.

    Container formats pass through untouched; raw PCM gets a WAV header.
    """
    if audio.is_raw_pcm:
        sample_rate, channels, bit_depth = pcm_params(audio.mime_type)
        return pcm_to_wav(audio.data, sample_rate, channels, bit_depth), "wav"
    return audio.data, extension_for_mime(audio.mime_type)
