"""All magic numbers and configuration constants."""

# PCM stream defaults for providers that return raw linear PCM
PCM_SAMPLE_RATE = 24000             # Hz
PCM_CHANNELS = 1
PCM_BIT_DEPTH = 16                  # bits per sample
WAV_HEADER_SIZE = 44                # bytes in a canonical PCM RIFF header

MEASURE_TIMEOUT_SECONDS = 10.0      # bounded wait for duration measurement
CHARS_PER_MINUTE = 220              # average spoken characters per minute
ESTIMATED_SECONDS_PER_CHAR = 60 / CHARS_PER_MINUTE
DURATION_FAILED = -1.0              # sentinel: measurement attempted and failed

JOINT_MAX_SPEAKERS = 2              # joint synthesis supports at most two voices
SEO_TITLE_MAX_CHARS = 60
SEO_DESCRIPTION_MAX_CHARS = 160

UNKNOWN_SPEAKER_NAME = "Unknown Speaker"

# Output filenames
SCRIPT_FILENAME = "podcast_script.txt"
TRANSCRIPT_FILENAME = "podcast_transcript.srt"
ARCHIVE_FILENAME = "podcast_audio_segments.zip"
JOINT_AUDIO_BASENAME = "podcast_full"
SESSION_FILENAME = "session.json"
MANIFEST_FILENAME = "output.json"
RUN_FILENAME = "run.json"

# External services
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_TEXT_MODEL = "gemini-2.5-flash"
GEMINI_TTS_MODEL = "gemini-2.5-flash-preview-tts"
CLOUD_TTS_ENDPOINT = "https://texttospeech.googleapis.com/v1/text:synthesize"
FIRECRAWL_SCRAPE_ENDPOINT = "https://api.firecrawl.dev/v1/scrape"
HTTP_TIMEOUT_SECONDS = 120.0        # transport-level timeout for provider calls
LANGUAGE_CODE = "cmn-TW"            # Cloud TTS language for the default voices
SCRIPT_LANGUAGE = "Traditional Chinese"
TTS_PROVIDER = "gemini"

# edge-tts speaking rates keyed by pace
EDGE_RATE_DEFAULT = "+0%"
EDGE_RATE_SLOW = "-15%"
EDGE_RATE_FAST = "+15%"

DEFAULT_STYLE_INSTRUCTIONS = (
    "Present the provided web content as a relaxed, engaging conversation, "
    "so listeners feel they are taking part in an interesting knowledge exchange."
)
DEFAULT_BRAND_PROFILE = (
    "Our brand spreads new knowledge in a modern, friendly and inspiring voice."
)
VOICE_PREVIEW_TEXT = "This is {name} previewing the {voice} voice. How are you today?"
OUTPUT_DIR = "output"
VERSION = "0.1.0"
