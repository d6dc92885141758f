"""Clients for the text services: content fetch, script generation, SEO metadata.

Responses are validated here, at the boundary. Anything the pipeline
receives is a typed value; anything else is raised as a PodcastError.
"""

import json
import logging
import re
from dataclasses import dataclass

import httpx

from podcast_producer.config import Settings
from podcast_producer.constants import (
    FIRECRAWL_SCRAPE_ENDPOINT,
    GEMINI_API_BASE,
    HTTP_TIMEOUT_SECONDS,
    SCRIPT_LANGUAGE,
    SEO_DESCRIPTION_MAX_CHARS,
    SEO_TITLE_MAX_CHARS,
)
from podcast_producer.errors import (
    ContentShapeError,
    InputMissingError,
    PreconditionError,
    ProviderError,
)
from podcast_producer.models import ContentSource, SeoMeta, Session
from podcast_producer.subtitles import build_script_text
from podcast_producer.voices import active_speakers, voice_label

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


@dataclass(frozen=True)
class FetchedContent:
    url: str
    markdown: str


# --- HTTP boundary ---

def provider_error_message(response: httpx.Response, service: str) -> str:
    """Best error text for a failed response: the provider's own message if any."""
    fallback = f"{service} request failed: {response.reason_phrase or response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return fallback


async def post_json(
    url: str,
    payload: dict,
    *,
    service: str,
    headers: dict | None = None,
    params: dict | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """POST a JSON body and return the decoded JSON response.

    Transport errors and non-2xx answers raise ProviderError; a 2xx answer
    that is not a JSON object raises ContentShapeError.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as owned:
                response = await owned.post(url, json=payload, headers=headers, params=params)
        else:
            response = await client.post(url, json=payload, headers=headers, params=params)
    except httpx.HTTPError as e:
        raise ProviderError(f"{service} request failed: {e}") from e

    if response.is_error:
        message = provider_error_message(response, service)
        logger.error("%s error %s: %s", service, response.status_code, message)
        raise ProviderError(message, status_code=response.status_code)

    try:
        body = response.json()
    except ValueError as e:
        raise ContentShapeError(f"{service} returned a response that is not JSON.") from e
    if not isinstance(body, dict):
        raise ContentShapeError(f"{service} returned an unexpected response shape.")
    return body


# --- Content fetch ---

async def fetch_web_content(
    url: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> FetchedContent:
    """Scrape a page to markdown through Firecrawl."""
    if not url:
        raise InputMissingError("Please enter a URL to fetch content.")
    api_key = settings.require("firecrawl_api_key")

    body = await post_json(
        FIRECRAWL_SCRAPE_ENDPOINT,
        {"url": url},
        service="Firecrawl",
        headers={"Authorization": f"Bearer {api_key}"},
        client=client,
    )
    data = body.get("data") or {}
    markdown = data.get("markdown") if isinstance(data, dict) else None
    if not body.get("success") or not markdown:
        raise ContentShapeError(
            body.get("error")
            or "Firecrawl did not return content successfully (no markdown field)."
        )
    return FetchedContent(url=url, markdown=markdown)


# --- Gemini text generation ---

def _extract_text(body: dict) -> str:
    try:
        parts = body["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        raise ContentShapeError("Gemini returned no text candidates.") from e
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


async def generate_text(
    prompt: str,
    settings: Settings,
    *,
    json_response: bool = False,
    client: httpx.AsyncClient | None = None,
) -> str:
    api_key = settings.require("gemini_api_key")
    payload = {"contents": [{"parts": [{"text": prompt}]}]}
    if json_response:
        payload["generationConfig"] = {"responseMimeType": "application/json"}

    body = await post_json(
        f"{GEMINI_API_BASE}/models/{settings.text_model}:generateContent",
        payload,
        service="Gemini",
        headers={"x-goog-api-key": api_key},
        client=client,
    )
    return _extract_text(body)


def build_script_prompt(session: Session, language: str = SCRIPT_LANGUAGE) -> str:
    """Prompt asking for a dialogue script in strict "Name: text" lines."""
    speakers = active_speakers(session)
    if not speakers:
        raise PreconditionError("No speakers are configured.")
    names = " and ".join(s.name for s in speakers)
    details = ", ".join(f"{s.name} ({voice_label(s.voice)} style)" for s in speakers)

    length_instruction = ""
    if session.target_minutes:
        length_instruction = (
            f"\nMake the script take about {session.target_minutes:g} minutes to read aloud."
        )

    example = f"`{speakers[0].name}: Today we are talking about a fascinating topic.`"
    if len(speakers) > 1:
        example += (
            f"\n   `{speakers[1].name}: That's right, {speakers[0].name}, "
            "it really deserves a closer look.`"
        )

    return f"""You are a professional podcast script writer. Using the web content, style
instructions and brand profile below, write an engaging {language} podcast dialogue
script for {len(speakers)} host(s) ({names}).

Web content:
```
{session.content.text}
```

Style instructions:
{session.style_instructions}

Brand profile:
{session.brand_profile}

Host details (for style reference only; use exactly these speaker names):
{details}{length_instruction}

Output rules:
1. Output ONLY the hosts' dialogue.
2. Every line must strictly follow the format `Speaker Name: dialogue text`, for example:
   {example}
3. Do NOT output anything that is not dialogue: no preamble or remarks about the
   script, no show or episode titles, no scene descriptions, sound cues or separators.
4. The first line of the response must be the first host's first line of dialogue.
5. Keep the dialogue natural, informative and true to the brand.
"""


async def generate_script(
    session: Session,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Ask the text model for a raw dialogue script for the session."""
    if not session.content.text.strip():
        raise InputMissingError("Please provide web content before generating a script.")
    settings.require("gemini_api_key")
    return await generate_text(build_script_prompt(session), settings, client=client)


# --- SEO metadata ---

def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    text = text.strip()
    match = _CODE_FENCE_RE.match(text)
    if match and match.group(2):
        return match.group(2).strip()
    return text


def parse_seo_meta(text: str) -> SeoMeta:
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ContentShapeError(f"SEO metadata is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ContentShapeError("SEO metadata must be a JSON object.")
    title, description = data.get("title"), data.get("description")
    if not isinstance(title, str) or not isinstance(description, str):
        raise ContentShapeError("SEO metadata is missing 'title' or 'description'.")
    return SeoMeta(title=title, description=description)


def build_seo_prompt(script_text: str, language: str = SCRIPT_LANGUAGE) -> str:
    return f"""Based on the podcast script below, write an SEO-optimized meta title (at most
{SEO_TITLE_MAX_CHARS} {language} characters) and meta description (at most
{SEO_DESCRIPTION_MAX_CHARS} {language} characters).
Return JSON with exactly two keys: "title" and "description".

Podcast script:
```
{script_text}
```
"""


async def generate_seo_meta(
    session: Session,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> SeoMeta:
    if not session.lines:
        raise PreconditionError("Please generate a script first.")
    settings.require("gemini_api_key")
    script_text = build_script_text(list(session.lines), list(session.speakers))
    raw = await generate_text(
        build_seo_prompt(script_text), settings, json_response=True, client=client
    )
    return parse_seo_meta(raw)


def content_from_fetch(fetched: FetchedContent) -> ContentSource:
    return ContentSource(url=fetched.url, text=fetched.markdown)
