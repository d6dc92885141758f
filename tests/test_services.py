"""Tests for services module (content fetch, script and SEO generation)."""

import asyncio
import json

import httpx
import pytest

from podcast_producer.config import Settings
from podcast_producer.errors import (
    ContentShapeError,
    InputMissingError,
    PreconditionError,
    ProviderError,
)
from podcast_producer.models import ContentSource, ScriptMode, Session
from podcast_producer.services import (
    build_script_prompt,
    content_from_fetch,
    fetch_web_content,
    generate_script,
    generate_seo_meta,
    parse_seo_meta,
    strip_code_fence,
)

SETTINGS = Settings(gemini_api_key="gk", firecrawl_api_key="fk")


def _with_client(handler, make_coro):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await make_coro(client)
    return asyncio.run(go())


def _gemini_text(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


# --- Firecrawl ---

def test_fetch_web_content_success():
    """Markdown from a successful scrape; bearer key sent."""
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"markdown": "# Title\nBody"}})

    fetched = _with_client(handler, lambda c: fetch_web_content("https://example.com", SETTINGS, client=c))
    assert fetched.markdown == "# Title\nBody"
    assert seen["auth"] == "Bearer fk"
    assert seen["body"] == {"url": "https://example.com"}
    assert content_from_fetch(fetched) == ContentSource(url="https://example.com", text="# Title\nBody")


def test_fetch_web_content_unsuccessful():
    """success=false or no markdown is a content-shape failure."""
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "Blocked by robots.txt"})

    with pytest.raises(ContentShapeError, match="robots"):
        _with_client(handler, lambda c: fetch_web_content("https://x", SETTINGS, client=c))

    def no_markdown(request):
        return httpx.Response(200, json={"success": True, "data": {}})

    with pytest.raises(ContentShapeError, match="no markdown"):
        _with_client(no_markdown, lambda c: fetch_web_content("https://x", SETTINGS, client=c))


def test_fetch_web_content_http_error():
    """Non-2xx → ProviderError with the status code."""
    def handler(request):
        return httpx.Response(402, json={"error": "Payment required"})

    with pytest.raises(ProviderError) as exc:
        _with_client(handler, lambda c: fetch_web_content("https://x", SETTINGS, client=c))
    assert exc.value.status_code == 402
    assert str(exc.value) == "Payment required"


def test_fetch_web_content_missing_inputs():
    """No URL or no key fails before any request."""
    with pytest.raises(InputMissingError):
        asyncio.run(fetch_web_content("", SETTINGS))
    with pytest.raises(InputMissingError, match="FIRECRAWL_API_KEY"):
        asyncio.run(fetch_web_content("https://x", Settings()))


# --- Script generation ---

def test_build_script_prompt(session):
    """Prompt names every active speaker and embeds the content."""
    session = Session(
        speakers=session.speakers,
        content=ContentSource(text="Quantum dots explained."),
        target_minutes=5,
    )
    prompt = build_script_prompt(session)
    assert "Alice and Bob" in prompt
    assert "Quantum dots explained." in prompt
    assert "about 5 minutes" in prompt
    assert "`Alice: " in prompt


def test_build_script_prompt_single_mode(session):
    """Single-speaker mode only names the first speaker."""
    single = Session(speakers=session.speakers, mode=ScriptMode.SINGLE, content=ContentSource(text="x"))
    prompt = build_script_prompt(single)
    assert "1 host(s) (Alice)" in prompt
    assert "Bob" not in prompt


def test_generate_script_returns_text(session):
    """Generated text is the concatenated candidate parts."""
    seen = {}

    def handler(request):
        seen["key"] = request.headers["x-goog-api-key"]
        return _gemini_text("Alice: Hi.\nBob: Hello.")

    session = Session(speakers=session.speakers, content=ContentSource(text="content"))
    raw = _with_client(handler, lambda c: generate_script(session, SETTINGS, client=c))
    assert raw == "Alice: Hi.\nBob: Hello."
    assert seen["key"] == "gk"


def test_generate_script_requires_content(session):
    """No source content → InputMissingError without a request."""
    with pytest.raises(InputMissingError):
        asyncio.run(generate_script(Session(speakers=session.speakers), SETTINGS))


def test_generate_text_no_candidates(session):
    """A response without candidates is a content-shape failure."""
    def handler(request):
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    session = Session(speakers=session.speakers, content=ContentSource(text="content"))
    with pytest.raises(ContentShapeError):
        _with_client(handler, lambda c: generate_script(session, SETTINGS, client=c))


# --- SEO ---

def test_strip_code_fence():
    """Fenced JSON is unwrapped; plain text untouched."""
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_parse_seo_meta():
    """Title and description read from JSON, fenced or not."""
    meta = parse_seo_meta('```json\n{"title": "T", "description": "D"}\n```')
    assert (meta.title, meta.description) == ("T", "D")


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"title": "T"}'])
def test_parse_seo_meta_bad_shape(raw):
    """Anything but an object with both keys is rejected."""
    with pytest.raises(ContentShapeError):
        parse_seo_meta(raw)


def test_generate_seo_meta(session):
    """SEO request asks for JSON and includes the script text."""
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return _gemini_text('{"title": "Dots", "description": "All about dots."}')

    meta = _with_client(handler, lambda c: generate_seo_meta(session, SETTINGS, client=c))
    assert meta.title == "Dots"
    assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}
    assert "Alice: Hello there." in seen["body"]["contents"][0]["parts"][0]["text"]


def test_generate_seo_meta_requires_script(speakers):
    """No script → PreconditionError."""
    with pytest.raises(PreconditionError):
        asyncio.run(generate_seo_meta(Session(speakers=speakers), SETTINGS))
