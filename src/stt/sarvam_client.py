"""
src/stt/sarvam_client.py
=========================
Sarvam AI Client — VoiceWriter

Responsibility:
    - Transcribe (and translate to English) a single audio segment using
      the Sarvam AI speech-to-text API (saaras model)
    - Check that an API key is accepted by the service

Each segment upload is bounded by its own timeout; a timed-out or
rejected segment raises ``SegmentTranscriptionError`` so the pool can
record it as a per-segment failure.

This module does NOT:
    - Split audio into segments (see src.audio.transcoder)
    - Decide what happens when a segment fails (see src.stt.segment_pool)
    - Delete segment files
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import aiohttp
import requests
from dotenv import load_dotenv

load_dotenv()

from src.errors import SegmentTranscriptionError  # noqa: E402

logger = logging.getLogger("voicewriter.stt.sarvam_client")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

SARVAM_API_BASE = os.environ.get("SARVAM_API_BASE", "https://api.sarvam.ai").rstrip("/")
SARVAM_STT_ENDPOINT = f"{SARVAM_API_BASE}/speech-to-text"
SARVAM_CHAT_ENDPOINT = f"{SARVAM_API_BASE}/v1/chat/completions"

SARVAM_STT_MODEL = "saaras:v3"
SARVAM_STT_MODE = "translate"
SARVAM_TARGET_LANGUAGE = "en"
SARVAM_CHAT_MODEL = "sarvam-m"

SEGMENT_TIMEOUT_SECONDS: float = 45.0
KEY_CHECK_TIMEOUT_SECONDS: float = 5.0

AUTH_HEADER = "api-subscription-key"


@dataclass(frozen=True)
class KeyCheckResult:
    """Outcome of an API key connectivity check."""

    ok: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def transcribe_segment(
    session: aiohttp.ClientSession,
    index: int,
    segment_path: Path,
    api_key: str,
    timeout: float = SEGMENT_TIMEOUT_SECONDS,
) -> str:
    """
    Upload one segment and return its English transcript.

    Args:
        session:      Shared aiohttp session for the current run.
        index:        Segment sequence index (used in errors/logs).
        segment_path: Path to a mono 16 kHz WAV segment.
        api_key:      Sarvam API subscription key.
        timeout:      Total time allowed for this request, in seconds.

    Returns:
        The stripped transcript text.

    Raises:
        SegmentTranscriptionError: On timeout, transport error, non-2xx
            status, unreadable body, or a missing/empty transcript.
    """
    try:
        audio_bytes = await asyncio.to_thread(Path(segment_path).read_bytes)
    except OSError as exc:
        raise SegmentTranscriptionError(index, f"could not read segment: {exc}") from exc

    form = aiohttp.FormData()
    form.add_field("file", audio_bytes, filename="audio.wav", content_type="audio/wav")
    form.add_field("model", SARVAM_STT_MODEL)
    form.add_field("mode", SARVAM_STT_MODE)
    form.add_field("targetLanguage", SARVAM_TARGET_LANGUAGE)

    try:
        async with session.post(
            SARVAM_STT_ENDPOINT,
            data=form,
            headers={AUTH_HEADER: api_key},
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                detail = (await resp.text())[:200]
                raise SegmentTranscriptionError(index, f"HTTP {resp.status}: {detail}")
            body = await resp.json(content_type=None)
    except asyncio.TimeoutError as exc:
        raise SegmentTranscriptionError(index, f"timed out after {timeout:.0f}s") from exc
    except aiohttp.ClientError as exc:
        raise SegmentTranscriptionError(index, f"request failed: {exc}") from exc
    except ValueError as exc:
        raise SegmentTranscriptionError(index, f"invalid JSON response: {exc}") from exc

    transcript = body.get("transcript") if isinstance(body, dict) else None
    if not isinstance(transcript, str) or not transcript.strip():
        raise SegmentTranscriptionError(index, "response has no transcript")

    return transcript.strip()


def verify_api_key(api_key: str | None) -> KeyCheckResult:
    """
    Check that *api_key* is accepted, using a one-token chat completion.

    Blocking (requests); call it through ``asyncio.to_thread`` from
    async code.
    """
    if not api_key:
        return KeyCheckResult(ok=False, error="No API key provided or stored.")

    payload = {
        "model": SARVAM_CHAT_MODEL,
        "messages": [{"role": "user", "content": "hello"}],
        "max_tokens": 1,
    }

    try:
        resp = requests.post(
            SARVAM_CHAT_ENDPOINT,
            headers={AUTH_HEADER: api_key, "Content-Type": "application/json"},
            json=payload,
            timeout=KEY_CHECK_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
    except requests.HTTPError as exc:
        message = _error_message(exc.response) or str(exc)
        logger.error("API key test failed: %s", message)
        return KeyCheckResult(ok=False, error=message)
    except requests.RequestException as exc:
        logger.error("API key test failed: %s", exc)
        return KeyCheckResult(ok=False, error=str(exc))

    return KeyCheckResult(ok=True)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _error_message(resp: requests.Response | None) -> str | None:
    """Pull a human-readable message out of a Sarvam error body."""
    if resp is None:
        return None
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if body.get("message"):
        return str(body["message"])
    return None
