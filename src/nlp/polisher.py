"""
src/nlp/polisher.py
====================
Polish Adapter — VoiceWriter

Responsibility:
    - Fix grammar and sentence structure of a transcript (or selected
      text) with one chat-completion call
    - Preserve the user's tone and style exactly — no added content,
      no over-formalizing casual input
    - Offer a best-effort wrapper that falls back to the original text

Sarvam exposes an OpenAI-compatible chat completions endpoint, so the
OpenAI SDK is used with Sarvam's base URL and subscription header.
SDK retries are disabled: a slow polish must not hold up delivery
beyond its timeout.

This module does NOT:
    - Transcribe audio
    - Deliver text to the focused application
"""

import logging

from openai import AsyncOpenAI, OpenAIError

from src.errors import PolishError
from src.stt.sarvam_client import AUTH_HEADER, SARVAM_API_BASE, SARVAM_CHAT_MODEL

logger = logging.getLogger("voicewriter.nlp.polisher")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

POLISH_TIMEOUT_SECONDS: float = 30.0
POLISH_TEMPERATURE: float = 0.1

SYSTEM_PROMPT = (
    "You are a professional grammar and tone preservation assistant. "
    "Always return only the corrected text, nothing else."
)

_USER_PROMPT_TEMPLATE = (
    "Fix grammar and sentence structure of the following text while strictly "
    "preserving the original tone, style, and manner of the user input. "
    "Do not make it overly formal if the input is casual. "
    "Do not add new information. Return ONLY the corrected text.\n\n"
    "TEXT:\n{text}"
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def polish_text(text: str, api_key: str) -> str:
    """
    Return a grammar-corrected version of *text*.

    An empty completion returns *text* unchanged.

    Raises:
        PolishError: On timeout, transport/API error, or a response
            without choices.
    """
    client = AsyncOpenAI(
        api_key=api_key,
        base_url=f"{SARVAM_API_BASE}/v1",
        default_headers={AUTH_HEADER: api_key},
        timeout=POLISH_TIMEOUT_SECONDS,
        max_retries=0,
    )

    try:
        response = await client.chat.completions.create(
            model=SARVAM_CHAT_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(text)},
            ],
            temperature=POLISH_TEMPERATURE,
        )
    except OpenAIError as exc:
        raise PolishError(f"Polish request failed: {exc}") from exc
    finally:
        await client.close()

    choices = getattr(response, "choices", None)
    if not choices:
        raise PolishError("Polish response has no choices.")

    content = getattr(choices[0].message, "content", None)
    if not content or not content.strip():
        return text.strip()
    return content.strip()


async def polish_or_fallback(text: str, api_key: str) -> tuple[str, bool]:
    """
    Best-effort polish.

    Returns:
        ``(final_text, polished)`` where ``polished`` is False when the
        original *text* is returned because polishing failed.
    """
    try:
        return await polish_text(text, api_key), True
    except Exception as exc:
        logger.warning("Auto-polish failed, using raw transcript: %s", exc)
        return text, False


def build_prompt(text: str) -> str:
    return _USER_PROMPT_TEMPLATE.format(text=text)
