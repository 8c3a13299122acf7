# src/nlp/__init__.py
# ====================
# Text Layer — VoiceWriter
#
# Tone-preserving grammar correction of transcripts and selected text.
#
# Public API:
#   polish_text(text, api_key) → str           (raises PolishError)
#   polish_or_fallback(text, api_key) → (str, bool)

from src.nlp.polisher import polish_or_fallback, polish_text  # noqa: F401

__all__ = ["polish_text", "polish_or_fallback"]
