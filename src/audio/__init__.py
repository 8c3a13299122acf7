# src/audio/__init__.py
# ======================
# Audio Layer — VoiceWriter
#
# Responsibility:
#   - Filename conventions for ephemeral artifacts (artifacts.py)
#   - Raw recording → mono 16 kHz waveform → 25 s segments (transcoder.py)
#
# No STT, no network calls.
