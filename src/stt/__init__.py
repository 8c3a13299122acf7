# src/stt/__init__.py
# ====================
# Speech-to-Text Layer — VoiceWriter
#
# Pipeline:
#   1. Upload each 25 s segment to Sarvam AI (saaras, translate → en)
#   2. Record per-segment failures without aborting siblings
#   3. Delete each segment as soon as its attempt resolves
#   4. Join successful texts in segment order
#
# Public API:
#   transcribe_segments(segments, api_key) → list[SegmentResult]
#   aggregate(results) → str

from src.stt.segment_pool import SegmentResult, transcribe_segments  # noqa: F401
from src.stt.aggregator import aggregate  # noqa: F401

__all__ = [
    "SegmentResult",
    "transcribe_segments",
    "aggregate",
]
