"""
src/stt/aggregator.py
======================
Transcript Aggregator — VoiceWriter

Joins the successful segment texts of one run, in sequence-index order,
with single spaces. A run fails only when no segment produced text; any
non-empty partial transcript counts as a full success.
"""

import logging
from collections.abc import Iterable

from src.errors import TranscriptionFailedError
from src.stt.segment_pool import SegmentResult

logger = logging.getLogger("voicewriter.stt.aggregator")


def aggregate(results: Iterable[SegmentResult]) -> str:
    """
    Build the transcript from per-segment results.

    Raises:
        TranscriptionFailedError: If zero segments succeeded.
    """
    ordered = sorted(results, key=lambda r: r.index)
    texts = [r.text for r in ordered if r.ok and r.text]

    if not texts:
        raise TranscriptionFailedError(
            f"All {len(ordered)} segment(s) failed — no usable transcript produced."
        )

    transcript = " ".join(texts)
    logger.info(
        "Combined transcript from %d/%d segment(s): %s...",
        len(texts), len(ordered), transcript[:100],
    )
    return transcript


def summarize(results: Iterable[SegmentResult]) -> tuple[int, int]:
    """Return ``(succeeded, total)`` for a set of results."""
    results = list(results)
    return sum(1 for r in results if r.ok), len(results)
