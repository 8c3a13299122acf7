"""
src/stt/segment_pool.py
========================
Segment Transcription Pool — VoiceWriter

Responsibility:
    - Submit every segment of a run to Sarvam AI
    - Handle per-segment failures gracefully (log, record, carry on)
    - Delete each segment file as soon as its own attempt resolves
    - Return results in segment-index order, never completion order

Failure of a single segment MUST NOT fail the run; only the aggregator
decides whether a run produced any usable text.

By default segments are submitted one at a time in ascending order.
Setting MAX_PARALLEL_SEGMENTS > 1 runs up to that many uploads at once;
ordering of the returned results is unaffected.
"""

import asyncio
import logging
import os
from dataclasses import dataclass

import aiohttp

from src.audio.artifacts import Segment, remove_artifact
from src.errors import ResourceBusyError, SegmentTranscriptionError
from src.stt import sarvam_client

logger = logging.getLogger("voicewriter.stt.segment_pool")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_PARALLEL_SEGMENTS: int = max(1, int(os.environ.get("MAX_PARALLEL_SEGMENTS", "1")))


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SegmentResult:
    """Outcome of one segment: text on success, error on failure."""

    index: int
    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def transcribe_segments(
    segments: list[Segment],
    api_key: str,
    max_parallel: int = MAX_PARALLEL_SEGMENTS,
) -> list[SegmentResult]:
    """
    Transcribe every segment, tolerating individual failures.

    Args:
        segments:     Ordered segments from the transcoder. Ownership
                      passes to this function: every file is deleted.
        api_key:      Sarvam API subscription key.
        max_parallel: Maximum concurrent uploads (1 = sequential).

    Returns:
        One SegmentResult per segment, sorted by index.
    """
    if not segments:
        return []

    ordered = sorted(segments, key=lambda s: s.index)
    logger.info("Processing %d segment(s)...", len(ordered))

    limit = asyncio.Semaphore(max(1, max_parallel))

    async with aiohttp.ClientSession() as session:

        async def _transcribe_one(segment: Segment) -> SegmentResult:
            async with limit:
                try:
                    text = await sarvam_client.transcribe_segment(
                        session, segment.index, segment.path, api_key,
                    )
                    return SegmentResult(index=segment.index, text=text)
                except SegmentTranscriptionError as exc:
                    logger.warning("Segment transcription failed: %s — skipping.", exc)
                    return SegmentResult(index=segment.index, error=exc.message)
                except Exception as exc:
                    logger.warning(
                        "Segment %03d failed unexpectedly: %s — skipping.",
                        segment.index, exc,
                    )
                    return SegmentResult(index=segment.index, error=str(exc))
                finally:
                    _discard(segment)

        if max_parallel <= 1:
            results = [await _transcribe_one(segment) for segment in ordered]
        else:
            results = list(await asyncio.gather(*(_transcribe_one(s) for s in ordered)))

    results.sort(key=lambda r: r.index)
    return results


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _discard(segment: Segment) -> None:
    try:
        remove_artifact(segment.path)
    except ResourceBusyError:
        logger.debug("Segment %03d busy, leaving it.", segment.index)
    except OSError as exc:
        logger.warning("Could not delete segment %s: %s", segment.path.name, exc)
