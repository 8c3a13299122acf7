"""
src/audio/transcoder.py
========================
Segment Transcoder — VoiceWriter

Responsibility:
    - Convert one raw recording to a normalized waveform
      (mono, 16 kHz, 16-bit linear PCM WAV)
    - Split the normalized waveform into fixed-duration segments
      (target 25 s) so every upload stays inside the STT service's
      per-request size/duration limits
    - Recover segment order from the zero-padded names

Both ffmpeg invocations run as asyncio subprocesses; the event loop
keeps serving triggers and the retention timer while they run.

Failure of either invocation aborts the run with ``TranscodingError``
and no segment is handed downstream.

This module does NOT:
    - Upload or transcribe audio (see src.stt.segment_pool)
    - Delete segments after transcription (the pool owns them)
    - Touch the raw recording (the orchestrator owns it)
"""

import asyncio
import logging
import os
import wave
from dataclasses import dataclass
from pathlib import Path

from pydub.utils import get_encoder_name

from src.audio.artifacts import (
    Segment,
    find_segments,
    full_waveform_path,
    remove_artifact,
    run_base,
    segment_output_pattern,
)
from src.errors import ResourceBusyError, TranscodingError

logger = logging.getLogger("voicewriter.audio.transcoder")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

TARGET_SAMPLE_RATE = 16000  # Hz
TARGET_CHANNELS = 1  # mono
TARGET_CODEC = "pcm_s16le"

SEGMENT_SECONDS: int = int(os.environ.get("SEGMENT_SECONDS", "25"))

# Explicit binary wins; otherwise let pydub find ffmpeg (or avconv) on PATH.
FFMPEG_BINARY: str = os.environ.get("FFMPEG_BINARY") or get_encoder_name()

# ffmpeg stderr is noisy; keep only the tail in error messages
_STDERR_TAIL_CHARS = 500


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranscodeResult:
    """Normalized waveform plus its ordered segments."""

    waveform_path: Path
    segments: list[Segment]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def transcode_and_segment(
    raw_path: Path | str,
    segment_seconds: int = SEGMENT_SECONDS,
) -> TranscodeResult:
    """
    Normalize a raw recording and split it into ordered segments.

    Steps:
        1. ffmpeg → ``<base>_full.wav`` (mono, 16 kHz, PCM s16le)
        2. ffmpeg ``-f segment`` → ``<base>_chunk_%03d.wav``
        3. Enumerate segment files, sort lexically, parse indices

    Args:
        raw_path:        Path to the raw recording.
        segment_seconds: Target duration of each segment.

    Returns:
        TranscodeResult. ``segments`` may be empty if ffmpeg produced none.

    Raises:
        TranscodingError: If either ffmpeg invocation fails.
    """
    raw_path = Path(raw_path)
    waveform_path = full_waveform_path(raw_path)

    logger.info("Converting to WAV: %s", raw_path.name)
    await _run_ffmpeg(
        [
            "-i", str(raw_path),
            "-ar", str(TARGET_SAMPLE_RATE),
            "-ac", str(TARGET_CHANNELS),
            "-c:a", TARGET_CODEC,
            "-y", str(waveform_path),
        ],
        step="normalize",
    )
    if not waveform_path.exists():
        raise TranscodingError(f"normalize: output not found: {waveform_path.name}")

    duration = _waveform_duration(waveform_path)
    if duration is not None:
        logger.info("Normalized waveform: %.1fs", duration)

    logger.info("Splitting into %ds segments...", segment_seconds)
    try:
        await _run_ffmpeg(
            [
                "-i", str(waveform_path),
                "-f", "segment",
                "-segment_time", str(segment_seconds),
                "-c", "copy",
                str(segment_output_pattern(raw_path)),
            ],
            step="segment",
        )
    except TranscodingError:
        _discard_segments(raw_path)
        raise

    segments = find_segments(raw_path.parent, run_base(raw_path))
    logger.info("Produced %d segment(s).", len(segments))
    return TranscodeResult(waveform_path=waveform_path, segments=segments)


def remove_waveform(waveform_path: Path | str) -> None:
    """Delete a normalized waveform; absent or busy files are left to retention."""
    try:
        remove_artifact(waveform_path)
    except ResourceBusyError:
        logger.debug("Waveform busy, leaving it: %s", waveform_path)
    except OSError as exc:
        logger.warning("Could not delete waveform %s: %s", waveform_path, exc)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _run_ffmpeg(args: list[str], step: str) -> None:
    """Run ffmpeg with *args* without blocking the event loop."""
    cmd = [FFMPEG_BINARY, "-hide_banner", "-loglevel", "error", *args]
    logger.debug("Running: %s", " ".join(cmd))

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise TranscodingError(f"{step}: could not start ffmpeg: {exc}") from exc

    _, stderr = await process.communicate()
    if process.returncode != 0:
        detail = (stderr or b"").decode(errors="replace").strip()[-_STDERR_TAIL_CHARS:]
        logger.error("FFmpeg %s failed (exit %d): %s", step, process.returncode, detail)
        raise TranscodingError(
            f"{step}: ffmpeg exited with {process.returncode}: {detail}"
        )


def _waveform_duration(path: Path) -> float | None:
    try:
        with wave.open(str(path), "rb") as wf:
            return wf.getnframes() / float(wf.getframerate())
    except Exception:
        return None  # diagnostic only


def _discard_segments(raw_path: Path) -> None:
    for segment in find_segments(raw_path.parent, run_base(raw_path)):
        try:
            remove_artifact(segment.path)
        except OSError as exc:
            logger.debug("Could not delete partial segment %s: %s", segment.path, exc)
