"""
src/retention/service.py
=========================
Retention Service — VoiceWriter

Responsibility:
    - Bound disk usage from ephemeral audio artifacts in the shared
      working directory, without relying on the pipeline's own cleanup
      having succeeded (e.g. after a crash)
    - Keep only the single most recent retention candidate; delete the
      rest regardless of age
    - Run once at startup, then on a fixed period

Races:
    The sweep runs concurrently with an active pipeline run. A file
    that disappears between listing and deletion, or that is held open
    by another process, is an expected outcome and never an error.

This module does NOT:
    - Touch per-run files (``*_full.wav``, ``*_chunk_NNN.wav``)
    - Use an age threshold as a deletion criterion (age is logged only)
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from src.audio.artifacts import classify, remove_artifact
from src.errors import ResourceBusyError

logger = logging.getLogger("voicewriter.retention")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_INTERVAL_SECONDS: float = float(
    os.environ.get("RETENTION_INTERVAL_SECONDS", "600")
)


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass
class SweepReport:
    """Outcome of one sweep. Paths are absolute."""

    kept: list[Path] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)
    busy: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)


@dataclass(frozen=True)
class _Candidate:
    path: Path
    mtime: float


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def sweep(directory: Path | str) -> SweepReport:
    """
    Delete every retention candidate in *directory* except the newest.

    With zero or one candidate nothing is attempted.

    Args:
        directory: The shared working directory.

    Returns:
        SweepReport describing what was kept, deleted, busy or failed.
    """
    directory = Path(directory)
    report = SweepReport()

    try:
        candidates = _list_candidates(directory)
    except OSError as exc:
        logger.error("Retention sweep could not list %s: %s", directory, exc)
        return report

    if len(candidates) <= 1:
        report.kept.extend(c.path for c in candidates)
        return report

    candidates.sort(key=lambda c: c.mtime, reverse=True)
    newest, stale = candidates[0], candidates[1:]
    report.kept.append(newest.path)

    now = time.time()
    for candidate in stale:
        age = now - candidate.mtime
        try:
            removed = remove_artifact(candidate.path)
        except ResourceBusyError:
            # In use by an active run or the recorder; try again next sweep.
            report.busy.append(candidate.path)
            continue
        except OSError as exc:
            logger.warning("Could not delete %s: %s", candidate.path.name, exc)
            report.failed.append(candidate.path)
            continue

        if removed:
            report.deleted.append(candidate.path)
            logger.info(
                "Deleted old/redundant file: %s (age: %ds)",
                candidate.path.name, round(age),
            )

    return report


def start_retention(
    directory: Path | str,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
) -> asyncio.Task:
    """
    Sweep *directory* immediately, then every *interval_seconds*.

    Must be called with a running event loop. Every sweep, the first
    included, runs in a worker thread so filesystem I/O never stalls
    the loop.

    Returns:
        The background task. Cancel it to stop the service.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive.")

    logger.info(
        "Retention service started for %s (interval: %ss).",
        directory, interval_seconds,
    )
    return asyncio.get_running_loop().create_task(
        _run_periodically(Path(directory), interval_seconds),
        name="retention-sweep",
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _run_periodically(directory: Path, interval_seconds: float) -> None:
    while True:
        try:
            await asyncio.to_thread(sweep, directory)
        except Exception as exc:
            logger.error("Retention sweep failed: %s", exc, exc_info=True)
        await asyncio.sleep(interval_seconds)


def _list_candidates(directory: Path) -> list[_Candidate]:
    candidates: list[_Candidate] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            artifact = classify(entry.name)
            if artifact is None or not artifact.is_retention_candidate:
                continue
            try:
                if not entry.is_file():
                    continue
                mtime = entry.stat().st_mtime
            except FileNotFoundError:
                continue  # removed by the pipeline since listing
            candidates.append(_Candidate(path=Path(entry.path), mtime=mtime))
    return candidates
