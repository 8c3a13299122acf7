"""
src/audio/artifacts.py
=======================
Ephemeral Artifact Classifier — VoiceWriter

Responsibility:
    - Own the filename conventions for every ephemeral audio file
      that lives in the shared working directory
    - Classify a filename into an ``ArtifactKind`` (or None)
    - Build per-run names (full waveform, segment pattern) from a raw
      recording path
    - Delete artifacts with "already gone" and "in use" treated as
      expected outcomes

Conventions:
    recording-*.<audio ext>       raw recording (retention candidate)
    transcode-*.wav               transcoded waveform (retention candidate)
    <base>_full.wav               per-run normalized waveform
    <base>_chunk_<NNN>.wav        per-run segment, NNN zero-padded

Both the pipeline's own cleanup and the retention sweep go through
this module, so the two always agree on what counts as ephemeral.
"""

import os
import re
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from src.errors import ResourceBusyError, is_busy_error


RAW_AUDIO_EXTENSIONS: tuple[str, ...] = (".webm", ".ogg", ".mp4", ".m4a", ".mp3", ".wav")

FULL_WAVEFORM_SUFFIX = "_full.wav"
SEGMENT_INFIX = "_chunk_"
SEGMENT_INDEX_WIDTH = 3

_SEGMENT_RE = re.compile(r"^(?P<base>.+)_chunk_(?P<index>\d{3,})\.wav$", re.IGNORECASE)
_FULL_WAVEFORM_RE = re.compile(r"^(?P<base>.+)_full\.wav$", re.IGNORECASE)
_TRANSCODE_RE = re.compile(r"^transcode-.*\.wav$", re.IGNORECASE)
_RECORDING_RE = re.compile(
    r"^recording-.*(" + "|".join(re.escape(e) for e in RAW_AUDIO_EXTENSIONS) + r")$",
    re.IGNORECASE,
)


class ArtifactKind(str, Enum):
    """Kinds of ephemeral files found in the working directory."""

    RAW_RECORDING = "raw_recording"
    TRANSCODED_WAVEFORM = "transcoded_waveform"
    FULL_WAVEFORM = "full_waveform"
    SEGMENT = "segment"


# Per-run files belong to an active run; the sweep leaves them alone.
RETENTION_KINDS: frozenset[ArtifactKind] = frozenset(
    {ArtifactKind.RAW_RECORDING, ArtifactKind.TRANSCODED_WAVEFORM}
)


@dataclass(frozen=True)
class Artifact:
    """A classified working-directory filename."""

    name: str
    kind: ArtifactKind
    base: str | None = None
    index: int | None = None

    @property
    def is_retention_candidate(self) -> bool:
        return self.kind in RETENTION_KINDS


@dataclass(frozen=True)
class Segment:
    """One fixed-duration slice of a normalized waveform."""

    index: int
    path: Path


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify(name: str) -> Artifact | None:
    """
    Classify a bare filename.

    Per-run suffixes are checked first so ``recording-1_full.wav`` is a
    full waveform, not a raw recording.

    Returns:
        An ``Artifact`` or None when the name follows no known convention.
    """
    match = _SEGMENT_RE.match(name)
    if match:
        return Artifact(
            name=name,
            kind=ArtifactKind.SEGMENT,
            base=match.group("base"),
            index=int(match.group("index")),
        )

    match = _FULL_WAVEFORM_RE.match(name)
    if match:
        return Artifact(name=name, kind=ArtifactKind.FULL_WAVEFORM, base=match.group("base"))

    if _TRANSCODE_RE.match(name):
        return Artifact(name=name, kind=ArtifactKind.TRANSCODED_WAVEFORM)

    if _RECORDING_RE.match(name):
        return Artifact(name=name, kind=ArtifactKind.RAW_RECORDING)

    return None


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def new_recording_name(extension: str = ".webm") -> str:
    """Return a unique, timestamp-salted raw recording filename."""
    if not extension.startswith("."):
        extension = "." + extension
    return f"recording-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}{extension}"


def run_base(raw_path: Path) -> str:
    """Base name shared by every per-run file derived from *raw_path*."""
    return raw_path.stem


def full_waveform_path(raw_path: Path) -> Path:
    return raw_path.with_name(run_base(raw_path) + FULL_WAVEFORM_SUFFIX)


def segment_output_pattern(raw_path: Path) -> Path:
    """ffmpeg ``-f segment`` output template, e.g. ``<base>_chunk_%03d.wav``."""
    return raw_path.with_name(
        f"{run_base(raw_path)}{SEGMENT_INFIX}%0{SEGMENT_INDEX_WIDTH}d.wav"
    )


def find_segments(directory: Path, base: str) -> list[Segment]:
    """
    Enumerate the segment files of one run, in sequence order.

    Order comes from a lexical sort of the names (zero padding makes it
    equal to temporal order), never from the filesystem listing order.
    """
    names = sorted(
        entry.name
        for entry in os.scandir(directory)
        if entry.is_file()
    )
    segments: list[Segment] = []
    for name in names:
        artifact = classify(name)
        if artifact is None or artifact.kind is not ArtifactKind.SEGMENT:
            continue
        if artifact.base != base:
            continue
        segments.append(Segment(index=artifact.index, path=directory / name))
    return segments


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


def remove_artifact(path: Path | str) -> bool:
    """
    Delete an ephemeral file.

    Returns:
        True if the file was removed, False if it was already absent.

    Raises:
        ResourceBusyError: If the file is open or locked elsewhere.
        OSError:           On any other deletion failure.
    """
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as exc:
        if is_busy_error(exc):
            raise ResourceBusyError(exc.errno, exc.strerror, str(path)) from exc
        raise
    return True
