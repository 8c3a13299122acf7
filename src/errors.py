"""
src/errors.py
==============
Failure Taxonomy — VoiceWriter

Every failure the capture-to-text pipeline can report is a subclass of
``PipelineError`` carrying a stable machine-readable ``code``. The
orchestrator maps the code straight into the result returned to the
trigger layer, so callers never have to parse messages.

Fatal for a run:
    file_missing, no_api_key, transcoding_error, transcription_failed

Absorbed locally (logged, never propagated out of a run):
    segment_transcription_error, polish_error

Surfaced as an ERROR state while the text is still returned:
    delivery_error

``ResourceBusyError`` is NOT a pipeline failure. It is the recoverable
"file is open elsewhere" category raised by artifact deletion, kept
distinct from other ``OSError`` so the retention sweep can swallow it
while still reporting genuine I/O problems.
"""

import errno
import os


class PipelineError(Exception):
    """Base class for failures reported by a pipeline run."""

    code: str = "internal_error"

    def __init__(self, message: str = ""):
        self.message = message or self.code
        super().__init__(self.message)


class FileMissingError(PipelineError):
    """Raised when the raw audio artifact does not exist at run start."""

    code = "file_missing"


class MissingCredentialError(PipelineError):
    """Raised when no API key can be resolved from the credential store."""

    code = "no_api_key"


class TranscodingError(PipelineError):
    """Raised when either ffmpeg invocation fails."""

    code = "transcoding_error"


class SegmentTranscriptionError(PipelineError):
    """Raised for a single segment that could not be transcribed."""

    code = "segment_transcription_error"

    def __init__(self, index: int, message: str):
        self.index = index
        super().__init__(f"Segment {index:03d}: {message}")


class TranscriptionFailedError(PipelineError):
    """Raised when zero segments produced any text."""

    code = "transcription_failed"


class PolishError(PipelineError):
    """Raised when the grammar-polishing call fails."""

    code = "polish_error"


class DeliveryError(PipelineError):
    """Raised when the external delivery mechanism rejects the text."""

    code = "delivery_error"


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------

# errno values that mean "someone else holds this file".
# EACCES/EPERM only mean that on Windows (sharing violation).
_LOCK_ERRNOS = (errno.EBUSY, getattr(errno, "ETXTBSY", None))
_WINDOWS_LOCK_ERRNOS = (errno.EACCES, errno.EPERM)

BUSY_ERRNOS: frozenset[int] = frozenset(
    code
    for code in _LOCK_ERRNOS + (_WINDOWS_LOCK_ERRNOS if os.name == "nt" else ())
    if code is not None
)


class ResourceBusyError(OSError):
    """Raised when an artifact cannot be deleted because it is in use."""


def is_busy_error(exc: OSError) -> bool:
    """Return True if *exc* means the file is open/locked by another process."""
    return exc.errno in BUSY_ERRNOS
