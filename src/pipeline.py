"""
src/pipeline.py
================
Pipeline Orchestrator — VoiceWriter

Responsibility:
    1. Admit at most one run at a time (in-flight guard)
    2. Drive the capture state: PROCESSING → terminal state
    3. Run the capture-to-text stages in order
    4. Deliver the final text to the focused application
    5. Clean up every ephemeral file the run touched, then sweep the
       working directory

Dictation run (process_recording):
    Stage 1: Intake            → file_missing / no_api_key checks
    Stage 2: Transcoding       → normalized waveform + 25 s segments
    Stage 3: Transcription     → per-segment results (failures absorbed)
    Stage 4: Aggregation       → transcript (transcription_failed if empty)
    Stage 5: Polish            → best effort, falls back to transcript
    Stage 6: Delivery          → SUCCESS_PASTE, or ERROR with text kept

Polish run (polish_selection):
    Selected text → polish (fatal on failure) → delivery → SUCCESS_POLISH

This layer MUST NOT:
    - Raise to its caller; every outcome is a PipelineResult
    - Leave the in-flight guard held on any exit path
    - Queue triggers that arrive while a run is active
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from src.audio.artifacts import full_waveform_path, remove_artifact
from src.audio.transcoder import remove_waveform, transcode_and_segment
from src.errors import (
    DeliveryError,
    FileMissingError,
    MissingCredentialError,
    PipelineError,
    ResourceBusyError,
)
from src.external.activity import ActivityLog, LoggingActivityLog
from src.external.credentials import CredentialProvider
from src.external.delivery import Deliverer
from src.nlp.polisher import polish_or_fallback, polish_text
from src.retention.service import sweep
from src.state.context import PipelineContext
from src.state.machine import CaptureState
from src.stt.aggregator import aggregate, summarize
from src.stt.segment_pool import transcribe_segments

logger = logging.getLogger("voicewriter.pipeline")

# Result codes that are not PipelineError subclasses
BUSY = "busy"
EMPTY_TEXT = "empty_text"
INTERNAL_ERROR = "internal_error"

ACTIVITY_DICTATION = "Voice Dictation"
ACTIVITY_POLISH = "Text Polish"


@dataclass(frozen=True)
class PipelineResult:
    """Outcome returned to the trigger layer."""

    ok: bool
    text: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok}
        if self.text is not None:
            result["text"] = self.text
        if self.error is not None:
            result["error"] = self.error
        return result


class RecordingPipeline:
    def __init__(
        self,
        context: PipelineContext,
        credentials: CredentialProvider,
        deliverer: Deliverer,
        working_dir: Path | str,
        activity_log: ActivityLog | None = None,
    ):
        self._context = context
        self._credentials = credentials
        self._deliverer = deliverer
        self._working_dir = Path(working_dir)
        self._activity_log = activity_log or LoggingActivityLog()

    @property
    def context(self) -> PipelineContext:
        return self._context

    # ------------------------------------------------------------------
    # Dictation
    # ------------------------------------------------------------------

    async def process_recording(self, file_path: Path | str | None) -> PipelineResult:
        """
        Turn one raw recording into delivered text.

        The input file, its normalized waveform and all of its segments
        are gone when this returns, whatever the outcome.
        """
        if self._context.in_flight:
            logger.info("Run already in progress — dropping trigger for %s", file_path)
            return PipelineResult(ok=False, error=BUSY)

        # A missing input never takes the guard; the state goes straight to ERROR.
        path = Path(file_path) if file_path else None
        if path is None or not path.exists():
            exc = FileMissingError(f"Recording not found: {file_path}")
            logger.error("Run failed [%s]: %s", exc.code, exc.message)
            self._context.transition(CaptureState.ERROR)
            return PipelineResult(ok=False, error=exc.code)

        self._context.try_acquire()
        try:
            self._context.transition(CaptureState.PROCESSING)
            api_key = self._resolve_api_key()

            logger.info("Starting transcription for: %s", path.name)
            transcoded = await transcode_and_segment(path)

            results = await transcribe_segments(transcoded.segments, api_key)
            succeeded, total = summarize(results)
            logger.info("Segment transcription: %d/%d succeeded.", succeeded, total)

            transcript = aggregate(results).strip()

            final_text, polished = await polish_or_fallback(transcript, api_key)
            if polished:
                logger.info("Transcription polished.")

            return await self._deliver(
                final_text,
                success_state=CaptureState.SUCCESS_PASTE,
                activity_type=ACTIVITY_DICTATION,
                input_text=transcript,
            )

        except PipelineError as exc:
            logger.error("Run failed [%s]: %s", exc.code, exc.message)
            self._context.transition(CaptureState.ERROR)
            return PipelineResult(ok=False, error=exc.code)
        except Exception as exc:
            logger.error("process-recording error: %s", exc, exc_info=True)
            self._context.transition(CaptureState.ERROR)
            return PipelineResult(ok=False, error=INTERNAL_ERROR)
        finally:
            remove_waveform(full_waveform_path(path))
            self._discard_input(path)
            # Guard is free before the post-run sweep starts
            self._context.release()
            await self._sweep()

    # ------------------------------------------------------------------
    # Polish mode (selected text)
    # ------------------------------------------------------------------

    async def polish_selection(self, text: str | None) -> PipelineResult:
        """Polish selected text and deliver it in place of the selection."""
        if not text or not text.strip():
            return PipelineResult(ok=False, error=EMPTY_TEXT)

        if not self._context.try_acquire():
            logger.info("Run already in progress — dropping polish trigger.")
            return PipelineResult(ok=False, error=BUSY)

        try:
            self._context.transition(CaptureState.PROCESSING)
            api_key = self._resolve_api_key()

            polished = await polish_text(text, api_key)
            logger.info("Text polished successfully.")

            return await self._deliver(
                polished,
                success_state=CaptureState.SUCCESS_POLISH,
                activity_type=ACTIVITY_POLISH,
                input_text=text,
            )

        except PipelineError as exc:
            logger.error("Polish failed [%s]: %s", exc.code, exc.message)
            self._context.transition(CaptureState.ERROR)
            self._record(ACTIVITY_POLISH, text, exc.message, "ERROR")
            return PipelineResult(ok=False, error=exc.code)
        except Exception as exc:
            logger.error("polish-text error: %s", exc, exc_info=True)
            self._context.transition(CaptureState.ERROR)
            return PipelineResult(ok=False, error=INTERNAL_ERROR)
        finally:
            self._context.release()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_api_key(self) -> str:
        try:
            api_key = self._credentials.get_api_key()
        except Exception as exc:
            logger.error("Credential lookup failed: %s", exc)
            api_key = None
        if not api_key:
            raise MissingCredentialError("Sarvam API key not found.")
        return api_key

    async def _deliver(
        self,
        text: str,
        success_state: CaptureState,
        activity_type: str,
        input_text: str,
    ) -> PipelineResult:
        """Hand *text* to the deliverer; the text is returned either way."""
        try:
            delivered = await self._deliverer.deliver(text)
        except Exception as exc:
            logger.error("Failed to paste: %s", exc)
            delivered = False

        if not delivered:
            self._context.transition(CaptureState.ERROR)
            self._record(activity_type, input_text, text, "ERROR")
            return PipelineResult(ok=True, text=text, error=DeliveryError.code)

        self._context.transition(success_state)
        self._record(activity_type, input_text, text, "SUCCESS")
        return PipelineResult(ok=True, text=text)

    def _record(self, action_type: str, input_text: str, output_text: str, status: str) -> None:
        try:
            self._activity_log.log_action(action_type, input_text, output_text, status)
        except Exception as exc:
            logger.warning("Activity log failed: %s", exc)

    def _discard_input(self, path: Path) -> None:
        try:
            remove_artifact(path)
        except ResourceBusyError:
            logger.debug("Input still in use, leaving it to retention: %s", path.name)
        except OSError as exc:
            logger.warning("Could not delete input %s: %s", path.name, exc)

    async def _sweep(self) -> None:
        try:
            await asyncio.to_thread(sweep, self._working_dir)
        except Exception as exc:
            logger.warning("Post-run retention sweep failed: %s", exc)
