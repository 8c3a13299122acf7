# src/state/__init__.py
# ======================
# Capture State — VoiceWriter
#
# CaptureStateMachine: observable progress ledger (IDLE, LISTENING,
#   PROCESSING, SUCCESS_PASTE, SUCCESS_POLISH, ERROR)
# PipelineContext: state machine + in-flight guard, injected into the
#   orchestrator

from src.state.machine import CaptureState, CaptureStateMachine  # noqa: F401
from src.state.context import PipelineContext  # noqa: F401

__all__ = ["CaptureState", "CaptureStateMachine", "PipelineContext"]
