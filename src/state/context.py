"""
src/state/context.py
=====================
Pipeline Context — VoiceWriter

Owns the process-wide mutable state of the capture pipeline: the
current CaptureState and the in-flight guard. It is created once and
injected into the orchestrator and the control surface; nothing else
mutates either value.

The in-flight guard admits at most one pipeline run. A trigger that
finds it held is dropped by the caller, not queued.
"""

from src.state.machine import CaptureState, CaptureStateMachine, StateListener


class PipelineContext:
    def __init__(self, machine: CaptureStateMachine | None = None):
        self._machine = machine or CaptureStateMachine()
        self._in_flight = False

    @property
    def state(self) -> CaptureState:
        return self._machine.state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def machine(self) -> CaptureStateMachine:
        return self._machine

    def add_listener(self, listener: StateListener) -> None:
        self._machine.add_listener(listener)

    # -- mutators ------------------------------------------------------

    def transition(self, state: CaptureState | str) -> bool:
        return self._machine.transition(state)

    def try_acquire(self) -> bool:
        """Take the in-flight guard; False if a run already holds it."""
        if self._in_flight:
            return False
        self._in_flight = True
        return True

    def release(self) -> None:
        self._in_flight = False

    def shutdown(self) -> None:
        self._machine.cancel_pending_decay()
