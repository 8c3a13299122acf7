"""
src/state/machine.py
=====================
Capture State Machine — VoiceWriter

The single source of truth for pipeline progress. It holds no business
logic: every transition simply notifies the registered listeners
(progress overlay, dashboard, logs).

Rules:
    - IDLE is initial and reachable from every state
    - Requesting the current state is a no-op, except IDLE, which is
      always re-broadcast (used to force-hide a progress indicator)
    - SUCCESS_PASTE, SUCCESS_POLISH and ERROR decay back to IDLE after
      1.5 s unless another transition supersedes them first
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger("voicewriter.state")

DECAY_SECONDS: float = 1.5


class CaptureState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
    SUCCESS_PASTE = "SUCCESS_PASTE"
    SUCCESS_POLISH = "SUCCESS_POLISH"
    ERROR = "ERROR"


TERMINAL_STATES: frozenset[CaptureState] = frozenset(
    {CaptureState.SUCCESS_PASTE, CaptureState.SUCCESS_POLISH, CaptureState.ERROR}
)

StateListener = Callable[[CaptureState], None]


class CaptureStateMachine:
    """Observable progress ledger with automatic decay of terminal states."""

    def __init__(self, decay_seconds: float = DECAY_SECONDS):
        self._state = CaptureState.IDLE
        self._decay_seconds = decay_seconds
        self._decay_handle: asyncio.TimerHandle | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> CaptureState:
        return self._state

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def transition(self, state: CaptureState | str) -> bool:
        """
        Request a transition to *state*.

        Returns:
            True if listeners were notified, False for a suppressed
            duplicate.

        Raises:
            ValueError: If *state* is not a known CaptureState.
        """
        state = CaptureState(state)

        if state == self._state and state is not CaptureState.IDLE:
            return False

        if state != self._state:
            logger.info("Transition: %s -> %s", self._state.value, state.value)
        self._state = state
        self.cancel_pending_decay()

        if state in TERMINAL_STATES:
            self._schedule_decay()

        self._notify(state)
        return True

    def cancel_pending_decay(self) -> None:
        if self._decay_handle is not None:
            self._decay_handle.cancel()
            self._decay_handle = None

    # ------------------------------------------------------------------

    def _schedule_decay(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; %s will not decay to IDLE.", self._state.value)
            return
        self._decay_handle = loop.call_later(self._decay_seconds, self._decay)

    def _decay(self) -> None:
        self._decay_handle = None
        self.transition(CaptureState.IDLE)

    def _notify(self, state: CaptureState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:
                logger.warning("State listener %r failed: %s", listener, exc)
