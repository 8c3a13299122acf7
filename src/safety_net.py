"""
src/safety_net.py
==================
Process-wide safety net — VoiceWriter

Expected failures never reach here: the pipeline turns them into
results. What does reach here is a genuine bug, and the process exits
instead of carrying on in an unknown state.
"""

import asyncio
import logging
import os
import sys

logger = logging.getLogger("voicewriter.safety_net")

EXIT_CODE = 1
# Give log handlers a moment to flush before the process goes away.
EXIT_DELAY_SECONDS = 0.3


def install_excepthook() -> None:
    """Log uncaught exceptions at CRITICAL before the interpreter exits."""

    def _hook(exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        logger.critical("Uncaught exception: %s", exc, exc_info=(exc_type, exc, tb))
        sys.exit(EXIT_CODE)

    sys.excepthook = _hook


def install_loop_handler(loop: asyncio.AbstractEventLoop) -> None:
    """Terminate the process on any exception the event loop could not route."""

    def _handler(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        logger.critical(
            "Unhandled async error: %s",
            context.get("message", "unknown"),
            exc_info=exc if isinstance(exc, BaseException) else None,
        )
        loop.call_later(EXIT_DELAY_SECONDS, os._exit, EXIT_CODE)

    loop.set_exception_handler(_handler)
