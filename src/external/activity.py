"""
src/external/activity.py
=========================
Activity History — VoiceWriter

Fire-and-forget record of completed dictation and polish actions.
History storage lives in the desktop shell; the default implementation
only writes a log line.
"""

import logging
from typing import Protocol

logger = logging.getLogger("voicewriter.external.activity")


class ActivityLog(Protocol):
    def log_action(self, action_type: str, input_text: str, output_text: str, status: str) -> None: ...


class LoggingActivityLog:
    def log_action(self, action_type: str, input_text: str, output_text: str, status: str) -> None:
        logger.info(
            "Logged %s: %s (%d chars in, %d chars out)",
            action_type, status, len(input_text or ""), len(output_text or ""),
        )
