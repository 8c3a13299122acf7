# src/retention/__init__.py
# ==========================
# Retention Layer — VoiceWriter
#
# Background sweeper that reclaims stale ephemeral audio artifacts
# from the shared working directory.
#
# Public API:
#   sweep(directory) → SweepReport
#   start_retention(directory, interval_seconds) → asyncio.Task

from src.retention.service import SweepReport, start_retention, sweep  # noqa: F401

__all__ = ["SweepReport", "start_retention", "sweep"]
