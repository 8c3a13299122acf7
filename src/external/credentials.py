"""
src/external/credentials.py
============================
Credential Resolution — VoiceWriter

The pipeline only ever asks one question: "is there an API key, and
what is it?". Absence is an expected outcome (``no_api_key``), so
providers return None rather than raising.

Encrypted storage and key lifecycle belong to the desktop shell; the
default provider here reads the environment and a plain JSON config
file, which is what headless deployments use.
"""

import json
import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger("voicewriter.external.credentials")

API_KEY_ENV = "SARVAM_API_KEY"
_CONFIG_KEYS = ("sarvam_api_key", "apiKey")


class CredentialProvider(Protocol):
    def get_api_key(self) -> str | None: ...


class EnvCredentialProvider:
    """Resolve the key from ``SARVAM_API_KEY``, then from a JSON config file."""

    def __init__(self, config_path: Path | str | None = None):
        self._config_path = Path(config_path) if config_path else None

    def get_api_key(self) -> str | None:
        key = os.environ.get(API_KEY_ENV, "").strip()
        if key:
            return key
        return self._from_config()

    def _from_config(self) -> str | None:
        if self._config_path is None or not self._config_path.exists():
            return None
        try:
            config = json.loads(self._config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to parse %s: %s", self._config_path, exc)
            return None
        if not isinstance(config, dict):
            return None
        for name in _CONFIG_KEYS:
            value = config.get(name)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
