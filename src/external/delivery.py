"""
src/external/delivery.py
=========================
Text Delivery — VoiceWriter

Delivery puts the final text into whatever application has input focus
(clipboard write + simulated paste). That work happens outside this
process; here we only define the contract and two adapters:

    WebhookDeliverer — POST {"text": ...} to a desktop agent that
                       performs the clipboard write and paste
    LogDeliverer     — headless default; logs the text and succeeds

A deliverer returns True on success and False on failure. It may also
raise; the orchestrator treats both the same way.
"""

import logging
from typing import Protocol

import aiohttp

logger = logging.getLogger("voicewriter.external.delivery")

DELIVERY_TIMEOUT_SECONDS: float = 30.0


class Deliverer(Protocol):
    async def deliver(self, text: str) -> bool: ...


class WebhookDeliverer:
    def __init__(self, url: str, timeout: float = DELIVERY_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    async def deliver(self, text: str) -> bool:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    json={"text": text},
                    headers={"Content-Type": "application/json"},
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    logger.info("Delivery POST to %s — status %d", self.url, resp.status)
                    return 200 <= resp.status < 300
        except Exception as exc:
            logger.error("Delivery POST failed: %s", exc)
            return False


class LogDeliverer:
    async def deliver(self, text: str) -> bool:
        logger.info("Delivering text: %s...", text[:50])
        return True
