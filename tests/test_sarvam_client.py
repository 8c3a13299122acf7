"""
tests/test_sarvam_client.py
============================
Sarvam AI Client Tests

Test categories:
    1. OFFLINE UNIT TESTS — segment upload against a fake aiohttp
       session, API key check against a mocked requests.post
    2. LIVE INTEGRATION TESTS — requires SARVAM_API_KEY
"""

import asyncio
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import aiohttp
import requests

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.errors import SegmentTranscriptionError
from src.stt import sarvam_client
from src.stt.sarvam_client import transcribe_segment, verify_api_key


# ===================================================================
# Fake aiohttp plumbing
# ===================================================================


class _FakeResponse:
    def __init__(self, status=200, body=None, text="", json_error=None):
        self.status = status
        self._body = body
        self._text = text
        self._json_error = json_error

    async def json(self, content_type="application/json"):
        if self._json_error is not None:
            raise self._json_error
        return self._body

    async def text(self):
        return self._text


class _FakeRequest:
    def __init__(self, response=None, exc=None):
        self._response = response
        self._exc = exc

    async def __aenter__(self):
        if self._exc is not None:
            raise self._exc
        return self._response

    async def __aexit__(self, *exc_info):
        return False


class _FakeSession:
    def __init__(self, response=None, exc=None):
        self._response = response
        self._exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return _FakeRequest(self._response, self._exc)


# ===================================================================
# 1. OFFLINE UNIT TESTS
# ===================================================================


class TestTranscribeSegment(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.segment = Path(self._tmp.name) / "recording-1_chunk_000.wav"
        self.segment.write_bytes(b"RIFF....WAVE")

    def tearDown(self):
        self._tmp.cleanup()

    async def test_success_returns_stripped_transcript(self):
        session = _FakeSession(_FakeResponse(body={"transcript": "  hello there  "}))
        text = await transcribe_segment(session, 0, self.segment, "secret")

        self.assertEqual(text, "hello there")
        url, kwargs = session.calls[0]
        self.assertEqual(url, sarvam_client.SARVAM_STT_ENDPOINT)
        self.assertEqual(kwargs["headers"], {"api-subscription-key": "secret"})
        self.assertIsInstance(kwargs["data"], aiohttp.FormData)
        self.assertEqual(kwargs["timeout"].total, 45.0)

    async def test_non_2xx_is_a_segment_failure(self):
        session = _FakeSession(_FakeResponse(status=429, text="rate limited"))
        with self.assertRaises(SegmentTranscriptionError) as ctx:
            await transcribe_segment(session, 3, self.segment, "secret")
        self.assertIn("HTTP 429", str(ctx.exception))
        self.assertEqual(ctx.exception.index, 3)

    async def test_missing_transcript_field(self):
        session = _FakeSession(_FakeResponse(body={"request_id": "abc"}))
        with self.assertRaises(SegmentTranscriptionError):
            await transcribe_segment(session, 0, self.segment, "secret")

    async def test_empty_transcript_field(self):
        session = _FakeSession(_FakeResponse(body={"transcript": "   "}))
        with self.assertRaises(SegmentTranscriptionError):
            await transcribe_segment(session, 0, self.segment, "secret")

    async def test_timeout(self):
        session = _FakeSession(exc=asyncio.TimeoutError())
        with self.assertRaises(SegmentTranscriptionError) as ctx:
            await transcribe_segment(session, 1, self.segment, "secret")
        self.assertIn("timed out", str(ctx.exception))

    async def test_transport_error(self):
        session = _FakeSession(exc=aiohttp.ClientConnectionError("refused"))
        with self.assertRaises(SegmentTranscriptionError):
            await transcribe_segment(session, 0, self.segment, "secret")

    async def test_invalid_json(self):
        session = _FakeSession(_FakeResponse(json_error=ValueError("not json")))
        with self.assertRaises(SegmentTranscriptionError):
            await transcribe_segment(session, 0, self.segment, "secret")

    async def test_unreadable_segment(self):
        session = _FakeSession(_FakeResponse(body={"transcript": "x"}))
        with self.assertRaises(SegmentTranscriptionError):
            await transcribe_segment(session, 0, self.segment.with_name("gone.wav"), "secret")
        self.assertEqual(session.calls, [])


class TestVerifyApiKey(unittest.TestCase):

    def test_missing_key(self):
        result = verify_api_key(None)
        self.assertFalse(result.ok)
        self.assertTrue(result.error)

    @patch("src.stt.sarvam_client.requests.post")
    def test_accepted_key(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        result = verify_api_key("good")
        self.assertTrue(result.ok)
        self.assertIsNone(result.error)
        kwargs = mock_post.call_args.kwargs
        self.assertEqual(kwargs["timeout"], 5.0)
        self.assertEqual(kwargs["json"]["max_tokens"], 1)
        self.assertEqual(kwargs["headers"]["api-subscription-key"], "good")

    @patch("src.stt.sarvam_client.requests.post")
    def test_rejected_key_surfaces_service_message(self, mock_post):
        resp = MagicMock(status_code=403)
        resp.json.return_value = {"error": {"message": "Invalid API key"}}
        resp.raise_for_status.side_effect = requests.HTTPError("403", response=resp)
        mock_post.return_value = resp

        result = verify_api_key("bad")
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "Invalid API key")

    @patch("src.stt.sarvam_client.requests.post", side_effect=requests.Timeout("timed out"))
    def test_timeout(self, _mock_post):
        result = verify_api_key("slow")
        self.assertFalse(result.ok)
        self.assertIn("timed out", result.error)


# ===================================================================
# 2. LIVE INTEGRATION TESTS (requires SARVAM_API_KEY)
# ===================================================================


@unittest.skipUnless(
    os.environ.get("SARVAM_API_KEY"),
    "SARVAM_API_KEY not set — skipping live integration tests",
)
class TestLiveKeyCheck(unittest.TestCase):

    def test_configured_key_is_accepted(self):
        result = verify_api_key(os.environ["SARVAM_API_KEY"])
        self.assertTrue(result.ok, result.error)


if __name__ == "__main__":
    unittest.main()
