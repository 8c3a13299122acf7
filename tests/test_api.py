"""
tests/test_api.py
==================
Local Control Surface Tests

The pipeline and key check are mocked; these tests cover request
validation and response shapes only. TestClient is used without its
context manager, so startup hooks (retention) do not run.
"""

import os
import sys
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.api import app as app_module
from src.pipeline import PipelineResult
from src.state.machine import CaptureState
from src.stt.sarvam_client import KeyCheckResult


class TestControlSurface(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app_module.app)

    def tearDown(self):
        app_module.context.transition(CaptureState.IDLE)

    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_get_state(self):
        resp = self.client.get("/api/v1/state")
        self.assertEqual(resp.json(), {"state": "IDLE", "in_flight": False})

    def test_set_state(self):
        resp = self.client.post("/api/v1/state", json={"state": "listening"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"state": "LISTENING", "changed": True})

        resp = self.client.post("/api/v1/state", json={"state": "LISTENING"})
        self.assertEqual(resp.json(), {"state": "LISTENING", "changed": False})

    def test_set_unknown_state(self):
        resp = self.client.post("/api/v1/state", json={"state": "RECORDING"})
        self.assertEqual(resp.status_code, 422)
        self.assertIs(app_module.context.state, CaptureState.IDLE)

    def test_process_recording(self):
        pipeline = MagicMock()
        pipeline.process_recording = AsyncMock(
            return_value=PipelineResult(ok=True, text="Hello world.")
        )
        with patch.object(app_module, "pipeline", pipeline):
            resp = self.client.post(
                "/api/v1/process-recording", json={"file_path": "/tmp/recording-1.webm"}
            )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True, "text": "Hello world."})
        pipeline.process_recording.assert_awaited_once_with("/tmp/recording-1.webm")

    def test_process_recording_failure_is_still_200(self):
        pipeline = MagicMock()
        pipeline.process_recording = AsyncMock(
            return_value=PipelineResult(ok=False, error="transcription_failed")
        )
        with patch.object(app_module, "pipeline", pipeline):
            resp = self.client.post("/api/v1/process-recording", json={"file_path": "x.webm"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": False, "error": "transcription_failed"})

    def test_process_recording_requires_path(self):
        resp = self.client.post("/api/v1/process-recording", json={})
        self.assertEqual(resp.status_code, 422)

    def test_polish_text(self):
        pipeline = MagicMock()
        pipeline.polish_selection = AsyncMock(
            return_value=PipelineResult(ok=True, text="Polished.")
        )
        with patch.object(app_module, "pipeline", pipeline):
            resp = self.client.post("/api/v1/polish-text", json={"text": "polished"})

        self.assertEqual(resp.json(), {"ok": True, "text": "Polished."})
        pipeline.polish_selection.assert_awaited_once_with("polished")

    def test_test_key_with_explicit_key(self):
        check = MagicMock(return_value=KeyCheckResult(ok=True))
        with patch.object(app_module, "verify_api_key", check):
            resp = self.client.post("/api/v1/test-key", json={"api_key": "typed"})

        self.assertEqual(resp.json(), {"ok": True})
        check.assert_called_once_with("typed")

    def test_test_key_falls_back_to_stored_key(self):
        check = MagicMock(return_value=KeyCheckResult(ok=False, error="Invalid API key"))
        credentials = MagicMock()
        credentials.get_api_key.return_value = "stored"
        with patch.object(app_module, "verify_api_key", check), \
             patch.object(app_module, "credentials", credentials):
            resp = self.client.post("/api/v1/test-key", json={})

        self.assertEqual(resp.json(), {"ok": False, "error": "Invalid API key"})
        check.assert_called_once_with("stored")


if __name__ == "__main__":
    unittest.main()
