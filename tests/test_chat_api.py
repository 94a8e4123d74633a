"""HTTP tests for /chat and /reports using FastAPI's TestClient."""
from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from main import create_app
from src.hotel_assistant.config import AssistantSettings
from src.hotel_assistant.events import decode_event, iter_sse_events
from src.hotel_data import HotelStore
from src.report_jobs import JobStore
from tests.fakes import RecordingMailer, ScriptedProvider, fixed_clock, make_booking, text_reply, tool_reply


class ApiTestCase(unittest.TestCase):
    token: str | None = None

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.settings = AssistantSettings(
            text_chunk_delay=0,
            admin_api_token=self.token,
            hotel_db_path=root / "hotel.db",
            jobs_db_path=root / "jobs.db",
        )
        self.hotel_store = HotelStore(self.settings.hotel_db_path)
        self.hotel_store.add_booking(make_booking())
        self.job_store = JobStore(self.settings.jobs_db_path)
        self.provider = ScriptedProvider([])
        self.mailer = RecordingMailer()
        self.app = create_app(
            self.settings,
            provider=self.provider,
            hotel_store=self.hotel_store,
            job_store=self.job_store,
            mailer=self.mailer,
            clock=fixed_clock,
            resume_jobs=False,
        )
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self.hotel_store.close()
        self.job_store.close()
        self._tmp.cleanup()


class TestChatEndpoint(ApiTestCase):
    def test_messages_must_be_an_array(self) -> None:
        response = self.client.post("/chat", json={"messages": "How many arrivals today?"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Messages array required"})
        self.assertEqual(self.provider.calls, [])

    def test_missing_messages(self) -> None:
        response = self.client.post("/chat", json={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Messages array required"})

    def test_malformed_entry(self) -> None:
        response = self.client.post("/chat", json={"messages": [{"role": "user"}]})
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_non_json_body(self) -> None:
        response = self.client.post("/chat", content=b"not json", headers={"Content-Type": "application/json"})
        self.assertEqual(response.status_code, 400)

    def test_streams_tool_round_and_text(self) -> None:
        self.provider.replies = [tool_reply("getTodaySnapshot"), text_reply("You have 1 arrival today.")]
        response = self.client.post(
            "/chat",
            json={
                "messages": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello! How can I help?"},
                    {"role": "user", "content": "How many arrivals today?"},
                ]
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
        self.assertEqual(response.headers["cache-control"], "no-cache")
        self.assertEqual(response.headers["connection"], "keep-alive")

        frames = [f for f in response.text.split("\n\n") if f]
        self.assertTrue(all(f.startswith("data: ") for f in frames))
        events = list(iter_sse_events(response.text))
        self.assertEqual(
            [e.type for e in events[:4]], ["thinking", "tool_start", "tool_result", "thinking"]
        )
        self.assertTrue(events[2].success)
        self.assertEqual(events[2].data["arrivals"], 1)
        self.assertIn("1 arrival", "".join(e.content for e in events if e.type == "text"))

        first_turn = self.provider.calls[0]["messages"]
        self.assertEqual(first_turn[0].role, "system")
        self.assertIn("Northern Capital Hotel", first_turn[0].content)
        self.assertIn("User Question: How many arrivals today?", first_turn[-1].content)
        self.assertIn("Arrivals Today: 1 guests", first_turn[-1].content)

    def test_provider_failure_is_an_error_event(self) -> None:
        self.provider.replies = [RuntimeError("model unavailable")]
        response = self.client.post("/chat", json={"messages": [{"role": "user", "content": "Hi"}]})
        self.assertEqual(response.status_code, 200)
        events = list(iter_sse_events(response.text))
        self.assertEqual([e.type for e in events], ["thinking", "error"])
        self.assertEqual(events[-1].message, "model unavailable")

    def test_decoder_ignores_unknown_event_types(self) -> None:
        self.assertIsNone(decode_event('{"type": "heartbeat"}'))
        self.assertEqual(decode_event('{"type": "text", "content": "hi"}').content, "hi")


class TestAuthenticatedChat(ApiTestCase):
    token = "s3cret"

    def test_missing_token(self) -> None:
        response = self.client.post("/chat", json={"messages": [{"role": "user", "content": "Hi"}]})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "error": "Not authenticated. Please login."})
        self.assertEqual(self.provider.calls, [])

    def test_wrong_token(self) -> None:
        self.client.cookies.set("auth_token", "guess")
        response = self.client.post("/chat", json={"messages": [{"role": "user", "content": "Hi"}]})
        self.assertEqual(response.status_code, 401)
        self.assertIn("Invalid or expired session", response.json()["error"])

    def test_bearer_token(self) -> None:
        self.provider.replies = [text_reply("Hello!")]
        response = self.client.post(
            "/chat",
            json={"messages": [{"role": "user", "content": "Hi"}]},
            headers={"Authorization": "Bearer s3cret"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([e.type for e in iter_sse_events(response.text)], ["thinking", "text"])


class TestReportsEndpoint(ApiTestCase):
    def test_schedule_and_inspect_report(self) -> None:
        with TestClient(self.app) as client:
            response = client.post(
                "/reports",
                json={
                    "reportType": "revenue",
                    "startDate": "2026-03-01",
                    "endDate": "2026-03-31",
                    "userEmail": "boss@example.com",
                },
            )
            self.assertEqual(response.status_code, 202)
            body = response.json()
            self.assertEqual(body["status"], "scheduled")
            run = client.get(f"/reports/{body['runId']}")
            self.assertEqual(run.status_code, 200)
            self.assertEqual(run.json()["name"], "report.generate")

    def test_invalid_report_request(self) -> None:
        response = self.client.post(
            "/reports",
            json={"startDate": "2026-03-31", "endDate": "2026-03-01", "userEmail": "boss@example.com"},
        )
        self.assertEqual(response.status_code, 422)

    def test_unknown_run(self) -> None:
        self.assertEqual(self.client.get("/reports/does-not-exist").status_code, 404)


if __name__ == "__main__":
    unittest.main()
