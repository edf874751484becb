import asyncio
import tempfile
import unittest
from pathlib import Path

import httpx

from chaincv.client.poller import (
    STATUS_FAILED_MESSAGE,
    UPLOAD_FAILED_MESSAGE,
    ClientState,
    ResumeAnalysisClient,
)

ANALYSIS = {"summary": "x", "strengths": ["a"], "areasForImprovement": ["b"], "overallScore": 70}


class FakeServer:
    def __init__(self, statuses, upload_status=201):
        self.statuses = list(statuses)
        self.upload_status = upload_status
        self.status_calls = 0
        self.uploads = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/v1/resumes/upload":
            self.uploads += 1
            if self.upload_status >= 400:
                return httpx.Response(self.upload_status, json={"detail": "nope"})
            return httpx.Response(self.upload_status, json={"id": "resume-1", "status": "UPLOADED"})

        if request.method == "GET" and request.url.path == "/v1/resumes/resume-1/status":
            self.status_calls += 1
            item = self.statuses[min(self.status_calls, len(self.statuses)) - 1]
            if isinstance(item, Exception):
                raise item
            return httpx.Response(200, json=item)

        return httpx.Response(404, json={"detail": "Not Found"})


class ResumeAnalysisClientTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.file_path = Path(self._tmp.name) / "resume.pdf"
        self.file_path.write_bytes(b"%PDF-1.4 fake")

    def tearDown(self):
        self._tmp.cleanup()

    def _client(self, server):
        http = httpx.AsyncClient(transport=httpx.MockTransport(server.handler), base_url="http://test")
        return ResumeAnalysisClient(poll_interval_s=0.01, http_client=http)

    async def test_pending_three_times_then_completed(self):
        pending = {"status": "PENDING"}
        server = FakeServer([pending, pending, pending, {"status": "COMPLETED", "data": ANALYSIS}])
        client = self._client(server)
        client.select_file(self.file_path)

        handle = await client.submit()
        await handle.wait()
        await asyncio.sleep(0.05)

        self.assertEqual(client.state, ClientState.COMPLETED)
        self.assertEqual(client.history[-3:], [ClientState.UPLOADING, ClientState.ANALYZING, ClientState.COMPLETED])
        self.assertEqual(client.history.count(ClientState.COMPLETED), 1)
        self.assertEqual(server.status_calls, 4)
        self.assertEqual(client.analysis.overallScore, 70)
        self.assertIsNone(client.active_poll)
        await client.aclose()

    async def test_failed_status_surfaces_server_message(self):
        server = FakeServer([{"status": "FAILED", "message": "PDF text extraction returned empty content"}])
        client = self._client(server)
        client.select_file(self.file_path)

        handle = await client.submit()
        await handle.wait()

        self.assertEqual(client.state, ClientState.ERROR)
        self.assertEqual(client.error_message, "PDF text extraction returned empty content")
        self.assertEqual(server.status_calls, 1)
        await client.aclose()

    async def test_network_error_stops_polling(self):
        server = FakeServer([httpx.ConnectError("connection refused")])
        client = self._client(server)
        client.select_file(self.file_path)

        handle = await client.submit()
        await handle.wait()
        await asyncio.sleep(0.05)

        self.assertEqual(client.state, ClientState.ERROR)
        self.assertEqual(client.error_message, STATUS_FAILED_MESSAGE)
        self.assertEqual(server.status_calls, 1)
        await client.aclose()

    async def test_non_object_status_body_is_an_error(self):
        server = FakeServer([["unexpected"]])
        client = self._client(server)
        client.select_file(self.file_path)

        handle = await client.submit()
        await handle.wait()

        self.assertEqual(client.state, ClientState.ERROR)
        self.assertEqual(client.error_message, STATUS_FAILED_MESSAGE)
        self.assertEqual(server.status_calls, 1)
        self.assertIsNone(client.active_poll)
        await client.aclose()

    async def test_upload_failure(self):
        server = FakeServer([], upload_status=500)
        client = self._client(server)
        client.select_file(self.file_path)

        handle = await client.submit()

        self.assertIsNone(handle)
        self.assertEqual(client.state, ClientState.ERROR)
        self.assertEqual(client.error_message, UPLOAD_FAILED_MESSAGE)
        self.assertEqual(server.status_calls, 0)
        await client.aclose()

    async def test_selecting_new_file_cancels_polling(self):
        server = FakeServer([{"status": "PENDING"}])
        client = self._client(server)
        client.select_file(self.file_path)

        handle = await client.submit()
        await asyncio.sleep(0.05)
        client.select_file(self.file_path)
        await handle.wait()
        calls = server.status_calls
        await asyncio.sleep(0.05)

        self.assertTrue(handle.cancelled)
        self.assertEqual(client.state, ClientState.IDLE)
        self.assertIsNone(client.active_poll)
        self.assertEqual(server.status_calls, calls)
        await client.aclose()

    async def test_starting_a_poll_cancels_the_previous_one(self):
        server = FakeServer([{"status": "PENDING"}])
        client = self._client(server)

        first = client.start_polling("resume-1")
        second = client.start_polling("resume-1")

        self.assertTrue(first.cancelled)
        self.assertFalse(second.cancelled)
        self.assertIs(client.active_poll, second)
        await client.aclose()
        await second.wait()

    async def test_submit_requires_a_file(self):
        client = self._client(FakeServer([]))
        with self.assertRaises(ValueError):
            await client.submit()
        await client.aclose()


if __name__ == "__main__":
    unittest.main()
