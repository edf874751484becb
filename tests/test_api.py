import asyncio
import json
import os
import tempfile
import unittest
from pathlib import Path

_IMPORT_DIR = tempfile.mkdtemp(prefix="chaincv-import-")
# Keep the module-level app away from the working directory and the network.
os.environ.setdefault("LIFECYCLE_DB_PATH", str(Path(_IMPORT_DIR) / "chaincv.db"))
os.environ.setdefault("UPLOAD_DIR", str(Path(_IMPORT_DIR) / "uploads"))
os.environ.setdefault("WORKER_ENABLED", "0")

from fastapi.testclient import TestClient

from chaincv.core.config import Settings
from chaincv.main import create_app

ANALYSIS = {
    "summary": "Full-stack engineer with strong delivery record.",
    "strengths": ["TypeScript", "Mentoring"],
    "areasForImprovement": ["Quantify impact"],
    "overallScore": 72,
}


class FakeModel:
    def generate(self, prompt):
        return "```json\n" + json.dumps(ANALYSIS) + "\n```"


async def run_until_idle(pool, queue, rounds=20):
    for _ in range(rounds):
        await pool.tick()
        await pool.drain()
        if queue.pending_count() == 0 and pool.busy_slots == 0:
            return


class ResumeApiTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        tmp_path = Path(self._tmp.name)
        settings = Settings(
            worker_enabled=False,
            rate_limit_enabled=False,
            upload_dir=str(tmp_path / "uploads"),
            lifecycle_db_path=str(tmp_path / "chaincv.db"),
            max_upload_mb=1,
        )
        self.app = create_app(settings, model=FakeModel())
        self.pipeline = self.app.state.pipeline
        self.client = TestClient(self.app)

    def tearDown(self):
        self.pipeline.store.close()
        self._tmp.cleanup()

    def _process_queue(self):
        asyncio.run(run_until_idle(self.pipeline.pool, self.pipeline.queue))

    def _upload(self, name, content, mime="text/plain"):
        return self.client.post("/v1/resumes/upload", files={"resume": (name, content, mime)})

    def test_root_and_health(self):
        root = self.client.get("/")
        self.assertEqual(root.status_code, 200)
        self.assertEqual(root.json(), {"ok": True, "msg": "ChainCV backend running"})

        health = self.client.get("/v1/health")
        self.assertEqual(health.status_code, 200)
        body = health.json()
        self.assertEqual(body["status"], "healthy")
        self.assertFalse(body["worker_enabled"])
        self.assertEqual(body["pending_tasks"], 0)

    def test_upload_without_file_is_rejected(self):
        response = self.client.post("/v1/resumes/upload", data={"owner_key": "someone"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "No file uploaded")

    def test_upload_with_unsupported_type_is_rejected(self):
        response = self._upload("resume.exe", b"MZ...", mime="application/octet-stream")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Unsupported file type", response.json()["detail"])

    def test_upload_too_large_is_rejected(self):
        response = self._upload("resume.txt", b"a" * (1024 * 1024 + 1))
        self.assertEqual(response.status_code, 400)
        self.assertIn("too large", response.json()["detail"])

    def test_upload_then_poll_until_completed(self):
        upload = self._upload("resume.txt", b"Jane Doe\nStaff engineer, 9 years of TypeScript.")
        self.assertEqual(upload.status_code, 201)
        body = upload.json()
        self.assertEqual(body["status"], "UPLOADED")
        self.assertEqual(body["filename"], "resume.txt")
        self.assertTrue(body["workflow_id"].startswith("resume_analysis-"))
        resume_id = body["id"]

        pending = self.client.get(f"/v1/resumes/{resume_id}/status")
        self.assertEqual(pending.json(), {"status": "PENDING"})
        self.assertEqual(self.client.get(f"/v1/resumes/{resume_id}/analysis").status_code, 404)

        self._process_queue()

        completed = self.client.get(f"/v1/resumes/{resume_id}/status")
        self.assertEqual(completed.status_code, 200)
        self.assertEqual(completed.json(), {"status": "COMPLETED", "data": ANALYSIS})

        analysis = self.client.get(f"/v1/resumes/{resume_id}/analysis")
        self.assertEqual(analysis.status_code, 200)
        self.assertEqual(analysis.json()["resume_id"], resume_id)
        self.assertEqual(analysis.json()["analysis_data"], ANALYSIS)

    def test_blank_document_fails_with_message(self):
        upload = self._upload("blank.txt", b"   \n\t \n")
        resume_id = upload.json()["id"]

        self._process_queue()

        status = self.client.get(f"/v1/resumes/{resume_id}/status").json()
        self.assertEqual(status["status"], "FAILED")
        self.assertIn("empty content", status["message"])
        self.assertNotIn("data", status)

    def test_retry_only_from_failed(self):
        failed_id = self._upload("blank.txt", b"  ").json()["id"]
        completed_id = self._upload("resume.txt", b"Backend engineer, Go and Postgres.").json()["id"]
        self._process_queue()

        conflict = self.client.post(f"/v1/resumes/{completed_id}/retry")
        self.assertEqual(conflict.status_code, 409)

        retried = self.client.post(f"/v1/resumes/{failed_id}/retry")
        self.assertEqual(retried.status_code, 200)
        self.assertEqual(retried.json()["status"], "UPLOADED")
        self.assertEqual(self.client.get(f"/v1/resumes/{failed_id}/status").json(), {"status": "PENDING"})

        self.assertEqual(self.client.post("/v1/resumes/missing/retry").status_code, 404)

    def test_unknown_resume_status_is_404(self):
        response = self.client.get("/v1/resumes/does-not-exist/status")
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
