"""Client for the upload-then-poll protocol.

The client mirrors the server lifecycle as ``idle -> uploading -> analyzing ->
completed | error``. Polling runs as one asyncio task per resume and is owned
through a ``PollHandle``; starting a new poll, or selecting a new file,
cancels the previous handle first so at most one loop is ever active.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import mimetypes
from enum import Enum
from pathlib import Path

import httpx
from pydantic import ValidationError

from chaincv.schemas.resume import AnalysisData

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "File upload failed"
STATUS_FAILED_MESSAGE = "Could not get analysis status."
INVALID_PAYLOAD_MESSAGE = "Received an invalid analysis payload."


class ClientState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


class PollHandle:
    def __init__(self, resume_id: str):
        self.resume_id = resume_id
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        if self._task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


class ResumeAnalysisClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        poll_interval_s: float = 3.0,
        timeout_s: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout_s)
        self._poll_interval_s = poll_interval_s
        self._poll: PollHandle | None = None

        self.state = ClientState.IDLE
        self.history: list[ClientState] = [ClientState.IDLE]
        self.file_path: Path | None = None
        self.resume_id: str | None = None
        self.analysis: AnalysisData | None = None
        self.error_message: str | None = None

    @property
    def active_poll(self) -> PollHandle | None:
        if self._poll is None or self._poll.done:
            return None
        return self._poll

    def _transition(self, state: ClientState) -> None:
        logger.debug("client_state %s -> %s resume_id=%s", self.state.value, state.value, self.resume_id)
        self.state = state
        self.history.append(state)

    def _fail(self, message: str) -> None:
        self.error_message = message
        self._transition(ClientState.ERROR)

    def cancel_polling(self) -> None:
        if self._poll is not None:
            self._poll.cancel()
            self._poll = None

    def select_file(self, file_path: str | Path) -> None:
        self.cancel_polling()
        self.file_path = Path(file_path)
        self.resume_id = None
        self.analysis = None
        self.error_message = None
        self._transition(ClientState.IDLE)

    async def submit(self) -> PollHandle | None:
        if self.file_path is None:
            raise ValueError("Select a file before submitting.")
        if self.state != ClientState.IDLE:
            raise RuntimeError(f"Cannot submit while {self.state.value}; select a file first.")

        self._transition(ClientState.UPLOADING)
        try:
            content = self.file_path.read_bytes()
            mime = mimetypes.guess_type(self.file_path.name)[0] or "application/octet-stream"
            response = await self._http.post(
                "/v1/resumes/upload",
                files={"resume": (self.file_path.name, content, mime)},
            )
            response.raise_for_status()
            resume_id = response.json()["id"]
        except (httpx.HTTPError, OSError, ValueError, KeyError) as exc:
            logger.warning("resume_upload_failed file=%s: %s", self.file_path.name, exc)
            self._fail(UPLOAD_FAILED_MESSAGE)
            return None

        self.resume_id = resume_id
        self._transition(ClientState.ANALYZING)
        return self.start_polling(resume_id)

    def start_polling(self, resume_id: str) -> PollHandle:
        self.cancel_polling()
        handle = PollHandle(resume_id)
        handle._task = asyncio.create_task(self._poll_loop(handle), name=f"poll:{resume_id}")
        self._poll = handle
        return handle

    async def _poll_loop(self, handle: PollHandle) -> None:
        while not handle.cancelled:
            await asyncio.sleep(self._poll_interval_s)
            if handle.cancelled:
                return

            try:
                response = await self._http.get(f"/v1/resumes/{handle.resume_id}/status")
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                if handle.cancelled:
                    return
                logger.warning("status_poll_failed resume_id=%s: %s", handle.resume_id, exc)
                self._fail(STATUS_FAILED_MESSAGE)
                return

            if handle.cancelled:
                return
            if not isinstance(body, dict):
                logger.warning("status_poll_malformed resume_id=%s body_type=%s", handle.resume_id, type(body).__name__)
                self._fail(STATUS_FAILED_MESSAGE)
                return

            status = body.get("status")
            if status == "COMPLETED":
                try:
                    self.analysis = AnalysisData.model_validate(body.get("data") or {})
                except ValidationError as exc:
                    logger.warning("analysis_payload_invalid resume_id=%s: %s", handle.resume_id, exc)
                    self._fail(INVALID_PAYLOAD_MESSAGE)
                    return
                self._transition(ClientState.COMPLETED)
                return
            if status == "FAILED":
                self._fail(body.get("message") or "Resume processing failed")
                return

    async def wait(self) -> None:
        if self._poll is not None:
            await self._poll.wait()

    async def aclose(self) -> None:
        self.cancel_polling()
        await self._http.aclose()
