"""Async client for the quiz API, including the question polling workflow.

Quiz questions are written by a background job after the quiz row exists, so
a freshly created quiz usually has no questions yet. ``QuizPoller`` retries on
a fixed interval for a bounded number of attempts, supports a manual
"refresh now", and can be cancelled when its owner goes away.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx

from skillhire.config import settings


logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[list[dict[str, Any]]]]
OnUpdate = Callable[["QuizPoller"], None]


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    READY = "ready"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class QuizPoller:
    def __init__(
        self,
        fetch: Fetch,
        *,
        max_attempts: int | None = None,
        interval: float | None = None,
        on_update: OnUpdate | None = None,
    ) -> None:
        self._fetch = fetch
        self.max_attempts = max_attempts if max_attempts is not None else settings.poll_max_attempts
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ValueError("interval must not be negative")
        self._on_update = on_update

        self.state = PollState.IDLE
        self.attempts = 0
        self.questions: list[dict[str, Any]] = []
        self.last_error: BaseException | None = None

        self._inflight: asyncio.Task | None = None
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def _notify(self) -> None:
        if self._cancelled or self._on_update is None:
            return
        self._on_update(self)

    async def _fetch_once(self) -> list[dict[str, Any]]:
        # Only one request at a time: a second caller waits for the running one.
        if not self.fetching:
            self._inflight = asyncio.ensure_future(self._fetch())
        task = self._inflight
        try:
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            if self._cancelled:
                task.cancel()
            raise
        except Exception as exc:
            self.last_error = exc
            logger.warning("Fetching quiz questions failed: %s", exc)
            return []
        self.last_error = None
        return list(result or [])

    def _accept(self, questions: list[dict[str, Any]]) -> bool:
        if self._cancelled:
            return False
        if questions:
            self.questions = questions
            self.state = PollState.READY
        self._notify()
        return bool(questions)

    async def run(self) -> list[dict[str, Any]]:
        """Poll until questions arrive or the attempt budget is spent.

        Returns the questions, or an empty list when exhausted or cancelled.
        """

        if self._cancelled:
            return []
        self.state = PollState.POLLING
        while self.attempts < self.max_attempts:
            questions = await self._fetch_once()
            self.attempts += 1
            if self._accept(questions):
                return self.questions
            if self.state is PollState.READY:
                # A manual refresh found them while this fetch was running.
                return self.questions
            if self.attempts < self.max_attempts:
                logger.info("Quiz questions not ready (attempt %d/%d)", self.attempts, self.max_attempts)
                await asyncio.sleep(self.interval)
                if self.state is PollState.READY:
                    return self.questions

        if not self._cancelled and self.state is not PollState.READY:
            self.state = PollState.EXHAUSTED
            self._notify()
        return self.questions

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self.run())
        return self._task

    async def refresh_now(self) -> list[dict[str, Any]]:
        """One immediate fetch outside the automatic schedule."""

        if self._cancelled:
            return []
        questions = await self._fetch_once()
        self._accept(questions)
        return self.questions

    def cancel(self) -> None:
        self._cancelled = True
        self.state = PollState.CANCELLED
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()


class QuizApiError(RuntimeError):
    def __init__(self, status_code: int, detail: Any) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


class QuizApiClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        api_prefix: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._prefix = (api_prefix if api_prefix is not None else settings.api_prefix).rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self) -> "QuizApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        r = await self._http.request(method, f"{self._prefix}{path}", headers=self._headers, **kwargs)
        if r.status_code >= 400:
            try:
                body = r.json()
                detail = body.get("detail") or body.get("error") or body
            except ValueError:
                detail = r.text
            raise QuizApiError(r.status_code, detail)
        return r.json()

    async def generate_quiz(
        self,
        skills: list[dict[str, Any]],
        *,
        questions_per_skill: int | None = None,
        application_id: str | None = None,
        quiz_id: str | None = None,
        background: bool = False,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"skills": skills, "background": background}
        if questions_per_skill is not None:
            body["questionsPerSkill"] = questions_per_skill
        if application_id is not None:
            body["applicationId"] = application_id
        if quiz_id is not None:
            body["quizId"] = quiz_id
        return await self._request("POST", "/quizzes/generate", json=body)

    async def fetch_questions(self, quiz_id: str) -> list[dict[str, Any]]:
        body = await self._request("GET", f"/quizzes/{quiz_id}/questions")
        return list(body.get("questions") or [])

    async def submit_answers(self, quiz_id: str, answers: dict[str, str]) -> dict[str, Any]:
        return await self._request("POST", f"/quizzes/{quiz_id}/submit", json={"answers": answers})

    def poll_questions(
        self,
        quiz_id: str,
        *,
        max_attempts: int | None = None,
        interval: float | None = None,
        on_update: OnUpdate | None = None,
    ) -> QuizPoller:
        async def fetch() -> list[dict[str, Any]]:
            return await self.fetch_questions(quiz_id)

        return QuizPoller(fetch, max_attempts=max_attempts, interval=interval, on_update=on_update)
