from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from skillhire.client import PollState, QuizApiClient, QuizApiError, QuizPoller


QUESTIONS = [{"id": "q1", "question": "?", "options": ["a", "b", "c", "d"]}]


def _counting_fetch(results):
    calls = {"n": 0}
    results = list(results)

    async def fetch():
        calls["n"] += 1
        item = results.pop(0) if results else []
        if isinstance(item, Exception):
            raise item
        return item

    return fetch, calls


def test_poller_exhausts_after_max_attempts() -> None:
    fetch, calls = _counting_fetch([])
    updates: list[PollState] = []
    poller = QuizPoller(fetch, max_attempts=3, interval=0, on_update=lambda p: updates.append(p.state))

    result = asyncio.run(poller.run())

    assert result == []
    assert calls["n"] == 3
    assert poller.attempts == 3
    assert poller.state is PollState.EXHAUSTED
    assert updates[-1] is PollState.EXHAUSTED


def test_poller_stops_when_questions_arrive() -> None:
    fetch, calls = _counting_fetch([[], QUESTIONS, QUESTIONS])
    poller = QuizPoller(fetch, max_attempts=5, interval=0)

    assert asyncio.run(poller.run()) == QUESTIONS
    assert calls["n"] == 2
    assert poller.state is PollState.READY


def test_fetch_errors_count_as_attempts() -> None:
    fetch, calls = _counting_fetch([RuntimeError("boom"), RuntimeError("boom")])
    poller = QuizPoller(fetch, max_attempts=2, interval=0)

    asyncio.run(poller.run())

    assert calls["n"] == 2
    assert poller.state is PollState.EXHAUSTED
    assert isinstance(poller.last_error, RuntimeError)


def test_manual_refresh_does_not_consume_attempts() -> None:
    fetch, calls = _counting_fetch([[], [], [], QUESTIONS])
    poller = QuizPoller(fetch, max_attempts=3, interval=0)

    async def scenario():
        await poller.refresh_now()
        assert poller.attempts == 0
        return await poller.run()

    assert asyncio.run(scenario()) == QUESTIONS
    assert calls["n"] == 4
    assert poller.attempts == 3


def test_refresh_during_automatic_fetch_joins_it() -> None:
    calls = {"n": 0}

    async def scenario():
        gate = asyncio.Event()

        async def fetch():
            calls["n"] += 1
            await gate.wait()
            return QUESTIONS

        poller = QuizPoller(fetch, max_attempts=3, interval=0)
        task = poller.start()
        await asyncio.sleep(0)
        assert poller.fetching

        refresh = asyncio.ensure_future(poller.refresh_now())
        await asyncio.sleep(0)
        gate.set()
        await task
        await refresh
        return poller

    poller = asyncio.run(scenario())
    assert calls["n"] == 1
    assert poller.attempts == 1
    assert poller.state is PollState.READY


def test_cancel_stops_polling_and_notifications() -> None:
    fetch, calls = _counting_fetch([])
    updates: list[PollState] = []

    async def scenario():
        poller = QuizPoller(fetch, max_attempts=5, interval=30, on_update=lambda p: updates.append(p.state))
        task = poller.start()
        while poller.attempts < 1:
            await asyncio.sleep(0)
        poller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert await poller.refresh_now() == []
        return poller

    poller = asyncio.run(scenario())
    assert poller.state is PollState.CANCELLED
    assert calls["n"] == 1
    assert updates == [PollState.POLLING]


def test_poller_rejects_bad_configuration() -> None:
    fetch, _ = _counting_fetch([])
    with pytest.raises(ValueError):
        QuizPoller(fetch, max_attempts=0)
    with pytest.raises(ValueError):
        QuizPoller(fetch, interval=-1)


def _mock_client(handler) -> QuizApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")
    return QuizApiClient("http://testserver", "token-123", http_client=http)


def test_client_generate_sends_wire_names() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [], "quizId": "quiz-1", "pending": True})

    async def scenario():
        async with _mock_client(handler) as api:
            return await api.generate_quiz(
                [{"id": "s1", "name": "SQL", "proficiency": 3}],
                questions_per_skill=5,
                application_id="a1",
                background=True,
            )

    body = asyncio.run(scenario())
    assert body["quizId"] == "quiz-1"
    assert seen["path"] == "/api/quizzes/generate"
    assert seen["auth"] == "Bearer token-123"
    assert seen["body"]["questionsPerSkill"] == 5
    assert seen["body"]["applicationId"] == "a1"
    assert "quizId" not in seen["body"]


def test_client_raises_with_error_detail() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Skills array is required"})

    async def scenario():
        async with _mock_client(handler) as api:
            await api.generate_quiz([])

    with pytest.raises(QuizApiError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "Skills array is required"


def test_client_poll_questions_until_ready() -> None:
    responses = [
        {"quiz_id": "quiz-1", "status": "pending", "ready": False, "questions": []},
        {"quiz_id": "quiz-1", "status": "in_progress", "ready": True, "questions": QUESTIONS},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/quizzes/quiz-1/questions"
        return httpx.Response(200, json=responses.pop(0))

    async def scenario():
        async with _mock_client(handler) as api:
            poller = api.poll_questions("quiz-1", max_attempts=3, interval=0)
            questions = await poller.run()
            return poller, questions

    poller, questions = asyncio.run(scenario())
    assert questions == QUESTIONS
    assert poller.attempts == 2
