"""Unit tests for the concurrent sub-task executor.

Test coverage:
1. Output order matches input order regardless of completion order
2. Failure isolation between sub-tasks
3. Timeout, unknown kind and unexpected exceptions as failed SubResults
4. Concurrency bound
"""

import asyncio
import random

import pytest

from src.agents.query_orchestrator.executor import SubTaskExecutor
from src.agents.query_orchestrator.handlers import handle_calculation
from src.agents.query_orchestrator.models import SubRequest, SubRequestKind


def make_requests(*texts, kind=SubRequestKind.KNOWLEDGE_QUERY):
    return [SubRequest(id=f"sub_{i}", text=t, kind=kind, confidence=0.9) for i, t in enumerate(texts, 1)]


async def echo(sub_request):
    return f"answer: {sub_request.text}"


class TestExecuteAll:
    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await SubTaskExecutor({}).execute_all([]) == []

    @pytest.mark.asyncio
    async def test_order_is_preserved_under_random_delays(self):
        async def jittery(sub_request):
            await asyncio.sleep(random.uniform(0, 0.02))
            return sub_request.text

        requests = make_requests(*[f"q{i}" for i in range(20)])
        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: jittery})

        results = await executor.execute_all(requests)

        assert [r.id for r in results] == [r.id for r in requests]
        assert [r.output for r in results] == [r.text for r in requests]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self):
        requests = [
            SubRequest(id="k", text="what is PPI", kind=SubRequestKind.KNOWLEDGE_QUERY, confidence=0.9),
            SubRequest(id="c", text="please compute", kind=SubRequestKind.CALCULATION, confidence=0.9),
            SubRequest(id="c2", text="2 * 21", kind=SubRequestKind.CALCULATION, confidence=0.9),
        ]
        executor = SubTaskExecutor(
            {SubRequestKind.KNOWLEDGE_QUERY: echo, SubRequestKind.CALCULATION: handle_calculation}
        )

        results = await executor.execute_all(requests)

        assert [r.succeeded for r in results] == [True, False, True]
        assert results[1].failure_reason.startswith("InsufficientOperands")
        assert results[1].output == ""
        assert results[2].output == "2 × 21 = 42"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        active = 0
        peak = 0

        async def tracked(sub_request):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return "ok"

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: tracked}, max_concurrency=2)
        results = await executor.execute_all(make_requests(*["q"] * 6))

        assert all(r.succeeded for r in results)
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_runs_concurrently(self):
        async def slow(sub_request):
            await asyncio.sleep(0.1)
            return "done"

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: slow})
        loop = asyncio.get_running_loop()
        started = loop.time()

        await executor.execute_all(make_requests("a", "b", "c", "d"))

        assert loop.time() - started < 0.35


class TestExecuteOne:
    @pytest.mark.asyncio
    async def test_timeout_becomes_failed_result(self):
        async def hang(sub_request):
            await asyncio.sleep(5)
            return "never"

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: hang}, task_timeout_seconds=0.05)

        result = await executor.execute_one(make_requests("slow")[0])

        assert result.succeeded is False
        assert result.failure_reason == "Timeout: sub-task exceeded 0.05s"

    @pytest.mark.asyncio
    async def test_expired_handler_is_cancelled(self):
        cancelled = asyncio.Event()

        async def hang(sub_request):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return "never"

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: hang}, task_timeout_seconds=0.05)

        await executor.execute_one(make_requests("slow")[0])

        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_timeout_raised_by_handler_keeps_its_cause(self):
        async def upstream_timeout(sub_request):
            raise TimeoutError("upstream socket timed out")

        executor = SubTaskExecutor(
            {SubRequestKind.KNOWLEDGE_QUERY: upstream_timeout}, task_timeout_seconds=30
        )

        result = await executor.execute_one(make_requests("x")[0])

        assert result.succeeded is False
        assert result.failure_reason == "TimeoutError: upstream socket timed out"

    @pytest.mark.asyncio
    async def test_missing_handler(self):
        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: echo})

        result = await executor.execute_one(make_requests("12 * 8", kind=SubRequestKind.WEATHER_LOOKUP)[0])

        assert result.succeeded is False
        assert result.failure_reason.startswith("UnknownSubRequestKind")

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_named(self):
        async def broken(sub_request):
            raise KeyError("missing")

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: broken})

        result = await executor.execute_one(make_requests("x")[0])

        assert result.succeeded is False
        assert result.failure_reason.startswith("KeyError")

    @pytest.mark.asyncio
    async def test_non_text_output_is_a_failure(self):
        async def numeric(sub_request):
            return 42

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: numeric})

        result = await executor.execute_one(make_requests("x")[0])

        assert result.failure_reason.startswith("TypeError")

    @pytest.mark.asyncio
    async def test_success_records_duration(self):
        async def slowish(sub_request):
            await asyncio.sleep(0.02)
            return "ok"

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: slowish})

        result = await executor.execute_one(make_requests("x")[0])

        assert result.succeeded is True
        assert result.duration_ms >= 15

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        async def cancelled(sub_request):
            raise asyncio.CancelledError()

        executor = SubTaskExecutor({SubRequestKind.KNOWLEDGE_QUERY: cancelled}, task_timeout_seconds=None)

        with pytest.raises(asyncio.CancelledError):
            await executor.execute_one(make_requests("x")[0])
