"""
Query Orchestrator - Sub-Task Executor
Version: 1.0
Purpose: Fan out SubRequests to their handlers concurrently and fan results
         back in, in input order
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Mapping, Optional

from .exceptions import OrchestrationError, SubTaskTimeout, UnknownSubRequestKind
from .handlers import Handler
from .models.orchestration_models import SubRequest, SubRequestKind, SubResult

logger = logging.getLogger(__name__)


# ============================================================================
# EXECUTOR CLASS
# ============================================================================


class SubTaskExecutor:
    """
    Runs every SubRequest of one request in parallel.

    Features:
    - Dispatches each SubRequest to exactly one handler by kind
    - Bounds concurrency with a semaphore
    - Bounds each task with a timeout, cancelling the handler on expiry
    - Converts every handler failure into a failed SubResult
    """

    def __init__(
        self,
        handlers: Mapping[SubRequestKind, Handler],
        max_concurrency: int = 8,
        task_timeout_seconds: Optional[float] = 30.0,
    ):
        self.handlers = dict(handlers)
        self.max_concurrency = max_concurrency
        self.task_timeout_seconds = task_timeout_seconds

    async def execute_all(self, sub_requests: List[SubRequest]) -> List[SubResult]:
        """
        Execute all sub-requests and wait for every one to settle.

        Returns:
            One SubResult per SubRequest, in input order
        """
        if not sub_requests:
            return []

        logger.info(f"Executing {len(sub_requests)} sub-requests")
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def execute_with_semaphore(sub_request: SubRequest) -> SubResult:
            async with semaphore:
                return await self.execute_one(sub_request)

        # gather preserves argument order regardless of completion order
        results = await asyncio.gather(*(execute_with_semaphore(sr) for sr in sub_requests))

        succeeded = sum(1 for r in results if r.succeeded)
        logger.info(f"Execution complete: {succeeded}/{len(results)} succeeded")
        return list(results)

    async def execute_one(self, sub_request: SubRequest) -> SubResult:
        """Execute a single sub-request; never raises."""
        start_time = time.perf_counter()
        logger.debug(f"Starting {sub_request.id} ({sub_request.kind.value}): {sub_request.text[:80]}")

        try:
            output = await self._run_handler(sub_request)
        except OrchestrationError as e:
            reason = e.as_failure_reason()
            logger.warning(f"Sub-task {sub_request.id} failed: {reason}")
            return SubResult.failure(sub_request, reason, _elapsed_ms(start_time))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            logger.error(f"Sub-task {sub_request.id} raised unexpectedly: {reason}", exc_info=True)
            return SubResult.failure(sub_request, reason, _elapsed_ms(start_time))

        duration_ms = _elapsed_ms(start_time)
        logger.debug(f"Sub-task {sub_request.id} succeeded in {duration_ms}ms")
        return SubResult.success(sub_request, output, duration_ms)

    async def _run_handler(self, sub_request: SubRequest) -> str:
        handler = self.handlers.get(sub_request.kind)
        if handler is None:
            raise UnknownSubRequestKind(f"No handler registered for {sub_request.kind.value}")

        if self.task_timeout_seconds is None:
            output = await handler(sub_request)
        else:
            output = await self._run_with_deadline(handler, sub_request)

        if not isinstance(output, str):
            raise TypeError(f"Handler returned {type(output).__name__}, expected str")
        return output

    async def _run_with_deadline(self, handler: Handler, sub_request: SubRequest) -> object:
        # asyncio.wait does not raise on expiry; a TimeoutError raised by the
        # handler itself surfaces through task.result() unchanged
        task = asyncio.ensure_future(handler(sub_request))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.task_timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise SubTaskTimeout(f"sub-task exceeded {self.task_timeout_seconds}s")
        return task.result()


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)
