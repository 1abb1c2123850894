"""Clocked access to the generation service.

Every generation call made by a handler goes through a ``ClockedSynchronizer``:

- the call is stamped with the run's next clock tick when it is admitted,
  before any I/O, so identical runs produce identical tick sequences;
- at most ``max_concurrency`` calls are in flight across all handlers that
  share the synchronizer;
- batch results come back in request order, whatever order they finish in;
- every call is written to the context's ledger, and a completed ledger
  entry from an earlier attempt is replayed instead of calling again.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from .. import config as settings
from ..errors import GenerationCallError
from ..providers.base import BaseLLMProvider, GenerationRequest
from .context import CallRecord, ContextKey, ExecutionContext

logger = logging.getLogger(__name__)


class ClockedSynchronizer:
    """
    Bounded, clock-stamped gateway between handlers and a provider.

    Args:
        provider: Generation client every call is sent to
        max_concurrency: Calls allowed in flight at once (shared by all users)
        timeout: Default per-call deadline in seconds, None for no deadline
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        max_concurrency: int = settings.BATCH_CONCURRENCY,
        timeout: Optional[float] = settings.REQUEST_TIMEOUT or None,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

        self.provider = provider
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def call_one(
        self,
        context: ExecutionContext,
        label: str,
        operation_id: ContextKey | str,
        request: GenerationRequest,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Issue one request and return the completion text.

        Args:
            context: Run context owning the clock and ledger
            label: Human-readable purpose of the call (logging only)
            operation_id: Operation the call belongs to (logging and replay key)
            request: Completion request
            timeout: Per-call deadline overriding the synchronizer default

        Raises:
            GenerationCallError: If the call fails or exceeds its deadline
        """
        record, replayed = self._admit(context, label, str(operation_id), request)
        return await self._resolve(record, replayed, request, self._deadline(timeout))

    async def call_batch(
        self,
        context: ExecutionContext,
        label: str,
        operation_id: ContextKey | str,
        requests: Sequence[GenerationRequest],
        partial: bool = False,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> List[Optional[str]]:
        """
        Issue many requests concurrently and return results in request order.

        result[i] always belongs to requests[i]. By default the batch is
        fail-fast: the first failing call cancels its pending siblings and the
        whole batch raises. With partial=True failed slots come back as None
        and the failures stay visible in the ledger.

        Args:
            context: Run context owning the clock and ledger
            label: Human-readable purpose of the batch (logging only)
            operation_id: Operation the calls belong to
            requests: Ordered completion requests
            partial: Return None for failed calls instead of raising
            timeout: Per-call deadline overriding the synchronizer default
            deadline: Deadline in seconds for the batch as a whole

        Raises:
            GenerationCallError: On the first failure (fail-fast) or when the
                batch deadline passes
        """
        requests = list(requests)
        if not requests:
            return []

        op_id = str(operation_id)
        admissions = [self._admit(context, label, op_id, r) for r in requests]
        ticks = [record.tick for record, _ in admissions]
        logger.info(
            f"{op_id} '{label}': admitted {len(requests)} calls "
            f"(ticks {min(ticks)}-{max(ticks)}, max_concurrency={self.max_concurrency})"
        )

        per_call = self._deadline(timeout)
        tasks = [
            asyncio.ensure_future(self._resolve(record, replayed, request, per_call))
            for (record, replayed), request in zip(admissions, requests)
        ]

        try:
            results = await asyncio.wait_for(
                asyncio.gather(*tasks, return_exceptions=partial), deadline
            )
        except asyncio.TimeoutError as e:
            await self._cancel(tasks)
            raise GenerationCallError(
                f"{op_id} '{label}': batch exceeded deadline of {deadline}s",
                operation_id=op_id,
            ) from e
        except BaseException:
            await self._cancel(tasks)
            raise

        if not partial:
            logger.info(f"{op_id} '{label}': ✓ {len(results)} calls completed")
            return results

        ordered: List[Optional[str]] = []
        for result in results:
            if isinstance(result, GenerationCallError):
                ordered.append(None)
            elif isinstance(result, BaseException):
                raise result
            else:
                ordered.append(result)

        failed = sum(1 for r in ordered if r is None)
        logger.info(
            f"{op_id} '{label}': {len(ordered) - failed} calls completed, {failed} failed"
        )
        return ordered

    async def stream_one(
        self,
        context: ExecutionContext,
        label: str,
        operation_id: ContextKey | str,
        request: GenerationRequest,
    ) -> AsyncIterator[str]:
        """
        Stream one completion while holding a concurrency slot.

        The concatenated text is recorded in the ledger once the stream ends.
        A replayed call yields its recorded response as a single chunk.
        """
        record, replayed = self._admit(context, label, str(operation_id), request)
        if replayed:
            yield record.response
            return

        chunks = []
        async with self._semaphore:
            record.status = "running"
            try:
                async for chunk in self.provider.complete_stream(request):
                    chunks.append(chunk)
                    yield chunk
            except (asyncio.CancelledError, GeneratorExit):
                # Consumer stopped early or the task was cancelled
                record.status = "cancelled"
                raise
            except GenerationCallError as e:
                raise self._fail(record, e.message) from e
            except Exception as e:
                raise self._fail(record, f"unexpected provider error: {e!r}") from e

        record.status = "completed"
        record.response = "".join(chunks)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self.timeout

    def _admit(
        self,
        context: ExecutionContext,
        label: str,
        operation_id: str,
        request: GenerationRequest,
    ) -> Tuple[CallRecord, bool]:
        """Stamp a request with a tick, or match it to a completed ledger entry."""
        fingerprint = request.fingerprint()

        replay = context.claim_completed_call(operation_id, fingerprint)
        if replay is not None:
            logger.info(
                f"[tick {replay.tick}] {operation_id} '{label}': replaying recorded response"
            )
            return replay, True

        record = CallRecord(
            tick=context.next_tick(),
            label=label,
            operation_id=operation_id,
            fingerprint=fingerprint,
        )
        context.record_call(record)
        logger.debug(f"[tick {record.tick}] {operation_id} '{label}': admitted")
        return record, False

    async def _resolve(
        self,
        record: CallRecord,
        replayed: bool,
        request: GenerationRequest,
        timeout: Optional[float],
    ) -> str:
        if replayed:
            return record.response
        return await self._dispatch(record, request, timeout)

    async def _dispatch(
        self,
        record: CallRecord,
        request: GenerationRequest,
        timeout: Optional[float],
    ) -> str:
        async with self._semaphore:
            record.status = "running"
            logger.debug(f"[tick {record.tick}] sending to {request.model}")
            try:
                content = await asyncio.wait_for(
                    self.provider.complete(request), timeout
                )
            except asyncio.CancelledError:
                record.status = "cancelled"
                raise
            except asyncio.TimeoutError as e:
                raise self._fail(record, f"timed out after {timeout}s") from e
            except GenerationCallError as e:
                raise self._fail(record, e.message) from e
            except Exception as e:
                raise self._fail(record, f"unexpected provider error: {e!r}") from e

        if not isinstance(content, str):
            raise self._fail(
                record, f"provider returned {type(content).__name__}, expected text"
            )

        record.status = "completed"
        record.response = content
        logger.debug(f"[tick {record.tick}] ✓ {len(content)} chars")
        return content

    def _fail(self, record: CallRecord, message: str) -> GenerationCallError:
        record.status = "failed"
        record.error = message
        logger.error(f"[tick {record.tick}] ✗ {record.operation_id} '{record.label}': {message}")
        return GenerationCallError(
            f"[tick {record.tick}] {record.operation_id} '{record.label}': {message}",
            tick=record.tick,
            operation_id=record.operation_id,
        )

    @staticmethod
    async def _cancel(tasks: List[asyncio.Future]) -> None:
        """Cancel unfinished calls and wait for them to settle."""
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
