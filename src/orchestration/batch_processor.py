"""Chunked batch processing through the retry executor.

Items are processed in chunks of ``concurrency``: items inside a chunk run
concurrently, chunks run one after another with a short pause in between.
A failing item never stops the batch.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

import structlog

from src.models.llm import RetryConfig
from src.observability.metrics import BATCH_ITEMS_TOTAL
from src.utils.exceptions import ErrorKind, InvalidRequestError, classify_error
from src.utils.retry import RetryExecutor

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")

INTER_CHUNK_DELAY_SECONDS = 0.1


@dataclass
class BatchItemResult(Generic[T, R]):
    """Outcome for one batch item, always carrying the original item."""

    item: T
    success: bool
    result: Optional[R] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class BatchProcessor:
    """Processes items against one provider in sequential chunks."""

    def __init__(
        self,
        retry_executor: RetryExecutor,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        inter_chunk_delay_seconds: float = INTER_CHUNK_DELAY_SECONDS,
    ) -> None:
        self.retry_executor = retry_executor
        self._sleep = sleep
        self.inter_chunk_delay_seconds = inter_chunk_delay_seconds

    async def _process_item(
        self,
        provider: str,
        item: T,
        processor: Callable[[T], Awaitable[R]],
        config: Optional[RetryConfig],
    ) -> BatchItemResult:
        try:
            result = await self.retry_executor.execute_with_retry(
                provider, lambda: processor(item), config
            )
        except Exception as e:
            BATCH_ITEMS_TOTAL.labels(provider=provider, status="failed").inc()
            return BatchItemResult(
                item=item,
                success=False,
                error=str(e),
                error_kind=classify_error(e),
            )
        BATCH_ITEMS_TOTAL.labels(provider=provider, status="success").inc()
        return BatchItemResult(item=item, success=True, result=result)

    async def process_batch(
        self,
        provider: str,
        items: Sequence[T],
        processor: Callable[[T], Awaitable[R]],
        concurrency: int = 3,
        config: Optional[RetryConfig] = None,
    ) -> List[BatchItemResult]:
        """Process ``items`` with ``processor`` through the retry executor.

        Args:
            provider: Provider name for rate limiting and metrics
            items: Items to process
            processor: Coroutine function applied to each item
            concurrency: Items processed concurrently per chunk
            config: Optional retry configuration override

        Returns:
            One BatchItemResult per item, in input order

        Raises:
            InvalidRequestError: If concurrency is below 1
        """
        if concurrency < 1:
            raise InvalidRequestError(f"concurrency must be >= 1, got {concurrency}")

        chunks = [
            list(items[i : i + concurrency]) for i in range(0, len(items), concurrency)
        ]
        results: List[BatchItemResult] = []

        logger.info(
            "batch_started",
            provider=provider,
            items=len(items),
            chunks=len(chunks),
            concurrency=concurrency,
        )

        for index, chunk in enumerate(chunks):
            chunk_results = await asyncio.gather(
                *[self._process_item(provider, item, processor, config) for item in chunk]
            )
            results.extend(chunk_results)
            if index < len(chunks) - 1:
                await self._sleep(self.inter_chunk_delay_seconds)

        failed = sum(1 for r in results if not r.success)
        logger.info(
            "batch_completed",
            provider=provider,
            successful=len(results) - failed,
            failed=failed,
        )
        return results
