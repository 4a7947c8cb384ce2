"""
Stream indexing handler.

Validates an incoming DynamoDB stream event, builds one Elasticsearch bulk
request for it, submits the request with bounded retries and dispatches the
configured lifecycle hooks.

Example:
    ```python
    from elasticsearch import AsyncElasticsearch
    from dynamo_es_stream import StreamIndexHandler

    handler = StreamIndexHandler(
        {
            "elasticsearch": {"client": AsyncElasticsearch("http://es:9200")},
            "index": "products",
            "retry_options": {"retries": 2},
        }
    )

    def lambda_handler(event, context):
        return handler(event, context)
    ```
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from dynamo_es_stream.bulk_builder import build_request
from dynamo_es_stream.config import HandlerOptions, RetryOptions, load_options
from dynamo_es_stream.errors import ValidationError
from dynamo_es_stream.models import BulkRequest, empty_bulk_response
from dynamo_es_stream.stream_types import DynamoDBStreamEvent, LambdaContext

logger = logging.getLogger(__name__)


class _StreamRecordImages(BaseModel):
    model_config = ConfigDict(extra="allow")

    Keys: dict[str, Any]


class _StreamRecordShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    eventName: StrictStr  # pylint: disable=invalid-name
    dynamodb: _StreamRecordImages


class _StreamEventShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    Records: list[_StreamRecordShape]  # pylint: disable=invalid-name


def validate_event(event: Any) -> DynamoDBStreamEvent:
    """
    Check the shape of an incoming stream event; unknown fields are allowed.

    Raises:
        ValidationError: Listing every violation found
    """
    try:
        _StreamEventShape.model_validate(event)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc, root="event") from exc
    return event


def build_wait(retry_options: RetryOptions) -> wait_base:
    """Translate retry options into a tenacity wait strategy."""
    max_wait = (
        retry_options.max_timeout
        if retry_options.max_timeout is not None
        else float("inf")
    )
    if retry_options.randomize:
        return wait_random_exponential(
            multiplier=retry_options.min_timeout,
            exp_base=retry_options.factor,
            max=max_wait,
        )
    return wait_exponential(
        multiplier=retry_options.min_timeout,
        exp_base=retry_options.factor,
        max=max_wait,
    )


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class StreamIndexHandler:
    """
    Index DynamoDB stream batches into Elasticsearch.

    Options are validated on construction; an invalid configuration raises
    ``ValidationError`` immediately and never reaches the error hook.
    """

    def __init__(self, options: HandlerOptions | Mapping[str, Any] | None = None):
        self.options = load_options(options)
        self._wait = build_wait(self.options.retry_options)

    def __call__(
        self, event: Any, context: Optional[LambdaContext] = None
    ) -> Any:
        """Synchronous entry point, suitable as an AWS Lambda handler."""
        return asyncio.run(self.handle(event, context))

    async def handle(
        self, event: Any, context: Optional[LambdaContext] = None
    ) -> Any:
        """Process one stream event and return the bulk result."""
        options = self.options
        try:
            validate_event(event)

            if options.before_hook:
                await _resolve(options.before_hook(event, context))

            request = build_request(event, context, options)
            self._count("StreamRecordsReceived", len(event["Records"]))
            self._count("BulkActionsBuilt", len(request.meta))

            if request.is_empty:
                logger.info(
                    "No bulk actions built, skipping submission",
                    extra={"record_count": len(event["Records"])},
                )
                return empty_bulk_response()

            result = await self._submit(request)

            if options.after_hook:
                hook_result = await _resolve(
                    options.after_hook(event, context, result, request.meta)
                )
                if hook_result is not None:
                    return hook_result
            return result

        except Exception as exc:  # pylint: disable=broad-exception-caught
            if not options.error_hook:
                raise
            logger.exception(
                "Stream batch failed, handing off to error hook",
                extra={"error_type": type(exc).__name__},
            )
            return await _resolve(options.error_hook(event, context, exc))

    async def _submit(self, request: BulkRequest) -> Any:
        """Submit the bulk request, retrying the identical body on failure."""
        options = self.options
        attempts = options.retry_options.retries + 1
        bulk_kwargs = {**options.bulk_options, "body": request.actions}

        logger.info(
            "Submitting bulk request",
            extra={
                "action_count": len(request.meta),
                "max_attempts": attempts,
            },
        )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait,
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                self._count("BulkSubmitAttempt", 1)
                result = await _resolve(options.client.bulk(**bulk_kwargs))

        logger.info(
            "Bulk request succeeded",
            extra={"attempts": retrying.statistics.get("attempt_number", 1)},
        )
        return result

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome else None
        logger.warning(
            "Bulk request failed, retrying",
            extra={
                "attempt": retry_state.attempt_number,
                "error_type": type(error).__name__ if error else None,
                "error": str(error) if error else None,
            },
        )
        self._count("BulkSubmitRetry", 1)

    def _count(
        self, name: str, value: int, dimensions: Optional[Mapping[str, str]] = None
    ) -> None:
        if self.options.metrics is not None:
            self.options.metrics.count(name, value, dimensions)


def create_handler(
    options: HandlerOptions | Mapping[str, Any] | None = None,
) -> StreamIndexHandler:
    """Validate ``options`` and return a ready handler."""
    return StreamIndexHandler(options)


__all__ = [
    "StreamIndexHandler",
    "build_wait",
    "create_handler",
    "validate_event",
]
