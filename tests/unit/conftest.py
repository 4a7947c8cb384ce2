"""Shared fixtures for dynamo_es_stream unit tests."""

import uuid
from types import SimpleNamespace
from typing import Any, Callable, Mapping, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from boto3.dynamodb.types import TypeSerializer

_serializer = TypeSerializer()

BULK_RESULT = {"took": 3, "errors": False, "items": [{"index": {"status": 201}}]}


class MockMetrics:
    """Mock metrics recorder for testing."""

    def __init__(self) -> None:
        self.counts: list[tuple[str, int, Optional[Mapping[str, str]]]] = []

    def count(
        self,
        name: str,
        value: int,
        dimensions: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.counts.append((name, value, dimensions))

    def total(self, name: str) -> int:
        return sum(value for metric, value, _ in self.counts if metric == name)


def marshall(item: Mapping[str, Any]) -> dict[str, Any]:
    """Encode a plain dict as a DynamoDB attribute-value map."""
    return {key: _serializer.serialize(value) for key, value in item.items()}


def _stream_record(
    name: str = "INSERT",
    keys: Optional[Mapping[str, Any]] = None,
    new: Optional[Mapping[str, Any]] = None,
    old: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    keys = dict(keys) if keys is not None else {"id": str(uuid.uuid4())}
    new_image = None if name == "REMOVE" else {**(new or {}), **keys}
    old_image = None if name == "INSERT" else {**keys, **(old or {})}

    dynamodb: dict[str, Any] = {
        "Keys": marshall(keys),
        "StreamViewType": "NEW_AND_OLD_IMAGES",
    }
    if new_image is not None:
        dynamodb["NewImage"] = marshall(new_image)
    if old_image is not None:
        dynamodb["OldImage"] = marshall(old_image)

    return {
        "eventName": name,
        "eventSource": "aws:dynamodb",
        "dynamodb": dynamodb,
    }


@pytest.fixture
def format_event() -> Callable[..., dict[str, Any]]:
    """
    Build a stream event from plain record descriptions.

    Each record is a dict with optional ``name``, ``keys``, ``new`` and
    ``old`` entries; no argument builds a single INSERT with a random id key.
    """

    def _format(*records: Mapping[str, Any]) -> dict[str, Any]:
        shapes = records or ({},)
        return {"Records": [_stream_record(**shape) for shape in shapes]}

    return _format


@pytest.fixture
def lambda_context() -> SimpleNamespace:
    """Minimal Lambda context."""
    return SimpleNamespace(
        function_name="dynamo-es-stream",
        aws_request_id=str(uuid.uuid4()),
    )


@pytest.fixture
def es_client() -> Mock:
    """Elasticsearch client whose async bulk call succeeds."""
    client = Mock()
    client.bulk = AsyncMock(return_value=BULK_RESULT)
    return client


@pytest.fixture
def mock_metrics() -> MockMetrics:
    """Provide a MockMetrics instance for testing."""
    return MockMetrics()


__all__ = ["BULK_RESULT", "MockMetrics", "marshall"]
