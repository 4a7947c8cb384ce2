"""
TypedDict and Protocol definitions for DynamoDB stream indexing.

Describes the stream event consumed by the handler, the Elasticsearch bulk
response it produces and the collaborators it calls.
"""

from typing import (
    Any,
    Literal,
    Mapping,
    Optional,
    Protocol,
    TypedDict,
    runtime_checkable,
)

# =============================================================================
# DynamoDB Stream Record Types
# =============================================================================

# Attribute-value encoded item, e.g. {"id": {"S": "abc"}, "n": {"N": "1"}}
DynamoDBItem = dict[str, dict[str, object]]


class StreamRecordDynamoDB(TypedDict, total=False):
    """The 'dynamodb' portion of a DynamoDB stream record."""

    Keys: DynamoDBItem
    NewImage: DynamoDBItem
    OldImage: DynamoDBItem
    SequenceNumber: str
    SizeBytes: int
    StreamViewType: Literal[
        "KEYS_ONLY", "NEW_IMAGE", "OLD_IMAGE", "NEW_AND_OLD_IMAGES"
    ]
    ApproximateCreationDateTime: int


class DynamoDBStreamRecord(TypedDict, total=False):
    """A single record from a DynamoDB stream event."""

    eventID: str
    eventName: str
    eventVersion: str
    eventSource: str
    awsRegion: str
    dynamodb: StreamRecordDynamoDB
    eventSourceARN: str


class DynamoDBStreamEvent(TypedDict):
    """DynamoDB stream event passed to the handler."""

    Records: list[DynamoDBStreamRecord]


# =============================================================================
# Elasticsearch Bulk Types
# =============================================================================


class BulkResponse(TypedDict):
    """Subset of the Elasticsearch bulk response the handler relies on."""

    took: int
    errors: bool
    items: list[dict[str, Any]]


@runtime_checkable
class BulkClient(Protocol):  # pylint: disable=too-few-public-methods
    """
    Anything exposing an Elasticsearch-style ``bulk`` call.

    ``bulk`` may return the response directly or an awaitable resolving to
    it, so both ``Elasticsearch`` and ``AsyncElasticsearch`` fit.
    """

    def bulk(self, **kwargs: Any) -> Any:
        """Submit a bulk request."""


# =============================================================================
# Lambda Context Protocol (for type hints)
# =============================================================================


class LambdaContext(Protocol):  # pylint: disable=too-few-public-methods
    """
    Protocol for AWS Lambda context object.

    Note: This is a simplified version. The actual context has more
    attributes, but these are the commonly used ones.
    """

    function_name: str
    aws_request_id: str

    def get_remaining_time_in_millis(self) -> int:
        """Get remaining execution time in milliseconds."""


# =============================================================================
# Metrics Protocol
# =============================================================================


@runtime_checkable
class MetricsRecorder(Protocol):  # pylint: disable=too-few-public-methods
    """Minimal protocol for metrics clients."""

    def count(
        self,
        name: str,
        value: int,
        dimensions: Optional[Mapping[str, str]] = None,
    ) -> object:
        """Record a count metric."""
        return None


__all__ = [
    "BulkClient",
    "BulkResponse",
    "DynamoDBItem",
    "DynamoDBStreamEvent",
    "DynamoDBStreamRecord",
    "LambdaContext",
    "MetricsRecorder",
    "StreamRecordDynamoDB",
]
