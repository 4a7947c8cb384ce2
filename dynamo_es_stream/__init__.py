"""
DynamoDB stream to Elasticsearch indexing.

This package turns each batch of DynamoDB stream records into one
Elasticsearch bulk request, with configurable document identity, external
versioning, bounded retries and lifecycle hooks.
"""

__version__ = "0.1.0"

from dynamo_es_stream.bulk_builder import build_action, build_doc, build_request
from dynamo_es_stream.config import (
    ElasticsearchOptions,
    HandlerOptions,
    RetryOptions,
    load_options,
)
from dynamo_es_stream.errors import (
    FieldNotFoundError,
    StreamIndexError,
    UnknownEventNameError,
    ValidationError,
)
from dynamo_es_stream.fields import assemble_field, get_field, pick_fields
from dynamo_es_stream.handler import (
    StreamIndexHandler,
    create_handler,
    validate_event,
)
from dynamo_es_stream.models import (
    ActionDescriptor,
    BulkRequest,
    IndexedRecord,
    ParsedStreamRecord,
    empty_bulk_response,
)
from dynamo_es_stream.parsing import parse_record, unmarshall

__all__ = [
    "__version__",
    "ActionDescriptor",
    "BulkRequest",
    "ElasticsearchOptions",
    "FieldNotFoundError",
    "HandlerOptions",
    "IndexedRecord",
    "ParsedStreamRecord",
    "RetryOptions",
    "StreamIndexError",
    "StreamIndexHandler",
    "UnknownEventNameError",
    "ValidationError",
    "assemble_field",
    "build_action",
    "build_doc",
    "build_request",
    "create_handler",
    "empty_bulk_response",
    "get_field",
    "load_options",
    "parse_record",
    "pick_fields",
    "unmarshall",
    "validate_event",
]
