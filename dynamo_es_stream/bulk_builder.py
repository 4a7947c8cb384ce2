"""
Bulk request building logic for DynamoDB stream records.

Maps every stream record of a batch to an Elasticsearch bulk action (plus
document for upserts) and records per-record metadata for the after hook.
"""

from __future__ import annotations

import dataclasses
import logging
from numbers import Number
from typing import Any, Mapping, Optional, Sequence

from dynamo_es_stream.config import HandlerOptions
from dynamo_es_stream.errors import UnknownEventNameError, ValidationError
from dynamo_es_stream.fields import assemble_field, get_field, pick_fields
from dynamo_es_stream.models import (
    EVENT_INSERT,
    EVENT_MODIFY,
    EVENT_REMOVE,
    VERSION_TYPE_EXTERNAL,
    ActionDescriptor,
    BuiltAction,
    BulkRequest,
    Document,
    IndexedRecord,
    ParsedStreamRecord,
)
from dynamo_es_stream.parsing import merge_event, parse_record
from dynamo_es_stream.stream_types import DynamoDBStreamEvent, LambdaContext

logger = logging.getLogger(__name__)


def build_doc(
    parsed_record: ParsedStreamRecord, options: HandlerOptions
) -> Optional[Document]:
    """Build the document to index; a falsy result means skip the record."""
    doc: Document = (
        pick_fields(parsed_record.new_image, options.pick_fields)
        if options.pick_fields
        else dict(parsed_record.new_image)
    )

    if options.transform_record_hook:
        return options.transform_record_hook(doc, dict(parsed_record.old_image))
    return doc


def _validate_version(version: Any, label: str) -> Any:
    if isinstance(version, bool) or not isinstance(version, Number):
        raise ValidationError([f'"{label}" must be a number'])
    return version


def build_action(
    parsed_record: ParsedStreamRecord, options: HandlerOptions
) -> BuiltAction:
    """
    Build the document and bulk action descriptor for one record.

    Raises:
        FieldNotFoundError: If a configured field path is missing
        ValidationError: If the resolved version is not a number
    """
    separator = options.separator
    doc = build_doc(parsed_record, options)
    old_image = dict(parsed_record.old_image)

    if options.id_resolver:
        doc_id = options.id_resolver(doc, old_image)
    elif options.id_field:
        doc_id = assemble_field(parsed_record, options.id_field, separator)
    else:
        # Key attribute names double as lookup paths
        doc_id = assemble_field(
            parsed_record, list(parsed_record.keys), separator
        )

    if options.index is not None:
        index = options.index
    else:
        index_name = assemble_field(parsed_record, options.index_field, separator)
        index = f"{options.index_prefix or ''}{index_name}"

    doc_type = options.type
    if not doc_type and options.type_field:
        doc_type = assemble_field(parsed_record, options.type_field, separator)

    parent = (
        get_field(parsed_record, options.parent_field)
        if options.parent_field
        else None
    )

    version = None
    version_type = None
    if options.version_resolver:
        version = _validate_version(
            options.version_resolver(doc, old_image), "resolved version"
        )
        version_type = VERSION_TYPE_EXTERNAL
    elif options.version_field:
        version = _validate_version(
            get_field(parsed_record, options.version_field),
            options.version_field,
        )
        version_type = VERSION_TYPE_EXTERNAL

    return BuiltAction(
        doc=doc,
        action=ActionDescriptor(
            index=index,
            doc_id=doc_id,
            doc_type=doc_type or None,
            parent=parent,
            version=version,
            version_type=version_type,
        ),
    )


def _is_skipped(doc: Any) -> bool:
    # Containers are documents even when empty (REMOVE records have {})
    if isinstance(doc, (Mapping, Sequence)) and not isinstance(doc, str):
        return False
    return not doc


def _record_action(
    record: Mapping[str, Any], descriptor: ActionDescriptor
) -> dict[str, Any]:
    event_name = record.get("eventName")
    if event_name in (EVENT_INSERT, EVENT_MODIFY):
        return {"index": descriptor.to_dict()}
    if event_name == EVENT_REMOVE:
        # A delete must beat the last live version
        if descriptor.version is not None:
            descriptor = dataclasses.replace(
                descriptor, version=descriptor.version + 1
            )
        return {"delete": descriptor.to_dict()}
    raise UnknownEventNameError(record)


def build_request(
    event: DynamoDBStreamEvent,
    context: Optional[LambdaContext],
    options: HandlerOptions,
) -> BulkRequest:
    """
    Build the bulk body for every record of a stream event, in order.

    Records whose document is None or a falsy scalar are skipped. Any failure
    while mapping a record goes to ``options.record_error_hook`` when
    configured; otherwise the first one aborts the whole batch.
    """
    request = BulkRequest()

    for position, record in enumerate(event["Records"]):
        try:
            parsed_record = parse_record(record)
            built = build_action(parsed_record, options)
            if _is_skipped(built.doc):
                logger.debug(
                    "Skipping record without document",
                    extra={"position": position},
                )
                continue

            action = _record_action(record, built.action)
            request.actions.append(action)
            if "index" in action:
                request.actions.append(built.doc)

            request.meta.append(
                IndexedRecord(
                    event=merge_event(record, parsed_record),
                    action=action,
                    document=built.doc,
                )
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if not options.record_error_hook:
                raise
            logger.warning(
                "Failed to map stream record",
                extra={
                    "position": position,
                    "event_name": record.get("eventName"),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            if options.metrics is not None:
                options.metrics.count(
                    "StreamRecordError", 1, {"error_type": type(exc).__name__}
                )
            options.record_error_hook(event, context, exc)

    return request


__all__ = ["build_action", "build_doc", "build_request"]
