"""
Data models for DynamoDB stream indexing.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from dynamo_es_stream.stream_types import BulkResponse

Document = dict[str, Any]

EVENT_INSERT = "INSERT"
EVENT_MODIFY = "MODIFY"
EVENT_REMOVE = "REMOVE"

VERSION_TYPE_EXTERNAL = "external"


def empty_bulk_response() -> BulkResponse:
    """Result returned when a batch produces no bulk actions."""
    return {"took": 0, "errors": False, "items": []}


@dataclass(frozen=True)
class ParsedStreamRecord:
    """Stream record images decoded into plain Python values."""

    keys: Mapping[str, Any]
    new_image: Mapping[str, Any]
    old_image: Mapping[str, Any]

    def images(self) -> tuple[Mapping[str, Any], ...]:
        """Images in field lookup order: keys, then new, then old."""
        return (self.keys, self.new_image, self.old_image)

    def as_dict(self) -> dict[str, Any]:
        """Return the images under their stream record names."""
        return {
            "Keys": dict(self.keys),
            "NewImage": dict(self.new_image),
            "OldImage": dict(self.old_image),
        }


@dataclass(frozen=True)
class ActionDescriptor:  # pylint: disable=too-many-instance-attributes
    """Bulk action metadata for one document."""

    index: str
    doc_id: Any
    doc_type: Optional[str] = None
    parent: Any = None
    version: Optional[int | float] = None
    version_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the Elasticsearch bulk action metadata line."""
        action: dict[str, Any] = {"_index": self.index}
        # Blank types are never sent
        if self.doc_type:
            action["_type"] = self.doc_type
        action["_id"] = self.doc_id
        if self.parent is not None:
            action["parent"] = self.parent
        if self.version is not None:
            action["version"] = self.version
            action["version_type"] = self.version_type
        return action


@dataclass(frozen=True)
class BuiltAction:
    """Document and action descriptor built from one parsed record."""

    doc: Optional[Document]
    action: ActionDescriptor


@dataclass(frozen=True)
class IndexedRecord:
    """Per-record metadata handed to the after hook."""

    event: Mapping[str, Any]
    action: Mapping[str, Any]
    document: Optional[Document]


@dataclass
class BulkRequest:
    """Bulk body plus the metadata of every record that produced an action."""

    actions: list[dict[str, Any]] = field(default_factory=list)
    meta: list[IndexedRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no record produced a bulk action."""
        return not self.actions


__all__ = [
    "ActionDescriptor",
    "BuiltAction",
    "BulkRequest",
    "Document",
    "EVENT_INSERT",
    "EVENT_MODIFY",
    "EVENT_REMOVE",
    "IndexedRecord",
    "ParsedStreamRecord",
    "VERSION_TYPE_EXTERNAL",
    "empty_bulk_response",
]
