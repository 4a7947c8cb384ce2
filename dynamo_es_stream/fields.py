"""
Field lookup helpers for parsed stream records.

Paths use dot notation (``"address.city"``); integer segments index into
lists (``"tags.0"``).
"""

from typing import Any, Mapping, Sequence

from dynamo_es_stream.errors import FieldNotFoundError
from dynamo_es_stream.models import ParsedStreamRecord

_MISSING = object()

FieldPath = str | Sequence[str]


def _split(path: str) -> list[str]:
    return path.split(".")


def _lookup(container: Any, path: str) -> Any:
    """Walk ``path`` through nested mappings/lists; ``_MISSING`` if absent."""
    current = container
    for segment in _split(path):
        if isinstance(current, Mapping):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            position = int(segment)
            if position >= len(current):
                return _MISSING
            current = current[position]
        else:
            return _MISSING
    return current


def get_field(record: ParsedStreamRecord, path: str) -> Any:
    """
    Resolve ``path`` against Keys, then NewImage, then OldImage.

    The first image containing the path wins, even when the stored value is
    ``None``.

    Raises:
        FieldNotFoundError: If no image contains the path
    """
    for image in record.images():
        value = _lookup(image, path)
        if value is not _MISSING:
            return value
    raise FieldNotFoundError(record, path)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def assemble_field(
    record: ParsedStreamRecord, paths: FieldPath, separator: str = "."
) -> Any:
    """
    Resolve a single path, or join several resolved paths with ``separator``.

    A single path returns the raw value without string conversion.
    """
    if isinstance(paths, str):
        return get_field(record, paths)
    return separator.join(_to_text(get_field(record, path)) for path in paths)


def pick_fields(doc: Mapping[str, Any], paths: FieldPath) -> dict[str, Any]:
    """
    Project ``doc`` onto ``paths``.

    Dotted paths produce nested output mirroring the input, so picking
    ``["a", "b.c"]`` from ``{"a": 1, "b": {"c": 2, "d": 3}}`` gives
    ``{"a": 1, "b": {"c": 2}}``. Paths missing from ``doc`` are skipped.
    """
    if isinstance(paths, str):
        paths = [paths]

    picked: dict[str, Any] = {}
    for path in paths:
        value = _lookup(doc, path)
        if value is _MISSING:
            continue
        *parents, leaf = _split(path)
        target = picked
        for segment in parents:
            target = target.setdefault(segment, {})
        target[leaf] = value
    return picked


__all__ = ["FieldPath", "assemble_field", "get_field", "pick_fields"]
