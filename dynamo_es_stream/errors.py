"""Custom exceptions for dynamo_es_stream."""

from __future__ import annotations

from typing import Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError


class StreamIndexError(Exception):
    """Base exception for all dynamo_es_stream errors."""


class ValidationError(StreamIndexError):
    """
    Raised when options, an incoming event or a resolved value are invalid.

    Carries every violation, not only the first one found.
    """

    def __init__(self, messages: Iterable[str]):
        self.messages = list(messages)
        super().__init__(". ".join(self.messages))

    @classmethod
    def from_pydantic(
        cls, error: PydanticValidationError, root: str = "options"
    ) -> "ValidationError":
        """Build from a pydantic error, one message per violation."""
        return cls(
            f'"{_format_location(item["loc"], root)}" {item["msg"]}'
            for item in error.errors()
        )


class FieldNotFoundError(StreamIndexError):
    """Raised when a field path resolves to nothing in a parsed record."""

    def __init__(self, record: object, path: str):
        super().__init__(f'"{path}" field not found in record')
        self.record = record
        self.path = path


class UnknownEventNameError(StreamIndexError):
    """Raised for stream records that are not INSERT, MODIFY or REMOVE."""

    def __init__(self, record: Mapping[str, object]):
        super().__init__(
            f'"{record.get("eventName")}" is an unknown event name'
        )
        self.record = record


def _format_location(loc: tuple[int | str, ...], root: str) -> str:
    if not loc:
        return root
    parts: list[str] = []
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        else:
            parts.append(f".{item}" if parts else item)
    return "".join(parts)


__all__ = [
    "FieldNotFoundError",
    "StreamIndexError",
    "UnknownEventNameError",
    "ValidationError",
]
