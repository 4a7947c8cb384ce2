"""
Handler options for dynamo_es_stream.

Options are validated once, when a handler is built. Field names are
snake_case; camelCase aliases (``idField``, ``indexPrefix`` ...) are accepted
as well.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from dynamo_es_stream.errors import ValidationError
from dynamo_es_stream.stream_types import BulkClient, MetricsRecorder

DEFAULT_SEPARATOR = "."
DEFAULT_RETRY_COUNT = 0

Hook = Callable[..., Any]
FieldPathOption = StrictStr | list[StrictStr]

_EXCLUSIVE_PEERS = (
    ("id_field", "id_resolver"),
    ("version_field", "version_resolver"),
    ("type", "type_field"),
    ("index", "index_field"),
)
_PEER_FIELDS = (
    *(name for pair in _EXCLUSIVE_PEERS for name in pair),
    "index_prefix",
)

# Validation context key set once load_options has checked conflicts itself
_PEERS_CHECKED = "peers_checked"


class _Options(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        arbitrary_types_allowed=True,
    )


class ElasticsearchOptions(_Options):
    """Elasticsearch client and extra keyword arguments for ``bulk``."""

    client: Any = Field(..., description="Client exposing a bulk() call")
    bulk: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra keyword arguments merged into every bulk call",
    )

    @field_validator("client")
    @classmethod
    def validate_client(cls, v: Any) -> Any:
        """Require an object with a callable ``bulk`` attribute."""
        if not isinstance(v, BulkClient):
            raise ValueError("client must expose a bulk() method")
        return v

    @field_validator("bulk")
    @classmethod
    def validate_bulk(cls, v: dict[str, Any]) -> dict[str, Any]:
        """The bulk body is always built by the handler."""
        if "body" in v or "operations" in v:
            raise ValueError("bulk options must not contain a body")
        return v


class RetryOptions(_Options):
    """Retry policy for the bulk submission."""

    retries: StrictInt = Field(
        default=DEFAULT_RETRY_COUNT,
        ge=0,
        description="Additional attempts after the first failure",
    )
    factor: float = Field(default=2.0, gt=0, description="Backoff base")
    min_timeout: float = Field(
        default=1.0, ge=0, description="Delay before the first retry (s)"
    )
    max_timeout: Optional[float] = Field(
        default=None, ge=0, description="Upper bound for any delay (s)"
    )
    randomize: StrictBool = Field(
        default=False, description="Apply full jitter to every delay"
    )


class HandlerOptions(_Options):  # pylint: disable=too-many-instance-attributes
    """Complete, validated configuration of a stream indexing handler."""

    elasticsearch: ElasticsearchOptions

    # Document id
    id_field: Optional[FieldPathOption] = None
    id_resolver: Optional[Hook] = None

    # Target index
    index: Optional[StrictStr] = Field(default=None, min_length=1)
    index_field: Optional[FieldPathOption] = None
    index_prefix: Optional[StrictStr] = None

    # Mapping type
    type: Optional[StrictStr] = None
    type_field: Optional[FieldPathOption] = None

    parent_field: Optional[StrictStr] = None
    pick_fields: Optional[FieldPathOption] = None

    # External versioning
    version_field: Optional[StrictStr] = None
    version_resolver: Optional[Hook] = None

    separator: StrictStr = DEFAULT_SEPARATOR
    retry_options: RetryOptions = Field(default_factory=RetryOptions)

    # Hooks
    before_hook: Optional[Hook] = None
    after_hook: Optional[Hook] = None
    error_hook: Optional[Hook] = None
    record_error_hook: Optional[Hook] = None
    transform_record_hook: Optional[Hook] = None

    metrics: Optional[Any] = None

    @field_validator("metrics")
    @classmethod
    def validate_metrics(cls, v: Any) -> Any:
        """Metrics recorders need a ``count`` method."""
        if v is not None and not isinstance(v, MetricsRecorder):
            raise ValueError("metrics must expose a count() method")
        return v

    @model_validator(mode="after")
    def validate_peers(self, info: ValidationInfo) -> "HandlerOptions":
        """Enforce mutually exclusive and dependent options."""
        if info.context and info.context.get(_PEERS_CHECKED):
            return self
        conflicts = peer_conflicts(lambda name: getattr(self, name))
        if conflicts:
            raise ValueError("; ".join(conflicts))
        return self

    @property
    def client(self) -> Any:
        """Elasticsearch client used for bulk submissions."""
        return self.elasticsearch.client

    @property
    def bulk_options(self) -> dict[str, Any]:
        """Extra keyword arguments for every bulk call."""
        return dict(self.elasticsearch.bulk)


def peer_conflicts(lookup: Callable[[str], Any]) -> list[str]:
    """
    List exclusive and dependent option conflicts, one message each.

    ``lookup`` returns the configured value of a field name, or None.
    """
    conflicts: list[str] = []
    configured = {name for name in _PEER_FIELDS if lookup(name) is not None}

    for first, second in _EXCLUSIVE_PEERS:
        if first in configured and second in configured:
            conflicts.append(
                f"conflict between exclusive options [{first}, {second}]"
            )

    if not configured & {"index", "index_field"}:
        conflicts.append("must contain at least one of [index, index_field]")

    if "index_prefix" in configured and "index_field" not in configured:
        conflicts.append("index_prefix requires index_field")

    return conflicts


def _raw_value(options: Mapping[str, Any], name: str) -> Any:
    value = options.get(name)
    return value if value is not None else options.get(to_camel(name))


def load_options(
    options: HandlerOptions | Mapping[str, Any] | None = None,
) -> HandlerOptions:
    """
    Validate raw handler options.

    Field errors and option conflicts are reported together.

    Raises:
        ValidationError: Listing every violation found
    """
    if isinstance(options, HandlerOptions):
        return options

    raw = dict(options or {})
    messages = [
        f'"options" {conflict}'
        for conflict in peer_conflicts(lambda name: _raw_value(raw, name))
    ]

    try:
        validated = HandlerOptions.model_validate(
            raw, context={_PEERS_CHECKED: True}
        )
    except PydanticValidationError as exc:
        raise ValidationError(
            ValidationError.from_pydantic(exc).messages + messages
        ) from exc

    if messages:
        raise ValidationError(messages)
    return validated


__all__ = [
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_SEPARATOR",
    "ElasticsearchOptions",
    "HandlerOptions",
    "RetryOptions",
    "load_options",
    "peer_conflicts",
]
