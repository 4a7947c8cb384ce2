"""
Decoding of DynamoDB stream records into plain Python values.
"""

from decimal import Decimal
from typing import Any, Mapping, cast

from boto3.dynamodb.types import TypeDeserializer

from dynamo_es_stream.models import ParsedStreamRecord


class PlainTypeDeserializer(TypeDeserializer):
    """
    TypeDeserializer that yields ``int``/``float`` instead of ``Decimal``.

    Documents go straight into a JSON bulk body, so numbers are converted
    here rather than at serialization time.
    """

    def _deserialize_n(self, value: str) -> int | float:  # type: ignore[override]
        number = Decimal(value)
        if number == number.to_integral_value():
            return int(number)
        return float(number)

    def _deserialize_ns(self, value: list[str]) -> list[int | float]:  # type: ignore[override]
        return [self._deserialize_n(v) for v in value]

    def _deserialize_ss(self, value: list[str]) -> list[str]:  # type: ignore[override]
        return list(value)


_deserializer = PlainTypeDeserializer()


def unmarshall(image: Mapping[str, Any] | None) -> dict[str, Any]:
    """Decode an attribute-value map; a missing image decodes to ``{}``."""
    if not image:
        return {}
    return {key: _deserializer.deserialize(value) for key, value in image.items()}


def parse_record(record: Mapping[str, Any]) -> ParsedStreamRecord:
    """
    Decode the Keys, NewImage and OldImage of a stream record.

    Raises:
        KeyError: If the record has no ``dynamodb`` bundle
        TypeError: If an attribute value has an unknown type descriptor
    """
    dynamodb = cast(Mapping[str, Any], record["dynamodb"])
    return ParsedStreamRecord(
        keys=unmarshall(dynamodb.get("Keys")),
        new_image=unmarshall(dynamodb.get("NewImage")),
        old_image=unmarshall(dynamodb.get("OldImage")),
    )


def merge_event(
    record: Mapping[str, Any], parsed: ParsedStreamRecord
) -> dict[str, Any]:
    """Return ``record`` with its ``dynamodb`` images replaced by decoded ones."""
    return {
        **record,
        "dynamodb": {**record.get("dynamodb", {}), **parsed.as_dict()},
    }


__all__ = ["PlainTypeDeserializer", "merge_event", "parse_record", "unmarshall"]
