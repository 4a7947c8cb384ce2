from typing import Any, Iterator, cast
from unittest.mock import AsyncMock, Mock

import boto3
import pytest
from moto import mock_aws

from dynamo_es_stream import StreamIndexHandler

BULK_OK = {"took": 1, "errors": False, "items": []}


@pytest.fixture
def dynamodb_with_stream() -> Iterator[tuple[Any, Any, str]]:
    """
    Spin up a DynamoDB table with streams enabled for integration tests.
    """
    with mock_aws():
        dynamodb = boto3.client("dynamodb", region_name="us-east-1")
        streams = boto3.client("dynamodbstreams", region_name="us-east-1")
        table_name = "Products"

        dynamodb.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
            StreamSpecification={
                "StreamEnabled": True,
                "StreamViewType": "NEW_AND_OLD_IMAGES",
            },
        )

        dynamodb.get_waiter("table_exists").wait(TableName=table_name)
        yield dynamodb, streams, table_name


@pytest.fixture
def bulk_client() -> Mock:
    client = Mock()
    client.bulk = AsyncMock(return_value=BULK_OK)
    return client


def _get_stream_records(
    dynamodb_client: Any, streams_client: Any, table_name: str
) -> list[dict[str, object]]:
    stream_arn = dynamodb_client.describe_table(TableName=table_name)["Table"][
        "LatestStreamArn"
    ]
    stream_desc = streams_client.describe_stream(StreamArn=stream_arn)[
        "StreamDescription"
    ]
    shard_id = stream_desc["Shards"][0]["ShardId"]
    iterator = streams_client.get_shard_iterator(
        StreamArn=stream_arn,
        ShardId=shard_id,
        ShardIteratorType="TRIM_HORIZON",
    )["ShardIterator"]
    records = streams_client.get_records(ShardIterator=iterator)["Records"]
    return cast(list[dict[str, object]], records)


def _product_item(name: str = "Desk Lamp", version: int = 1) -> dict[str, Any]:
    return {
        "PK": {"S": "PRODUCT#42"},
        "SK": {"S": "DETAILS"},
        "name": {"S": name},
        "price": {"N": "19.5"},
        "stock": {"N": "3"},
        "tags": {"SS": ["home"]},
        "version": {"N": str(version)},
    }


def test_insert_modify_remove_become_bulk_actions(
    dynamodb_with_stream: tuple[Any, Any, str], bulk_client: Mock
) -> None:
    dynamodb, streams, table_name = dynamodb_with_stream

    dynamodb.put_item(TableName=table_name, Item=_product_item())
    dynamodb.update_item(
        TableName=table_name,
        Key={"PK": {"S": "PRODUCT#42"}, "SK": {"S": "DETAILS"}},
        UpdateExpression="SET #n = :n, #v = :v",
        ExpressionAttributeNames={"#n": "name", "#v": "version"},
        ExpressionAttributeValues={":n": {"S": "Floor Lamp"}, ":v": {"N": "2"}},
    )
    dynamodb.delete_item(
        TableName=table_name,
        Key={"PK": {"S": "PRODUCT#42"}, "SK": {"S": "DETAILS"}},
    )

    records = _get_stream_records(dynamodb, streams, table_name)
    assert [rec["eventName"] for rec in records] == ["INSERT", "MODIFY", "REMOVE"]

    handler = StreamIndexHandler(
        {
            "elasticsearch": {"client": bulk_client},
            "index": "products",
            "version_field": "version",
        }
    )
    result = handler({"Records": records})

    assert result == BULK_OK
    body = bulk_client.bulk.await_args.kwargs["body"]
    assert body == [
        {
            "index": {
                "_index": "products",
                "_id": "PRODUCT#42.DETAILS",
                "version": 1,
                "version_type": "external",
            }
        },
        {
            "PK": "PRODUCT#42",
            "SK": "DETAILS",
            "name": "Desk Lamp",
            "price": 19.5,
            "stock": 3,
            "tags": ["home"],
            "version": 1,
        },
        {
            "index": {
                "_index": "products",
                "_id": "PRODUCT#42.DETAILS",
                "version": 2,
                "version_type": "external",
            }
        },
        {
            "PK": "PRODUCT#42",
            "SK": "DETAILS",
            "name": "Floor Lamp",
            "price": 19.5,
            "stock": 3,
            "tags": ["home"],
            "version": 2,
        },
        {
            "delete": {
                "_index": "products",
                "_id": "PRODUCT#42.DETAILS",
                "version": 3,
                "version_type": "external",
            }
        },
    ]


def test_after_hook_sees_decoded_old_image(
    dynamodb_with_stream: tuple[Any, Any, str], bulk_client: Mock
) -> None:
    dynamodb, streams, table_name = dynamodb_with_stream

    dynamodb.put_item(TableName=table_name, Item=_product_item())
    dynamodb.put_item(TableName=table_name, Item=_product_item("Desk Lamp XL", 2))

    records = _get_stream_records(dynamodb, streams, table_name)
    after_hook = Mock(return_value=None)
    handler = StreamIndexHandler(
        {
            "elasticsearch": {"client": bulk_client},
            "index_field": "SK",
            "index_prefix": "catalog-",
            "id_field": ["PK", "version"],
            "separator": "~",
            "pick_fields": ["name", "stock"],
            "after_hook": after_hook,
        }
    )

    handler({"Records": records})

    meta = after_hook.call_args.args[3]
    assert [item.action for item in meta] == [
        {"index": {"_index": "catalog-DETAILS", "_id": "PRODUCT#42~1"}},
        {"index": {"_index": "catalog-DETAILS", "_id": "PRODUCT#42~2"}},
    ]
    assert meta[1].document == {"name": "Desk Lamp XL", "stock": 3}
    assert meta[1].event["dynamodb"]["OldImage"]["name"] == "Desk Lamp"
