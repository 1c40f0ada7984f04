"""
Unit tests for the AWS storage adapters.

A fake aioboto3 session replays scripted responses, so these tests check
request shapes and response handling without network access.
"""

import json

import pytest

from tiered_timeseries.storage import (
    AWSClientFactory,
    DynamoDBFutureItemRepository,
    DynamoDBIdentifierRepository,
    Message,
    QueueError,
    SQSQueueRepository,
    SSMParameterStore,
    StorageError,
    TimestreamTimeSeriesRepository,
    TransientStorageError,
)
from tiered_timeseries.storage.dynamodb import serialize_item
from tiered_timeseries.storage.timeseries import build_range_query, iso_to_epoch_ms
from tests.fixtures import NOW_MS, create_future_items, create_past_records
from tests.mocks import FakeSession, client_error


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def clients(session):
    return AWSClientFactory(region_name="us-west-2", session=session)


# ============================================================================
# Client factory
# ============================================================================


@pytest.mark.asyncio
async def test_client_configuration(session):
    clients = AWSClientFactory(endpoint_url="http://localhost:4566", session=session)

    async with clients.client("dynamodb"):
        pass

    service, kwargs = session.client_kwargs[0]
    assert service == "dynamodb"
    assert kwargs["region_name"] == "us-west-2"
    assert kwargs["endpoint_url"] == "http://localhost:4566"
    assert kwargs["config"].retries == {"max_attempts": 10, "mode": "standard"}
    assert kwargs["config"].connect_timeout == 20
    assert kwargs["config"].read_timeout == 20


# ============================================================================
# Timestream
# ============================================================================


def test_build_range_query():
    query = build_range_query("db", "cpu", "11111", "ago(2h)", "now()")

    assert query == (
        "SELECT identifier, measure_value::varchar AS cpu, "
        "concat(to_iso8601(time), 'Z') AS time "
        'FROM "db"."cpu" '
        "WHERE identifier = '11111' "
        "AND time BETWEEN ago(2h) AND now() "
        "ORDER BY time DESC"
    )


def test_build_range_query_escapes_identifier():
    query = build_range_query("db", "cpu", "it's", "ago(1h)", "now()")

    assert "identifier = 'it''s'" in query


def test_build_range_query_rejects_arbitrary_bounds():
    with pytest.raises(ValueError):
        build_range_query("db", "cpu", "11111", "now() OR 1=1", "now()")


@pytest.mark.parametrize(
    "value",
    [
        "2022-06-02T06:43:41.000000000Z",
        "2022-06-02 06:43:41.000000000Z",
        "2022-06-02T06:43:41Z",
    ],
)
def test_iso_to_epoch_ms(value):
    assert iso_to_epoch_ms(value) == NOW_MS


def test_iso_to_epoch_ms_keeps_milliseconds():
    assert iso_to_epoch_ms("2022-06-02T06:43:41.123456789Z") == NOW_MS + 123


@pytest.mark.asyncio
async def test_timestream_write(session, clients):
    repository = TimestreamTimeSeriesRepository(clients, "db", "cpu")
    records = create_past_records(3)

    result = await repository.write_records(records)

    assert result.written == 3
    call = session.calls_to("timestream-write", "write_records")[0]
    assert call["DatabaseName"] == "db"
    assert call["TableName"] == "cpu"
    assert call["Records"][0]["Version"] == records[0].version


@pytest.mark.asyncio
async def test_timestream_rejected_records(session, clients):
    session.add_response(
        "timestream-write",
        "write_records",
        client_error(
            "RejectedRecordsException",
            "WriteRecords",
            RejectedRecords=[{"RecordIndex": 1, "Reason": "Duplicate record"}],
        ),
    )
    repository = TimestreamTimeSeriesRepository(clients, "db", "cpu")
    records = create_past_records(3)

    result = await repository.write_records(records)

    assert result.written == 2
    assert result.rejected[0].index == 1
    assert result.rejected[0].reason == "Duplicate record"
    assert result.rejected[0].key == f"11111@{records[1].time}"
    assert not result.failed


@pytest.mark.asyncio
async def test_timestream_throttling_is_transient(session, clients):
    session.add_response(
        "timestream-write", "write_records", client_error("ThrottlingException", "WriteRecords")
    )
    repository = TimestreamTimeSeriesRepository(clients, "db", "cpu")

    with pytest.raises(TransientStorageError) as exc_info:
        await repository.write_records(create_past_records(1))

    assert exc_info.value.code == "ThrottlingException"


@pytest.mark.asyncio
async def test_timestream_query_follows_pages(session, clients):
    def page(time_value, cpu, next_token=None):
        response = {
            "Rows": [{
                "Data": [
                    {"ScalarValue": "11111"},
                    {"ScalarValue": cpu},
                    {"ScalarValue": time_value},
                ]
            }]
        }
        if next_token:
            response["NextToken"] = next_token
        return response

    session.add_response(
        "timestream-query", "query", page("2022-06-02 06:43:41.000000000Z", "42", "t1")
    )
    session.add_response(
        "timestream-query", "query", page("2022-06-02 05:43:41.000000000Z", "41")
    )
    repository = TimestreamTimeSeriesRepository(clients, "db", "cpu")

    rows = await repository.query("11111", "ago(2h)", "now()")

    assert [(r.cpu, r.time) for r in rows] == [("42", NOW_MS), ("41", NOW_MS - 3_600_000)]
    calls = session.calls_to("timestream-query", "query")
    assert "NextToken" not in calls[0]
    assert calls[1]["NextToken"] == "t1"


@pytest.mark.asyncio
async def test_timestream_query_failure(session, clients):
    session.add_response(
        "timestream-query", "query", client_error("ValidationException", "Query")
    )
    repository = TimestreamTimeSeriesRepository(clients, "db", "cpu")

    with pytest.raises(StorageError) as exc_info:
        await repository.query("11111", "ago(2h)", "now()")

    assert not isinstance(exc_info.value, TransientStorageError)


# ============================================================================
# DynamoDB
# ============================================================================


@pytest.mark.asyncio
async def test_dynamodb_batch_write_retries_unprocessed(session, clients):
    items = create_future_items(3)
    leftover = {"PutRequest": {"Item": serialize_item(items[2].model_dump())}}
    session.add_response(
        "dynamodb", "batch_write_item", {"UnprocessedItems": {"future": [leftover]}}
    )
    session.add_response("dynamodb", "batch_write_item", {"UnprocessedItems": {}})
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    repository = DynamoDBFutureItemRepository(clients, "future", sleep=fake_sleep)

    result = await repository.batch_write(items)

    calls = session.calls_to("dynamodb", "batch_write_item")
    assert len(calls[0]["RequestItems"]["future"]) == 3
    assert calls[1]["RequestItems"]["future"] == [leftover]
    assert delays == [0.05]
    assert result.written == 3
    assert result.rejected == []


@pytest.mark.asyncio
async def test_dynamodb_unprocessed_after_retries_fail_the_chunk(session, clients):
    items = create_future_items(2)
    leftover = {"PutRequest": {"Item": serialize_item(items[1].model_dump())}}
    for _ in range(3):
        session.add_response(
            "dynamodb", "batch_write_item", {"UnprocessedItems": {"future": [leftover]}}
        )

    async def fake_sleep(delay):
        pass

    repository = DynamoDBFutureItemRepository(
        clients, "future", max_unprocessed_retries=2, sleep=fake_sleep
    )

    with pytest.raises(TransientStorageError) as exc_info:
        await repository.batch_write(items)

    assert len(session.calls_to("dynamodb", "batch_write_item")) == 3
    assert exc_info.value.code == "UnprocessedItems"
    assert f"{items[1].identifier}@{items[1].time}" in str(exc_info.value)


@pytest.mark.asyncio
async def test_dynamodb_query_range(session, clients):
    item = create_future_items(1)[0]
    session.add_response(
        "dynamodb",
        "query",
        {"Items": [serialize_item(item.model_dump())], "LastEvaluatedKey": {"k": {"S": "1"}}},
    )
    session.add_response("dynamodb", "query", {"Items": []})
    repository = DynamoDBFutureItemRepository(clients, "future")

    results = await repository.query_range("11111", 100, 200)

    assert results == [item]
    calls = session.calls_to("dynamodb", "query")
    assert calls[0]["KeyConditionExpression"] == "#pc = :id AND #sc BETWEEN :begin AND :end"
    assert calls[0]["ExpressionAttributeValues"] == {
        ":id": {"S": "11111"},
        ":begin": {"N": "100"},
        ":end": {"N": "200"},
    }
    assert calls[1]["ExclusiveStartKey"] == {"k": {"S": "1"}}


@pytest.mark.asyncio
async def test_dynamodb_scan_identifiers(session, clients):
    session.add_response(
        "dynamodb",
        "scan",
        {"Items": [{"identifier": {"S": "a"}}], "LastEvaluatedKey": {"identifier": {"S": "a"}}},
    )
    session.add_response("dynamodb", "scan", {"Items": [{"identifier": {"S": "b"}}]})
    repository = DynamoDBIdentifierRepository(clients, "identifiers")

    assert await repository.scan_identifiers() == ["a", "b"]


@pytest.mark.asyncio
async def test_dynamodb_add_identifier(session, clients):
    repository = DynamoDBIdentifierRepository(clients, "identifiers")

    await repository.add_identifier("test-run")

    call = session.calls_to("dynamodb", "put_item")[0]
    assert call == {"TableName": "identifiers", "Item": {"identifier": {"S": "test-run"}}}


# ============================================================================
# SQS
# ============================================================================


@pytest.mark.asyncio
async def test_sqs_publish_in_groups_of_ten(session, clients):
    for size in (10, 10, 3):
        session.add_response(
            "sqs",
            "send_message_batch",
            {"Successful": [{"Id": str(i), "MessageId": f"m{i}"} for i in range(size)]},
        )
    messages = [Message(body={"identifiers": [str(i)]}, message_id=f"{i}-1") for i in range(23)]

    ids = await SQSQueueRepository(clients).publish_batch("https://queue", messages)

    calls = session.calls_to("sqs", "send_message_batch")
    assert [len(call["Entries"]) for call in calls] == [10, 10, 3]
    assert calls[0]["Entries"][0] == {
        "Id": "0-1",
        "MessageBody": json.dumps({"identifiers": ["0"]}),
    }
    assert len(ids) == 23


@pytest.mark.asyncio
async def test_sqs_failed_entries_raise(session, clients):
    session.add_response(
        "sqs",
        "send_message_batch",
        {
            "Successful": [{"Id": "0-1", "MessageId": "m0"}],
            "Failed": [{"Id": "1-1", "Code": "InternalError", "SenderFault": False}],
        },
    )
    messages = [Message(body={}, message_id="0-1"), Message(body={}, message_id="1-1")]

    with pytest.raises(QueueError) as exc_info:
        await SQSQueueRepository(clients).publish_batch("https://queue", messages)

    assert "1-1: InternalError" in str(exc_info.value)


@pytest.mark.asyncio
async def test_sqs_receive_and_acknowledge(session, clients):
    session.add_response(
        "sqs",
        "receive_message",
        {
            "Messages": [{
                "MessageId": "m1",
                "ReceiptHandle": "rh1",
                "Body": json.dumps({"identifiers": ["a"]}),
                "Attributes": {"ApproximateReceiveCount": "2"},
            }]
        },
    )
    queue = SQSQueueRepository(clients)

    messages = await queue.receive("https://queue", wait_seconds=0)
    await queue.acknowledge("https://queue", messages[0])

    assert messages[0].delivery_count == 2
    assert session.calls_to("sqs", "delete_message") == [
        {"QueueUrl": "https://queue", "ReceiptHandle": "rh1"}
    ]


# ============================================================================
# SSM
# ============================================================================


@pytest.mark.asyncio
async def test_ssm_get_parameter(session, clients):
    session.add_response("ssm", "get_parameter", {"Parameter": {"Value": "secret"}})

    value = await SSMParameterStore(clients).get_parameter("/api/token")

    assert value == "secret"
    assert session.calls_to("ssm", "get_parameter") == [
        {"Name": "/api/token", "WithDecryption": True}
    ]


@pytest.mark.asyncio
async def test_ssm_missing_parameter(session, clients):
    session.add_response("ssm", "get_parameter", client_error("ParameterNotFound", "GetParameter"))

    with pytest.raises(StorageError):
        await SSMParameterStore(clients).get_parameter("/missing")
