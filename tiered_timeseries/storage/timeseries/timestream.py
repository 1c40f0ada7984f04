"""
Amazon Timestream storage implementation.

Past samples are written here. Timestream cannot store timestamps beyond
its ingestion window, which is why future samples live in DynamoDB.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from tiered_timeseries.storage.aws import AWSClientFactory
from tiered_timeseries.storage.interfaces import (
    TimeSeriesRepository,
    translate_aws_error,
)
from tiered_timeseries.types import (
    ChunkResult,
    QueryRow,
    RejectedRecord,
    StoredPastRecord,
)

logger = logging.getLogger(__name__)

RELATIVE_EXPRESSION = re.compile(r"^(now\(\)|ago\(\d+h\))$")


def quote_literal(value: str) -> str:
    """Quote a string literal for Timestream SQL."""
    return "'" + value.replace("'", "''") + "'"


def build_range_query(
    database: str, table: str, identifier: str, start: str, end: str
) -> str:
    """
    Build the range query for one identifier.

    Args:
        database: Timestream database name
        table: Timestream table name
        identifier: Series identifier
        start: Lower bound, ``now()`` or ``ago(<N>h)``
        end: Upper bound, ``now()`` or ``ago(<N>h)``

    Returns:
        Query string selecting identifier, value and ISO time, newest first

    Raises:
        ValueError: If a bound is not a relative-time expression
    """
    for bound in (start, end):
        if not RELATIVE_EXPRESSION.match(bound):
            raise ValueError(f"Not a relative-time expression: {bound!r}")

    return (
        "SELECT identifier, measure_value::varchar AS cpu, "
        "concat(to_iso8601(time), 'Z') AS time "
        f'FROM "{database}"."{table}" '
        f"WHERE identifier = {quote_literal(identifier)} "
        f"AND time BETWEEN {start} AND {end} "
        "ORDER BY time DESC"
    )


def iso_to_epoch_ms(value: str) -> int:
    """
    Convert a Timestream ISO-8601 timestamp to epoch milliseconds.

    Handles nanosecond fractions, which ``datetime`` cannot parse directly.
    """
    text = value.strip().rstrip("Z").replace(" ", "T")
    if "." in text:
        base, fraction = text.split(".", 1)
    else:
        base, fraction = text, ""

    moment = datetime.strptime(base, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
    millis = int((fraction + "000")[:3])
    return int(moment.timestamp()) * 1000 + millis


def parse_row(row: Dict[str, Any]) -> QueryRow:
    """Map a Timestream result row ``[identifier, cpu, time]`` to a QueryRow."""
    data = row["Data"]
    time_value = data[2].get("ScalarValue")
    return QueryRow(
        identifier=data[0].get("ScalarValue", ""),
        cpu=data[1].get("ScalarValue") or "0",
        time=iso_to_epoch_ms(time_value) if time_value else 0,
    )


class TimestreamTimeSeriesRepository(TimeSeriesRepository):
    """Timestream implementation of the time store."""

    def __init__(
        self,
        clients: AWSClientFactory,
        database: str,
        table: str,
    ):
        """
        Initialize Timestream repository.

        Args:
            clients: Factory for ``timestream-write`` / ``timestream-query`` clients
            database: Database name
            table: Table name
        """
        self._clients = clients
        self._database = database
        self._table = table

    async def write_records(self, records: List[StoredPastRecord]) -> ChunkResult:
        """Write one chunk of records to Timestream."""
        try:
            async with self._clients.client("timestream-write") as client:
                await client.write_records(
                    DatabaseName=self._database,
                    TableName=self._table,
                    Records=[record.to_timestream() for record in records],
                )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code != "RejectedRecordsException":
                raise translate_aws_error(e, "Timestream WriteRecords") from e

            rejected = [
                RejectedRecord(
                    index=item.get("RecordIndex", -1),
                    reason=item.get("Reason"),
                    key=_record_key(records, item.get("RecordIndex")),
                )
                for item in e.response.get("RejectedRecords", [])
            ]
            logger.warning(
                f"Timestream rejected {len(rejected)}/{len(records)} records; "
                f"other records were written"
            )
            return ChunkResult(
                size=len(records),
                written=len(records) - len(rejected),
                rejected=rejected,
            )
        except BotoCoreError as e:
            raise translate_aws_error(e, "Timestream WriteRecords") from e

        return ChunkResult(size=len(records), written=len(records))

    async def query(self, identifier: str, start: str, end: str) -> List[QueryRow]:
        """Query Timestream, following result pages until exhausted."""
        query_string = build_range_query(
            self._database, self._table, identifier, start, end
        )
        logger.debug(f"Timestream query: {query_string}")

        rows: List[QueryRow] = []
        next_token: Optional[str] = None

        try:
            async with self._clients.client("timestream-query") as client:
                while True:
                    params: Dict[str, Any] = {"QueryString": query_string}
                    if next_token:
                        params["NextToken"] = next_token

                    response = await client.query(**params)
                    rows.extend(parse_row(row) for row in response.get("Rows", []))

                    next_token = response.get("NextToken")
                    if not next_token:
                        break
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "Timestream Query") from e

        return rows


def _record_key(records: List[StoredPastRecord], index: Optional[int]) -> Optional[str]:
    if index is None or not 0 <= index < len(records):
        return None
    record = records[index]
    return f"{record.identifier}@{record.time}"
