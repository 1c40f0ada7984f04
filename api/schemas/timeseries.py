"""
Schemas for the time-series range endpoint.
"""

from tiered_timeseries.types import QueryResult


class TimeSeriesResponse(QueryResult):
    """Historical and future rows, returned side by side and never merged."""

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "historicalRows": [
                    {"identifier": "11111", "cpu": "42", "time": 1654148621000}
                ],
                "futureRows": [
                    {"identifier": "11111", "cpu": "7", "time": 1654155821000}
                ],
            }
        },
    }

    @classmethod
    def from_result(cls, result: QueryResult) -> "TimeSeriesResponse":
        return cls(
            historical_rows=result.historical_rows,
            future_rows=result.future_rows,
        )
