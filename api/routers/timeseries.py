"""
Time-series range endpoint.

Serves a window of samples for one identifier from both storage tiers.
"""

import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_coordinator, verify_security_token
from api.errors import QueryValidationError
from api.schemas.common import ErrorResponse
from api.schemas.timeseries import TimeSeriesResponse
from tiered_timeseries.observability.logging import log_context
from tiered_timeseries.query import QueryCoordinator

logger = logging.getLogger(__name__)


router = APIRouter(tags=["Time Series"])


@router.get(
    "/timeSeries-data",
    response_model=TimeSeriesResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def get_timeseries_data(
    start_date: int = Query(..., alias="startDate", description="Window start (epoch ms)"),
    end_date: int = Query(..., alias="endDate", description="Window end (epoch ms)"),
    identifier: str = Query(..., min_length=1, description="Series identifier"),
    _token: str = Depends(verify_security_token),
    coordinator: QueryCoordinator = Depends(get_coordinator),
):
    """
    Get historical and future rows for an identifier.

    The time store is always queried. The future store is also queried
    when the newest historical row is older than ``endDate`` or there are
    no historical rows at all. The two row lists are returned unmerged.

    Requires the ``x-security-token`` header.
    """
    if start_date > end_date:
        raise QueryValidationError(
            f"startDate ({start_date}) must not be after endDate ({end_date})"
        )

    with log_context(identifier=identifier):
        result = await coordinator.query(identifier, start_date, end_date)

    return TimeSeriesResponse.from_result(result)
