"""
Inventory Field Options API Endpoints.

Dropdown options ranked by how often a garage uses them, and usage recording.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_usage_tracker
from api.models import ErrorResponse, FieldOptionResponse, FieldOptionsResponse, RecordUsageRequest
from services.usage_counter_service import UsageCounterTracker

router = APIRouter()


@router.get(
    "/inventory/field-options",
    response_model=FieldOptionsResponse,
    summary="Get Field Options",
    responses={422: {"model": ErrorResponse}},
)
def get_field_options(
    field: str = Query(..., description="category or usedFor"),
    garage_id: str = Query(...),
    tracker: UsageCounterTracker = Depends(get_usage_tracker),
):
    """
    Return options for a dropdown field, most used first.

    Options the garage has never picked follow in their default order.
    """
    options = tracker.ranked_options(garage_id, field)
    return FieldOptionsResponse(
        field=field,
        garage_id=garage_id,
        options=[
            FieldOptionResponse(
                value=option.value,
                label=option.label,
                usage_count=option.usage_count,
                last_used_at=option.last_used_at,
            )
            for option in options
        ],
    )


@router.post(
    "/inventory/field-options",
    status_code=204,
    summary="Record Field Usage",
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def record_field_usage(
    request: RecordUsageRequest,
    tracker: UsageCounterTracker = Depends(get_usage_tracker),
):
    """Count one use of a value. Called whenever a part is saved with that value."""
    tracker.record_usage(request.garage_id, request.field, request.value)
