"""
Job Card Parts API Endpoints.

Listing and allocating parts on a job card.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from api.dependencies import get_allocation_coordinator
from api.models import (
    AllocatePartsRequest,
    AllocatePartsResponse,
    ErrorResponse,
    JobCardPartResponse,
    JobCardPartsResponse,
    LineOutcomeResponse,
)
from domain.job_card import Allocation
from services.inventory_allocation_service import AllocationCoordinator, RequestedLine

router = APIRouter()


def _to_part_response(allocation: Allocation) -> JobCardPartResponse:
    return JobCardPartResponse(
        allocation_id=allocation.allocation_id,
        part_id=allocation.part_id,
        part_name=allocation.part_name,
        part_number=allocation.part_number,
        category=allocation.category,
        quantity=allocation.quantity,
        unit_price=allocation.unit_price,
        line_total=allocation.line_total,
        source=allocation.source.value,
        status=allocation.status.value,
        created_at=allocation.created_at,
    )


@router.get(
    "/job-cards/{job_card_id}/parts",
    response_model=JobCardPartsResponse,
    summary="List Job Card Parts",
    responses={404: {"model": ErrorResponse}},
)
def list_job_card_parts(
    job_card_id: UUID,
    coordinator: AllocationCoordinator = Depends(get_allocation_coordinator),
):
    """Return every part line allocated to the job card, oldest first."""
    parts: List[JobCardPartResponse] = [
        _to_part_response(allocation) for allocation in coordinator.job_card_parts(job_card_id)
    ]
    return JobCardPartsResponse(job_card_id=job_card_id, parts=parts, count=len(parts))


@router.post(
    "/job-cards/{job_card_id}/parts",
    response_model=AllocatePartsResponse,
    status_code=201,
    summary="Allocate Parts",
    description="Allocate parts to a job card and draw inventory-sourced lines from stock.",
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
def allocate_job_card_parts(
    job_card_id: UUID,
    request: AllocatePartsRequest,
    coordinator: AllocationCoordinator = Depends(get_allocation_coordinator),
):
    """
    Allocate parts to a job card.

    **Process:**
    1. Validates every line (nothing is written if any line is invalid)
    2. Creates all part lines on the job card in one batch
    3. Recomputes the job card's estimated parts cost
    4. For each inventory line, records a stock ledger entry and decrements
       on-hand stock

    Stock steps are independent per line. When some of them fail the request
    still succeeds with `partial: true`; check each line's `status`.
    Requesting more than is on hand either clamps stock at zero
    (`clamped: true`) or rejects the line, depending on server configuration.
    """
    result = coordinator.allocate(
        job_card_id,
        request.performed_by,
        [
            RequestedLine(
                part_id=line.part_id,
                part_name=line.part_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                source=line.source,
                part_number=line.part_number,
                notes=line.notes,
            )
            for line in request.lines
        ],
    )

    return AllocatePartsResponse(
        job_card_id=result.job_card_id,
        partial=result.is_partial,
        estimated_parts_cost=result.estimated_parts_cost,
        lines=[
            LineOutcomeResponse(
                line_index=outcome.line_index,
                allocation_id=outcome.allocation_id,
                part_id=outcome.part_id,
                status=outcome.status.value,
                requested_quantity=outcome.requested_quantity,
                applied_quantity=outcome.applied_quantity,
                clamped=outcome.clamped,
                stock_before=outcome.stock_before,
                stock_after=outcome.stock_after,
                error=outcome.error,
                correlation_id=outcome.correlation_id,
            )
            for outcome in result.lines
        ],
        parts=[_to_part_response(allocation) for allocation in result.allocations],
        warnings=result.warnings,
    )
