"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Field-level business validation (email format, phone digits, quantity >= 1...)
is done by the coordinators so every problem is reported in one response.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ============================================================================
# Employee Models
# ============================================================================

class CreateEmployeeRequest(BaseModel):
    """Request to add a staff member to the inviting owner's garage."""
    tenant_owner_id: UUID = Field(
        ...,
        description="Identity ID of the garage owner adding the employee"
    )
    first_name: str
    last_name: str
    role: str = Field(..., description="owner, admin, service_advisor, mechanic, inventory_manager or receptionist")
    email: str
    phone: str
    employee_number: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "tenant_owner_id": "123e4567-e89b-12d3-a456-426614174000",
                "first_name": "José",
                "last_name": "Álvaro",
                "role": "mechanic",
                "email": "jose@example.com",
                "phone": "+1 (555) 123-4567"
            }
        }


class EmployeeResponse(BaseModel):
    """Provisioned staff identity. Never includes credential material."""
    identity_id: UUID
    login_handle: str
    first_name: str
    last_name: str
    role: str
    email: str
    phone: str
    garage_id: str
    garage_name: str
    employee_number: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "identity_id": "123e4567-e89b-12d3-a456-426614174001",
                "login_handle": "jose.alvaro@riversidegarage",
                "first_name": "José",
                "last_name": "Álvaro",
                "role": "mechanic",
                "email": "jose@example.com",
                "phone": "+1 (555) 123-4567",
                "garage_id": "GAR-001",
                "garage_name": "Riverside Garage"
            }
        }


# ============================================================================
# Job Card Part Models
# ============================================================================

class PartLineRequest(BaseModel):
    """Single part line submitted for a job card."""
    part_id: Optional[UUID] = None
    part_name: str = ""
    quantity: int
    unit_price: Decimal
    source: str = "inventory"
    part_number: Optional[str] = None
    notes: Optional[str] = None


class AllocatePartsRequest(BaseModel):
    """Request to allocate parts to a job card."""
    performed_by: UUID = Field(
        ...,
        description="Identity ID of the staff member allocating the parts"
    )
    lines: List[PartLineRequest]

    class Config:
        json_schema_extra = {
            "example": {
                "performed_by": "123e4567-e89b-12d3-a456-426614174001",
                "lines": [
                    {
                        "part_id": "123e4567-e89b-12d3-a456-426614174002",
                        "part_name": "Brake pad set",
                        "quantity": 2,
                        "unit_price": "45.00",
                        "source": "inventory"
                    }
                ]
            }
        }


class JobCardPartResponse(BaseModel):
    """Allocation line as stored on the job card."""
    allocation_id: UUID
    part_id: Optional[UUID] = None
    part_name: str
    part_number: Optional[str] = None
    category: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    source: str
    status: str
    created_at: Optional[datetime] = None


class LineOutcomeResponse(BaseModel):
    """Stock movement result for one submitted line."""
    line_index: int
    allocation_id: UUID
    part_id: Optional[UUID] = None
    status: str
    requested_quantity: int
    applied_quantity: int
    clamped: bool
    stock_before: Optional[int] = None
    stock_after: Optional[int] = None
    error: Optional[str] = None
    correlation_id: Optional[str] = None


class AllocatePartsResponse(BaseModel):
    """Response after allocating parts. `partial` is true when any line did not fully apply."""
    job_card_id: UUID
    partial: bool
    estimated_parts_cost: Decimal
    lines: List[LineOutcomeResponse]
    parts: List[JobCardPartResponse]
    warnings: List[str]


class JobCardPartsResponse(BaseModel):
    """Parts currently allocated to a job card."""
    job_card_id: UUID
    parts: List[JobCardPartResponse]
    count: int


# ============================================================================
# Field Option Models
# ============================================================================

class RecordUsageRequest(BaseModel):
    """Request to count one use of a dropdown value."""
    garage_id: str
    field: str = Field(..., description="category or usedFor")
    value: str

    class Config:
        json_schema_extra = {
            "example": {
                "garage_id": "GAR-001",
                "field": "category",
                "value": "Brakes"
            }
        }


class FieldOptionResponse(BaseModel):
    value: str
    label: str
    usage_count: int
    last_used_at: Optional[datetime] = None


class FieldOptionsResponse(BaseModel):
    """Dropdown options ordered by how often the garage uses them."""
    field: str
    garage_id: str
    options: List[FieldOptionResponse]


# ============================================================================
# Error Models
# ============================================================================

class FieldErrorResponse(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
    fields: List[FieldErrorResponse] = []
    correlation_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Conflict",
                "detail": "handle already in use: jose.alvaro@riversidegarage",
                "status_code": 409,
                "fields": [{"field": "handle", "message": "already in use"}]
            }
        }
