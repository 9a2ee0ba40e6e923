"""
Employees API Endpoints.

Adding staff to a garage. Coordinator errors are turned into responses by the
handlers registered in api.errors.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_identity_provisioner
from api.models import CreateEmployeeRequest, EmployeeResponse, ErrorResponse
from services.identity_provisioning_service import IdentityProvisioner, ProvisionRequest

router = APIRouter()


@router.post(
    "/employees",
    response_model=EmployeeResponse,
    status_code=201,
    summary="Add Employee",
    description="Create a staff identity and its (password-less) credential in the owner's garage.",
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
def create_employee(
    request: CreateEmployeeRequest,
    provisioner: IdentityProvisioner = Depends(get_identity_provisioner),
):
    """
    Add an employee to the inviting owner's garage.

    **Process:**
    1. Validates every field and reports all problems together
    2. Inherits garage metadata from the owner
    3. Generates the login handle `first.last@garagename`
    4. Rejects the request if the handle or email is already taken (409)
    5. Writes the identity, then the credential; rolls back the identity if
       the credential write fails

    The employee sets a password on first login; no password is accepted here.
    """
    summary = provisioner.provision(
        ProvisionRequest(
            tenant_owner_id=request.tenant_owner_id,
            first_name=request.first_name,
            last_name=request.last_name,
            role=request.role,
            email=request.email,
            phone=request.phone,
            employee_number=request.employee_number,
        )
    )

    return EmployeeResponse(
        identity_id=summary.identity_id,
        login_handle=summary.login_handle,
        first_name=summary.first_name,
        last_name=summary.last_name,
        role=summary.role.value,
        email=summary.email,
        phone=summary.phone,
        garage_id=summary.garage_id,
        garage_name=summary.garage_name,
        employee_number=summary.employee_number,
    )
