"""Customer router."""

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthContext
from ..core.database import get_db
from ..core.dependencies import RequiredAuth, StaffAuth
from ..core.exceptions import AuthorizationError
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.customer import CreateCustomerRequest, Customer
from ..services.customer_service import CustomerService

router = APIRouter(prefix="/customers", tags=["customers"], responses=PROBLEM_RESPONSES)

DB_DEPENDENCY = Depends(get_db)


@router.post("", response_model=Customer, status_code=201)
async def create_customer(
    request: CreateCustomerRequest,
    auth: AuthContext = StaffAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Register a customer (staff only)."""
    customer = await CustomerService(db).create_customer(request)
    response_data = Customer.model_validate(customer)
    return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))


@router.get("/{customer_id}", response_model=Customer)
async def get_customer(
    customer_id: UUID,
    auth: AuthContext = RequiredAuth,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a customer; customers may only read their own profile."""
    if not auth.can_access_customer(customer_id):
        raise AuthorizationError(detail="You can only access your own customer profile.")
    customer = await CustomerService(db).get_customer_or_raise(customer_id)
    response_data = Customer.model_validate(customer)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
