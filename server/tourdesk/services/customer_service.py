"""Customer service for business logic operations."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..models.customer import Customer
from ..schemas.customer import CreateCustomerRequest

logger = logging.getLogger(__name__)


class CustomerService:
    """Service for customer-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_customer(self, request: CreateCustomerRequest) -> Customer:
        """
        Create a new customer.

        Raises:
            ConflictError: If a customer with the same email already exists
        """
        email = request.email.strip().lower()

        existing = await self.get_customer_by_email(email)
        if existing:
            logger.warning(
                "Customer creation failed - email already exists",
                extra={"existing_customer_id": str(existing.id)}
            )
            raise ConflictError(
                detail="A customer with this email already exists.",
                conflicting_resource={"id": str(existing.id)},
                code="DUPLICATE_EMAIL",
            )

        customer = Customer(
            first_name=request.first_name,
            last_name=request.last_name,
            email=email,
            phone=request.phone,
            address=request.address,
            user_ref=request.user_ref,
        )

        try:
            self.db.add(customer)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Customer creation failed due to integrity constraint",
                extra={"error": str(e)}
            )
            raise ConflictError(
                detail="A customer with this email or account already exists.",
                code="DUPLICATE_CUSTOMER",
            ) from e

        logger.info("Customer created successfully", extra={"customer_id": str(customer.id)})
        return customer

    async def get_customer_by_email(self, email: str) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.email == email)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_customer_or_raise(self, customer_id: UUID) -> Customer:
        """Get customer by ID or raise NotFoundError."""
        stmt = select(Customer).where(Customer.id == customer_id)
        result = await self.db.execute(stmt)
        customer = result.scalar_one_or_none()
        if not customer:
            raise NotFoundError(resource_type="customer", resource_id=str(customer_id))
        return customer
