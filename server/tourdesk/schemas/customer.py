"""Customer-related Pydantic schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CreateCustomerRequest(BaseModel):
    """Request schema for creating a customer."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=2000)
    user_ref: Optional[str] = Field(None, max_length=128, description="Linked account subject")


class Customer(BaseModel):
    """Customer response schema."""

    id: UUID
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None

    model_config = {"from_attributes": True}
