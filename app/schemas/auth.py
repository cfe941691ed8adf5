"""Billing admin login payloads."""
from pydantic import BaseModel, Field


class AdminLoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class BillingAdmin(BaseModel):
    """The single operator allowed to manage seller subscriptions."""

    id: str
    email: str
    name: str
    role: str = "billing_admin"


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: BillingAdmin
