# backend/tracker/schemas/user.py

from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    company_name: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(min_length=8)


class UserResponse(UserBase):
    id: int
    is_active: bool
    has_stripe_config: bool = False

    model_config = {
        "from_attributes": True
    }


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class StripeSettingsRead(BaseModel):
    has_stripe_config: bool
    publishable_key: str = ""
    # Never echo the secret key; only whether one is stored
    secret_key_configured: bool


class StripeSettingsUpdate(BaseModel):
    secret_key: str
    publishable_key: str
