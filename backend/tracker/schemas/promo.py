import re
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

_PHONE_STRIP = re.compile(r"[\s\-\(\)]")
_PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")


class PromoSignupCreate(BaseModel):
    full_name: str
    email: EmailStr
    phone: Optional[str] = None
    business_name: str
    referral_source: Optional[str] = None
    experience_level: Optional[str] = None
    interests: Optional[str] = None
    comments: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("full_name", "business_name")
    @classmethod
    def at_least_two_chars(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 2:
            raise ValueError("must be at least 2 characters long")
        return v

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        if not _PHONE_RE.match(_PHONE_STRIP.sub("", v)):
            raise ValueError("invalid phone number format")
        return v.strip()


class PromoSignupResponse(BaseModel):
    id: int
    message: str
