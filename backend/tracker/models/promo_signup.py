from sqlalchemy import Column, Integer, String, Text

from .base import BaseModel


class PromoSignup(BaseModel):
    __tablename__ = "promo_signups"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    business_name = Column(String, nullable=False)
    referral_source = Column(String, nullable=True)
    experience_level = Column(String, nullable=True)
    interests = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending")
    ip_address = Column(String, nullable=True)
