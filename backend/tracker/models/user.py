# backend/tracker/models/user.py

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship
from .base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    id           = Column(Integer, primary_key=True, index=True)
    email        = Column(String, unique=True, index=True, nullable=False)
    password     = Column(String, nullable=False)
    first_name   = Column(String, nullable=False)
    last_name    = Column(String, nullable=False)
    company_name = Column(String, nullable=True)
    is_active    = Column(Boolean, default=True)
    # Each dealer brings their own Stripe account. The secret key never
    # leaves the backend; only the publishable key is echoed to the UI.
    stripe_secret_key      = Column(String, nullable=True)
    stripe_publishable_key = Column(String, nullable=True)

    contacts = relationship("Contact", back_populates="user", cascade="all, delete-orphan")
    watches  = relationship("Watch", back_populates="user", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="user")

    @property
    def has_stripe_config(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_publishable_key)
