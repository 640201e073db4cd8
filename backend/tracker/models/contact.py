import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship

from .base import BaseModel


class ContactType(str, enum.Enum):
    LEAD = "Lead"
    CUSTOMER = "Customer"
    WATCH_TRADER = "Watch Trader"
    JEWELER = "Jeweler"


class Contact(BaseModel):
    __tablename__ = "user_contacts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    company = Column(String, nullable=True)
    contact_type = Column(
        SQLAlchemyEnum(
            ContactType,
            native_enum=False,
            length=32,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ContactType.CUSTOMER,
    )
    street_address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip_code = Column(String, nullable=True)
    country = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    stripe_customer_id = Column(String, nullable=True, index=True)
    last_stripe_sync = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="contacts")
    invoices = relationship("Invoice", back_populates="contact")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()
