import enum
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship

from .base import BaseModel


class InvoiceStatus(str, enum.Enum):
    """Stripe invoice statuses plus the local ``payment_failed`` side branch."""

    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    UNCOLLECTIBLE = "uncollectible"
    PAYMENT_FAILED = "payment_failed"

    @classmethod
    def from_provider(cls, value: object) -> "InvoiceStatus | None":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class CollectionMethod(str, enum.Enum):
    CHARGE_AUTOMATICALLY = "charge_automatically"
    SEND_INVOICE = "send_invoice"


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class Invoice(BaseModel):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contact_id = Column(Integer, ForeignKey("user_contacts.id"), nullable=True)
    stripe_invoice_id = Column(String, unique=True, index=True, nullable=False)
    stripe_customer_id = Column(String, nullable=False)
    invoice_number = Column(String, nullable=True)
    status = Column(
        SQLAlchemyEnum(InvoiceStatus, native_enum=False, length=32, values_callable=_enum_values),
        nullable=False,
        default=InvoiceStatus.DRAFT,
    )
    collection_method = Column(
        SQLAlchemyEnum(CollectionMethod, native_enum=False, length=32, values_callable=_enum_values),
        nullable=False,
        default=CollectionMethod.CHARGE_AUTOMATICALLY,
    )
    total_amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="usd")
    due_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    hosted_invoice_url = Column(String, nullable=True)
    invoice_pdf = Column(String, nullable=True)
    payment_intent_id = Column(String, nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    amount_paid = Column(Numeric(10, 2), nullable=True)
    finalized_at = Column(DateTime, nullable=True)
    last_payment_error = Column(Text, nullable=True)
    payment_attempt_count = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="invoices")
    contact = relationship("Contact", back_populates="invoices")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )

    @property
    def contact_name(self) -> str | None:
        return self.contact.full_name if self.contact else None

    @property
    def contact_email(self) -> str | None:
        return self.contact.email if self.contact else None


class InvoiceItem(BaseModel):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    # Informational link only; deleting a watch leaves historical items intact.
    watch_id = Column(Integer, nullable=True)
    description = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    stripe_invoice_item_id = Column(String, nullable=True)

    invoice = relationship("Invoice", back_populates="items")
