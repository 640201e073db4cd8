from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from ..models.invoice import CollectionMethod, InvoiceStatus
from .money import Money


class CustomerAddress(BaseModel):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class CustomerInfo(BaseModel):
    """Manual customer fields; override the linked contact's values."""

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[CustomerAddress] = None


class InvoiceItemCreate(BaseModel):
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    # Falls back to the watch's sale price when omitted
    unit_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    watch_id: Optional[int] = None


class InvoiceCreate(BaseModel):
    contact_id: Optional[int] = None
    customer: Optional[CustomerInfo] = None
    existing_stripe_customer_id: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(min_length=1)
    collection_method: CollectionMethod = CollectionMethod.CHARGE_AUTOMATICALLY
    due_date: Optional[date] = None
    notes: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class InvoiceItemRead(BaseModel):
    id: int
    watch_id: Optional[int] = None
    description: str
    quantity: int
    unit_price: Money
    total_amount: Money

    model_config = {"from_attributes": True}


class InvoiceRead(BaseModel):
    id: int
    contact_id: Optional[int] = None
    stripe_invoice_id: str
    stripe_customer_id: str
    invoice_number: Optional[str] = None
    status: InvoiceStatus
    collection_method: CollectionMethod
    total_amount: Money
    currency: str
    due_date: Optional[date] = None
    description: Optional[str] = None
    hosted_invoice_url: Optional[str] = None
    invoice_pdf: Optional[str] = None
    payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    amount_paid: Optional[Money] = None
    finalized_at: Optional[datetime] = None
    last_payment_error: Optional[str] = None
    payment_attempt_count: int = 0
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InvoiceDetail(InvoiceRead):
    items: List[InvoiceItemRead] = []


class InvoiceCreateResponse(BaseModel):
    invoice: InvoiceDetail
    invoice_url: Optional[str] = None
    stripe_customer_id: str
    customer_created: bool
    collection_method: CollectionMethod
    message: str


class StripeConfigStatus(BaseModel):
    has_stripe_config: bool
    publishable_key: Optional[str] = None
    message: str
