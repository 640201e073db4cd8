from .user import UserCreate, UserResponse, Token, StripeSettingsRead, StripeSettingsUpdate
from .contact import ContactCreate, ContactUpdate, ContactRead
from .watch import WatchCreate, WatchUpdate, WatchRead
from .invoice import (
    CustomerInfo,
    InvoiceItemCreate,
    InvoiceCreate,
    InvoiceRead,
    InvoiceDetail,
    InvoiceCreateResponse,
    StripeConfigStatus,
)
from .promo import PromoSignupCreate, PromoSignupResponse
