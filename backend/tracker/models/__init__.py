from .user import User
from .contact import Contact, ContactType
from .watch import Watch, WatchStatus
from .invoice import Invoice, InvoiceItem, InvoiceStatus, CollectionMethod
from .promo_signup import PromoSignup

__all__ = [
    "User",
    "Contact",
    "ContactType",
    "Watch",
    "WatchStatus",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "CollectionMethod",
    "PromoSignup",
]
