"""Minimal Stripe REST client over httpx.

Only the endpoints the invoicing flows need are wrapped. Requests are
form-encoded the way Stripe expects (``metadata[watch_id]=7``) and failures
are raised as typed ``StripeError`` subclasses so routes can map them to
HTTP responses.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Stripe amounts for these currencies are already whole units.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)


class StripeError(Exception):
    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
        param: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.code = code
        self.param = param


class StripeAuthenticationError(StripeError):
    """Stripe rejected the API key (401/403)."""


class StripeNotFoundError(StripeError):
    """The requested object does not exist or was deleted."""


class StripeConnectionError(StripeError):
    """Stripe could not be reached or did not answer in time."""


class SignatureVerificationError(StripeError):
    """A webhook payload did not carry a valid Stripe-Signature."""


def minor_unit(currency: Optional[str] = None) -> Decimal:
    """Smallest amount the currency can carry: 0.01, or 1 for zero-decimal currencies."""
    if currency and currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return Decimal("1")
    return CENT


def to_minor_units(amount: Decimal | int | float | str, currency: Optional[str] = None) -> int:
    """Convert a major-unit amount to Stripe's integer amount.

    ``13500.00`` USD becomes ``1350000``; ``13500`` JPY stays ``13500``.
    """
    unit = minor_unit(currency)
    value = Decimal(str(amount)).quantize(unit, rounding=ROUND_HALF_UP)
    return int((value / unit).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(value: Any, currency: Optional[str] = None) -> Optional[Decimal]:
    if value is None:
        return None
    unit = minor_unit(currency)
    return (Decimal(int(value)) * unit).quantize(CENT)



def encode_form(params: Optional[dict], prefix: Optional[str] = None) -> list[tuple[str, str]]:
    """Flatten nested params into Stripe's bracketed form keys.

    ``{"metadata": {"a": 1}, "expand": ["x"]}`` becomes
    ``[("metadata[a]", "1"), ("expand[0]", "x")]``. ``None`` values are dropped.
    """
    pairs: list[tuple[str, str]] = []
    if not params:
        return pairs
    items: Iterable[tuple[Any, Any]]
    if isinstance(params, dict):
        items = params.items()
    else:
        items = enumerate(params)
    for key, value in items:
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            pairs.extend(encode_form(value, name))  # type: ignore[arg-type]
        elif isinstance(value, bool):
            pairs.append((name, "true" if value else "false"))
        else:
            pairs.append((name, str(value)))
    return pairs


def expandable_id(value: Any) -> Optional[str]:
    """Return the id of a Stripe field that may be a string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


class StripeClient:
    """Synchronous client bound to one account's secret key."""

    def __init__(
        self,
        secret_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = (base_url or settings.STRIPE_API_BASE).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=timeout if timeout is not None else settings.STRIPE_TIMEOUT
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "StripeClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, params: Optional[dict] = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        form = encode_form(params)
        try:
            if method == "GET":
                r = self._client.get(url, params=form, headers=headers)
            else:
                r = self._client.request(method, url, data=dict(form), headers=headers)
        except httpx.TimeoutException as exc:
            logger.error("Stripe %s %s timed out", method, path)
            raise StripeConnectionError("Stripe did not respond in time") from exc
        except httpx.HTTPError as exc:
            logger.error("Stripe %s %s failed: %s", method, path, exc)
            raise StripeConnectionError(f"Could not reach Stripe: {exc}") from exc

        if r.status_code >= 400:
            raise self._error_from_response(r)
        return r.json()

    @staticmethod
    def _error_from_response(r: httpx.Response) -> StripeError:
        try:
            err = (r.json() or {}).get("error") or {}
        except ValueError:
            err = {}
        message = err.get("message") or f"Stripe returned HTTP {r.status_code}"
        kwargs = {
            "status_code": r.status_code,
            "error_type": err.get("type"),
            "code": err.get("code"),
            "param": err.get("param"),
        }
        logger.warning("Stripe error %s: %s", r.status_code, message)
        if r.status_code in (401, 403):
            return StripeAuthenticationError(message, **kwargs)
        if r.status_code == 404 or err.get("code") == "resource_missing":
            return StripeNotFoundError(message, **kwargs)
        return StripeError(message, **kwargs)

    # Customers

    def retrieve_customer(self, customer_id: str) -> dict:
        customer = self._request("GET", f"customers/{customer_id}")
        if customer.get("deleted"):
            raise StripeNotFoundError(
                f"Customer {customer_id} was deleted", status_code=404, code="resource_missing"
            )
        return customer

    def find_customer_by_email(self, email: str) -> Optional[dict]:
        result = self._request("GET", "customers", {"email": email, "limit": 1})
        data = result.get("data") or []
        return data[0] if data else None

    def create_customer(self, params: dict) -> dict:
        return self._request("POST", "customers", params)

    def update_customer(self, customer_id: str, params: dict) -> dict:
        return self._request("POST", f"customers/{customer_id}", params)

    # Invoices

    def create_invoice(self, params: dict) -> dict:
        return self._request("POST", "invoices", params)

    def create_invoice_item(self, params: dict) -> dict:
        return self._request("POST", "invoiceitems", params)

    def retrieve_invoice(self, invoice_id: str) -> dict:
        return self._request("GET", f"invoices/{invoice_id}")

    def finalize_invoice(self, invoice_id: str) -> dict:
        return self._request("POST", f"invoices/{invoice_id}/finalize")

    def send_invoice(self, invoice_id: str) -> dict:
        return self._request("POST", f"invoices/{invoice_id}/send")

    def void_invoice(self, invoice_id: str) -> dict:
        return self._request("POST", f"invoices/{invoice_id}/void")


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), msg=signed, digestmod=hashlib.sha256).hexdigest()


def verify_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = 300,
    now: Optional[float] = None,
) -> None:
    """Check a ``Stripe-Signature`` header (``t=...,v1=...``) against the payload."""
    if not header:
        raise SignatureVerificationError("Missing Stripe-Signature header")
    timestamp: Optional[int] = None
    candidates: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise SignatureVerificationError("Malformed signature timestamp")
        elif key == "v1":
            candidates.append(value)
    if timestamp is None or not candidates:
        raise SignatureVerificationError("Malformed Stripe-Signature header")

    expected = compute_signature(payload, secret, timestamp)
    if not any(hmac.compare_digest(expected, c) for c in candidates):
        raise SignatureVerificationError("Signature mismatch")

    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise SignatureVerificationError("Signature timestamp outside tolerance")
