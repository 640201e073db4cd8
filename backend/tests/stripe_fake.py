"""In-memory stand-in for the slice of the Stripe REST API the app calls.

Plugged in through ``httpx.MockTransport`` so the real ``StripeClient``
(form encoding, error mapping) runs against it.
"""

import itertools
import time
from urllib.parse import parse_qsl

import httpx

from tracker.services.stripe_client import StripeClient

VALID_KEY = "sk_test_dealer"
API_BASE = "https://api.stripe.test/v1"


def _metadata(form: dict) -> dict:
    return {k[len("metadata["):-1]: v for k, v in form.items() if k.startswith("metadata[")}


class FakeStripe:
    def __init__(self, valid_keys=(VALID_KEY,)):
        self.valid_keys = set(valid_keys)
        self.customers: dict = {}
        self.invoices: dict = {}
        self.invoice_items: dict = {}
        self.calls: list = []
        self.failures: dict = {}
        self._ids = itertools.count(1)

    # Wiring

    def client_for(self, secret_key: str) -> StripeClient:
        http = httpx.Client(transport=httpx.MockTransport(self.handler))
        return StripeClient(secret_key, base_url=API_BASE, http_client=http)

    def fail(self, method, path, status=400, message="Request failed", code=None,
             error_type="invalid_request_error", param=None):
        self.failures[(method, path)] = (
            status,
            {"type": error_type, "message": message, "code": code, "param": param},
        )

    def calls_to(self, method, path):
        return [form for m, p, form in self.calls if m == method and p == path]

    # Seeding remote state

    def add_customer(self, email, name=None, deleted=False) -> str:
        customer_id = f"cus_{next(self._ids)}"
        customer = {"id": customer_id, "object": "customer", "email": email, "name": name}
        if deleted:
            customer = {"id": customer_id, "object": "customer", "deleted": True}
        self.customers[customer_id] = customer
        return customer_id

    def pay(self, invoice_id, paid_at=None) -> dict:
        invoice = self.invoices[invoice_id]
        invoice["status"] = "paid"
        invoice["amount_paid"] = invoice["total"]
        invoice["amount_remaining"] = 0
        invoice["status_transitions"]["paid_at"] = paid_at or int(time.time())
        return invoice

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/v1/", 1)[-1]
        if request.method == "GET":
            form = dict(request.url.params)
        else:
            form = dict(parse_qsl(request.content.decode("utf-8")))
        self.calls.append((request.method, path, form))

        key = request.headers.get("Authorization", "").replace("Bearer ", "", 1)
        if key not in self.valid_keys:
            return self._error(401, "Invalid API Key provided: sk_test_****")

        failure = self.failures.get((request.method, path))
        if failure is not None:
            status, err = failure
            return httpx.Response(status, json={"error": err})

        parts = path.split("/")
        if parts[0] == "customers":
            return self._customers(request.method, parts[1:], form)
        if parts[0] == "invoiceitems":
            return self._create_item(form)
        if parts[0] == "invoices":
            return self._invoices(parts[1:], form)
        return self._error(404, f"Unrecognized request URL ({request.method}: /v1/{path})")

    @staticmethod
    def _error(status, message, code=None, error_type="invalid_request_error"):
        return httpx.Response(
            status, json={"error": {"type": error_type, "message": message, "code": code}}
        )

    def _customer_fields(self, form):
        fields = {k: form.get(k) for k in ("email", "name", "phone") if form.get(k)}
        address = {
            k[len("address["):-1]: v for k, v in form.items() if k.startswith("address[")
        }
        if address:
            fields["address"] = address
        metadata = _metadata(form)
        if metadata:
            fields["metadata"] = metadata
        return fields

    def _customers(self, method, rest, form):
        if not rest:
            if method == "GET":
                data = [
                    c for c in self.customers.values()
                    if not c.get("deleted") and c.get("email") == form.get("email")
                ]
                return httpx.Response(
                    200,
                    json={"object": "list", "data": data[: int(form.get("limit", 10))]},
                )
            customer_id = f"cus_{next(self._ids)}"
            customer = {"id": customer_id, "object": "customer", **self._customer_fields(form)}
            self.customers[customer_id] = customer
            return httpx.Response(200, json=customer)

        customer = self.customers.get(rest[0])
        if customer is None:
            return self._error(404, f"No such customer: '{rest[0]}'", code="resource_missing")
        if method == "POST":
            customer.update(self._customer_fields(form))
        return httpx.Response(200, json=customer)

    def _invoices(self, rest, form):
        if not rest:
            invoice_id = f"in_{next(self._ids)}"
            self.invoices[invoice_id] = {
                "id": invoice_id,
                "object": "invoice",
                "status": "draft",
                "customer": form.get("customer"),
                "collection_method": form.get("collection_method"),
                "currency": form.get("currency"),
                "due_date": int(form["due_date"]) if form.get("due_date") else None,
                "auto_advance": form.get("auto_advance") == "true",
                "metadata": _metadata(form),
                "total": 0,
                "amount_due": 0,
                "amount_paid": 0,
                "number": None,
                "hosted_invoice_url": None,
                "invoice_pdf": None,
                "payment_intent": None,
                "status_transitions": {"finalized_at": None, "paid_at": None},
            }
            return httpx.Response(200, json=self.invoices[invoice_id])

        invoice = self.invoices.get(rest[0])
        if invoice is None:
            return self._error(404, f"No such invoice: '{rest[0]}'", code="resource_missing")
        action = rest[1] if len(rest) > 1 else None
        if action == "finalize":
            if invoice["status"] != "draft":
                return self._error(400, "This invoice is already finalized")
            number = sum(1 for i in self.invoices.values() if i["number"]) + 1
            suffix = invoice["id"][len("in_"):]
            invoice.update(
                status="open",
                number=f"INV-{number:04d}",
                hosted_invoice_url=f"https://invoice.stripe.com/i/{invoice['id']}",
                invoice_pdf=f"https://pay.stripe.com/invoice/{invoice['id']}/pdf",
                payment_intent=f"pi_{suffix}",
                amount_due=invoice["total"],
            )
            invoice["status_transitions"]["finalized_at"] = int(time.time())
        elif action == "void":
            if invoice["status"] == "paid":
                return self._error(400, "You can only void open invoices")
            invoice["status"] = "void"
        return httpx.Response(200, json=invoice)

    def _create_item(self, form):
        invoice = self.invoices.get(form.get("invoice"))
        if invoice is None:
            return self._error(404, "No such invoice", code="resource_missing")
        item_id = f"ii_{next(self._ids)}"
        item = {
            "id": item_id,
            "object": "invoiceitem",
            "invoice": invoice["id"],
            "customer": form.get("customer"),
            "amount": int(form["amount"]),
            "currency": form.get("currency"),
            "description": form.get("description"),
            "metadata": _metadata(form),
        }
        self.invoice_items[item_id] = item
        invoice["total"] += item["amount"]
        return httpx.Response(200, json=item)
