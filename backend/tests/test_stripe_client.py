from decimal import Decimal

import httpx
import pytest

from tracker.services.stripe_client import (
    SignatureVerificationError,
    StripeAuthenticationError,
    StripeClient,
    StripeConnectionError,
    StripeError,
    StripeNotFoundError,
    compute_signature,
    encode_form,
    expandable_id,
    from_minor_units,
    to_minor_units,
    verify_signature,
)


def client_with(handler) -> StripeClient:
    return StripeClient(
        "sk_test_x",
        base_url="https://api.stripe.test/v1",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_encode_form_flattens_nested_params():
    pairs = encode_form(
        {
            "customer": "cus_1",
            "auto_advance": False,
            "metadata": {"watch_id": 7, "note": None},
            "expand": ["payment_intent"],
            "address": {"city": "Geneva"},
        }
    )
    assert pairs == [
        ("customer", "cus_1"),
        ("auto_advance", "false"),
        ("metadata[watch_id]", "7"),
        ("expand[0]", "payment_intent"),
        ("address[city]", "Geneva"),
    ]


def test_minor_unit_conversion():
    assert to_minor_units(Decimal("13500.00")) == 1350000
    assert to_minor_units("0.005") == 1
    assert from_minor_units(371) == Decimal("3.71")
    assert from_minor_units(None) is None


def test_zero_decimal_currencies_use_whole_units():
    assert to_minor_units(Decimal("13500"), "jpy") == 13500
    assert to_minor_units("150.5", "KRW") == 151
    assert from_minor_units(13500, "jpy") == Decimal("13500.00")
    assert to_minor_units("13500", "eur") == 1350000


def test_expandable_id():
    assert expandable_id({"id": "pi_1", "object": "payment_intent"}) == "pi_1"
    assert expandable_id("pi_2") == "pi_2"
    assert expandable_id(None) is None


def test_requests_carry_bearer_key_and_form_body():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"id": "cus_1"})

    with client_with(handler) as stripe:
        stripe.create_customer({"email": "a@b.co", "metadata": {"user_id": 1}})
    assert seen["auth"] == "Bearer sk_test_x"
    assert "metadata%5Buser_id%5D=1" in seen["body"]


@pytest.mark.parametrize(
    "status,error,expected",
    [
        (401, {"type": "invalid_request_error", "message": "Invalid API Key"}, StripeAuthenticationError),
        (404, {"code": "resource_missing", "message": "No such invoice"}, StripeNotFoundError),
        (402, {"type": "card_error", "message": "Your card was declined."}, StripeError),
    ],
)
def test_error_responses_are_typed(status, error, expected):
    stripe = client_with(lambda request: httpx.Response(status, json={"error": error}))
    with pytest.raises(expected) as exc_info:
        stripe.retrieve_invoice("in_1")
    assert exc_info.value.status_code == status
    assert str(exc_info.value) == error["message"]


def test_deleted_customer_is_not_found():
    stripe = client_with(
        lambda request: httpx.Response(200, json={"id": "cus_1", "deleted": True})
    )
    with pytest.raises(StripeNotFoundError):
        stripe.retrieve_customer("cus_1")


def test_transport_failure_is_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StripeConnectionError):
        client_with(handler).retrieve_invoice("in_1")


def test_find_customer_by_email_returns_first_match():
    def handler(request):
        assert request.url.params["email"] == "chris@example.com"
        assert request.url.params["limit"] == "1"
        return httpx.Response(200, json={"object": "list", "data": [{"id": "cus_9"}]})

    assert client_with(handler).find_customer_by_email("chris@example.com") == {"id": "cus_9"}


def test_verify_signature_accepts_valid_header():
    payload = b'{"id": "evt_1"}'
    sig = compute_signature(payload, "whsec_x", 1700000000)
    verify_signature(payload, f"t=1700000000,v1=bogus,v1={sig}", "whsec_x", now=1700000100)


@pytest.mark.parametrize(
    "header",
    [None, "", "v1=abc", "t=notanumber,v1=abc", "t=1700000000"],
)
def test_verify_signature_rejects_malformed_headers(header):
    with pytest.raises(SignatureVerificationError):
        verify_signature(b"{}", header, "whsec_x", now=1700000000)


def test_verify_signature_rejects_tampering_and_old_timestamps():
    payload = b'{"id": "evt_1"}'
    sig = compute_signature(payload, "whsec_x", 1700000000)
    with pytest.raises(SignatureVerificationError):
        verify_signature(b'{"id": "evt_2"}', f"t=1700000000,v1={sig}", "whsec_x", now=1700000000)
    with pytest.raises(SignatureVerificationError):
        verify_signature(payload, f"t=1700000000,v1={sig}", "whsec_x", tolerance=300, now=1700000301)
