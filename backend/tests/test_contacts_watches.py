from factories import load_invoice, seed_invoice


def test_contact_crud(client, headers):
    res = client.post(
        "/api/v1/contacts/",
        json={
            "first_name": "Morgan",
            "last_name": "Keeper",
            "email": "morgan@example.com",
            "contact_type": "Jeweler",
            "city": "Antwerp",
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    contact = res.json()
    assert contact["contact_type"] == "Jeweler"
    assert contact["stripe_customer_id"] is None

    res = client.put(
        f"/api/v1/contacts/{contact['id']}", json={"phone": "+32 3 555 0101"}, headers=headers
    )
    assert res.status_code == 200
    assert res.json()["phone"] == "+32 3 555 0101"
    assert res.json()["city"] == "Antwerp"

    res = client.get("/api/v1/contacts/", params={"q": "keep"}, headers=headers)
    assert [c["id"] for c in res.json()] == [contact["id"]]
    res = client.get("/api/v1/contacts/", params={"contact_type": "Lead"}, headers=headers)
    assert res.json() == []

    assert client.delete(f"/api/v1/contacts/{contact['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/v1/contacts/{contact['id']}", headers=headers).status_code == 404


def test_deleting_contact_keeps_invoices(client, headers, dealer, session_factory):
    res = client.post("/api/v1/contacts/", json={"first_name": "Sam"}, headers=headers)
    contact_id = res.json()["id"]
    invoice = seed_invoice(session_factory, dealer, contact_id=contact_id)

    assert client.delete(f"/api/v1/contacts/{contact_id}", headers=headers).status_code == 204
    assert load_invoice(session_factory, invoice.id).contact_id is None


def test_contacts_are_private(client, headers, make_user, headers_for):
    other = make_user(email="rival@example.com")
    res = client.post("/api/v1/contacts/", json={"first_name": "Secret"}, headers=headers_for(other))
    contact_id = res.json()["id"]

    assert client.get(f"/api/v1/contacts/{contact_id}", headers=headers).status_code == 404
    assert client.delete(f"/api/v1/contacts/{contact_id}", headers=headers).status_code == 404
    assert client.get("/api/v1/contacts/", headers=headers).json() == []


def test_watch_crud(client, headers):
    res = client.post(
        "/api/v1/watches/",
        json={
            "brand": "Rolex",
            "model": "Submariner",
            "reference_number": "126610LN",
            "year": 2021,
            "purchase_price": 11250.5,
            "sale_price": 13500,
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    watch = res.json()
    assert watch["status"] == "in_stock"
    assert watch["sale_price"] == 13500.0

    res = client.put(f"/api/v1/watches/{watch['id']}", json={"status": "sold"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["status"] == "sold"

    assert client.get("/api/v1/watches/", params={"status": "in_stock"}, headers=headers).json() == []
    res = client.get("/api/v1/watches/", params={"q": "126610"}, headers=headers)
    assert [w["id"] for w in res.json()] == [watch["id"]]

    assert client.delete(f"/api/v1/watches/{watch['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/v1/watches/{watch['id']}", headers=headers).status_code == 404


def test_watch_validation(client, headers):
    res = client.post(
        "/api/v1/watches/", json={"brand": "", "model": "Speedmaster", "year": 1500}, headers=headers
    )
    assert res.status_code == 422
    field_errors = res.json()["detail"]["field_errors"]
    assert "brand" in field_errors
    assert "year" in field_errors
