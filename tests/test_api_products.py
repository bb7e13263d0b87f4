from __future__ import annotations

from decimal import Decimal

from sqlmodel import select

from storefront.models import InventoryUnit, Product, Variant

ADMIN_URL = "/api/v1/admin"


def _create_product(client, headers, **overrides):
    body = {"name": "Netflix Premium", "slug": "netflix-premium", "description": "4K"}
    body.update(overrides)
    return client.post(f"{ADMIN_URL}/products", headers=headers, json=body)


def test_product_routes_require_admin(client, make_user, headers_for):
    r = client.get(f"{ADMIN_URL}/products", headers=headers_for(make_user()))
    assert r.status_code == 403


def test_create_product_and_variants(client, admin_headers):
    r = _create_product(client, admin_headers)
    assert r.status_code == 200
    product = r.json()["data"]
    assert product["slug"] == "netflix-premium"
    assert product["variants"] == []
    assert product["priceMin"] is None

    for name, price in (("1 month", "90000"), ("12 months", "900000.50")):
        r = client.post(
            f"{ADMIN_URL}/products/{product['id']}/variants",
            headers=admin_headers,
            json={"name": name, "price": price, "durationDays": 30},
        )
        assert r.status_code == 200
        assert r.json()["data"]["stock"] == {"total": 0, "sold": 0, "available": 0}

    r = client.get(f"{ADMIN_URL}/products/{product['id']}", headers=admin_headers)
    detail = r.json()["data"]
    assert [v["name"] for v in detail["variants"]] == ["1 month", "12 months"]
    assert Decimal(detail["priceMin"]) == Decimal("90000")
    assert Decimal(detail["priceMax"]) == Decimal("900000.50")

    r = client.get(f"{ADMIN_URL}/products", headers=admin_headers)
    assert [p["id"] for p in r.json()["data"]] == [product["id"]]


def test_slug_must_be_unique(client, admin_headers):
    first = _create_product(client, admin_headers).json()["data"]
    second = _create_product(client, admin_headers, slug="spotify").json()["data"]

    r = _create_product(client, admin_headers, name="Other")
    assert r.status_code == 409
    assert r.json()["code"] == 409002

    r = client.patch(
        f"{ADMIN_URL}/products/{second['id']}",
        headers=admin_headers,
        json={"slug": first["slug"]},
    )
    assert r.status_code == 409

    # Keeping its own slug is not a conflict.
    r = client.patch(
        f"{ADMIN_URL}/products/{first['id']}",
        headers=admin_headers,
        json={"slug": first["slug"], "name": "Netflix"},
    )
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Netflix"


def test_product_payload_validation(client, admin_headers):
    r = _create_product(client, admin_headers, slug="Not A Slug")
    assert r.status_code == 400
    r = _create_product(client, admin_headers, name="")
    assert r.status_code == 400

    product = _create_product(client, admin_headers).json()["data"]
    r = client.post(
        f"{ADMIN_URL}/products/{product['id']}/variants",
        headers=admin_headers,
        json={"name": "Free", "price": "0"},
    )
    assert r.status_code == 400


def test_update_product_partial(client, admin_headers):
    product = _create_product(client, admin_headers).json()["data"]

    r = client.patch(
        f"{ADMIN_URL}/products/{product['id']}",
        headers=admin_headers,
        json={"description": None, "name": None},
    )

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["description"] is None
    assert data["name"] == "Netflix Premium"


def test_update_variant(client, admin_headers, make_variant):
    variant = make_variant(price="100000")

    r = client.patch(
        f"{ADMIN_URL}/variants/{variant.id}",
        headers=admin_headers,
        json={"price": "120000", "durationDays": 90},
    )

    assert r.status_code == 200
    data = r.json()["data"]
    assert Decimal(data["price"]) == Decimal("120000")
    assert data["durationDays"] == 90
    assert data["name"] == "1 month"


def test_delete_product_cascades(client, db, admin_headers, make_variant):
    variant = make_variant(units=3)
    product_id, variant_id = variant.product_id, variant.id

    r = client.delete(f"{ADMIN_URL}/products/{product_id}", headers=admin_headers)

    assert r.status_code == 200
    assert r.json()["data"] == {"deleted": True, "variants": 1}
    db.expire_all()
    assert db.get(Product, product_id) is None
    assert db.exec(select(Variant).where(Variant.product_id == product_id)).all() == []
    assert db.exec(select(InventoryUnit).where(InventoryUnit.variant_id == variant_id)).all() == []

    r = client.get(f"{ADMIN_URL}/products/{product_id}", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["code"] == 404003


def test_delete_variant_removes_units(client, db, admin_headers, make_variant):
    variant = make_variant(units=2)
    product_id, variant_id = variant.product_id, variant.id

    r = client.delete(f"{ADMIN_URL}/variants/{variant_id}", headers=admin_headers)

    assert r.status_code == 200
    db.expire_all()
    assert db.get(Variant, variant_id) is None
    assert db.get(Product, product_id) is not None
    assert db.exec(select(InventoryUnit).where(InventoryUnit.variant_id == variant_id)).all() == []

    r = client.delete(f"{ADMIN_URL}/variants/{variant_id}", headers=admin_headers)
    assert r.status_code == 404


def test_ordered_products_cannot_be_deleted(
    client, admin_headers, make_user, make_variant, headers_for
):
    variant = make_variant(units=2)
    r = client.post(
        "/api/v1/orders",
        headers=headers_for(make_user()),
        json={"items": [{"variantId": variant.id, "quantity": 1}]},
    )
    assert r.status_code == 200

    r = client.delete(f"{ADMIN_URL}/variants/{variant.id}", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["code"] == 409003

    r = client.delete(f"{ADMIN_URL}/products/{variant.product_id}", headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["message"] == "Cannot delete product with existing orders"
