from decimal import Decimal

import pytest
from sqlalchemy import select

from models.order import Order
from models.product import Product
from repositories.products import ProductRepository
from services.checkout import CartLine


@pytest.fixture()
def placed_order(client, customer, make_shop, make_product, auth_headers):
    shop = make_shop()
    product = make_product(shop, price="10.00", cost_price="4.00", stock=5)
    resp = client.post(
        "/api/customer/checkout",
        json={"cartItems": [{"productId": product.id, "quantity": 2}], "paymentConfirmed": True},
        headers=auth_headers(customer.id, "customer"),
    )
    [order_id] = resp.json()["orderIds"]
    return shop, product, int(order_id)


def test_product_crud(client, db, make_shop, auth_headers):
    shop = make_shop()
    headers = auth_headers(shop.id, "owner")

    resp = client.post("/api/owner/products", headers=headers, json={
        "name": "Wool Cap", "description": "Warm", "category": "Clothing",
        "price": "12.50", "cost_price": "5.00", "stock_quantity": 7, "details": {"sizes": "S, M"},
    })
    assert resp.status_code == 201
    product_id = resp.json()["id"]
    assert resp.json()["shop_id"] == shop.id

    resp = client.put(f"/api/owner/products/{product_id}", headers=headers,
                      json={"stock_quantity": 20, "price": "14.00"})
    assert resp.status_code == 200
    assert resp.json()["stock_quantity"] == 20
    assert Decimal(resp.json()["price"]) == Decimal("14.00")

    listed = client.get("/api/owner/products", headers=headers).json()
    assert [p["id"] for p in listed] == [product_id]

    assert client.delete(f"/api/owner/products/{product_id}", headers=headers).status_code == 204
    db.expire_all()
    assert db.get(Product, product_id) is None


def test_product_validation(client, make_shop, auth_headers):
    headers = auth_headers(make_shop().id, "owner")
    resp = client.post("/api/owner/products", headers=headers, json={
        "name": "Free", "description": "d", "category": "c",
        "price": "0", "cost_price": "0", "stock_quantity": 1,
    })
    assert resp.status_code == 422

    resp = client.put("/api/owner/products/1", headers=headers, json={"stock_quantity": -1})
    assert resp.status_code == 422


def test_owner_cannot_touch_other_shops_products(client, make_shop, make_product, auth_headers):
    other = make_product(make_shop(), stock=5)
    headers = auth_headers(make_shop().id, "owner")

    assert client.put(f"/api/owner/products/{other.id}", headers=headers, json={"stock_quantity": 0}).status_code == 404
    assert client.delete(f"/api/owner/products/{other.id}", headers=headers).status_code == 404


def test_shop_order_list(client, customer, placed_order, auth_headers):
    shop, _, order_id = placed_order
    orders = client.get("/api/owner/orders", headers=auth_headers(shop.id, "owner")).json()

    assert [o["id"] for o in orders] == [order_id]
    assert orders[0]["customer_name"] == customer.name
    assert orders[0]["customer_phone"] == customer.phone
    assert Decimal(orders[0]["items"][0]["cost_price"]) == Decimal("4.00")


def test_any_status_can_follow_any_status(client, db, placed_order, auth_headers):
    shop, _, order_id = placed_order
    headers = auth_headers(shop.id, "owner")

    for status in ["Delivered", "Pending", "Cancelled", "Shipped"]:
        resp = client.put(f"/api/owner/orders/{order_id}/status", headers=headers, json={"status": status})
        assert resp.status_code == 200
        assert resp.json()["status"] == status

    db.expire_all()
    assert db.get(Order, order_id).status.value == "Shipped"


def test_status_update_rejections(client, make_shop, placed_order, auth_headers):
    shop, _, order_id = placed_order

    resp = client.put(f"/api/owner/orders/{order_id}/status", headers=auth_headers(shop.id, "owner"),
                      json={"status": "Lost"})
    assert resp.status_code == 400

    stranger = make_shop()
    resp = client.put(f"/api/owner/orders/{order_id}/status", headers=auth_headers(stranger.id, "owner"),
                      json={"status": "Shipped"})
    assert resp.status_code == 404


def test_restock_after_checkout_keeps_snapshot(client, db, placed_order, auth_headers):
    shop, product, order_id = placed_order
    headers = auth_headers(shop.id, "owner")

    resp = client.put(f"/api/owner/products/{product.id}", headers=headers,
                      json={"stock_quantity": 50, "price": "99.00"})
    assert resp.status_code == 200

    db.expire_all()
    order = db.get(Order, order_id)
    assert order.items[0].selling_price == Decimal("10.00")
    assert order.total_amount == Decimal("20.00")


class CheckoutBetweenReadAndWrite(ProductRepository):
    """Commits a competing checkout right after the owner's request has read the row."""

    service = None
    customer_id = None

    def get_for_shop(self, product_id, shop_id, lock=False):
        product = super().get_for_shop(product_id, shop_id, lock=lock)
        if product is not None:
            self.service.checkout(self.customer_id, [CartLine(product_id, 2)])
        return product


def test_restock_racing_a_checkout_is_rejected(client, db, service, customer, make_shop, make_product,
                                               auth_headers, monkeypatch):
    shop = make_shop()
    product = make_product(shop, stock=5)
    CheckoutBetweenReadAndWrite.service = service
    CheckoutBetweenReadAndWrite.customer_id = customer.id
    monkeypatch.setattr("routes.owner.ProductRepository", CheckoutBetweenReadAndWrite)

    resp = client.put(f"/api/owner/products/{product.id}", headers=auth_headers(shop.id, "owner"),
                      json={"stock_quantity": 50})

    assert resp.status_code == 409
    db.expire_all()
    refreshed = db.get(Product, product.id)
    assert refreshed.stock_quantity == 3
    assert refreshed.version_id == 2
    assert len(db.execute(select(Order)).scalars().all()) == 1


def test_delete_racing_a_checkout_is_rejected(client, db, service, customer, make_shop, make_product,
                                              auth_headers, monkeypatch):
    shop = make_shop()
    product = make_product(shop, stock=5)
    CheckoutBetweenReadAndWrite.service = service
    CheckoutBetweenReadAndWrite.customer_id = customer.id
    monkeypatch.setattr("routes.owner.ProductRepository", CheckoutBetweenReadAndWrite)

    resp = client.delete(f"/api/owner/products/{product.id}", headers=auth_headers(shop.id, "owner"))

    assert resp.status_code == 409
    db.expire_all()
    assert db.get(Product, product.id).stock_quantity == 3


def test_update_rejects_blank_description_and_category(client, make_shop, make_product, auth_headers):
    shop = make_shop()
    product = make_product(shop, stock=5)
    headers = auth_headers(shop.id, "owner")

    for body in ({"description": ""}, {"category": ""}):
        resp = client.put(f"/api/owner/products/{product.id}", headers=headers, json=body)
        assert resp.status_code == 422
