import concurrent.futures
from datetime import timedelta

import pytest
from sqlalchemy import event

from storefront.db import SessionLocal
from storefront.errors import AppError, EmptyCartError, NotFoundError, ValidationError
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService
from storefront.services.policy import POLICIES, USER_ACTIONS
from storefront.utils.clock import utcnow

from conftest import auth_headers, make_coupon, make_product, make_user


def _order_count(db):
    db.expire_all()
    return db.query(Order).count()


def test_checkout_scenario_with_coupon(db, user):
    p1 = make_product(db, "P1", 1000)
    make_coupon(db, "SAVE10", 10)
    carts = CartService(db)
    carts.add_item(user.id, p1.id, 2)
    cart = carts.apply_coupon(user.id, "SAVE10")
    assert cart.total_price_cents == 2000
    assert cart.total_price_after_discount_cents == 1800

    orders = OrderService(db)
    order = orders.checkout(user.id, cart.id, shipping_address="1 Main St")
    assert order.total_price_cents == 1800
    assert order.coupon_code == "SAVE10"
    assert order.is_paid is False and order.is_delivered is False
    assert [(l.sku, l.quantity, l.unit_price_cents) for l in order.lines] == [("P1", 2, 1000)]
    assert carts.get_cart(user.id) is None

    paid = orders.mark_paid(order.id)
    first_paid_at = paid.paid_at
    assert paid.is_paid is True and first_paid_at is not None
    again = orders.mark_paid(order.id, now=utcnow() + timedelta(hours=1))
    assert again.paid_at == first_paid_at


def test_checkout_without_coupon_uses_plain_total(db, user):
    p = make_product(db, "P1", 300)
    cart = CartService(db).add_item(user.id, p.id, 3)
    order = OrderService(db).checkout(user.id, cart.id)
    assert order.total_price_cents == 900
    assert order.payment_method == "cash"


def test_checkout_empty_cart_creates_no_order(db, user):
    p = make_product(db)
    carts = CartService(db)
    cart = carts.add_item(user.id, p.id, 1)
    carts.remove_item(user.id, p.id)
    with pytest.raises(EmptyCartError):
        OrderService(db).checkout(user.id, cart.id)
    assert _order_count(db) == 0


def test_checkout_unknown_or_foreign_cart(db, user):
    other = make_user(db, email="other@example.com")
    p = make_product(db)
    cart = CartService(db).add_item(other.id, p.id, 1)
    with pytest.raises(NotFoundError):
        OrderService(db).checkout(user.id, cart.id)
    with pytest.raises(NotFoundError):
        OrderService(db).checkout(user.id, 12345)


def test_checkout_adjusts_stock_and_sold(db, user):
    p = make_product(db, "P1", 100, stock=5)
    cart = CartService(db).add_item(user.id, p.id, 2)
    OrderService(db).checkout(user.id, cart.id)
    db.expire_all()
    p = db.get(Product, p.id)
    assert (p.stock, p.sold) == (3, 2)


def test_insufficient_stock_rolls_back_everything(db, user):
    p1 = make_product(db, "P1", 100, stock=5)
    p2 = make_product(db, "P2", 100, stock=1)
    carts = CartService(db)
    carts.add_item(user.id, p1.id, 2)
    cart = carts.add_item(user.id, p2.id, 2)
    with pytest.raises(ValidationError):
        OrderService(db).checkout(user.id, cart.id)
    assert _order_count(db) == 0
    assert db.get(Product, p1.id).stock == 5
    assert len(carts.get_cart(user.id).items) == 2


def test_order_lines_are_price_snapshots(db, user):
    p = make_product(db, "P1", 1000)
    cart = CartService(db).add_item(user.id, p.id, 1)
    order = OrderService(db).checkout(user.id, cart.id)
    p.price_cents = 5000
    db.commit()
    db.expire_all()
    order = db.get(Order, order.id)
    assert order.lines[0].unit_price_cents == 1000
    assert order.total_price_cents == 1000


def test_delivery_is_idempotent_and_independent_of_payment(db, user):
    p = make_product(db)
    cart = CartService(db).add_item(user.id, p.id, 1)
    svc = OrderService(db)
    order = svc.checkout(user.id, cart.id)
    delivered = svc.mark_delivered(order.id)
    first = delivered.delivered_at
    assert delivered.is_delivered and not delivered.is_paid
    assert svc.mark_delivered(order.id).delivered_at == first


def test_mark_paid_unknown_order(db):
    with pytest.raises(NotFoundError):
        OrderService(db).mark_paid(999)


def test_concurrent_checkouts_create_one_order(db, user):
    p = make_product(db, "P1", 100, stock=50)
    cart_id = CartService(db).add_item(user.id, p.id, 1).id
    user_id = user.id

    def attempt(_):
        s = SessionLocal()
        try:
            return OrderService(s).checkout(user_id, cart_id).id
        except AppError as e:
            return e
        finally:
            s.close()

    with concurrent.futures.ThreadPoolExecutor(max_workers=4) as ex:
        results = list(ex.map(attempt, range(4)))

    created = [r for r in results if isinstance(r, int)]
    assert len(created) == 1
    assert all(isinstance(r, NotFoundError) for r in results if not isinstance(r, int))
    assert _order_count(db) == 1


def test_order_api_flow(client, db, user, user_headers, admin_headers):
    p = make_product(db, "P1", 1000)
    make_coupon(db, "SAVE10", 10)
    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 2}, headers=user_headers).json()
    client.patch("/api/cart/apply-coupon", json={"code": "SAVE10"}, headers=user_headers)

    res = client.post(f"/api/orders/{cart['id']}", json={"shipping_address": "1 Main St"}, headers=user_headers)
    assert res.status_code == 200
    order = res.json()
    assert order["total_price_cents"] == 1800
    assert order["shipping_address"] == "1 Main St"
    assert client.get("/api/cart", headers=user_headers).json()["items"] == []

    res = client.post(f"/api/orders/{cart['id']}", json={}, headers=user_headers)
    assert res.status_code == 404

    # only admins move order status
    assert client.patch(f"/api/orders/{order['id']}/is-paid", headers=user_headers).status_code == 403
    res = client.patch(f"/api/orders/{order['id']}/is-paid", json={"is_paid": True}, headers=admin_headers)
    assert res.status_code == 200
    paid_at = res.json()["paid_at"]
    assert res.json()["is_paid"] is True
    res = client.patch(f"/api/orders/{order['id']}/is-paid", headers=admin_headers)
    assert res.json()["paid_at"] == paid_at

    res = client.patch(f"/api/orders/{order['id']}/is-paid", json={"is_paid": False}, headers=admin_headers)
    assert res.status_code == 400

    res = client.patch(f"/api/orders/{order['id']}/is-delivered", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["is_delivered"] is True

    assert client.patch("/api/orders/999/is-delivered", headers=admin_headers).status_code == 404


def test_empty_cart_checkout_api(client, db, user_headers):
    p = make_product(db)
    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=user_headers).json()
    client.delete(f"/api/cart/{p.id}", headers=user_headers)
    res = client.post(f"/api/orders/{cart['id']}", headers=user_headers)
    assert res.status_code == 400
    assert res.json() == {"error": "Your cart is empty"}


def test_orders_are_scoped_to_owner(client, db, user, user_headers, admin_headers):
    other = make_user(db, email="other@example.com")
    other_headers = auth_headers(db, other)
    p = make_product(db)
    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=user_headers).json()
    order = client.post(f"/api/orders/{cart['id']}", headers=user_headers).json()

    assert [o["id"] for o in client.get("/api/orders", headers=user_headers).json()] == [order["id"]]
    assert client.get("/api/orders", headers=other_headers).json() == []
    assert client.get(f"/api/orders/{order['id']}", headers=other_headers).status_code == 404
    assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert len(client.get("/api/orders", headers=admin_headers).json()) == 1

    assert client.delete(f"/api/orders/{order['id']}", headers=user_headers).status_code == 403
    assert client.delete(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 404


def test_checkout_idempotency_key_replays_response(client, db, user_headers):
    p = make_product(db, "T1", 300, stock=5)
    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 2}, headers=user_headers).json()
    headers = dict(user_headers, **{"Idempotency-Key": "idem-123"})

    r1 = client.post(f"/api/orders/{cart['id']}", json={}, headers=headers)
    assert r1.status_code == 200
    # the cart is gone, but the same key returns the stored order instead of a 404
    r2 = client.post(f"/api/orders/{cart['id']}", json={}, headers=headers)
    assert r2.status_code == 200
    assert r2.json()["id"] == r1.json()["id"]
    assert _order_count(db) == 1


def test_failed_idempotent_checkout_can_be_retried(client, db, user_headers):
    p = make_product(db, "T1", 300, stock=1)
    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 2}, headers=user_headers).json()
    headers = dict(user_headers, **{"Idempotency-Key": "idem-retry"})

    assert client.post(f"/api/orders/{cart['id']}", headers=headers).status_code == 400
    client.patch(f"/api/cart/{p.id}", json={"quantity": 1}, headers=user_headers)
    assert client.post(f"/api/orders/{cart['id']}", headers=headers).status_code == 200


def test_checkout_session(client, db, user, user_headers):
    p = make_product(db, "P1", 1000)
    make_coupon(db, "SAVE10", 10)
    assert client.post("/api/orders/checkout-session", headers=user_headers).status_code == 400

    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 2}, headers=user_headers).json()
    client.patch("/api/cart/apply-coupon", json={"code": "SAVE10"}, headers=user_headers)
    res = client.post("/api/orders/checkout-session", json={"shipping_address": "1 Main St"}, headers=user_headers)
    assert res.status_code == 200
    session = res.json()
    assert session["amount_total"] == 1800
    assert session["client_reference_id"] == str(cart["id"])
    assert session["customer_email"] == user.email
    assert session["metadata"] == {"shipping_address": "1 Main St"}
    assert session["url"].startswith("https://")


def test_checkouts_by_different_owners_do_not_oversell(db, user):
    other = make_user(db, email="other@example.com")
    p = make_product(db, "LAST", 100, stock=1)
    carts = CartService(db)
    cart_a = carts.add_item(user.id, p.id, 1).id
    cart_b = carts.add_item(other.id, p.id, 1).id
    user_id, other_id = user.id, other.id
    placed = []

    # A has read its cart and the product; B checks out before A writes anything
    def checkout_b(session, flush_context, instances):
        s = SessionLocal()
        try:
            placed.append(OrderService(s).checkout(other_id, cart_b).id)
        finally:
            s.close()

    session_a = SessionLocal()
    event.listen(session_a, "before_flush", checkout_b, once=True)
    try:
        with pytest.raises(ValidationError):
            OrderService(session_a).checkout(user_id, cart_a)
    finally:
        session_a.close()

    assert len(placed) == 1
    assert _order_count(db) == 1
    p = db.get(Product, p.id)
    assert (p.stock, p.sold) == (0, 1)
    assert len(carts.get_cart(user_id).items) == 1


def test_foreign_idempotency_key_does_not_block_owner_retry(client, db, user_headers):
    other_headers = auth_headers(db, make_user(db, email="other@example.com"))
    p = make_product(db, "T1", 300, stock=5)
    key = {"Idempotency-Key": "idem-shared"}

    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=user_headers).json()
    client.delete(f"/api/cart/{p.id}", headers=user_headers)
    res = client.post(f"/api/orders/{cart['id']}", headers=dict(user_headers, **key))
    assert res.status_code == 400

    other_cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=other_headers).json()
    res = client.post(f"/api/orders/{other_cart['id']}", headers=dict(other_headers, **key))
    assert res.status_code == 400
    assert res.json() == {"error": "Idempotency-Key already used by another request"}

    client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=user_headers)
    res = client.post(f"/api/orders/{cart['id']}", headers=dict(user_headers, **key))
    assert res.status_code == 200
    assert _order_count(db) == 1


def test_order_visibility_follows_read_all_action(db, user, monkeypatch):
    support = make_user(db, email="support@example.com")
    support.role = "support"
    db.commit()
    monkeypatch.setitem(POLICIES, "support", USER_ACTIONS | {"order:read-all"})
    p = make_product(db)
    cart = CartService(db).add_item(user.id, p.id, 1)
    svc = OrderService(db)
    order = svc.checkout(user.id, cart.id)

    assert not support.is_admin
    assert [o.id for o in svc.list_orders(support)] == [order.id]
    assert svc.get_order(support, order.id).id == order.id
    other = make_user(db, email="other@example.com")
    assert svc.list_orders(other) == []
    with pytest.raises(NotFoundError):
        svc.get_order(other, order.id)


def test_admin_updates_shipping_address(client, db, user_headers, admin_headers):
    p = make_product(db)
    cart = client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=user_headers).json()
    order = client.post(f"/api/orders/{cart['id']}", json={"shipping_address": "1 Main St"}, headers=user_headers).json()

    res = client.patch(f"/api/orders/{order['id']}", json={"shipping_address": "2 Side St"}, headers=user_headers)
    assert res.status_code == 403
    res = client.patch(f"/api/orders/{order['id']}", json={"shipping_address": "2 Side St"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["shipping_address"] == "2 Side St"
    assert res.json()["lines"] == order["lines"]
    assert res.json()["total_price_cents"] == order["total_price_cents"]

    client.patch(f"/api/orders/{order['id']}/is-delivered", headers=admin_headers)
    res = client.patch(f"/api/orders/{order['id']}", json={"shipping_address": "3 Late St"}, headers=admin_headers)
    assert res.status_code == 400
    assert client.patch("/api/orders/999", json={}, headers=admin_headers).status_code == 404
