from datetime import timedelta

import pytest

from storefront.errors import (
    EmptyCartError,
    ExpiredCouponError,
    InvalidCouponError,
    NotFoundError,
    ValidationError,
)
from storefront.models.coupon import Coupon
from storefront.services.cart_service import CartService
from storefront.utils.clock import utcnow

from conftest import make_coupon, make_product


def _expected_total(cart):
    return sum(it.unit_price_cents * it.quantity for it in cart.items)


def test_totals_follow_every_mutation(db, user):
    p1 = make_product(db, "P1", 1000)
    p2 = make_product(db, "P2", 250)
    svc = CartService(db)

    steps = [
        lambda: svc.add_item(user.id, p1.id, 2),
        lambda: svc.add_item(user.id, p2.id, 3),
        lambda: svc.add_item(user.id, p1.id, 1),
        lambda: svc.update_item_quantity(user.id, p2.id, 5),
        lambda: svc.remove_item(user.id, p1.id),
        lambda: svc.update_item_quantity(user.id, p2.id, 1),
    ]
    for step in steps:
        cart = step()
        assert cart.total_price_cents == _expected_total(cart)

    assert [(it.product_id, it.quantity) for it in cart.items] == [(p2.id, 1)]
    assert cart.total_price_cents == 250


def test_add_existing_item_increments_quantity(db, user):
    p = make_product(db)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 2)
    cart = svc.add_item(user.id, p.id, 3)
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 5
    assert cart.total_price_cents == 5000


@pytest.mark.parametrize("qty", [0, -1])
def test_add_rejects_non_positive_quantity(db, user, qty):
    p = make_product(db)
    with pytest.raises(ValidationError):
        CartService(db).add_item(user.id, p.id, qty)
    assert CartService(db).get_cart(user.id) is None


def test_add_unknown_product(db, user):
    with pytest.raises(ValidationError):
        CartService(db).add_item(user.id, 9999, 1)


def test_update_to_zero_removes_line(db, user):
    p = make_product(db)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 2)
    cart = svc.update_item_quantity(user.id, p.id, 0)
    assert cart.items == []
    assert cart.total_price_cents == 0


def test_update_missing_line(db, user):
    p = make_product(db)
    with pytest.raises(NotFoundError):
        CartService(db).update_item_quantity(user.id, p.id, 3)


def test_remove_twice_fails_second_time(db, user):
    p = make_product(db)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 1)
    svc.remove_item(user.id, p.id)
    with pytest.raises(NotFoundError):
        svc.remove_item(user.id, p.id)


def test_clear_is_unconditional(db, user):
    p = make_product(db)
    svc = CartService(db)
    svc.clear(user.id)  # no cart yet
    svc.add_item(user.id, p.id, 1)
    svc.clear(user.id)
    svc.clear(user.id)
    assert svc.get_cart(user.id) is None


def test_apply_coupon_computes_discounted_total(db, user):
    p = make_product(db, "P1", 1000)
    make_coupon(db, "SAVE10", 10)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 2)
    cart = svc.apply_coupon(user.id, "SAVE10")
    assert cart.total_price_cents == 2000
    assert cart.total_price_after_discount_cents == 1800
    assert cart.coupon_code == "SAVE10"


def test_expired_coupon_leaves_cart_untouched(db, user):
    p = make_product(db)
    db.add(Coupon(code="OLD", discount_percent=50, expires_at=utcnow() - timedelta(days=1)))
    db.commit()
    svc = CartService(db)
    svc.add_item(user.id, p.id, 1)
    with pytest.raises(ExpiredCouponError):
        svc.apply_coupon(user.id, "OLD")
    cart = svc.get_cart(user.id)
    assert cart.total_price_after_discount_cents is None
    assert cart.coupon_code is None


def test_expiry_is_checked_against_given_time(db, user):
    p = make_product(db)
    make_coupon(db, "SOON", 10, days=1)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 1)
    with pytest.raises(ExpiredCouponError):
        svc.apply_coupon(user.id, "SOON", now=utcnow() + timedelta(days=2))


def test_unknown_coupon_is_invalid(db, user):
    p = make_product(db)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 1)
    with pytest.raises(InvalidCouponError):
        svc.apply_coupon(user.id, "NOPE")


def test_coupon_code_is_case_sensitive(db, user):
    p = make_product(db)
    make_coupon(db, "Save10", 10)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 1)
    with pytest.raises(InvalidCouponError):
        svc.apply_coupon(user.id, "SAVE10")


def test_coupon_on_empty_cart(db, user):
    make_coupon(db)
    with pytest.raises(EmptyCartError):
        CartService(db).apply_coupon(user.id, "SAVE10")


def test_item_change_drops_applied_coupon(db, user):
    p = make_product(db, "P1", 1000)
    make_coupon(db, "SAVE10", 10)
    svc = CartService(db)
    svc.add_item(user.id, p.id, 2)
    svc.apply_coupon(user.id, "SAVE10")
    cart = svc.add_item(user.id, p.id, 1)
    assert cart.total_price_cents == 3000
    assert cart.coupon_code is None
    assert cart.total_price_after_discount_cents is None


def test_cart_api_flow(client, db, user_headers):
    p = make_product(db, "P1", 1000)
    make_coupon(db, "SAVE10", 10)

    res = client.get("/api/cart", headers=user_headers)
    assert res.status_code == 200
    assert res.json()["items"] == []

    res = client.post("/api/cart", json={"product_id": p.id, "quantity": 2}, headers=user_headers)
    assert res.status_code == 201
    assert res.json()["total_price_cents"] == 2000

    res = client.patch("/api/cart/apply-coupon", json={"code": "SAVE10"}, headers=user_headers)
    assert res.status_code == 200
    assert res.json()["message"] == "Coupon applied successfully"
    assert res.json()["cart"]["total_price_after_discount_cents"] == 1800

    res = client.patch(f"/api/cart/{p.id}", json={"quantity": 4}, headers=user_headers)
    assert res.status_code == 200
    assert res.json()["items"][0]["quantity"] == 4

    res = client.delete(f"/api/cart/{p.id}", headers=user_headers)
    assert res.status_code == 200
    assert res.json()["items"] == []

    res = client.delete(f"/api/cart/{p.id}", headers=user_headers)
    assert res.status_code == 404
    assert "error" in res.json()

    res = client.delete("/api/cart", headers=user_headers)
    assert res.status_code == 200
    assert res.json()["cart"]["items"] == []


def test_cart_api_errors(client, db, user_headers):
    p = make_product(db)
    res = client.post("/api/cart", json={"product_id": p.id, "quantity": 0}, headers=user_headers)
    assert res.status_code == 400
    assert res.json() == {"error": "Quantity must be positive"}

    client.post("/api/cart", json={"product_id": p.id, "quantity": 1}, headers=user_headers)
    res = client.patch("/api/cart/apply-coupon", json={"code": "BOGUS"}, headers=user_headers)
    assert res.status_code == 400

    res = client.patch("/api/cart/4242", json={"quantity": 1}, headers=user_headers)
    assert res.status_code == 404

    res = client.post("/api/cart", json={"quantity": 1}, headers=user_headers)
    assert res.status_code == 400
