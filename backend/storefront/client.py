"""
Thin HTTP wrapper around the storefront API.

    client = StorefrontClient("http://127.0.0.1:8000")
    client.login("me@example.com", "secret")
    cart = client.add_to_cart(product_id=1, quantity=2)
    order = client.checkout(cart["id"], shipping_address="1 Main St")

Any object with a requests-style ``request(method, url, json=, params=,
headers=, timeout=)`` method can stand in for the session, which is how the
tests drive it against FastAPI's TestClient.
"""
import os
from typing import Any, Dict, List, Optional

import requests

DEFAULT_BASE = os.environ.get("STOREFRONT_BASE", "http://127.0.0.1:8000")


class ApiClientError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class StorefrontClient:
    def __init__(self, base_url: str = DEFAULT_BASE, session=None, token: Optional[str] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/") + "/api"
        self.session = session or requests.Session()
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, json: Any = None, params: Dict = None, headers: Dict = None) -> Any:
        hdrs = dict(headers or {})
        if self.token:
            hdrs["Authorization"] = f"Bearer {self.token}"
        r = self.session.request(
            method,
            self.base_url + path,
            json=json,
            params=params,
            headers=hdrs,
            timeout=self.timeout,
        )
        try:
            body = r.json()
        except ValueError:
            body = None
        if r.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else r.text
            raise ApiClientError(r.status_code, message or "request failed")
        return body

    # auth
    def register(self, username: str, email: str, password: str) -> Dict:
        body = self._request(
            "POST",
            "/auth/register",
            json={"username": username, "email": email, "password": password, "confirm_password": password},
        )
        self.token = body["token"]
        return body["user"]

    def login(self, email: str, password: str) -> Dict:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = body["token"]
        return body["user"]

    def logout(self):
        self._request("POST", "/auth/logout")
        self.token = None

    # catalogue
    def list_products(self, q: Optional[str] = None, page: int = 1, size: int = 20) -> Dict:
        params = {"page": page, "size": size}
        if q:
            params["q"] = q
        return self._request("GET", "/products", params=params)

    def top_products(self, alias: str = "top-sold", size: int = 5) -> Dict:
        """alias is one of top-sold, top-rated, new-arrivals."""
        return self._request("GET", f"/products/{alias}", params={"size": size})

    # reviews
    def product_reviews(self, product_id: int) -> List[Dict]:
        return self._request("GET", f"/products/{product_id}/reviews")

    def review_product(self, product_id: int, rating: int, comment: Optional[str] = None) -> Dict:
        return self._request(
            "POST", f"/products/{product_id}/reviews", json={"rating": rating, "comment": comment}
        )

    # wishlist
    def get_wishlist(self) -> List[Dict]:
        return self._request("GET", "/wishlist")

    def add_to_wishlist(self, product_id: int) -> List[Dict]:
        return self._request("POST", "/wishlist", json={"product_id": product_id})

    def remove_from_wishlist(self, product_id: int) -> List[Dict]:
        return self._request("DELETE", f"/wishlist/{product_id}")

    # profile
    def update_profile(self, username: Optional[str] = None, email: Optional[str] = None) -> Dict:
        return self._request("PATCH", "/users/my-profile", json={"username": username, "email": email})

    def change_password(self, current_password: str, password: str) -> Dict:
        body = self._request(
            "PATCH",
            "/users/my-password",
            json={"current_password": current_password, "password": password, "confirm_password": password},
        )
        self.token = body["token"]
        return body["user"]

    # cart
    def get_cart(self) -> Dict:
        return self._request("GET", "/cart")

    def add_to_cart(self, product_id: int, quantity: int = 1) -> Dict:
        return self._request("POST", "/cart", json={"product_id": product_id, "quantity": quantity})

    def update_cart_item(self, product_id: int, quantity: int) -> Dict:
        return self._request("PATCH", f"/cart/{product_id}", json={"quantity": quantity})

    def remove_from_cart(self, product_id: int) -> Dict:
        return self._request("DELETE", f"/cart/{product_id}")

    def clear_cart(self) -> Dict:
        return self._request("DELETE", "/cart")

    def apply_coupon(self, code: str) -> Dict:
        return self._request("PATCH", "/cart/apply-coupon", json={"code": code})["cart"]

    # orders
    def checkout(self, cart_id: int, shipping_address: Optional[str] = None, idempotency_key: Optional[str] = None) -> Dict:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return self._request(
            "POST",
            f"/orders/{cart_id}",
            json={"shipping_address": shipping_address},
            headers=headers,
        )

    def create_checkout_session(self, shipping_address: Optional[str] = None) -> Dict:
        return self._request("POST", "/orders/checkout-session", json={"shipping_address": shipping_address})

    def list_orders(self) -> List[Dict]:
        return self._request("GET", "/orders")

    def get_order(self, order_id: int) -> Dict:
        return self._request("GET", f"/orders/{order_id}")
