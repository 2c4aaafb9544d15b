"""
Storefront client for the Basket Grocery API.

Wraps the HTTP calls a shopper's device makes: login, catalog browsing and
checkout. ``place_order`` submits the local cart and clears it only once the
server has accepted the order; on any error the cart is left as it was.
"""

import logging
from typing import Optional

import requests

from cart import Cart
from schemas import PaymentMethod

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class CheckoutError(StorefrontError):
    """Raised by ``place_order``; the cart is untouched when it is."""


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("message") or body.get("detail") or f"HTTP {response.status_code}"
    return str(body)


class StorefrontClient:
    def __init__(self, base_url: str = "", session=None, token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.token = token

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _call(self, method: str, path: str, **kwargs):
        response = self.session.request(method, self._url(path), headers=self._headers(), **kwargs)
        if response.status_code >= 400:
            raise StorefrontError(_error_message(response), response.status_code)
        return response.json()

    # Account

    def login(self, email: str, password: str) -> dict:
        data = self._call("POST", "/api/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    def logout(self):
        self.token = None

    def profile(self) -> dict:
        return self._call("GET", "/api/user/profile")["user"]

    # Catalog

    def products(self, category: Optional[str] = None, q: Optional[str] = None) -> list:
        params = {k: v for k, v in (("category", category), ("q", q)) if v}
        return self._call("GET", "/api/products", params=params)

    def categories(self) -> list:
        return self._call("GET", "/api/categories")

    # Orders

    def orders(self) -> list:
        return self._call("GET", "/api/user/orders")

    def place_order(self, cart: Cart, shipping_address: Optional[dict] = None,
                    payment_method: str = PaymentMethod.COD.value) -> dict:
        if not self.token:
            raise CheckoutError("User not authenticated")
        if cart.is_empty():
            raise CheckoutError("Cart is empty")

        payload = {
            "items": cart.order_lines(),
            "shippingAddress": shipping_address,
            "paymentMethod": payment_method,
        }
        try:
            result = self._call("POST", "/api/order", json=payload)
        except StorefrontError as e:
            logger.info(f"Checkout rejected ({e.status_code}): {e.message}")
            raise CheckoutError(e.message, e.status_code) from e
        cart.clear()
        return result
