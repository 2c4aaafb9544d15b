"""
Client-side shopping cart.

The cart is an ordered list of line items kept on the shopper's device. It is
loaded from local storage when created and written back after every mutation;
nothing here talks to the server. At checkout ``order_lines()`` gives the
``[{productId, quantity}]`` payload for ``POST /api/order``.
"""

import json
import logging
import os
from typing import Iterable, List, Optional

from pydantic import Field

import settings
from schemas import CamelModel

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "basketCart"


# -----------------------
# Pricing
# -----------------------

def calc_subtotal(lines: Iterable) -> float:
    return round(sum(line.price * line.quantity for line in lines), 2)


def calc_delivery_fee(subtotal: float) -> float:
    # Flat fee, waived above the threshold. An empty cart has no fee.
    if subtotal <= 0:
        return 0.0
    if subtotal > settings.FREE_DELIVERY_THRESHOLD:
        return 0.0
    return settings.DELIVERY_FEE


# -----------------------
# Persistence
# -----------------------

class LocalStorage:
    """A small JSON-file key/value store standing in for browser local storage."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable storage file {self.path}")
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str):
        data = self._read()
        data[key] = value
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def remove_item(self, key: str):
        data = self._read()
        if data.pop(key, None) is not None:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f)


# -----------------------
# Cart
# -----------------------

class CartItem(CamelModel):
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    image: Optional[str] = None
    unit: Optional[str] = None
    quantity: int = Field(1, ge=1)


class Cart:
    def __init__(self, storage: Optional[LocalStorage] = None, key: str = CART_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.items: List[CartItem] = []
        self.load()

    # State

    def load(self):
        if self.storage is None:
            return
        raw = self.storage.get_item(self.key)
        if not raw:
            return
        try:
            self.items = [CartItem.model_validate(entry) for entry in json.loads(raw)]
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding saved cart: {e}")
            self.items = []

    def save(self):
        if self.storage is None:
            return
        self.storage.set_item(self.key, json.dumps([i.model_dump(by_alias=True) for i in self.items]))

    def _find(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    # Operations

    def add(self, product: dict):
        """Add one unit of ``product`` (a catalog product as returned by the API)."""
        product_id = str(product.get("id") or product.get("_id") or product.get("productId"))
        existing = self._find(product_id)
        if existing is not None:
            existing.quantity += 1
        else:
            self.items.append(CartItem(
                product_id=product_id,
                name=product["name"],
                price=product["price"],
                image=product.get("image"),
                unit=product.get("unit"),
            ))
        self.save()

    def remove(self, product_id: str):
        self.items = [i for i in self.items if i.product_id != product_id]
        self.save()

    def set_quantity(self, product_id: str, quantity: int):
        if quantity < 1:
            self.remove(product_id)
            return
        item = self._find(product_id)
        if item is not None:
            item.quantity = quantity
        self.save()

    def clear(self):
        self.items = []
        self.save()

    # Derived values

    @property
    def count(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def subtotal(self) -> float:
        return calc_subtotal(self.items)

    @property
    def delivery_fee(self) -> float:
        return calc_delivery_fee(self.subtotal)

    @property
    def total(self) -> float:
        return round(self.subtotal + self.delivery_fee, 2)

    def is_empty(self) -> bool:
        return not self.items

    def order_lines(self) -> List[dict]:
        return [{"productId": i.product_id, "quantity": i.quantity} for i in self.items]

    def __len__(self):
        return len(self.items)
