"""
Order placement and order lifecycle.
"""

import logging
from typing import List, Optional

from pymongo import DESCENDING

import database
from errors import NotFoundException, StockException, ValidationException
from schemas import Order, OrderItem, OrderRequest, OrderStatus

logger = logging.getLogger(__name__)

STATUS_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

NEWEST_FIRST = [("orderDate", DESCENDING), ("_id", DESCENDING)]


# ---------------
# Status machine
# ---------------

def allowed_next_statuses(current) -> List[OrderStatus]:
    """Statuses offered to an admin for an order currently in ``current``.

    The current status, every later step of the flow, and cancellation. Terminal
    statuses only offer themselves. The update endpoint does not enforce this.
    """
    current = OrderStatus(current)
    if current in TERMINAL_STATUSES:
        return [current]
    return STATUS_FLOW[STATUS_FLOW.index(current):] + [OrderStatus.CANCELLED]


def update_order_status(order_id: str, status) -> dict:
    status = OrderStatus(status)
    changes = {"status": status.value}
    if status == OrderStatus.DELIVERED:
        changes["deliveredDate"] = database.utcnow()
    order = database.update_document("order", order_id, changes)
    if order is None:
        raise NotFoundException("Order")
    logger.info(f"Order {order_id} -> {status.value}")
    return order


# ---------------
# Placement
# ---------------

def _decrement_stock(product_id: str, quantity: int) -> bool:
    result = database.collection("product").update_one(
        {"_id": database.to_object_id(product_id), "stock": {"$gte": quantity}},
        {"$inc": {"stock": -quantity}},
    )
    return result.modified_count == 1


def _restore_stock(product_id: str, quantity: int):
    database.collection("product").update_one(
        {"_id": database.to_object_id(product_id)},
        {"$inc": {"stock": quantity}},
    )


def price_order(request: OrderRequest) -> List[OrderItem]:
    """Check every line against the catalog and snapshot it. Touches nothing."""
    if not request.items:
        raise ValidationException("No items in order")

    items = []
    for line in request.items:
        product = database.get_document("product", line.product_id)
        if not product:
            raise StockException(line.product_id, f"Product {line.product_id} not found")
        if product.get("stock", 0) < line.quantity:
            raise StockException(line.product_id, f"Insufficient stock for {product['name']}")
        items.append(OrderItem(
            product_id=line.product_id,
            name=product["name"],
            price=product["price"],
            quantity=line.quantity,
            image=product.get("image"),
        ))
    return items


def reserve_stock(items: List[OrderItem]):
    """Decrement stock for every item, or for none of them.

    Each decrement only applies while enough stock remains, so two orders racing
    for the last units cannot drive stock negative; the loser gets its earlier
    decrements back and a StockException.
    """
    applied = []
    for item in items:
        if not _decrement_stock(item.product_id, item.quantity):
            for done in applied:
                _restore_stock(done.product_id, done.quantity)
            logger.warning(f"Stock for {item.product_id} ran out during checkout; restored {len(applied)} line(s)")
            raise StockException(item.product_id, f"Insufficient stock for {item.name}")
        applied.append(item)


def place_order(user_id: str, request: OrderRequest) -> dict:
    items = price_order(request)
    total = round(sum(i.price * i.quantity for i in items), 2)
    reserve_stock(items)

    order = Order(
        user_id=user_id,
        items=items,
        total_amount=total,
        shipping_address=request.shipping_address,
        payment_method=request.payment_method,
    )
    doc = order.model_dump(by_alias=True)
    doc["orderDate"] = database.utcnow()
    doc["deliveredDate"] = None
    order_id = database.create_document("order", doc)
    logger.info(f"Order {order_id} placed by {user_id}: {len(items)} item(s), total {total:.2f}")

    return {
        "id": order_id,
        "totalAmount": doc["totalAmount"],
        "status": doc["status"],
        "orderDate": doc["orderDate"],
    }


# ---------------
# Listing
# ---------------

def list_user_orders(user_id: str) -> List[dict]:
    docs = database.get_documents("order", {"userId": user_id}, sort=NEWEST_FIRST)
    return [database.to_str_id(d) for d in docs]


def _users_by_id(user_ids) -> dict:
    oids = [oid for oid in (database.to_object_id(u) for u in set(user_ids)) if oid is not None]
    if not oids:
        return {}
    users = database.get_documents("user", {"_id": {"$in": oids}}, projection={"name": 1, "email": 1})
    return {str(u["_id"]): {"id": str(u["_id"]), "name": u.get("name"), "email": u.get("email")} for u in users}


def with_admin_fields(orders: List[dict]) -> List[dict]:
    """Join the ordering user's name/email and the statuses an admin may pick next."""
    users = _users_by_id(o.get("userId") for o in orders)
    result = []
    for o in orders:
        d = database.to_str_id(o)
        d["user"] = users.get(o.get("userId"))
        d["allowedStatuses"] = [s.value for s in allowed_next_statuses(o.get("status", OrderStatus.PENDING))]
        result.append(d)
    return result


def list_all_orders(limit: Optional[int] = None) -> List[dict]:
    return with_admin_fields(database.get_documents("order", {}, limit=limit, sort=NEWEST_FIRST))
