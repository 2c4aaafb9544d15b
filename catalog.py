"""
Catalog helpers shared by the storefront and admin routes.
"""

import logging
from typing import List

import database

logger = logging.getLogger(__name__)


def with_categories(products: List[dict]) -> List[dict]:
    """Replace each product's category id with the category document."""
    ids = {p.get("category") for p in products}
    oids = [oid for oid in (database.to_object_id(i) for i in ids) if oid is not None]
    categories = {}
    if oids:
        for c in database.get_documents("category", {"_id": {"$in": oids}}):
            categories[str(c["_id"])] = database.to_str_id(c)
    result = []
    for p in products:
        d = database.to_str_id(p)
        d["category"] = categories.get(p.get("category"), p.get("category"))
        result.append(d)
    return result


# Seed helpers (idempotent)

def _seed_payload():
    categories = [
        {"name": "Fruits & Vegetables", "description": "Fresh produce, delivered daily", "isActive": True},
        {"name": "Dairy & Eggs", "description": "Milk, cheese, butter and farm eggs", "isActive": True},
        {"name": "Beverages", "description": "Juices, tea, coffee and soft drinks", "isActive": True},
    ]

    products = [
        ("Fruits & Vegetables", {
            "name": "Bananas", "description": "Ripe Cavendish bananas", "price": 48.0, "originalPrice": 55.0,
            "stock": 120, "unit": "dozen", "discount": 12, "isFeatured": True,
        }),
        ("Fruits & Vegetables", {
            "name": "Tomatoes", "description": "Vine-ripened tomatoes", "price": 32.0, "originalPrice": 0,
            "stock": 80, "unit": "kg", "discount": 0, "isFeatured": False,
        }),
        ("Dairy & Eggs", {
            "name": "Whole Milk", "description": "Full cream pasteurised milk", "price": 64.0, "originalPrice": 0,
            "stock": 60, "unit": "l", "discount": 0, "isFeatured": True,
        }),
        ("Dairy & Eggs", {
            "name": "Free-range Eggs", "description": "Brown eggs from free-range hens", "price": 90.0,
            "originalPrice": 96.0, "stock": 40, "unit": "dozen", "discount": 6, "isFeatured": False,
        }),
        ("Beverages", {
            "name": "Orange Juice", "description": "Cold-pressed, no added sugar", "price": 120.0,
            "originalPrice": 0, "stock": 30, "unit": "ml", "discount": 0, "isFeatured": False,
        }),
    ]
    return categories, products


def ensure_seeded() -> dict:
    created = {"categories": 0, "products": 0}
    if database.db is None:
        return created
    categories, products = _seed_payload()
    if database.count_documents("category") == 0:
        for c in categories:
            database.create_document("category", c)
        created["categories"] = len(categories)
    if database.count_documents("product") == 0:
        ids = {c["name"]: str(c["_id"]) for c in database.get_documents("category")}
        for category_name, p in products:
            if category_name not in ids:
                continue
            database.create_document("product", {**p, "category": ids[category_name], "image": ""})
            created["products"] += 1
    if any(created.values()):
        logger.info(f"Seeded demo data: {created}")
    return created
