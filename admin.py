"""
Admin back office: admin accounts, catalog, users, orders and dashboard stats.

Everything except ``/setup`` and ``/login`` needs an admin credential; routes
declare the capability they need and ``auth.require`` checks it against the
caller's role.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

import database
from auth import (
    HIDE_PASSWORD,
    create_admin_token,
    default_permissions,
    get_current_admin,
    hash_password,
    public_admin,
    public_user,
    require,
    verify_password,
)
from catalog import with_categories
from errors import ConflictException, NotFoundException, PermissionDeniedException, ValidationException
from orders import list_all_orders, update_order_status, with_admin_fields
from schemas import (
    AdminCreate,
    AdminSetup,
    AdminUpdate,
    Capability,
    Category,
    CategoryUpdate,
    Credentials,
    OrderStatus,
    PasswordChange,
    Product,
    ProductUpdate,
    Role,
    StatusUpdate,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _category_or_400(category_id: str):
    if not database.get_document("category", category_id):
        raise ValidationException(f"Category {category_id} not found")


# ---------------
# Admin accounts
# ---------------

@router.post("/setup", status_code=201)
def setup(payload: AdminSetup):
    if database.count_documents("admin") > 0:
        raise ValidationException("Admin already exists. Use /api/admin/register to add more admins.")
    admin = {
        "username": payload.username,
        "email": payload.email.lower(),
        "password": hash_password(payload.password),
        "role": Role.SUPER_ADMIN.value,
        "permissions": default_permissions(Role.SUPER_ADMIN),
        "tags": [],
        "isActive": True,
    }
    database.create_document("admin", admin)
    logger.info(f"First admin created: {admin['email']}")
    return {"message": "First admin created successfully", "email": admin["email"], "username": admin["username"]}

@router.post("/login")
def login(payload: Credentials):
    admin = database.find_document("admin", {"email": payload.email.lower()})
    if not admin or not verify_password(payload.password, admin.get("password")):
        logger.info(f"Failed admin login for {payload.email}")
        raise ValidationException("Invalid credentials")
    if not admin.get("isActive", True):
        raise PermissionDeniedException("Admin account is disabled")
    return {"token": create_admin_token(admin), "admin": public_admin(admin)}

@router.post("/register", status_code=201)
def register(payload: AdminCreate, _: dict = Depends(require(Capability.MANAGE_ADMINS))):
    email = payload.email.lower()
    if database.find_document("admin", {"email": email}):
        raise ConflictException("Admin with this email already exists")
    admin = {
        "username": payload.username,
        "email": email,
        "password": hash_password(payload.password),
        "role": payload.role,
        "permissions": payload.permissions if payload.permissions is not None else default_permissions(payload.role),
        "tags": payload.tags,
        "isActive": True,
    }
    admin["_id"] = database.to_object_id(database.create_document("admin", admin))
    return {"message": "Admin created successfully", "admin": public_admin(admin)}

@router.get("/admins")
def list_admins(_: dict = Depends(get_current_admin)):
    return [public_admin(a) for a in database.get_documents("admin", projection=HIDE_PASSWORD)]

@router.put("/admins/{admin_id}")
def update_admin(admin_id: str, payload: AdminUpdate, _: dict = Depends(require(Capability.MANAGE_ADMINS))):
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    if "role" in changes and "permissions" not in changes:
        changes["permissions"] = default_permissions(changes["role"])
    if not changes:
        raise ValidationException("Nothing to update")
    admin = database.update_document("admin", admin_id, changes, HIDE_PASSWORD)
    if not admin:
        raise NotFoundException("Admin")
    return {"message": "Admin updated successfully", "admin": public_admin(admin)}

@router.put("/admins/{admin_id}/password")
def change_admin_password(admin_id: str, payload: PasswordChange, _: dict = Depends(require(Capability.MANAGE_ADMINS))):
    if not database.update_document("admin", admin_id, {"password": hash_password(payload.new_password)}):
        raise NotFoundException("Admin")
    return {"message": "Admin password updated successfully"}

@router.delete("/admins/{admin_id}")
def delete_admin(admin_id: str, current: dict = Depends(require(Capability.MANAGE_ADMINS))):
    if admin_id == current.get("id"):
        raise ValidationException("You cannot delete your own admin account")
    if not database.delete_document("admin", admin_id):
        raise NotFoundException("Admin")
    return {"message": "Admin deleted successfully"}

# ---------------
# Products
# ---------------

@router.get("/products")
def list_products(_: dict = Depends(require(Capability.MANAGE_PRODUCTS))):
    return with_categories(database.get_documents("product"))

@router.post("/products", status_code=201)
def create_product(payload: Product, _: dict = Depends(require(Capability.MANAGE_PRODUCTS))):
    _category_or_400(payload.category)
    product_id = database.create_document("product", payload)
    logger.info(f"Product created: {payload.name} ({product_id})")
    return with_categories([database.get_document("product", product_id)])[0]

@router.put("/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, _: dict = Depends(require(Capability.MANAGE_PRODUCTS))):
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if "category" in changes:
        _category_or_400(changes["category"])
    if not changes:
        raise ValidationException("Nothing to update")
    product = database.update_document("product", product_id, changes)
    if not product:
        raise NotFoundException("Product")
    return with_categories([product])[0]

@router.delete("/products/{product_id}")
def delete_product(product_id: str, _: dict = Depends(require(Capability.MANAGE_PRODUCTS))):
    if not database.delete_document("product", product_id):
        raise NotFoundException("Product")
    return {"message": "Product deleted successfully"}

# ---------------
# Categories
# ---------------

@router.get("/categories")
def list_categories(_: dict = Depends(require(Capability.MANAGE_CATEGORIES))):
    return [database.to_str_id(c) for c in database.get_documents("category")]

@router.post("/categories", status_code=201)
def create_category(payload: Category, _: dict = Depends(require(Capability.MANAGE_CATEGORIES))):
    if database.find_document("category", {"name": payload.name}):
        raise ConflictException(f"Category '{payload.name}' already exists")
    category_id = database.create_document("category", payload)
    return database.to_str_id(database.get_document("category", category_id))

@router.put("/categories/{category_id}")
def update_category(category_id: str, payload: CategoryUpdate, _: dict = Depends(require(Capability.MANAGE_CATEGORIES))):
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if not changes:
        raise ValidationException("Nothing to update")
    if "name" in changes:
        clash = database.find_document("category", {"name": changes["name"]})
        if clash and str(clash["_id"]) != category_id:
            raise ConflictException(f"Category '{changes['name']}' already exists")
    category = database.update_document("category", category_id, changes)
    if not category:
        raise NotFoundException("Category")
    return database.to_str_id(category)

@router.delete("/categories/{category_id}")
def delete_category(category_id: str, _: dict = Depends(require(Capability.MANAGE_CATEGORIES))):
    if database.count_documents("product", {"category": category_id}) > 0:
        raise ConflictException("Cannot delete category with existing products")
    if not database.delete_document("category", category_id):
        raise NotFoundException("Category")
    return {"message": "Category deleted successfully"}

# ---------------
# Users
# ---------------

@router.get("/users")
def list_users(_: dict = Depends(require(Capability.MANAGE_USERS))):
    return [public_user(u) for u in database.get_documents("user", projection=HIDE_PASSWORD)]

@router.put("/users/{user_id}")
def update_user(user_id: str, payload: UserUpdate, _: dict = Depends(require(Capability.MANAGE_USERS))):
    changes = payload.model_dump(by_alias=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    if not changes:
        raise ValidationException("Nothing to update")
    user = database.update_document("user", user_id, changes, HIDE_PASSWORD)
    if not user:
        raise NotFoundException("User")
    return {"message": "User updated successfully", "user": public_user(user)}

@router.delete("/users/{user_id}")
def delete_user(user_id: str, _: dict = Depends(require(Capability.MANAGE_USERS))):
    if not database.delete_document("user", user_id):
        raise NotFoundException("User")
    return {"message": "User deleted successfully"}

# ---------------
# Orders
# ---------------

@router.get("/orders")
def list_orders(limit: Optional[int] = None, _: dict = Depends(require(Capability.MANAGE_ORDERS))):
    return list_all_orders(limit)

@router.put("/orders/{order_id}")
def update_order(order_id: str, payload: StatusUpdate, admin: dict = Depends(require(Capability.MANAGE_ORDERS))):
    order = update_order_status(order_id, payload.status)
    logger.info(f"Admin {admin.get('email')} set order {order_id} to {payload.status}")
    return {"message": "Order updated successfully", "order": with_admin_fields([order])[0]}

@router.delete("/orders/{order_id}")
def delete_order(order_id: str, _: dict = Depends(require(Capability.MANAGE_ORDERS))):
    if not database.delete_document("order", order_id):
        raise NotFoundException("Order")
    return {"message": "Order deleted successfully"}

# ---------------
# Dashboard
# ---------------

@router.get("/stats")
def stats(_: dict = Depends(require(Capability.VIEW_REPORTS))):
    revenue = list(database.collection("order").aggregate([
        {"$match": {"status": {"$ne": OrderStatus.CANCELLED.value}}},
        {"$group": {"_id": None, "total": {"$sum": "$totalAmount"}}},
    ]))
    return {
        "totalProducts": database.count_documents("product"),
        "totalUsers": database.count_documents("user"),
        "totalOrders": database.count_documents("order"),
        "totalRevenue": round(revenue[0]["total"], 2) if revenue else 0,
    }
