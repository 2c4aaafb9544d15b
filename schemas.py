"""
Database Schemas for the Basket grocery store

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercase class name. Example: class Product -> "product" collection.

Fields are declared in snake_case and travel as camelCase (``is_featured`` is
stored and sent as ``isFeatured``). Use these models in the API for validation
before writing to MongoDB.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


# -----------
# Enumerations
# -----------

class Unit(str, Enum):
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PIECE = "piece"
    DOZEN = "dozen"
    PACK = "pack"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    COD = "cod"
    ONLINE = "online"


class Role(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    GOD = "god"


class Capability(str, Enum):
    MANAGE_PRODUCTS = "manage_products"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_USERS = "manage_users"
    VIEW_REPORTS = "view_reports"
    MANAGE_ADMINS = "manage_admins"


_BASELINE = frozenset({
    Capability.MANAGE_PRODUCTS,
    Capability.MANAGE_CATEGORIES,
    Capability.MANAGE_ORDERS,
    Capability.MANAGE_USERS,
    Capability.VIEW_REPORTS,
})

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: _BASELINE,
    Role.SUPER_ADMIN: _BASELINE | {Capability.MANAGE_ADMINS},
    Role.GOD: _BASELINE | {Capability.MANAGE_ADMINS},
}

# -----------------
# Catalog Collections
# -----------------

class Category(CamelModel):
    name: str = Field(..., min_length=1, description="Category display name, e.g., 'Dairy & Eggs'")
    description: Optional[str] = Field(None, description="Short description of the category")
    image: Optional[str] = Field(None, description="Image URL")
    is_active: bool = Field(True, description="Hidden from the storefront when false")


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None


class Product(CamelModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., description="Marketing description")
    price: float = Field(..., ge=0, description="Unit price")
    original_price: float = Field(0, ge=0, description="Price before discount")
    category: str = Field(..., description="Referenced category _id (string)")
    image: str = Field(..., description="Primary product image URL")
    stock: int = Field(0, ge=0, description="Units available for sale")
    unit: Unit = Field(..., description="Selling unit")
    discount: float = Field(0, ge=0, description="Discount percentage")
    is_featured: bool = False


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    image: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    unit: Optional[Unit] = None
    discount: Optional[float] = Field(None, ge=0)
    is_featured: Optional[bool] = None

# ------------
# Accounts
# ------------

class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class UserSignup(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None


class Credentials(CamelModel):
    email: EmailStr
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    address: Optional[Address] = None


class UserUpdate(ProfileUpdate):
    email: Optional[EmailStr] = None


class AdminSetup(CamelModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class AdminCreate(AdminSetup):
    role: Role = Role.ADMIN
    permissions: Optional[List[str]] = None
    tags: List[str] = Field(default_factory=list)


class AdminUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None
    tags: Optional[List[str]] = None


class PasswordChange(CamelModel):
    new_password: str = Field(..., min_length=6)

# ------------
# Order Models
# ------------

class OrderLine(CamelModel):
    product_id: str = Field(..., description="Referenced product _id (string)")
    quantity: int = Field(..., ge=1, description="Quantity ordered")


class OrderRequest(CamelModel):
    items: List[OrderLine] = Field(default_factory=list)
    shipping_address: Optional[Address] = None
    payment_method: PaymentMethod = PaymentMethod.COD


class OrderItem(CamelModel):
    product_id: str = Field(..., description="Referenced product _id (string)")
    name: str = Field(..., description="Product name snapshot")
    price: float = Field(..., ge=0, description="Unit price at time of order")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    image: Optional[str] = Field(None, description="Product image snapshot")


class Order(CamelModel):
    user_id: str
    items: List[OrderItem]
    total_amount: float = Field(..., ge=0)
    shipping_address: Optional[Address] = None
    payment_method: PaymentMethod = PaymentMethod.COD
    status: OrderStatus = OrderStatus.PENDING


class StatusUpdate(CamelModel):
    status: OrderStatus


class QuoteRequest(CamelModel):
    items: List[OrderLine]
