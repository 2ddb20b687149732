"""Pydantic request/response schemas for the orders and cart APIs.

These are external contracts, kept separate from the internal Protean
commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(default="US", min_length=2, max_length=2)
    phone: str | None = None


class TrackingSchema(BaseModel):
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    size: str
    color: str
    quantity: int = Field(ge=1, le=10)
    price: float | None = None  # Accepted for client convenience; the catalogue price is charged


class PlaceOrderRequest(BaseModel):
    items: list[OrderItemRequest] | None = None  # Omit to check out the cart
    shipping_address: ShippingAddressSchema
    shipping_method: str = "standard"
    customer_notes: str | None = Field(default=None, max_length=1000)
    is_gift: bool = False
    gift_message: str | None = Field(default=None, max_length=500)
    coupon_code: str | None = Field(default=None, max_length=30)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "8d3a...", "size": "10", "color": "Black", "quantity": 1}],
                    "shipping_address": {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "street": "12 Analytical Way",
                        "city": "Portland",
                        "state": "OR",
                        "zip_code": "97201",
                    },
                    "shipping_method": "express",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = Field(default=None, max_length=500)
    tracking: TrackingSchema | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Order responses
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    item_id: str
    product_id: str
    variant_id: str
    product_name: str
    brand: str | None = None
    image_url: str | None = None
    size: str
    color: str
    sku: str
    quantity: int
    unit_price: float
    line_total: float


class PricingResponse(BaseModel):
    subtotal: float
    tax: float
    shipping_cost: float
    discount: float
    total: float
    currency: str


class StatusChangeResponse(BaseModel):
    from_status: str | None = None
    to_status: str
    note: str | None = None
    changed_by: str | None = None
    changed_at: datetime


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_status: str
    items: list[OrderItemResponse]
    pricing: PricingResponse
    coupon_code: str | None = None
    shipping_address: ShippingAddressSchema
    shipping_method: str
    tracking: TrackingSchema | None = None
    customer_notes: str | None = None
    is_gift: bool = False
    gift_message: str | None = None
    cancellation_reason: str | None = None
    status_history: list[StatusChangeResponse] = []
    created_at: datetime
    confirmed_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderEnvelope(BaseModel):
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    size: str
    color: str
    quantity: int = Field(default=1, ge=1, le=10)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=0, le=10)


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    size: str
    color: str
    quantity: int


class CartResponse(BaseModel):
    customer_id: str
    items: list[CartItemResponse]
    item_count: int


class CartItemIdResponse(BaseModel):
    item_id: str


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=3, max_length=30)
    description: str | None = Field(default=None, max_length=255)
    coupon_type: str = Field(pattern="^(percentage|fixed)$")
    value: float = Field(gt=0)
    min_order_amount: float = Field(default=0.0, ge=0)
    max_discount: float | None = Field(default=None, gt=0)
    usage_limit: int | None = Field(default=None, ge=1)
    per_customer_limit: int = Field(default=1, ge=1)
    valid_from: datetime | None = None
    valid_to: datetime
    applicable_brands: list[str] = []
    applicable_categories: list[str] = []
    applicable_products: list[str] = []
    excluded_products: list[str] = []


class CouponResponse(BaseModel):
    coupon_id: str
    code: str
    description: str | None = None
    coupon_type: str
    value: float
    min_order_amount: float
    max_discount: float | None = None
    usage_limit: int | None = None
    used_count: int
    per_customer_limit: int
    valid_from: datetime
    valid_to: datetime
    applicable_brands: list[str]
    applicable_categories: list[str]
    applicable_products: list[str]
    excluded_products: list[str]
    is_active: bool


class CouponListResponse(BaseModel):
    coupons: list[CouponResponse]
    total: int


class CouponQuoteRequest(BaseModel):
    code: str = Field(min_length=1, max_length=30)
    items: list[OrderItemRequest] | None = None  # Omit to price the cart
    shipping_method: str = "standard"


class CouponQuoteResponse(BaseModel):
    code: str
    discount: float
    pricing: PricingResponse


# ---------------------------------------------------------------------------
# Wishlists
# ---------------------------------------------------------------------------
class CreateWishlistRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_public: bool = False


class UpdateWishlistRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_public: bool | None = None


class AddWishlistItemRequest(BaseModel):
    product_id: str
    size: str | None = None
    color: str | None = None
    priority: int = Field(default=3, ge=1, le=5)
    notes: str | None = Field(default=None, max_length=500)


class UpdateWishlistItemRequest(BaseModel):
    priority: int | None = Field(default=None, ge=1, le=5)
    notes: str | None = Field(default=None, max_length=500)


class MoveToCartRequest(BaseModel):
    size: str | None = None
    color: str | None = None
    quantity: int = Field(default=1, ge=1, le=10)


class WishlistItemResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str | None = None
    size: str | None = None
    color: str | None = None
    priority: int
    notes: str | None = None
    price_when_added: float | None = None
    current_price: float | None = None
    price_dropped: bool = False
    added_at: datetime | None = None


class WishlistResponse(BaseModel):
    wishlist_id: str
    customer_id: str
    name: str
    description: str | None = None
    is_public: bool
    share_token: str | None = None  # Only shown to the owner
    items: list[WishlistItemResponse]
    item_count: int
    created_at: datetime
    updated_at: datetime | None = None


class WishlistListResponse(BaseModel):
    wishlists: list[WishlistResponse]
    total: int


class WishlistIdResponse(BaseModel):
    wishlist_id: str


class WishlistItemIdResponse(BaseModel):
    item_id: str


class ShareWishlistResponse(BaseModel):
    share_token: str
