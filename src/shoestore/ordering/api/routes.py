"""FastAPI endpoints for orders, the shopping cart, coupons and wishlists."""

import json

from fastapi import APIRouter, Depends
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from shoestore.catalogue.product.product import Product
from shoestore.identity.api.dependencies import current_customer, staff_member
from shoestore.identity.customer.customer import Customer
from shoestore.ordering.api.schemas import (
    AddToCartRequest,
    AddWishlistItemRequest,
    CancelOrderRequest,
    CartItemIdResponse,
    CartItemResponse,
    CartResponse,
    CouponListResponse,
    CouponQuoteRequest,
    CouponQuoteResponse,
    CouponResponse,
    CreateCouponRequest,
    CreateWishlistRequest,
    MoveToCartRequest,
    OrderEnvelope,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    PricingResponse,
    ShareWishlistResponse,
    ShippingAddressSchema,
    StatusChangeResponse,
    TrackingSchema,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    UpdateWishlistItemRequest,
    UpdateWishlistRequest,
    WishlistIdResponse,
    WishlistItemIdResponse,
    WishlistItemResponse,
    WishlistListResponse,
    WishlistResponse,
)
from shoestore.ordering.cart.cart import ShoppingCart
from shoestore.ordering.cart.management import AddToCart, ClearCart, RemoveCartItem, UpdateCartItem, cart_for
from shoestore.ordering.coupon.coupon import Coupon
from shoestore.ordering.coupon.management import CreateCoupon, DeactivateCoupon, get_coupon, list_coupons
from shoestore.ordering.order.lifecycle import cancel_order, load_order_for, update_order_status
from shoestore.ordering.order.order import Order
from shoestore.ordering.order.placement import OrderPlacement
from shoestore.ordering.order.queries import all_orders, orders_for_customer
from shoestore.ordering.wishlist.management import (
    AddWishlistItem,
    CreateWishlist,
    DeleteWishlist,
    RemoveWishlistItem,
    ShareWishlist,
    UpdateWishlist,
    UpdateWishlistItem,
    current_price,
    move_to_cart,
    owned_wishlist,
    public_wishlists,
    readable_wishlist,
    shared_wishlist,
    wishlists_for,
)
from shoestore.ordering.wishlist.wishlist import Wishlist


def _pricing_response(pricing, currency=None) -> PricingResponse:
    return PricingResponse(
        subtotal=pricing.subtotal,
        tax=pricing.tax,
        shipping_cost=pricing.shipping_cost,
        discount=pricing.discount,
        total=pricing.total,
        currency=currency or getattr(pricing, "currency", None) or "USD",
    )


def order_response(order: Order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        payment_status=order.payment_status,
        items=[
            OrderItemResponse(
                item_id=str(i.id),
                product_id=str(i.product_id),
                variant_id=str(i.variant_id),
                product_name=i.product_name,
                brand=i.brand,
                image_url=i.image_url,
                size=i.size,
                color=i.color,
                sku=i.sku,
                quantity=i.quantity,
                unit_price=i.unit_price,
                line_total=i.line_total,
            )
            for i in order.items
        ],
        pricing=_pricing_response(order.pricing),
        coupon_code=order.coupon_code,
        shipping_address=ShippingAddressSchema(
            first_name=address.first_name,
            last_name=address.last_name,
            street=address.street,
            city=address.city,
            state=address.state,
            zip_code=address.zip_code,
            country=address.country or "US",
            phone=address.phone,
        ),
        shipping_method=order.shipping_method,
        tracking=(
            TrackingSchema(
                carrier=order.tracking.carrier,
                tracking_number=order.tracking.tracking_number,
                tracking_url=order.tracking.tracking_url,
            )
            if order.tracking
            else None
        ),
        customer_notes=order.customer_notes,
        is_gift=order.is_gift or False,
        gift_message=order.gift_message,
        cancellation_reason=order.cancellation_reason,
        status_history=[
            StatusChangeResponse(
                from_status=s.from_status,
                to_status=s.to_status,
                note=s.note,
                changed_by=s.changed_by,
                changed_at=s.changed_at,
            )
            for s in sorted(order.status_history, key=lambda s: s.changed_at)
        ],
        created_at=order.created_at,
        confirmed_at=order.confirmed_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderEnvelope)
async def place_order(body: PlaceOrderRequest, customer: Customer = Depends(current_customer)) -> OrderEnvelope:
    """Reserve stock and create a pending order from the given items or the cart."""
    order = OrderPlacement().place(
        customer_id=customer.id,
        shipping_address=body.shipping_address.model_dump(),
        shipping_method=body.shipping_method,
        items=[item.model_dump(exclude={"price"}) for item in body.items] if body.items else None,
        customer_notes=body.customer_notes,
        is_gift=body.is_gift,
        gift_message=body.gift_message,
        coupon_code=body.coupon_code,
    )
    return OrderEnvelope(message="Order placed", order=order_response(order))


@order_router.get("", response_model=OrderListResponse)
async def list_orders(status: str | None = None, customer: Customer = Depends(current_customer)) -> OrderListResponse:
    """The caller's orders; staff see every order."""
    orders = all_orders(status) if customer.is_staff else orders_for_customer(customer.id, status)
    return OrderListResponse(orders=[order_response(o) for o in orders], total=len(orders))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, customer: Customer = Depends(current_customer)) -> OrderResponse:
    return order_response(load_order_for(order_id, customer))


@order_router.put("/{order_id}/status", response_model=OrderEnvelope)
async def change_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    staff: Customer = Depends(staff_member),
) -> OrderEnvelope:
    order = update_order_status(
        order_id,
        staff,
        body.status,
        note=body.note,
        tracking=body.tracking.model_dump() if body.tracking else None,
    )
    return OrderEnvelope(message=f"Order is now {order.status}", order=order_response(order))


@order_router.put("/{order_id}/cancel", response_model=OrderEnvelope)
async def cancel(
    order_id: str,
    body: CancelOrderRequest | None = None,
    customer: Customer = Depends(current_customer),
) -> OrderEnvelope:
    """Cancel an order and put its stock back. Owners may cancel until the order is processed."""
    order = cancel_order(order_id, customer, reason=body.reason if body else None)
    return OrderEnvelope(message="Order cancelled", order=order_response(order))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_response(customer: Customer, cart: ShoppingCart | None) -> CartResponse:
    items = list(cart.items) if cart else []
    return CartResponse(
        customer_id=str(customer.id),
        items=[
            CartItemResponse(
                item_id=str(i.id),
                product_id=str(i.product_id),
                size=i.size,
                color=i.color,
                quantity=i.quantity,
            )
            for i in items
        ],
        item_count=sum(i.quantity for i in items),
    )


@cart_router.get("", response_model=CartResponse)
async def get_cart(customer: Customer = Depends(current_customer)) -> CartResponse:
    return _cart_response(customer, cart_for(customer.id))


@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
async def add_item(body: AddToCartRequest, customer: Customer = Depends(current_customer)) -> CartItemIdResponse:
    command = AddToCart(
        customer_id=str(customer.id),
        product_id=body.product_id,
        size=body.size,
        color=body.color,
        quantity=body.quantity,
    )
    item_id = current_domain.process(command, asynchronous=False)
    return CartItemIdResponse(item_id=item_id)


@cart_router.put("/items/{item_id}", response_model=CartResponse)
async def update_item(
    item_id: str,
    body: UpdateCartItemRequest,
    customer: Customer = Depends(current_customer),
) -> CartResponse:
    """Change a line's quantity; zero removes the line."""
    command = UpdateCartItem(customer_id=str(customer.id), item_id=item_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer, cart_for(customer.id))


@cart_router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_item(item_id: str, customer: Customer = Depends(current_customer)) -> CartResponse:
    current_domain.process(RemoveCartItem(customer_id=str(customer.id), item_id=item_id), asynchronous=False)
    return _cart_response(customer, cart_for(customer.id))


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(customer: Customer = Depends(current_customer)) -> CartResponse:
    current_domain.process(ClearCart(customer_id=str(customer.id)), asynchronous=False)
    return _cart_response(customer, cart_for(customer.id))


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


def coupon_response(coupon: Coupon) -> CouponResponse:
    return CouponResponse(
        coupon_id=str(coupon.id),
        code=coupon.code,
        description=coupon.description,
        coupon_type=coupon.coupon_type,
        value=coupon.value,
        min_order_amount=coupon.min_order_amount or 0.0,
        max_discount=coupon.max_discount,
        usage_limit=coupon.usage_limit,
        used_count=coupon.used_count or 0,
        per_customer_limit=coupon.per_customer_limit,
        valid_from=coupon.valid_from,
        valid_to=coupon.valid_to,
        applicable_brands=coupon.listed("applicable_brands"),
        applicable_categories=coupon.listed("applicable_categories"),
        applicable_products=coupon.listed("applicable_products"),
        excluded_products=coupon.listed("excluded_products"),
        is_active=coupon.is_active,
    )


@coupon_router.post("", status_code=201, response_model=CouponResponse)
async def create_coupon(body: CreateCouponRequest, staff: Customer = Depends(staff_member)) -> CouponResponse:
    command = CreateCoupon(
        code=body.code,
        description=body.description,
        coupon_type=body.coupon_type,
        value=body.value,
        min_order_amount=body.min_order_amount,
        max_discount=body.max_discount,
        usage_limit=body.usage_limit,
        per_customer_limit=body.per_customer_limit,
        valid_from=body.valid_from,
        valid_to=body.valid_to,
        applicable_brands=json.dumps(body.applicable_brands),
        applicable_categories=json.dumps(body.applicable_categories),
        applicable_products=json.dumps(body.applicable_products),
        excluded_products=json.dumps(body.excluded_products),
        created_by=str(staff.id),
    )
    current_domain.process(command, asynchronous=False)
    return coupon_response(get_coupon(body.code))


@coupon_router.get("", response_model=CouponListResponse)
async def get_coupons(active: bool = False, staff: Customer = Depends(staff_member)) -> CouponListResponse:
    coupons = list_coupons(active_only=active)
    return CouponListResponse(coupons=[coupon_response(c) for c in coupons], total=len(coupons))


@coupon_router.put("/{code}/deactivate", response_model=CouponResponse)
async def deactivate_coupon(code: str, staff: Customer = Depends(staff_member)) -> CouponResponse:
    current_domain.process(DeactivateCoupon(code=code), asynchronous=False)
    return coupon_response(get_coupon(code))


@coupon_router.post("/quote", response_model=CouponQuoteResponse)
async def quote_coupon(body: CouponQuoteRequest, customer: Customer = Depends(current_customer)) -> CouponQuoteResponse:
    """Check a code against the given items (or the cart) and show the price it would give."""
    breakdown = OrderPlacement().quote(
        customer.id,
        shipping_method=body.shipping_method,
        items=[item.model_dump(exclude={"price"}) for item in body.items] if body.items else None,
        coupon_code=body.code,
    )
    currency = current_domain.config.get("custom", {}).get("currency", "USD")
    return CouponQuoteResponse(
        code=body.code.strip().upper(),
        discount=breakdown.discount,
        pricing=_pricing_response(breakdown, currency),
    )


# ---------------------------------------------------------------------------
# Wishlist Router
# ---------------------------------------------------------------------------
wishlist_router = APIRouter(prefix="/wishlists", tags=["wishlists"])


def _item_response(item) -> WishlistItemResponse:
    try:
        product = current_domain.repository_for(Product).get(item.product_id)
    except ObjectNotFoundError:
        product = None
    price = current_price(product, item.size, item.color) if product else None
    return WishlistItemResponse(
        item_id=str(item.id),
        product_id=str(item.product_id),
        product_name=product.name if product else None,
        size=item.size,
        color=item.color,
        priority=item.priority or 3,
        notes=item.notes,
        price_when_added=item.price_when_added,
        current_price=price,
        price_dropped=bool(price is not None and item.price_when_added and price < item.price_when_added),
        added_at=item.added_at,
    )


def wishlist_response(wishlist: Wishlist, viewer_id=None) -> WishlistResponse:
    items = sorted(wishlist.items, key=lambda i: (-(i.priority or 3), i.added_at))
    return WishlistResponse(
        wishlist_id=str(wishlist.id),
        customer_id=str(wishlist.customer_id),
        name=wishlist.name,
        description=wishlist.description,
        is_public=wishlist.is_public or False,
        share_token=wishlist.share_token if viewer_id and wishlist.owned_by(viewer_id) else None,
        items=[_item_response(i) for i in items],
        item_count=len(items),
        created_at=wishlist.created_at,
        updated_at=wishlist.updated_at,
    )


@wishlist_router.get("", response_model=WishlistListResponse)
async def my_wishlists(customer: Customer = Depends(current_customer)) -> WishlistListResponse:
    wishlists = wishlists_for(customer.id)
    return WishlistListResponse(wishlists=[wishlist_response(w, customer.id) for w in wishlists], total=len(wishlists))


@wishlist_router.post("", status_code=201, response_model=WishlistIdResponse)
async def create_wishlist(
    body: CreateWishlistRequest,
    customer: Customer = Depends(current_customer),
) -> WishlistIdResponse:
    command = CreateWishlist(customer_id=str(customer.id), **body.model_dump(exclude_none=True))
    return WishlistIdResponse(wishlist_id=current_domain.process(command, asynchronous=False))


@wishlist_router.get("/public", response_model=WishlistListResponse)
async def browse_public_wishlists() -> WishlistListResponse:
    wishlists = public_wishlists()
    return WishlistListResponse(wishlists=[wishlist_response(w) for w in wishlists], total=len(wishlists))


@wishlist_router.get("/shared/{token}", response_model=WishlistResponse)
async def view_shared_wishlist(token: str) -> WishlistResponse:
    return wishlist_response(shared_wishlist(token))


@wishlist_router.get("/{wishlist_id}", response_model=WishlistResponse)
async def get_wishlist(wishlist_id: str, customer: Customer = Depends(current_customer)) -> WishlistResponse:
    """The owner's own wishlist, or anyone's public one."""
    return wishlist_response(readable_wishlist(wishlist_id, customer.id), customer.id)


@wishlist_router.put("/{wishlist_id}", response_model=WishlistResponse)
async def update_wishlist(
    wishlist_id: str,
    body: UpdateWishlistRequest,
    customer: Customer = Depends(current_customer),
) -> WishlistResponse:
    command = UpdateWishlist(
        wishlist_id=wishlist_id, customer_id=str(customer.id), **body.model_dump(exclude_none=True)
    )
    current_domain.process(command, asynchronous=False)
    return wishlist_response(owned_wishlist(wishlist_id, customer.id), customer.id)


@wishlist_router.delete("/{wishlist_id}", response_model=WishlistListResponse)
async def delete_wishlist(wishlist_id: str, customer: Customer = Depends(current_customer)) -> WishlistListResponse:
    current_domain.process(DeleteWishlist(wishlist_id=wishlist_id, customer_id=str(customer.id)), asynchronous=False)
    return await my_wishlists(customer)


@wishlist_router.post("/{wishlist_id}/items", status_code=201, response_model=WishlistItemIdResponse)
async def add_wishlist_item(
    wishlist_id: str,
    body: AddWishlistItemRequest,
    customer: Customer = Depends(current_customer),
) -> WishlistItemIdResponse:
    """Save a product; adding the same product and size/color again updates the entry."""
    command = AddWishlistItem(wishlist_id=wishlist_id, customer_id=str(customer.id), **body.model_dump())
    return WishlistItemIdResponse(item_id=current_domain.process(command, asynchronous=False))


@wishlist_router.put("/{wishlist_id}/items/{item_id}", response_model=WishlistResponse)
async def update_wishlist_item(
    wishlist_id: str,
    item_id: str,
    body: UpdateWishlistItemRequest,
    customer: Customer = Depends(current_customer),
) -> WishlistResponse:
    command = UpdateWishlistItem(
        wishlist_id=wishlist_id, customer_id=str(customer.id), item_id=item_id, **body.model_dump(exclude_none=True)
    )
    current_domain.process(command, asynchronous=False)
    return wishlist_response(owned_wishlist(wishlist_id, customer.id), customer.id)


@wishlist_router.delete("/{wishlist_id}/items/{item_id}", response_model=WishlistResponse)
async def remove_wishlist_item(
    wishlist_id: str,
    item_id: str,
    customer: Customer = Depends(current_customer),
) -> WishlistResponse:
    command = RemoveWishlistItem(wishlist_id=wishlist_id, customer_id=str(customer.id), item_id=item_id)
    current_domain.process(command, asynchronous=False)
    return wishlist_response(owned_wishlist(wishlist_id, customer.id), customer.id)


@wishlist_router.post("/{wishlist_id}/share", response_model=ShareWishlistResponse)
async def share_wishlist(wishlist_id: str, customer: Customer = Depends(current_customer)) -> ShareWishlistResponse:
    command = ShareWishlist(wishlist_id=wishlist_id, customer_id=str(customer.id))
    return ShareWishlistResponse(share_token=current_domain.process(command, asynchronous=False))


@wishlist_router.post("/{wishlist_id}/items/{item_id}/move-to-cart", response_model=CartItemIdResponse)
async def move_item_to_cart(
    wishlist_id: str,
    item_id: str,
    body: MoveToCartRequest | None = None,
    customer: Customer = Depends(current_customer),
) -> CartItemIdResponse:
    body = body or MoveToCartRequest()
    cart_item_id = move_to_cart(
        wishlist_id, item_id, customer.id, size=body.size, color=body.color, quantity=body.quantity
    )
    return CartItemIdResponse(item_id=cart_item_id)
