"""FastAPI endpoints for the product catalogue and its reviews."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from shoestore.catalogue.api.schemas import (
    AddVariantRequest,
    AdjustStockRequest,
    CreateProductRequest,
    EditReviewRequest,
    FlagReviewRequest,
    HelpfulVoteRequest,
    ModerateReviewRequest,
    ProductIdResponse,
    ProductListResponse,
    ProductReviewsResponse,
    ProductResponse,
    RatingSummaryResponse,
    ReviewIdResponse,
    ReviewListResponse,
    ReviewResponse,
    StatusResponse,
    StockLevelResponse,
    SubmitReviewRequest,
    UpdateVariantPriceRequest,
    VariantIdResponse,
    VariantResponse,
)
from shoestore.catalogue.product.management import (
    AddVariant,
    AdjustStock,
    ChangeProductAvailability,
    CreateProduct,
    UpdateVariantPrice,
)
from shoestore.catalogue.product.product import Product
from shoestore.catalogue.product.queries import get_product, list_products
from shoestore.catalogue.review.management import (
    EditReview,
    FlagReview,
    ModerateReview,
    RemoveReview,
    SubmitReview,
    VoteOnReview,
    get_review,
    moderation_queue,
    rating_summary,
    reviews_by,
    reviews_for_product,
)
from shoestore.catalogue.review.review import Review
from shoestore.identity.api.dependencies import current_customer, staff_member
from shoestore.identity.customer.customer import Customer

product_router = APIRouter(prefix="/products", tags=["products"])


def _to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        product_id=str(product.id),
        name=product.name,
        brand=product.brand,
        category=product.category,
        gender=product.gender,
        description=product.description,
        image_url=product.image_url,
        is_active=product.is_active,
        total_stock=product.total_stock or 0,
        variants=[
            VariantResponse(
                variant_id=str(v.id),
                size=v.size,
                color=v.color,
                sku=v.sku,
                price=v.price,
                compare_at_price=v.compare_at_price,
                stock=v.stock,
                is_active=v.is_active,
                in_stock=v.is_active and v.stock > 0,
            )
            for v in product.variants
        ],
    )


# --- Public reads ---


@product_router.get("", response_model=ProductListResponse)
async def browse_products(
    brand: str | None = None,
    category: str | None = None,
    gender: str | None = None,
) -> ProductListResponse:
    products = list_products(brand=brand, category=category, gender=gender)
    return ProductListResponse(products=[_to_response(p) for p in products], count=len(products))


@product_router.get("/{product_id}", response_model=ProductResponse)
async def product_detail(product_id: str) -> ProductResponse:
    return _to_response(get_product(product_id))


# --- Staff management ---


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def create_product(body: CreateProductRequest, _staff=Depends(staff_member)) -> ProductIdResponse:
    command = CreateProduct(
        name=body.name,
        brand=body.brand,
        category=body.category,
        gender=body.gender,
        description=body.description,
        image_url=body.image_url,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.post("/{product_id}/variants", status_code=201, response_model=VariantIdResponse)
async def add_variant(product_id: str, body: AddVariantRequest, _staff=Depends(staff_member)) -> VariantIdResponse:
    get_product(product_id)
    command = AddVariant(
        product_id=product_id,
        size=body.size,
        color=body.color,
        sku=body.sku,
        price=body.price,
        compare_at_price=body.compare_at_price,
        stock=body.stock,
        low_stock_threshold=body.low_stock_threshold,
    )
    result = current_domain.process(command, asynchronous=False)
    return VariantIdResponse(variant_id=result)


@product_router.put("/{product_id}/variants/{variant_id}/price", response_model=StatusResponse)
async def update_variant_price(
    product_id: str,
    variant_id: str,
    body: UpdateVariantPriceRequest,
    _staff=Depends(staff_member),
) -> StatusResponse:
    get_product(product_id)
    command = UpdateVariantPrice(
        product_id=product_id,
        variant_id=variant_id,
        price=body.price,
        compare_at_price=body.compare_at_price,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@product_router.post("/{product_id}/variants/{variant_id}/stock", response_model=StockLevelResponse)
async def adjust_stock(
    product_id: str,
    variant_id: str,
    body: AdjustStockRequest,
    _staff=Depends(staff_member),
) -> StockLevelResponse:
    get_product(product_id)
    command = AdjustStock(
        product_id=product_id,
        variant_id=variant_id,
        quantity=body.quantity,
        reason=body.reason,
    )
    stock = current_domain.process(command, asynchronous=False)
    return StockLevelResponse(variant_id=variant_id, stock=stock)


@product_router.put("/{product_id}/activate", response_model=StatusResponse)
async def activate_product(product_id: str, _staff=Depends(staff_member)) -> StatusResponse:
    get_product(product_id)
    current_domain.process(ChangeProductAvailability(product_id=product_id, action="activate"), asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/deactivate", response_model=StatusResponse)
async def deactivate_product(product_id: str, _staff=Depends(staff_member)) -> StatusResponse:
    get_product(product_id)
    current_domain.process(ChangeProductAvailability(product_id=product_id, action="deactivate"), asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/variants/{variant_id}/deactivate", response_model=StatusResponse)
async def deactivate_variant(product_id: str, variant_id: str, _staff=Depends(staff_member)) -> StatusResponse:
    get_product(product_id)
    command = ChangeProductAvailability(product_id=product_id, variant_id=variant_id, action="deactivate")
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/variants/{variant_id}/activate", response_model=StatusResponse)
async def activate_variant(product_id: str, variant_id: str, _staff=Depends(staff_member)) -> StatusResponse:
    get_product(product_id)
    command = ChangeProductAvailability(product_id=product_id, variant_id=variant_id, action="activate")
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Review Router
# ---------------------------------------------------------------------------
review_router = APIRouter(prefix="/reviews", tags=["reviews"])


def review_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        review_id=str(review.id),
        product_id=str(review.product_id),
        customer_id=str(review.customer_id),
        rating=review.rating.score,
        title=review.title,
        content=review.content,
        size_purchased=review.size_purchased,
        verified_purchase=review.verified_purchase or False,
        status=review.status,
        helpful_count=review.helpful_count or 0,
        unhelpful_count=review.unhelpful_count or 0,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def _review_list(reviews) -> ReviewListResponse:
    return ReviewListResponse(reviews=[review_response(r) for r in reviews], total=len(reviews))


@review_router.get("/product/{product_id}", response_model=ProductReviewsResponse)
async def product_reviews(product_id: str) -> ProductReviewsResponse:
    """Published reviews of a product with its rating summary."""
    get_product(product_id)
    return ProductReviewsResponse(
        product_id=product_id,
        rating=RatingSummaryResponse(**rating_summary(product_id)),
        reviews=[review_response(r) for r in reviews_for_product(product_id)],
    )


@review_router.post("", status_code=201, response_model=ReviewIdResponse)
async def submit_review(body: SubmitReviewRequest, customer: Customer = Depends(current_customer)) -> ReviewIdResponse:
    command = SubmitReview(
        product_id=body.product_id,
        customer_id=str(customer.id),
        rating=body.rating,
        title=body.title,
        content=body.content,
    )
    return ReviewIdResponse(review_id=current_domain.process(command, asynchronous=False))


@review_router.get("/mine", response_model=ReviewListResponse)
async def my_reviews(customer: Customer = Depends(current_customer)) -> ReviewListResponse:
    return _review_list(reviews_by(customer.id))


@review_router.get("/moderation", response_model=ReviewListResponse)
async def review_queue(_staff=Depends(staff_member)) -> ReviewListResponse:
    return _review_list(moderation_queue())


@review_router.put("/{review_id}", response_model=ReviewResponse)
async def edit_review(
    review_id: str,
    body: EditReviewRequest,
    customer: Customer = Depends(current_customer),
) -> ReviewResponse:
    """Change a review; it is hidden again until re-approved."""
    command = EditReview(review_id=review_id, customer_id=str(customer.id), **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return review_response(get_review(review_id))


@review_router.delete("/{review_id}", response_model=StatusResponse)
async def delete_review(review_id: str, customer: Customer = Depends(current_customer)) -> StatusResponse:
    command = RemoveReview(review_id=review_id, removed_by=str(customer.id), by_staff=customer.is_staff)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@review_router.post("/{review_id}/helpful", response_model=ReviewResponse)
async def vote_on_review(
    review_id: str,
    body: HelpfulVoteRequest,
    customer: Customer = Depends(current_customer),
) -> ReviewResponse:
    command = VoteOnReview(review_id=review_id, customer_id=str(customer.id), helpful=body.helpful)
    current_domain.process(command, asynchronous=False)
    return review_response(get_review(review_id))


@review_router.post("/{review_id}/flag", response_model=StatusResponse)
async def flag_review(
    review_id: str,
    body: FlagReviewRequest | None = None,
    customer: Customer = Depends(current_customer),
) -> StatusResponse:
    command = FlagReview(review_id=review_id, customer_id=str(customer.id), reason=body.reason if body else None)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@review_router.put("/{review_id}/moderate", response_model=ReviewResponse)
async def moderate_review(
    review_id: str,
    body: ModerateReviewRequest,
    staff: Customer = Depends(staff_member),
) -> ReviewResponse:
    command = ModerateReview(review_id=review_id, moderator_id=str(staff.id), decision=body.decision, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    return review_response(get_review(review_id))
