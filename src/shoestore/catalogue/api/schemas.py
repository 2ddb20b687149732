"""Pydantic request/response schemas for the catalogue and review APIs."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreateProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    brand: str = Field(min_length=1, max_length=100)
    category: str
    gender: str
    description: str | None = None
    image_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Air Zoom Pegasus",
                    "brand": "Nike",
                    "category": "running",
                    "gender": "men",
                }
            ]
        }
    }


class AddVariantRequest(BaseModel):
    size: str
    color: str = Field(min_length=1, max_length=50)
    sku: str = Field(min_length=1, max_length=50)
    price: float = Field(ge=0)
    compare_at_price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)


class UpdateVariantPriceRequest(BaseModel):
    price: float = Field(ge=0)
    compare_at_price: float | None = Field(default=None, ge=0)


class AdjustStockRequest(BaseModel):
    quantity: int
    reason: str | None = None


class VariantResponse(BaseModel):
    variant_id: str
    size: str
    color: str
    sku: str
    price: float
    compare_at_price: float | None = None
    stock: int
    is_active: bool
    in_stock: bool


class ProductResponse(BaseModel):
    product_id: str
    name: str
    brand: str
    category: str
    gender: str
    description: str | None = None
    image_url: str | None = None
    is_active: bool
    total_stock: int
    variants: list[VariantResponse]


class ProductListResponse(BaseModel):
    products: list[ProductResponse]
    count: int


class ProductIdResponse(BaseModel):
    product_id: str


class VariantIdResponse(BaseModel):
    variant_id: str


class StockLevelResponse(BaseModel):
    variant_id: str
    stock: int


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------
class SubmitReviewRequest(BaseModel):
    product_id: str
    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=1, max_length=100)
    content: str = Field(min_length=1, max_length=2000)


class EditReviewRequest(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, min_length=1, max_length=100)
    content: str | None = Field(default=None, min_length=1, max_length=2000)


class ModerateReviewRequest(BaseModel):
    decision: str = Field(pattern="^(approved|rejected)$")
    notes: str | None = Field(default=None, max_length=500)


class HelpfulVoteRequest(BaseModel):
    helpful: bool = True


class FlagReviewRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=200)


class ReviewResponse(BaseModel):
    review_id: str
    product_id: str
    customer_id: str
    rating: int
    title: str
    content: str
    size_purchased: str | None = None
    verified_purchase: bool
    status: str
    helpful_count: int
    unhelpful_count: int
    created_at: datetime
    updated_at: datetime | None = None


class ReviewIdResponse(BaseModel):
    review_id: str


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    total: int


class RatingSummaryResponse(BaseModel):
    average: float
    count: int
    distribution: dict[str, int]


class ProductReviewsResponse(BaseModel):
    product_id: str
    rating: RatingSummaryResponse
    reviews: list[ReviewResponse]
