"""Review commands, handler and read-side helpers."""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from shoestore.catalogue.product.queries import get_product
from shoestore.catalogue.review.review import Review, ReviewStatus
from shoestore.domain import shoestore
from shoestore.errors import Forbidden, NotFound
from shoestore.ordering.order.order import OrderStatus
from shoestore.ordering.order.queries import orders_for_customer


def get_review(review_id) -> Review:
    try:
        return current_domain.repository_for(Review).get(review_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Review {review_id} not found", review_id=str(review_id)) from exc


def _newest_first(reviews):
    return sorted(reviews, key=lambda r: r.created_at, reverse=True)


def reviews_for_product(product_id) -> list[Review]:
    query = current_domain.repository_for(Review)._dao.query
    reviews = query.filter(product_id=str(product_id), status=ReviewStatus.APPROVED.value).all().items
    return _newest_first(reviews)


def reviews_by(customer_id) -> list[Review]:
    reviews = current_domain.repository_for(Review)._dao.query.filter(customer_id=str(customer_id)).all().items
    return _newest_first([r for r in reviews if r.status != ReviewStatus.REMOVED.value])


def moderation_queue() -> list[Review]:
    """Pending and flagged reviews, oldest first."""
    reviews = current_domain.repository_for(Review)._dao.query.all().items
    waiting = {ReviewStatus.PENDING.value, ReviewStatus.FLAGGED.value}
    return sorted((r for r in reviews if r.status in waiting), key=lambda r: r.created_at)


def rating_summary(product_id) -> dict:
    """Average, count and star distribution over approved reviews."""
    scores = [r.rating.score for r in reviews_for_product(product_id)]
    distribution = {str(star): scores.count(star) for star in range(1, 6)}
    average = round(sum(scores) / len(scores), 1) if scores else 0.0
    return {"average": average, "count": len(scores), "distribution": distribution}


def delivered_order_with(customer_id, product_id):
    """The customer's most recent delivered order containing the product, if any."""
    for order in orders_for_customer(customer_id, OrderStatus.DELIVERED.value):
        item = next((i for i in order.items if str(i.product_id) == str(product_id)), None)
        if item is not None:
            return order, item
    return None, None


@shoestore.command(part_of="Review")
class SubmitReview:
    product_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    rating: Integer(required=True)
    title: String(required=True, max_length=100)
    content: String(required=True, max_length=2000)


@shoestore.command(part_of="Review")
class EditReview:
    review_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    rating: Integer()
    title: String(max_length=100)
    content: String(max_length=2000)


@shoestore.command(part_of="Review")
class RemoveReview:
    review_id: Identifier(required=True)
    removed_by: Identifier(required=True)
    by_staff: Boolean(default=False)


@shoestore.command(part_of="Review")
class ModerateReview:
    review_id: Identifier(required=True)
    moderator_id: Identifier(required=True)
    decision: String(required=True, max_length=20)
    notes: String(max_length=500)


@shoestore.command(part_of="Review")
class VoteOnReview:
    review_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    helpful: Boolean(required=True)


@shoestore.command(part_of="Review")
class FlagReview:
    review_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    reason: String(max_length=200)


@shoestore.command_handler(part_of=Review)
class ReviewHandler:
    @handle(SubmitReview)
    def submit(self, command):
        get_product(command.product_id)

        order, item = delivered_order_with(command.customer_id, command.product_id)
        if order is None:
            raise Forbidden(
                "You can only review products from your delivered orders",
                product_id=str(command.product_id),
            )
        if any(str(r.product_id) == str(command.product_id) for r in reviews_by(command.customer_id)):
            raise ValidationError({"product_id": ["You have already reviewed this product"]})

        review = Review.submit(
            product_id=command.product_id,
            customer_id=command.customer_id,
            rating=command.rating,
            title=command.title,
            content=command.content,
            order_id=str(order.id),
            size_purchased=item.size,
        )
        current_domain.repository_for(Review).add(review)
        return str(review.id)

    @handle(EditReview)
    def edit(self, command):
        review = get_review(command.review_id)
        if not review.written_by(command.customer_id):
            raise Forbidden("Only the author can edit a review")

        changes = {
            field: getattr(command, field)
            for field in ("rating", "title", "content")
            if getattr(command, field) is not None
        }
        review.edit(**changes)
        current_domain.repository_for(Review).add(review)

    @handle(RemoveReview)
    def remove(self, command):
        review = get_review(command.review_id)
        if not command.by_staff and not review.written_by(command.removed_by):
            raise Forbidden("Only the author or staff can delete a review")
        review.remove(command.removed_by)
        current_domain.repository_for(Review).add(review)

    @handle(ModerateReview)
    def moderate(self, command):
        review = get_review(command.review_id)
        review.moderate(command.decision, command.moderator_id, notes=command.notes)
        current_domain.repository_for(Review).add(review)

    @handle(VoteOnReview)
    def vote(self, command):
        review = get_review(command.review_id)
        review.vote(command.customer_id, command.helpful)
        current_domain.repository_for(Review).add(review)

    @handle(FlagReview)
    def flag(self, command):
        review = get_review(command.review_id)
        review.flag(command.customer_id, command.reason)
        current_domain.repository_for(Review).add(review)
