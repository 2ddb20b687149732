"""Domain events for the Review aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from shoestore.domain import shoestore


@shoestore.event(part_of="Review")
class ReviewSubmitted:
    __version__ = 1

    review_id: Identifier(required=True)
    product_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    order_id: Identifier()
    rating: Integer(required=True)
    title: String(required=True)
    verified_purchase: Boolean(default=False)
    submitted_at: DateTime(required=True)


@shoestore.event(part_of="Review")
class ReviewEdited:
    __version__ = 1

    review_id: Identifier(required=True)
    product_id: Identifier(required=True)
    rating: Integer(required=True)
    edited_at: DateTime(required=True)


@shoestore.event(part_of="Review")
class ReviewModerated:
    """Staff approved or rejected a review."""

    __version__ = 1

    review_id: Identifier(required=True)
    product_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    previous_status: String(required=True)
    new_status: String(required=True)
    moderator_id: Identifier(required=True)
    notes: String()
    moderated_at: DateTime(required=True)


@shoestore.event(part_of="Review")
class ReviewFlagged:
    """Enough shoppers reported a published review to pull it for moderation."""

    __version__ = 1

    review_id: Identifier(required=True)
    product_id: Identifier(required=True)
    flag_count: Integer(required=True)
    flagged_at: DateTime(required=True)


@shoestore.event(part_of="Review")
class ReviewRemoved:
    __version__ = 1

    review_id: Identifier(required=True)
    product_id: Identifier(required=True)
    removed_by: Identifier(required=True)
    removed_at: DateTime(required=True)
