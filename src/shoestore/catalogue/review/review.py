"""Review aggregate (CQRS): a customer's rating and write-up of a product.

Only shoppers with a delivered order containing the product may review it,
once per product. New and edited reviews wait for moderation; only approved
reviews are shown and counted in the product rating.

State Machine:
    PENDING → APPROVED | REJECTED
    APPROVED → FLAGGED (enough reports) | REJECTED
    FLAGGED → APPROVED | REJECTED
    REJECTED → PENDING (edited) | APPROVED
    any → REMOVED (terminal)
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, ValueObject

from shoestore.catalogue.review.events import (
    ReviewEdited,
    ReviewFlagged,
    ReviewModerated,
    ReviewRemoved,
    ReviewSubmitted,
)
from shoestore.domain import shoestore

FLAGS_BEFORE_REVIEW = 3

_UNSET = object()


class ReviewStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    REMOVED = "removed"


_VALID_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED, ReviewStatus.REMOVED},
    ReviewStatus.APPROVED: {ReviewStatus.FLAGGED, ReviewStatus.REJECTED, ReviewStatus.REMOVED},
    ReviewStatus.FLAGGED: {ReviewStatus.APPROVED, ReviewStatus.REJECTED, ReviewStatus.REMOVED},
    ReviewStatus.REJECTED: {ReviewStatus.PENDING, ReviewStatus.APPROVED, ReviewStatus.REMOVED},
    ReviewStatus.REMOVED: set(),  # Terminal
}


@shoestore.value_object(part_of="Review")
class Rating:
    """A star rating from 1 to 5."""

    score: Integer(required=True)

    @invariant.post
    def score_must_be_in_range(self):
        if self.score is not None and (self.score < 1 or self.score > 5):
            raise ValidationError({"rating": ["Rating must be between 1 and 5"]})


@shoestore.entity(part_of="Review")
class HelpfulVote:
    customer_id: Identifier(required=True)
    helpful: Boolean(required=True)
    voted_at: DateTime(required=True)


@shoestore.entity(part_of="Review")
class ReviewFlag:
    customer_id: Identifier(required=True)
    reason: String(max_length=200)
    flagged_at: DateTime(required=True)


@shoestore.aggregate
class Review:
    product_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    order_id: Identifier()
    rating: ValueObject(Rating, required=True)
    title: String(required=True, max_length=100)
    content: String(required=True, max_length=2000)
    size_purchased: String(max_length=5)
    verified_purchase: Boolean(default=False)
    status: String(choices=ReviewStatus, default=ReviewStatus.PENDING.value)
    moderation_notes: String(max_length=500)
    moderated_by: Identifier()
    votes: HasMany(HelpfulVote)
    helpful_count: Integer(default=0)
    unhelpful_count: Integer(default=0)
    flags: HasMany(ReviewFlag)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def title_and_content_are_not_blank(self):
        if self.title is not None and not self.title.strip():
            raise ValidationError({"title": ["Review title cannot be empty"]})
        if self.content is not None and not self.content.strip():
            raise ValidationError({"content": ["Review content cannot be empty"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def submit(cls, product_id, customer_id, rating, title, content, order_id=None, size_purchased=None):
        now = datetime.now(UTC)
        review = cls(
            product_id=product_id,
            customer_id=customer_id,
            order_id=order_id,
            rating=Rating(score=rating),
            title=title,
            content=content,
            size_purchased=size_purchased,
            verified_purchase=order_id is not None,
            status=ReviewStatus.PENDING.value,
            helpful_count=0,
            unhelpful_count=0,
            created_at=now,
            updated_at=now,
        )
        review.raise_(
            ReviewSubmitted(
                review_id=str(review.id),
                product_id=str(product_id),
                customer_id=str(customer_id),
                order_id=str(order_id) if order_id else None,
                rating=rating,
                title=title,
                verified_purchase=review.verified_purchase,
                submitted_at=now,
            )
        )
        return review

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_visible(self) -> bool:
        return self.status == ReviewStatus.APPROVED.value

    def written_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    def _assert_can_transition(self, target):
        current = ReviewStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot move a review from {current.value} to {target.value}"]})

    # -------------------------------------------------------------------
    # Author
    # -------------------------------------------------------------------
    def edit(self, rating=_UNSET, title=_UNSET, content=_UNSET):
        """Change the write-up. The review goes back to moderation."""
        if self.status == ReviewStatus.REMOVED.value:
            raise ValidationError({"status": ["A removed review cannot be edited"]})

        if rating is not _UNSET:
            self.rating = Rating(score=rating)
        if title is not _UNSET:
            self.title = title
        if content is not _UNSET:
            self.content = content

        now = datetime.now(UTC)
        self.status = ReviewStatus.PENDING.value
        self.updated_at = now
        self.raise_(
            ReviewEdited(
                review_id=str(self.id),
                product_id=str(self.product_id),
                rating=self.rating.score,
                edited_at=now,
            )
        )

    def remove(self, removed_by):
        self._assert_can_transition(ReviewStatus.REMOVED)
        now = datetime.now(UTC)
        self.status = ReviewStatus.REMOVED.value
        self.updated_at = now
        self.raise_(
            ReviewRemoved(
                review_id=str(self.id),
                product_id=str(self.product_id),
                removed_by=str(removed_by),
                removed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Moderation
    # -------------------------------------------------------------------
    def moderate(self, decision, moderator_id, notes=None):
        """Approve or reject. Approving a flagged review clears its flags."""
        target = ReviewStatus(decision)
        if target not in (ReviewStatus.APPROVED, ReviewStatus.REJECTED):
            raise ValidationError({"decision": ["Moderation decision must be approved or rejected"]})
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        previous = self.status
        if target == ReviewStatus.APPROVED and previous == ReviewStatus.FLAGGED.value:
            for flag in list(self.flags):
                self.remove_flags(flag)

        self.status = target.value
        self.moderation_notes = notes
        self.moderated_by = moderator_id
        self.updated_at = now
        self.raise_(
            ReviewModerated(
                review_id=str(self.id),
                product_id=str(self.product_id),
                customer_id=str(self.customer_id),
                previous_status=previous,
                new_status=target.value,
                moderator_id=str(moderator_id),
                notes=notes,
                moderated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Shoppers
    # -------------------------------------------------------------------
    def vote(self, customer_id, helpful: bool):
        """Record whether the review helped. A second vote replaces the first."""
        if self.written_by(customer_id):
            raise ValidationError({"vote": ["You cannot vote on your own review"]})
        if not self.is_visible:
            raise ValidationError({"vote": ["Only published reviews can be voted on"]})

        now = datetime.now(UTC)
        existing = next((v for v in self.votes if str(v.customer_id) == str(customer_id)), None)
        if existing:
            existing.helpful = helpful
            existing.voted_at = now
        else:
            self.add_votes(HelpfulVote(customer_id=customer_id, helpful=helpful, voted_at=now))

        self.helpful_count = sum(1 for v in self.votes if v.helpful)
        self.unhelpful_count = sum(1 for v in self.votes if not v.helpful)
        self.updated_at = now

    def flag(self, customer_id, reason=None):
        """Report the review. Enough reports pull an approved review back into moderation."""
        if self.written_by(customer_id):
            raise ValidationError({"flag": ["You cannot report your own review"]})
        if any(str(f.customer_id) == str(customer_id) for f in self.flags):
            raise ValidationError({"flag": ["You have already reported this review"]})

        now = datetime.now(UTC)
        self.add_flags(ReviewFlag(customer_id=customer_id, reason=reason, flagged_at=now))
        self.updated_at = now

        if self.is_visible and len(self.flags) >= FLAGS_BEFORE_REVIEW:
            self.status = ReviewStatus.FLAGGED.value
            self.raise_(
                ReviewFlagged(
                    review_id=str(self.id),
                    product_id=str(self.product_id),
                    flag_count=len(self.flags),
                    flagged_at=now,
                )
            )
