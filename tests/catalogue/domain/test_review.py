"""Tests for the Review aggregate."""

import pytest
from protean.exceptions import ValidationError

from shoestore.catalogue.review.events import ReviewFlagged, ReviewModerated, ReviewSubmitted
from shoestore.catalogue.review.review import FLAGS_BEFORE_REVIEW, Review, ReviewStatus


def _review(rating=4, **extra):
    review = Review.submit(
        product_id="prod-1",
        customer_id="author",
        rating=rating,
        title=extra.pop("title", "Great for long runs"),
        content=extra.pop("content", "Light, springy and true to size."),
        order_id=extra.pop("order_id", "order-1"),
        **extra,
    )
    return review


def _approved():
    review = _review()
    review.moderate("approved", "moderator")
    review._events.clear()
    return review


class TestSubmit:
    def test_pending_and_verified(self):
        review = _review()

        assert review.status == ReviewStatus.PENDING.value
        assert review.verified_purchase is True
        assert isinstance(review._events[0], ReviewSubmitted)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, rating):
        with pytest.raises(ValidationError):
            _review(rating=rating)

    def test_title_length(self):
        with pytest.raises(ValidationError):
            _review(title="x" * 101)

    def test_blank_content(self):
        with pytest.raises(ValidationError):
            _review(content="   ")


class TestModeration:
    def test_approve(self):
        review = _review()
        review.moderate("approved", "moderator", notes="Looks fine")

        assert review.is_visible
        event = review._events[-1]
        assert isinstance(event, ReviewModerated)
        assert event.previous_status == "pending"

    def test_unknown_decision(self):
        with pytest.raises(ValidationError):
            _review().moderate("flagged", "moderator")

    def test_removed_review_cannot_be_moderated(self):
        review = _review()
        review.remove("author")
        with pytest.raises(ValidationError):
            review.moderate("approved", "moderator")

    def test_edit_sends_it_back_to_moderation(self):
        review = _approved()
        review.edit(rating=2, content="Fell apart after a month.")

        assert review.status == ReviewStatus.PENDING.value
        assert review.rating.score == 2
        assert review.title == "Great for long runs"


class TestVotes:
    def test_counts(self):
        review = _approved()
        review.vote("shopper-1", True)
        review.vote("shopper-2", False)
        assert (review.helpful_count, review.unhelpful_count) == (1, 1)

    def test_second_vote_replaces_the_first(self):
        review = _approved()
        review.vote("shopper-1", True)
        review.vote("shopper-1", False)

        assert len(review.votes) == 1
        assert (review.helpful_count, review.unhelpful_count) == (0, 1)

    def test_author_cannot_vote(self):
        with pytest.raises(ValidationError):
            _approved().vote("author", True)

    def test_pending_review_cannot_be_voted_on(self):
        with pytest.raises(ValidationError):
            _review().vote("shopper-1", True)


class TestFlags:
    def test_once_per_shopper(self):
        review = _approved()
        review.flag("shopper-1", "spam")
        with pytest.raises(ValidationError):
            review.flag("shopper-1", "spam")

    def test_author_cannot_flag(self):
        with pytest.raises(ValidationError):
            _approved().flag("author")

    def test_enough_flags_pull_it_for_moderation(self):
        review = _approved()
        for n in range(FLAGS_BEFORE_REVIEW):
            review.flag(f"shopper-{n}")

        assert review.status == ReviewStatus.FLAGGED.value
        assert not review.is_visible
        assert isinstance(review._events[-1], ReviewFlagged)

    def test_reapproval_clears_flags(self):
        review = _approved()
        for n in range(FLAGS_BEFORE_REVIEW):
            review.flag(f"shopper-{n}")

        review.moderate("approved", "moderator")

        assert review.is_visible
        assert len(review.flags) == 0

    def test_flags_on_pending_review_do_not_change_status(self):
        review = _review()
        for n in range(FLAGS_BEFORE_REVIEW):
            review.flag(f"shopper-{n}")
        assert review.status == ReviewStatus.PENDING.value
