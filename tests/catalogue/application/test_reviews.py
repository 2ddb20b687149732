"""Application tests for reviews: verified purchases, moderation and ratings."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

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
from shoestore.errors import Forbidden, NotFound
from shoestore.ordering.order.lifecycle import update_order_status


def _submit(customer, product, rating=5, title="Love them", content="Comfortable from day one."):
    command = SubmitReview(
        product_id=str(product.id),
        customer_id=str(customer.id),
        rating=rating,
        title=title,
        content=content,
    )
    return current_domain.process(command, asynchronous=False)


def _moderate(review_id, staff, decision="approved"):
    command = ModerateReview(review_id=review_id, moderator_id=str(staff.id), decision=decision)
    current_domain.process(command, asynchronous=False)


class TestSubmit:
    def test_delivered_order_makes_it_verified(self, customer, runner, delivered_order):
        review = get_review(_submit(customer, runner))

        assert review.verified_purchase is True
        assert str(review.order_id) == str(delivered_order.id)
        assert review.size_purchased == "10"

    def test_undelivered_order_is_not_enough(self, customer, runner, order):
        with pytest.raises(Forbidden):
            _submit(customer, runner)

    def test_other_product_is_not_enough(self, customer, runner, boot, delivered_order):
        with pytest.raises(Forbidden):
            _submit(customer, boot)

    def test_unknown_product(self, customer):
        command = SubmitReview(product_id="missing", customer_id=str(customer.id), rating=5, title="t", content="c")
        with pytest.raises(NotFound):
            current_domain.process(command, asynchronous=False)

    def test_one_review_per_product(self, customer, runner, delivered_order):
        _submit(customer, runner)
        with pytest.raises(ValidationError):
            _submit(customer, runner)

    def test_removed_review_can_be_replaced(self, customer, runner, delivered_order):
        first = _submit(customer, runner)
        current_domain.process(RemoveReview(review_id=first, removed_by=str(customer.id)), asynchronous=False)

        assert _submit(customer, runner) != first


class TestVisibility:
    def test_only_approved_reviews_are_listed(self, customer, staff, runner, delivered_order):
        review_id = _submit(customer, runner)
        assert reviews_for_product(runner.id) == []
        assert [str(r.id) for r in moderation_queue()] == [review_id]

        _moderate(review_id, staff)

        assert [str(r.id) for r in reviews_for_product(runner.id)] == [review_id]
        assert moderation_queue() == []

    def test_rating_summary(self, customer, register, staff, runner, delivered_order, place_order):
        other = register(email="bob@example.com", first_name="Bob", last_name="B")
        second = place_order(other, [{"product_id": str(runner.id), "size": "10", "color": "Black", "quantity": 1}])
        for status in ("confirmed", "shipped", "delivered"):
            update_order_status(second.id, staff, status)

        _moderate(_submit(customer, runner, rating=5), staff)
        _moderate(_submit(other, runner, rating=2), staff)

        summary = rating_summary(runner.id)
        assert summary["average"] == 3.5
        assert summary["count"] == 2
        assert summary["distribution"]["5"] == 1
        assert summary["distribution"]["2"] == 1

    def test_edit_hides_until_reapproved(self, customer, staff, runner, delivered_order):
        review_id = _submit(customer, runner)
        _moderate(review_id, staff)

        current_domain.process(
            EditReview(review_id=review_id, customer_id=str(customer.id), rating=3), asynchronous=False
        )

        assert reviews_for_product(runner.id) == []
        assert get_review(review_id).rating.score == 3

    def test_only_the_author_edits(self, customer, register, runner, delivered_order):
        review_id = _submit(customer, runner)
        other = register(email="bob@example.com", first_name="Bob", last_name="B")
        with pytest.raises(Forbidden):
            current_domain.process(
                EditReview(review_id=review_id, customer_id=str(other.id), rating=1), asynchronous=False
            )


class TestShopperFeedback:
    def test_votes_and_flags(self, customer, register, staff, runner, delivered_order):
        review_id = _submit(customer, runner)
        _moderate(review_id, staff)
        shoppers = [register(email=f"s{n}@example.com", first_name="S", last_name=str(n)) for n in range(3)]

        current_domain.process(
            VoteOnReview(review_id=review_id, customer_id=str(shoppers[0].id), helpful=True), asynchronous=False
        )
        assert get_review(review_id).helpful_count == 1

        for shopper in shoppers:
            current_domain.process(FlagReview(review_id=review_id, customer_id=str(shopper.id)), asynchronous=False)

        assert get_review(review_id).status == "flagged"
        assert reviews_for_product(runner.id) == []
        assert [str(r.id) for r in moderation_queue()] == [review_id]

    def test_staff_remove_any_review(self, customer, register, staff, runner, delivered_order):
        review_id = _submit(customer, runner)
        other = register(email="bob@example.com", first_name="Bob", last_name="B")

        with pytest.raises(Forbidden):
            current_domain.process(RemoveReview(review_id=review_id, removed_by=str(other.id)), asynchronous=False)

        current_domain.process(
            RemoveReview(review_id=review_id, removed_by=str(staff.id), by_staff=True), asynchronous=False
        )
        assert reviews_by(customer.id) == []
