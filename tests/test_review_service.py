"""
Tests for review gating and ownership.
"""

import pytest

from conftest import count_rows, make_order, make_product, make_user
from storefront.data.models import ReviewModel
from storefront.domain.errors import ForbiddenError, NotFoundError
from storefront.services.review_service import ReviewService


@pytest.fixture
def reviews(db):
    return ReviewService(db)


@pytest.fixture
def buyer(db, user, product):
    make_order(db, user, status="DELIVERED", payment_status="COMPLETED", items=[(product, 1)])
    return user


class TestGating:

    def test_no_order_no_review(self, db, reviews, user, product):
        with pytest.raises(ForbiddenError):
            reviews.create_review(user.id, product.id, 5, "great")
        assert count_rows(db, ReviewModel) == 0

    def test_undelivered_order_is_not_enough(self, db, reviews, user, product):
        make_order(db, user, status="PROCESSING", payment_status="COMPLETED", items=[(product, 1)])

        with pytest.raises(ForbiddenError):
            reviews.create_review(user.id, product.id, 5, "great")
        assert count_rows(db, ReviewModel) == 0

    def test_delivered_buyer_can_review(self, db, reviews, buyer, product):
        review, created = reviews.create_review(buyer.id, product.id, 4, "solid")

        assert created is True
        assert review["rating"] == 4
        assert review["username"] == "alice"

    def test_unknown_product(self, reviews, user):
        with pytest.raises(NotFoundError):
            reviews.create_review(user.id, 999, 4, None)


class TestOwnership:

    def test_second_post_updates_existing(self, db, reviews, buyer, product):
        first, _ = reviews.create_review(buyer.id, product.id, 2, "meh")
        second, created = reviews.create_review(buyer.id, product.id, 5, "grew on me")

        assert created is False
        assert second["id"] == first["id"]
        assert count_rows(db, ReviewModel) == 1

    def test_only_author_updates_or_deletes(self, db, reviews, buyer, product):
        review, _ = reviews.create_review(buyer.id, product.id, 3, None)
        other = make_user(db, username="mallory", email=None)

        with pytest.raises(NotFoundError):
            reviews.update_review(other.id, review["id"], 1, "bad")
        with pytest.raises(NotFoundError):
            reviews.delete_review(other.id, review["id"])

        updated = reviews.update_review(buyer.id, review["id"], 4, "better")
        assert (updated["rating"], updated["comment"]) == (4, "better")

        reviews.delete_review(buyer.id, review["id"])
        assert count_rows(db, ReviewModel) == 0

    def test_list_is_paginated(self, db, reviews, category):
        product = make_product(db, category, name="Popular")
        for name in ("u1", "u2", "u3"):
            u = make_user(db, username=name, email=None)
            make_order(db, u, status="DELIVERED", payment_status="COMPLETED", items=[(product, 1)])
            reviews.create_review(u.id, product.id, 5, None)

        page = reviews.list_reviews(product.id, page=2, limit=2)

        assert page["total"] == 3
        assert len(page["reviews"]) == 1
        assert (page["page"], page["limit"]) == (2, 2)
