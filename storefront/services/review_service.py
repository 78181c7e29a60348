# storefront/services/review_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.review import ReviewModel
from storefront.domain.errors import ForbiddenError, NotFoundError
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.repos.review_repo import ReviewRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def review_to_dict(review: ReviewModel) -> Dict[str, Any]:
    return {
        "id": review.id,
        "product_id": review.product_id,
        "user_id": review.user_id,
        "username": review.user.username,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": review.created_at,
    }


class ReviewService:
    def __init__(self, db: Session):
        self.repo = ReviewRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)

    def list_reviews(self, product_id: int, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        reviews = self.repo.list_for_product(product_id, offset=(page - 1) * limit, limit=limit)
        return {
            "reviews": [review_to_dict(r) for r in reviews],
            "total": self.repo.count_for_product(product_id),
            "page": page,
            "limit": limit,
        }

    def create_review(self, user_id: int, product_id: int, rating: int, comment: str | None):
        """
        Only buyers review: the user needs a DELIVERED order containing the
        product. Posting again updates the user's existing review.

        Returns (review dict, created flag).
        """
        if not self.products.get_product(product_id):
            raise NotFoundError("Product not found")

        if not self.orders.has_delivered_item(user_id, product_id):
            logger.info(f"User {user_id} tried to review product {product_id} without a delivered order")
            raise ForbiddenError("You can only review products you have purchased")

        existing = self.repo.get_user_review(product_id, user_id)
        if existing:
            existing.rating = rating
            existing.comment = comment
            return review_to_dict(self.repo.save(existing)), False

        review = self.repo.save(
            ReviewModel(product_id=product_id, user_id=user_id, rating=rating, comment=comment)
        )
        logger.info(f"Review {review.id} created for product {product_id} by user {user_id}")
        return review_to_dict(review), True

    def update_review(self, user_id: int, review_id: int, rating: int, comment: str | None) -> Dict[str, Any]:
        review = self._own_review(user_id, review_id)
        review.rating = rating
        review.comment = comment
        return review_to_dict(self.repo.save(review))

    def delete_review(self, user_id: int, review_id: int) -> None:
        review = self._own_review(user_id, review_id)
        self.repo.delete(review)
        logger.info(f"Review {review_id} deleted by user {user_id}")

    def _own_review(self, user_id: int, review_id: int) -> ReviewModel:
        review = self.repo.get_review(review_id)
        if not review or review.user_id != user_id:
            raise NotFoundError("Review not found")
        return review
