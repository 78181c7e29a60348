from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from storefront.data.models.review import ReviewModel


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_for_product(self, product_id: int, offset: int, limit: int) -> list[ReviewModel]:
        return list(
            self.db.execute(
                select(ReviewModel)
                .options(joinedload(ReviewModel.user))
                .where(ReviewModel.product_id == product_id)
                .order_by(ReviewModel.created_at.desc(), ReviewModel.id.desc())
                .offset(offset)
                .limit(limit)
            ).scalars()
        )

    def count_for_product(self, product_id: int) -> int:
        return self.db.execute(
            select(func.count()).select_from(ReviewModel).where(ReviewModel.product_id == product_id)
        ).scalar_one()

    def get_review(self, review_id: int) -> ReviewModel | None:
        return self.db.get(ReviewModel, review_id)

    def get_user_review(self, product_id: int, user_id: int) -> ReviewModel | None:
        return self.db.execute(
            select(ReviewModel).where(
                ReviewModel.product_id == product_id,
                ReviewModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def save(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def delete(self, review: ReviewModel) -> None:
        self.db.delete(review)
        self.db.commit()
