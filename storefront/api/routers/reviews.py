# storefront/api/routers/reviews.py
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.api.deps import CurrentUser, get_current_user
from storefront.data.database import get_db
from storefront.domain.schemas import MessageOut, ReviewIn, ReviewOut, ReviewPageOut
from storefront.services.review_service import ReviewService

router = APIRouter(tags=["reviews"])


def get_service(db: Session):
    return ReviewService(db)


@router.get("/products/{product_id}/reviews", response_model=ReviewPageOut)
def list_reviews(
    product_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return get_service(db).list_reviews(product_id, page, limit)


@router.post("/products/{product_id}/reviews", response_model=ReviewOut, status_code=201)
def create_review(
    product_id: int,
    payload: ReviewIn,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Reviews are limited to buyers with a delivered order for the product.
    Posting again updates the existing review (200 instead of 201).
    """
    review, created = get_service(db).create_review(user.id, product_id, payload.rating, payload.comment)
    if not created:
        response.status_code = 200
    return review


@router.put("/reviews/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int,
    payload: ReviewIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).update_review(user.id, review_id, payload.rating, payload.comment)


@router.delete("/reviews/{review_id}", response_model=MessageOut)
def delete_review(
    review_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_service(db).delete_review(user.id, review_id)
    return {"message": "Review deleted"}
