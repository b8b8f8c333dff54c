from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require
from storefront.db import get_db
from storefront.errors import ValidationError
from storefront.models.user import User
from storefront.schemas.review_schema import ReviewOut
from storefront.services.review_service import ReviewService

# /api/reviews
router = APIRouter(prefix="/api/reviews", tags=["reviews"])
# /api/products/{product_id}/reviews; the parent id is handed to the service explicitly
product_reviews_router = APIRouter(prefix="/api/products/{product_id}/reviews", tags=["reviews"])


class ReviewIn(BaseModel):
    rating: int
    comment: Optional[str] = None
    product_id: Optional[int] = None


class ReviewPatch(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None


def _out(review) -> dict:
    return ReviewOut.model_validate(review).model_dump(mode="json")


@product_reviews_router.get("", summary="Reviews of one product")
def list_product_reviews(product_id: int, db: Session = Depends(get_db)):
    return [_out(r) for r in ReviewService(db).list(product_id=product_id)]


@product_reviews_router.post("", status_code=201, summary="Review a product")
def create_product_review(
    product_id: int,
    payload: ReviewIn,
    user: User = Depends(require("review:write")),
    db: Session = Depends(get_db),
):
    if payload.product_id is not None and payload.product_id != product_id:
        raise ValidationError("product_id does not match the product in the path")
    return _out(ReviewService(db).create(user, product_id, payload.rating, payload.comment))


@router.get("", summary="List reviews")
def list_reviews(db: Session = Depends(get_db)):
    return [_out(r) for r in ReviewService(db).list()]


@router.post("", status_code=201, summary="Create review")
def create_review(
    payload: ReviewIn,
    user: User = Depends(require("review:write")),
    db: Session = Depends(get_db),
):
    if payload.product_id is None:
        raise ValidationError("product_id: Field required")
    return _out(ReviewService(db).create(user, payload.product_id, payload.rating, payload.comment))


@router.get("/{review_id}", summary="Get review")
def get_review(review_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _out(ReviewService(db).get(review_id))


@router.patch("/{review_id}", summary="Update own review")
def update_review(
    review_id: int,
    payload: ReviewPatch,
    user: User = Depends(require("review:write")),
    db: Session = Depends(get_db),
):
    return _out(ReviewService(db).update(user, review_id, rating=payload.rating, comment=payload.comment))


@router.delete("/{review_id}", summary="Delete review (owner or admin)")
def delete_review(
    review_id: int,
    user: User = Depends(require("review:write")),
    db: Session = Depends(get_db),
):
    ReviewService(db).delete(user, review_id)
    return {"ok": True}
