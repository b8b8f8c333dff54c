from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.review import Review


class ReviewRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, review_id: int) -> Optional[Review]:
        return self.db.get(Review, review_id)

    def find(self, user_id: int, product_id: int) -> Optional[Review]:
        return (
            self.db.query(Review)
            .filter(Review.user_id == user_id, Review.product_id == product_id)
            .first()
        )

    def list(self, product_id: Optional[int] = None, user_id: Optional[int] = None) -> List[Review]:
        qry = self.db.query(Review)
        if product_id is not None:
            qry = qry.filter(Review.product_id == product_id)
        if user_id is not None:
            qry = qry.filter(Review.user_id == user_id)
        return qry.order_by(Review.id).all()

    def stats(self, product_id: int) -> Tuple[float, int]:
        """(average rating, number of reviews) for one product."""
        avg, count = (
            self.db.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.product_id == product_id)
            .one()
        )
        return float(avg or 0), int(count or 0)

    def add(self, review: Review) -> Review:
        self.db.add(review)
        self.db.flush()
        return review

    def delete(self, review: Review):
        self.db.delete(review)
        self.db.flush()
