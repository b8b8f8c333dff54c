from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.models.product import Product
from storefront.models.review import Review
from storefront.models.user import User
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.review_repo import ReviewRepository
from storefront.services.policy import policy
from storefront.utils.log import get_logger
from storefront.utils.transactions import smart_transaction

log = get_logger("storefront.reviews")


def refresh_rating(db: Session, product_id: int):
    """Recompute a product's rating_average/rating_quantity from its reviews."""
    avg, count = ReviewRepository(db).stats(product_id)
    db.query(Product).filter(Product.id == product_id).update(
        {Product.rating_average: round(avg, 2), Product.rating_quantity: count},
        synchronize_session=False,
    )


class ReviewService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository(db)
        self.products = ProductRepository(db)

    def list(self, product_id: Optional[int] = None) -> List[Review]:
        """All reviews, or only those of `product_id` when reached through a product."""
        if product_id is not None:
            self._product(product_id)
        return self.repo.list(product_id=product_id)

    def get(self, review_id: int) -> Review:
        review = self.repo.get(review_id)
        if review is None:
            raise NotFoundError(f"There is no review with id: {review_id}")
        return review

    def create(self, user: User, product_id: int, rating: int, comment: Optional[str] = None) -> Review:
        self._check_rating(rating)
        try:
            with smart_transaction(self.db):
                self._product(product_id)
                if self.repo.find(user.id, product_id) is not None:
                    raise ValidationError("You already created a review before")
                review = self.repo.add(
                    Review(user_id=user.id, product_id=product_id, rating=rating, comment=comment)
                )
                refresh_rating(self.db, product_id)
        except IntegrityError:
            raise ValidationError("You already created a review before")
        log.info("review=%s product=%s user=%s rating=%s", review.id, product_id, user.id, rating)
        return review

    def update(self, user: User, review_id: int, rating: Optional[int] = None, comment: Optional[str] = None) -> Review:
        if rating is not None:
            self._check_rating(rating)
        with smart_transaction(self.db):
            review = self.get(review_id)
            if review.user_id != user.id:
                raise ForbiddenError("You are not allowed to perform this action")
            if rating is not None:
                review.rating = rating
            if comment is not None:
                review.comment = comment
            self.db.flush()
            refresh_rating(self.db, review.product_id)
        return review

    def delete(self, user: User, review_id: int):
        with smart_transaction(self.db):
            review = self.get(review_id)
            if review.user_id != user.id and not policy(user.role, "review:moderate"):
                raise ForbiddenError("You are not allowed to perform this action")
            product_id = review.product_id
            self.repo.delete(review)
            refresh_rating(self.db, product_id)
        log.info("deleted review=%s product=%s", review_id, product_id)

    def _product(self, product_id: int) -> Product:
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    def _check_rating(rating: int):
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")
