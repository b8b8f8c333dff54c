from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.models.cart import Cart
from storefront.models.order import Order
from storefront.models.review import Review
from storefront.models.user import User
from storefront.models.wishlist import WishlistItem
from storefront.repositories.review_repo import ReviewRepository
from storefront.repositories.user_repo import UserRepository
from storefront.services.auth_service import check_password, hash_password
from storefront.services.policy import POLICIES
from storefront.services.review_service import refresh_rating
from storefront.utils.clock import utcnow
from storefront.utils.log import get_logger
from storefront.utils.transactions import smart_transaction

log = get_logger("storefront.users")

MIN_PASSWORD_LENGTH = 6


class UserService:
    """Profile self-service and the admin user directory."""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)

    def list(self) -> List[User]:
        return self.users.list()

    def get(self, user_id: int) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"There is no user with id: {user_id}")
        return user

    def update_profile(self, user: User, username: Optional[str] = None, email: Optional[str] = None) -> User:
        with smart_transaction(self.db):
            self._apply(user, username=username, email=email)
        log.info("profile updated user=%s", user.id)
        return user

    def update_user(
        self,
        user_id: int,
        username: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
    ) -> User:
        if role is not None and role not in POLICIES:
            raise ValidationError(f"Unknown role: {role}")
        with smart_transaction(self.db):
            user = self.get(user_id)
            self._apply(user, username=username, email=email)
            if role is not None:
                user.role = role
        log.info("admin updated user=%s role=%s", user.id, user.role)
        return user

    def change_password(self, user: User, current_password: str, password: str, confirm_password: str) -> User:
        """
        Replace the password after checking the current one. Tokens issued
        before the change stop working (see AuthService.resolve_user).
        """
        if not current_password or not password or not confirm_password:
            raise ValidationError("Please fill all fields")
        if not check_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        with smart_transaction(self.db):
            user.password_hash = hash_password(password)
            user.password_changed_at = utcnow()
        log.info("password changed user=%s", user.id)
        return user

    def delete(self, user_id: int):
        """
        Remove an account with its cart, wishlist and reviews. Accounts that
        placed orders are kept: orders reference their owner.
        """
        with smart_transaction(self.db):
            user = self.get(user_id)
            if self.db.query(Order.id).filter(Order.owner_id == user.id).first() is not None:
                raise ConflictError("User has orders and cannot be deleted")
            cart = self.db.query(Cart).filter(Cart.owner_id == user.id).first()
            if cart is not None:
                self.db.delete(cart)
            self.db.query(WishlistItem).filter(WishlistItem.user_id == user.id).delete(
                synchronize_session=False
            )
            reviewed = [r.product_id for r in ReviewRepository(self.db).list(user_id=user.id)]
            self.db.query(Review).filter(Review.user_id == user.id).delete(synchronize_session=False)
            for product_id in reviewed:
                refresh_rating(self.db, product_id)
            self.users.delete(user)
        log.info("deleted user=%s", user_id)

    def _apply(self, user: User, username: Optional[str], email: Optional[str]):
        if username is not None:
            if not username.strip():
                raise ValidationError("Username must not be empty")
            user.username = username.strip()
        if email is not None:
            email = email.strip().lower()
            if not email:
                raise ValidationError("Email must not be empty")
            other = self.users.get_by_email(email)
            if other is not None and other.id != user.id:
                raise ValidationError("Email is already exist, please enter new email")
            user.email = email
