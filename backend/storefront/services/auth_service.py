from datetime import timedelta
from typing import Dict, Optional

import bcrypt
import jwt
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.errors import AuthError, ValidationError
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.utils.clock import as_utc, utcnow
from storefront.utils.log import get_logger
from storefront.utils.transactions import smart_transaction

log = get_logger("storefront.auth")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)

    def register(self, username: str, email: str, password: str, confirm_password: str) -> User:
        """
        Create a regular user. Registration never grants the admin role;
        admins come from bootstrap_admin().
        """
        if not username or not email or not password or not confirm_password:
            raise ValidationError("Please fill all fields")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")
        with smart_transaction(self.db):
            if self.users.get_by_email(email):
                raise ValidationError("Email is already exist, please enter new email")
            user = self.users.create(username, email, hash_password(password))
        log.info("registered user id=%s", user.id)
        return user

    def login(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Please fill all fields")
        user = self.users.get_by_email(email)
        if not user or not check_password(password, user.password_hash):
            raise ValidationError("Invalid email or password")
        return user

    def bootstrap_admin(self, email: str, password: str, username: str = "admin") -> User:
        """Create an admin account, or promote the existing account with that email."""
        with smart_transaction(self.db):
            user = self.users.get_by_email(email)
            if user is None:
                user = self.users.create(username, email, hash_password(password), role="admin")
            else:
                user.role = "admin"
        log.info("bootstrapped admin id=%s", user.id)
        return user

    def issue_token(self, user: User) -> str:
        now = utcnow()
        payload = {
            "sub": str(user.id),
            "role": user.role,
            "iat": now,
            "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
        }
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    def decode_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired, please login again")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token, please login again")

    def resolve_user(self, token: Optional[str]) -> User:
        """Verified user for a bearer token; the role is read from the DB, not the token."""
        if not token:
            raise AuthError("You are not logged in, please login to get access")
        payload = self.decode_token(token)
        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthError("Invalid token, please login again")
        user = self.users.get(user_id)
        if user is None:
            raise AuthError("The user that belongs to this token no longer exists")
        changed = as_utc(user.password_changed_at)
        if changed is not None and payload.get("iat", 0) < int(changed.timestamp()):
            raise AuthError("User recently changed password, please login again")
        return user
