from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.errors import ForbiddenError
from storefront.models.user import User
from storefront.services.auth_service import AuthService
from storefront.services.policy import policy


def _get_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get("token")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    return AuthService(db).resolve_user(_get_token(request))


def require(action: str) -> Callable[..., User]:
    """Route dependency: the current user, provided policy(role, action) allows it."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if not policy(user.role, action):
            raise ForbiddenError("You are not allowed to access this route")
        return user

    return _check
