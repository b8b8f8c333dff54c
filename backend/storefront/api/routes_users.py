from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import require
from storefront.api.routes_auth import send_token
from storefront.db import get_db
from storefront.models.user import User
from storefront.schemas.user_schema import TokenOut, UserOut
from storefront.services.auth_service import AuthService
from storefront.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


class ProfilePatch(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None


class PasswordIn(BaseModel):
    current_password: str = ""
    password: str = ""
    confirm_password: str = ""


class UserPatch(ProfilePatch):
    role: Optional[str] = None


def _out(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


# logged-in user
@router.get("/my-profile", response_model=UserOut, summary="Current user's profile")
def my_profile(user: User = Depends(require("profile:read"))):
    return user


@router.patch("/my-profile", summary="Update my profile")
def update_my_profile(
    payload: ProfilePatch,
    user: User = Depends(require("profile:manage")),
    db: Session = Depends(get_db),
):
    return _out(UserService(db).update_profile(user, username=payload.username, email=payload.email))


@router.delete("/my-profile", summary="Delete my account")
def delete_my_profile(
    response: Response,
    user: User = Depends(require("profile:manage")),
    db: Session = Depends(get_db),
):
    UserService(db).delete(user.id)
    response.delete_cookie("token")
    return {"ok": True}


@router.patch("/my-password", response_model=TokenOut, summary="Change my password")
def update_my_password(
    payload: PasswordIn,
    response: Response,
    user: User = Depends(require("profile:manage")),
    db: Session = Depends(get_db),
):
    UserService(db).change_password(
        user, payload.current_password, payload.password, payload.confirm_password
    )
    return send_token(AuthService(db), user, response)


# admin
@router.get("", summary="List users", dependencies=[Depends(require("user:manage"))])
def list_users(db: Session = Depends(get_db)):
    return [_out(u) for u in UserService(db).list()]


@router.get("/{user_id}", summary="Get user", dependencies=[Depends(require("user:manage"))])
def get_user(user_id: int, db: Session = Depends(get_db)):
    return _out(UserService(db).get(user_id))


@router.patch("/{user_id}", summary="Update user", dependencies=[Depends(require("user:manage"))])
def update_user(user_id: int, payload: UserPatch, db: Session = Depends(get_db)):
    return _out(
        UserService(db).update_user(
            user_id, username=payload.username, email=payload.email, role=payload.role
        )
    )


@router.delete("/{user_id}", summary="Delete user", dependencies=[Depends(require("user:manage"))])
def delete_user(user_id: int, db: Session = Depends(get_db)):
    UserService(db).delete(user_id)
    return {"ok": True}
