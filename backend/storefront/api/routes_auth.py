from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.config import settings
from storefront.db import get_db
from storefront.models.user import User
from storefront.schemas.user_schema import TokenOut, UserOut
from storefront.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterIn(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


def send_token(svc: AuthService, user: User, response: Response) -> TokenOut:
    token = svc.issue_token(user)
    response.set_cookie(
        "token",
        token,
        httponly=True,
        samesite="Lax",
        max_age=settings.JWT_EXPIRES_MINUTES * 60,
    )
    return TokenOut(token=token, user=UserOut.model_validate(user))


@router.post("/register", status_code=201, response_model=TokenOut, summary="Register")
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    svc = AuthService(db)
    user = svc.register(payload.username, payload.email, payload.password, payload.confirm_password)
    return send_token(svc, user, response)


@router.post("/login", response_model=TokenOut, summary="Login")
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    svc = AuthService(db)
    user = svc.login(payload.email, payload.password)
    return send_token(svc, user, response)


@router.post("/logout", summary="Logout")
def logout(response: Response, user: User = Depends(get_current_user)):
    response.delete_cookie("token")
    return {"success": True, "message": "Logged out successfully"}
