from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import require
from storefront.db import get_db
from storefront.models.user import User
from storefront.schemas.product_schema import ProductOut
from storefront.services.wishlist_service import WishlistService

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


class WishlistIn(BaseModel):
    product_id: int


def _out(products) -> list:
    return [ProductOut.model_validate(p).model_dump(mode="json") for p in products]


@router.get("", summary="My wishlist")
def get_wishlist(user: User = Depends(require("wishlist:manage")), db: Session = Depends(get_db)):
    return _out(WishlistService(db).get(user.id))


@router.post("", summary="Add product to wishlist")
def add_to_wishlist(
    payload: WishlistIn,
    user: User = Depends(require("wishlist:manage")),
    db: Session = Depends(get_db),
):
    return _out(WishlistService(db).add(user.id, payload.product_id))


@router.delete("", summary="Clear wishlist")
def clear_wishlist(user: User = Depends(require("wishlist:manage")), db: Session = Depends(get_db)):
    WishlistService(db).clear(user.id)
    return []


@router.delete("/{product_id}", summary="Remove product from wishlist")
def remove_from_wishlist(
    product_id: int,
    user: User = Depends(require("wishlist:manage")),
    db: Session = Depends(get_db),
):
    return _out(WishlistService(db).remove(user.id, product_id))
