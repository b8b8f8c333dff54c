from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import require
from storefront.db import get_db
from storefront.schemas.coupon_schema import CouponOut
from storefront.services.coupon_service import CouponService

router = APIRouter(
    prefix="/api/coupons",
    tags=["coupons"],
    dependencies=[Depends(require("coupon:manage"))],
)


class CouponIn(BaseModel):
    code: str
    discount_percent: float
    expires_at: datetime


class CouponPatch(BaseModel):
    code: Optional[str] = None
    discount_percent: Optional[float] = None
    expires_at: Optional[datetime] = None


@router.get("", summary="List coupons")
def list_coupons(db: Session = Depends(get_db)):
    return [CouponOut.model_validate(c).model_dump(mode="json") for c in CouponService(db).list()]


@router.post("", status_code=201, summary="Create coupon")
def create_coupon(payload: CouponIn, db: Session = Depends(get_db)):
    c = CouponService(db).create(payload.code, payload.discount_percent, payload.expires_at)
    return CouponOut.model_validate(c).model_dump(mode="json")


@router.get("/{coupon_id}", summary="Get coupon")
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    return CouponOut.model_validate(CouponService(db).get(coupon_id)).model_dump(mode="json")


@router.patch("/{coupon_id}", summary="Update coupon")
def update_coupon(coupon_id: int, payload: CouponPatch, db: Session = Depends(get_db)):
    c = CouponService(db).update(coupon_id, **payload.model_dump(exclude_none=True))
    return CouponOut.model_validate(c).model_dump(mode="json")


@router.delete("/{coupon_id}", summary="Delete coupon")
def delete_coupon(coupon_id: int, db: Session = Depends(get_db)):
    CouponService(db).delete(coupon_id)
    return {"ok": True}
