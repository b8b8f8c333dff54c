from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.errors import ExpiredCouponError, NotFoundError, ValidationError
from storefront.models.coupon import Coupon
from storefront.repositories.coupon_repo import CouponRepository
from storefront.utils.clock import as_utc, to_utc, utcnow
from storefront.utils.transactions import smart_transaction


class CouponService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CouponRepository(db)

    def validate(self, code: str, now: Optional[datetime] = None) -> float:
        """
        Return the discount percent of a usable coupon.

        Raises NotFoundError for an unknown code and ExpiredCouponError once
        expires_at lies before `now`. Coupons are not single-use.
        """
        now = as_utc(now) or utcnow()
        coupon = self.repo.get_by_code(code)
        if coupon is None:
            raise NotFoundError(f"Coupon {code} not found")
        if as_utc(coupon.expires_at) < now:
            raise ExpiredCouponError(f"Coupon {code} has expired")
        return coupon.discount_percent

    def list(self) -> List[Coupon]:
        return self.repo.list()

    def get(self, coupon_id: int) -> Coupon:
        coupon = self.repo.get(coupon_id)
        if coupon is None:
            raise NotFoundError("Coupon not found")
        return coupon

    def create(self, code: str, discount_percent: float, expires_at: datetime) -> Coupon:
        self._check_discount(discount_percent)
        with smart_transaction(self.db):
            if self.repo.get_by_code(code):
                raise ValidationError("Coupon code already exists")
            coupon = self.repo.add(
                Coupon(code=code, discount_percent=discount_percent, expires_at=to_utc(expires_at))
            )
        return coupon

    def update(self, coupon_id: int, **fields) -> Coupon:
        if fields.get("discount_percent") is not None:
            self._check_discount(fields["discount_percent"])
        if fields.get("expires_at") is not None:
            fields["expires_at"] = to_utc(fields["expires_at"])
        with smart_transaction(self.db):
            coupon = self.get(coupon_id)
            new_code = fields.get("code")
            if new_code and new_code != coupon.code and self.repo.get_by_code(new_code):
                raise ValidationError("Coupon code already exists")
            for name, value in fields.items():
                if value is not None:
                    setattr(coupon, name, value)
        return coupon

    def delete(self, coupon_id: int):
        with smart_transaction(self.db):
            self.repo.delete(self.get(coupon_id))

    @staticmethod
    def _check_discount(discount_percent: float):
        if not 0 < discount_percent <= 100:
            raise ValidationError("Discount must be between 0 and 100 percent")
