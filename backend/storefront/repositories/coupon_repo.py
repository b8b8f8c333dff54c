from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.coupon import Coupon


class CouponRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, coupon_id: int) -> Optional[Coupon]:
        return self.db.get(Coupon, coupon_id)

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return self.db.query(Coupon).filter(Coupon.code == code).first()

    def list(self) -> List[Coupon]:
        return self.db.query(Coupon).order_by(Coupon.expires_at).all()

    def add(self, coupon: Coupon) -> Coupon:
        self.db.add(coupon)
        self.db.flush()
        return coupon

    def delete(self, coupon: Coupon):
        self.db.delete(coupon)
        self.db.flush()
