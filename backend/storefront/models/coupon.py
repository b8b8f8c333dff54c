from sqlalchemy import Column, DateTime, Float, Integer, String

from storefront.db import Base


class Coupon(Base):
    __tablename__ = "coupons"
    id = Column(Integer, primary_key=True, index=True)
    # matched exactly as stored, no case folding
    code = Column(String(64), unique=True, index=True, nullable=False)
    discount_percent = Column(Float, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<Coupon code={self.code} discount={self.discount_percent}%>"
