from storefront.db import Base
from sqlalchemy import Column, DateTime, Float, Integer, String, func
from sqlalchemy.orm import relationship


class Cart(Base):
    __tablename__ = "carts"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(
        Integer, unique=True, index=True, nullable=False
    )  # one live cart per user
    coupon_code = Column(String(64), nullable=True)
    discount_percent = Column(Float, nullable=True)
    total_price_cents = Column(Integer, nullable=False, default=0)
    total_price_after_discount_cents = Column(Integer, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def recompute_totals(self):
        """Recalculate the plain total from the item rows; drops any applied coupon."""
        self.total_price_cents = sum(it.unit_price_cents * it.quantity for it in self.items)
        self.coupon_code = None
        self.discount_percent = None
        self.total_price_after_discount_cents = None

    @property
    def payable_cents(self) -> int:
        if self.total_price_after_discount_cents is not None:
            return self.total_price_after_discount_cents
        return self.total_price_cents
