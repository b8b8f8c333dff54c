from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    product_id: int
    quantity: int
    unit_price_cents: int


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: Optional[int] = None
    owner_id: int
    items: List[CartItemOut] = []
    coupon_code: Optional[str] = None
    discount_percent: Optional[float] = None
    total_price_cents: int = 0
    total_price_after_discount_cents: Optional[int] = None

    @classmethod
    def empty(cls, owner_id: int) -> "CartOut":
        return cls(owner_id=owner_id)
