from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class OrderLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    product_id: int
    sku: str
    name: Optional[str] = None
    quantity: int
    unit_price_cents: int


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    owner_id: int
    lines: List[OrderLineOut]
    shipping_address: Optional[str] = None
    payment_method: str
    coupon_code: Optional[str] = None
    total_price_cents: int
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime
