# storefront/schemas/product_schema.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from pydantic import ConfigDict

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    price_cents: int
    stock: int
    sold: int
    active: bool
    rating_average: float = 0.0
    rating_quantity: int = 0
    created_at: Optional[datetime] = None
