from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, Text, Float, DateTime
from storefront.db import Base

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, default=True, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    sold = Column(Integer, default=0, nullable=False)
    # maintained by ReviewService whenever a review changes
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_quantity = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<Product sku={self.sku} price_cents={self.price_cents}>"
