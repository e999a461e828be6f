# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint, DateTime, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A single item offered by one shop. Prices are kept as exact decimals,
# stock is guarded by a CHECK constraint and every write bumps version_id,
# so concurrent checkouts and owner edits cannot silently overwrite each other.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shop_owners.id"), nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=False, default="")
    category = Column(String, nullable=False, default="")

    price = Column(Numeric(12, 2), CheckConstraint("price >= 0.01"), nullable=False)
    cost_price = Column(Numeric(12, 2), CheckConstraint("cost_price >= 0"), nullable=False)

    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=False)

    # Category specific attributes, e.g. {"sizes": "S, M, L"}
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    version_id = Column(Integer, nullable=False, default=1)

    shop = relationship("ShopOwner", back_populates="products")

    __mapper_args__ = {"version_id_col": version_id}
