# backend/models/order.py
import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shop_owners.id"), nullable=False, index=True)
    ordered_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [s.value for s in e], native_enum=False),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    total_amount = Column(Numeric(12, 2), nullable=False)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    shop = relationship("ShopOwner")
    customer = relationship("Customer")


# Line snapshot: name and prices are copied at checkout and never re-read from Product
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    selling_price = Column(Numeric(12, 2), nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self):
        return self.selling_price * self.quantity
