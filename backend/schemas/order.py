from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from models.order import OrderStatus


# Output schema for an individual order line snapshot
class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[int] = None
    product_name: str
    quantity: int
    selling_price: Decimal
    cost_price: Decimal
    line_total: Decimal


# Order as seen by the customer
class CustomerOrderOut(BaseModel):
    id: int
    shop_id: int
    shop_name: str
    status: OrderStatus
    total_amount: Decimal
    ordered_at: Optional[datetime] = None
    items: List[OrderItemOut]


# Order as seen by the owning shop, with buyer contact
class ShopOrderOut(BaseModel):
    id: int
    customer_id: int
    customer_name: str
    customer_phone: str
    status: OrderStatus
    total_amount: Decimal
    ordered_at: Optional[datetime] = None
    items: List[OrderItemOut]


# Schema for updating order status; checked against OrderStatus in the route
class OrderStatusPatch(BaseModel):
    status: str
