# backend/repositories/orders.py
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, joinedload

from models.order import Order


class OrderRepository:
    def __init__(self, session: Session):
        self.session = session

    def bulk_insert(self, orders: Sequence[Order]) -> List[Order]:
        # Flush inside the current transaction so ids exist before commit
        self.session.add_all(orders)
        self.session.flush()
        return list(orders)

    def list_for_customer(self, customer_id: int) -> List[Order]:
        stmt = (
            select(Order)
            .options(selectinload(Order.items), joinedload(Order.shop))
            .where(Order.customer_id == customer_id)
            .order_by(Order.ordered_at.desc(), Order.id.desc())
        )
        return list(self.session.execute(stmt).scalars().unique())

    def list_for_shop(self, shop_id: int) -> List[Order]:
        stmt = (
            select(Order)
            .options(selectinload(Order.items), joinedload(Order.customer))
            .where(Order.shop_id == shop_id)
            .order_by(Order.ordered_at.desc(), Order.id.desc())
        )
        return list(self.session.execute(stmt).scalars().unique())

    def get_for_shop(self, order_id: int, shop_id: int) -> Optional[Order]:
        stmt = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id, Order.shop_id == shop_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()
