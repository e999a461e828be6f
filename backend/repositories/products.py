# backend/repositories/products.py
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from models.product import Product
from services.exceptions import InsufficientStock


class ProductRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, product_id: int) -> Optional[Product]:
        return self.session.get(Product, product_id)

    def find_by_id_within_transaction(self, product_id: int) -> Optional[Product]:
        # Row lock held until the surrounding transaction ends (no-op on SQLite)
        stmt = select(Product).where(Product.id == product_id).with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def find_many_within_transaction(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        # Lock rows in ascending id order so two checkouts never wait on each other in a cycle
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {p.id: p for p in self.session.execute(stmt).scalars()}

    def bulk_decrement_stock(self, quantities: Dict[int, int]) -> None:
        """
        Decrement stock only where enough is left.

        A row that fails the ``stock_quantity >= qty`` guard means another
        writer got there first; the whole unit of work must then be abandoned.
        """
        for product_id in sorted(quantities):
            qty = quantities[product_id]
            stmt = (
                update(Product)
                .where(Product.id == product_id, Product.stock_quantity >= qty)
                .values(
                    stock_quantity=Product.stock_quantity - qty,
                    version_id=Product.version_id + 1,
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            if result.rowcount != 1:
                current = self.find_by_id(product_id)
                raise InsufficientStock(
                    product_id,
                    product_name=current.name if current else None,
                    requested=qty,
                    available=current.stock_quantity if current else None,
                )
        # Loaded products now hold pre-decrement values
        self.session.expire_all()

    def list_for_shop(self, shop_id: int) -> List[Product]:
        return list(
            self.session.execute(
                select(Product).where(Product.shop_id == shop_id).order_by(Product.id)
            ).scalars()
        )

    def get_for_shop(self, product_id: int, shop_id: int, lock: bool = False) -> Optional[Product]:
        stmt = select(Product).where(Product.id == product_id, Product.shop_id == shop_id)
        if lock:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()
