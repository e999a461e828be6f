# backend/services/checkout.py
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from database import SessionLocal, UnitOfWork
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from repositories.orders import OrderRepository
from repositories.products import ProductRepository
from services.exceptions import (
    CheckoutError, CheckoutTimeout, EmptyCart, InsufficientStock, InvalidQuantity, MissingCustomer,
    PaymentNotConfirmed, PersistenceError, ProductNotFound, TransactionConflict,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# PostgreSQL: serialization_failure, deadlock_detected, lock_not_available
RETRY_PGCODES = {"40001", "40P01", "55P03"}
RETRY_MESSAGES = ("could not serialize access", "deadlock detected", "database is locked", "lock timeout")


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def is_conflict(exc: Exception) -> bool:
    """True for store errors caused by a concurrent writer on the same rows."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if code in RETRY_PGCODES:
            return True
    msg = str(exc).lower()
    return any(k in msg for k in RETRY_MESSAGES)


def merge_lines(lines: Iterable[CartLine]) -> "OrderedDict[int, int]":
    # Same product on several lines is checked against stock as one quantity
    merged: "OrderedDict[int, int]" = OrderedDict()
    for line in lines:
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    return merged


def build_orders(customer_id: int, quantities: Dict[int, int], products: Dict[int, Product]) -> List[Order]:
    """
    Group requested quantities by the owning shop and build one order per shop.

    Prices, cost and name come from the stored product; totals are recomputed
    from those snapshots.
    """
    groups: "OrderedDict[int, List[OrderItem]]" = OrderedDict()
    for product_id, qty in quantities.items():
        product = products[product_id]
        item = OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            selling_price=_money(product.price),
            cost_price=_money(product.cost_price),
        )
        groups.setdefault(product.shop_id, []).append(item)

    orders = []
    for shop_id, items in groups.items():
        total = sum((it.selling_price * it.quantity for it in items), Decimal("0"))
        orders.append(Order(
            customer_id=customer_id,
            shop_id=shop_id,
            status=OrderStatus.PROCESSING,
            total_amount=_money(total),
            items=items,
        ))
    return orders


class CheckoutService:
    """Turns a cart into one persisted order per shop, atomically."""

    def __init__(
        self,
        session_factory=SessionLocal,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
        timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        product_repository=ProductRepository,
        order_repository=OrderRepository,
    ):
        self.session_factory = session_factory
        self.product_repository = product_repository
        self.order_repository = order_repository
        self.max_attempts = max_attempts or settings.CHECKOUT_MAX_ATTEMPTS
        self.backoff = settings.CHECKOUT_BACKOFF_SECONDS if backoff is None else backoff
        self.timeout = settings.CHECKOUT_TIMEOUT_SECONDS if timeout is None else timeout
        self.sleep = sleep
        self.clock = clock

    def checkout(
        self,
        customer_id: Optional[int],
        lines: List[CartLine],
        payment_confirmed: bool = True,
        timeout: Optional[float] = None,
    ) -> List[int]:
        # Rejected before touching the store
        if not customer_id:
            raise MissingCustomer()
        if not lines:
            raise EmptyCart()
        for line in lines:
            if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
                raise InvalidQuantity(line.product_id, line.quantity)
        if not payment_confirmed:
            raise PaymentNotConfirmed()
        quantities = merge_lines(lines)

        budget = self.timeout if timeout is None else timeout
        deadline = self.clock() + budget if budget else None

        attempt = 0
        while True:
            attempt += 1
            self._check_deadline(deadline)
            try:
                return self._attempt(customer_id, quantities, deadline)
            except TransactionConflict as e:
                if attempt >= self.max_attempts:
                    logger.warning("Checkout for customer %s gave up after %d attempts: %s",
                                   customer_id, attempt, e.message)
                    raise
                delay = self.backoff * attempt
                logger.warning("Checkout conflict for customer %s (attempt %d/%d), retrying in %.3fs",
                               customer_id, attempt, self.max_attempts, delay)
                if deadline is not None and self.clock() + delay >= deadline:
                    raise CheckoutTimeout("Checkout deadline exceeded while retrying a conflicting transaction.")
                self.sleep(delay)

    def _attempt(self, customer_id: int, quantities: Dict[int, int], deadline: Optional[float]) -> List[int]:
        with UnitOfWork(self.session_factory) as uow:
            try:
                self._apply_lock_timeout(uow, deadline)
                products_repo = self.product_repository(uow.session)
                orders_repo = self.order_repository(uow.session)

                # 1. Lock and validate every referenced product
                products = products_repo.find_many_within_transaction(quantities.keys())
                for product_id, qty in quantities.items():
                    product = products.get(product_id)
                    if product is None:
                        raise ProductNotFound(product_id)
                    if product.stock_quantity < qty:
                        raise InsufficientStock(
                            product.id, product_name=product.name,
                            requested=qty, available=product.stock_quantity,
                        )

                # 2. Snapshot prices and group per shop
                orders = build_orders(customer_id, quantities, products)
                self._check_deadline(deadline)

                # 3. Decrement stock and insert orders in the same transaction
                products_repo.bulk_decrement_stock(dict(quantities))
                orders_repo.bulk_insert(orders)
                order_ids = [o.id for o in orders]

                self._check_deadline(deadline)
                uow.commit()
            except CheckoutError:
                uow.rollback()
                raise
            except SQLAlchemyError as e:
                uow.rollback()
                if is_conflict(e):
                    raise TransactionConflict(
                        "Another checkout is updating the same products, please try again."
                    ) from e
                logger.exception("Checkout persistence failure for customer %s", customer_id)
                raise PersistenceError("Could not save the order, no changes were made.") from e

        logger.info("Checkout committed for customer %s: orders=%s", customer_id, order_ids)
        return order_ids

    def _check_deadline(self, deadline: Optional[float]):
        if deadline is not None and self.clock() >= deadline:
            raise CheckoutTimeout("Checkout deadline exceeded, no changes were made.")

    def _apply_lock_timeout(self, uow: UnitOfWork, deadline: Optional[float]):
        # Bound row-lock waits by the remaining budget where the store supports it
        if deadline is None or uow.session.get_bind().dialect.name != "postgresql":
            return
        remaining_ms = max(int((deadline - self.clock()) * 1000), 1)
        uow.session.execute(text(f"SET LOCAL lock_timeout = {remaining_ms}"))
