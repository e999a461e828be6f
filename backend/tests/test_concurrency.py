import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from database import Base
from models.customer import Customer
from models.order import Order
from models.product import Product
from models.shop import ShopOwner
from services.checkout import CartLine, CheckoutService
from services.exceptions import CheckoutError

STOCK = 5
BUYERS = 10


@pytest.fixture()
def file_session_factory(tmp_path):
    # Real file database so every thread gets its own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


def test_concurrent_checkouts_never_oversell(file_session_factory):
    with file_session_factory() as db:
        shop = ShopOwner(shop_name="Race", owner_name="R", registration_id="R-1", category="Toys", phone="9000000000")
        customer = Customer(name="C", address="A", phone="9111111111")
        db.add_all([shop, customer])
        db.flush()
        product = Product(shop_id=shop.id, name="Limited", description="d", category="Toys",
                          price=Decimal("5.00"), cost_price=Decimal("1.00"), stock_quantity=STOCK, details={})
        db.add(product)
        db.commit()
        product_id, customer_id = product.id, customer.id

    service = CheckoutService(file_session_factory, max_attempts=5, backoff=0.01)
    barrier = threading.Barrier(BUYERS)
    results = []
    lock = threading.Lock()

    def buy():
        barrier.wait()
        try:
            service.checkout(customer_id, [CartLine(product_id, 1)])
            outcome = "ok"
        except CheckoutError as e:
            outcome = e.error_kind
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=buy) for _ in range(BUYERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert len(results) == BUYERS
    sold = results.count("ok")
    assert 0 < sold <= STOCK
    assert set(results) <= {"ok", "InsufficientStock", "TransactionConflict", "CheckoutTimeout"}

    with file_session_factory() as db:
        remaining = db.get(Product, product_id).stock_quantity
        orders = db.execute(select(func.count(Order.id))).scalar_one()
    assert remaining == STOCK - sold
    assert remaining >= 0
    assert orders == sold
