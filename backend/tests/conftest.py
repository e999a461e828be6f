import os

# Keep the app's own engine in memory; tests build their own engines below
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.shop  # noqa: F401
import models.customer  # noqa: F401
import models.order  # noqa: F401
import models.log  # noqa: F401
from models.customer import Customer
from models.product import Product
from models.shop import ShopOwner
from services.checkout import CheckoutService
from utils.tokenJWT import create_access_token


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def service(session_factory):
    return CheckoutService(session_factory, backoff=0, sleep=lambda _: None)


@pytest.fixture()
def make_shop(db):
    counter = {"n": 0}

    def _make(name=None, category="Clothing"):
        counter["n"] += 1
        n = counter["n"]
        shop = ShopOwner(
            shop_name=name or f"Shop {n}",
            owner_name=f"Owner {n}",
            registration_id=f"REG-{n:04d}",
            category=category,
            phone=f"90000000{n:02d}",
        )
        db.add(shop)
        db.commit()
        db.refresh(shop)
        return shop
    return _make


@pytest.fixture()
def make_product(db):
    def _make(shop, name="Item", price="10.00", cost_price="6.00", stock=5, description=None):
        product = Product(
            shop_id=shop.id,
            name=name,
            description=description or f"{name} description",
            category=shop.category,
            price=Decimal(price),
            cost_price=Decimal(cost_price),
            stock_quantity=stock,
            details={},
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture()
def customer(db):
    c = Customer(name="Asha", address="12 Market Road", phone="9876543210")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture()
def auth_headers():
    def _headers(user_id, user_type):
        token = create_access_token({"sub": user_id, "type": user_type})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture()
def client(session_factory, service):
    from main import app
    from routes.customer import get_checkout_service

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_checkout_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
