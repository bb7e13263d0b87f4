from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from storefront import crud
from storefront.api.deps import get_db
from storefront.core.security import create_access_token
from storefront.enums import OrderStatus, UserRole
from storefront.main import app
from storefront.models import (
    InventoryUnit,
    Order,
    OrderItem,
    Product,
    Transaction,
    User,
    Variant,
)
from storefront.services.inventory_service import Credential, add_credentials


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        # Clean tables after each test (children first).
        session.rollback()
        session.exec(delete(Transaction))
        session.exec(delete(OrderItem))
        session.exec(delete(Order))
        session.exec(delete(InventoryUnit))
        session.exec(delete(Variant))
        session.exec(delete(Product))
        session.exec(delete(User))
        session.commit()


@pytest.fixture(scope="function")
def client(engine) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("storefront.tests")


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.user, name: str | None = None) -> User:
        counter["n"] += 1
        return crud.create_user(
            session=db,
            email=f"user{counter['n']}@example.com",
            name=name or f"User {counter['n']}",
            role=role,
        )

    return _make


@pytest.fixture
def make_variant(db: Session, logger: logging.Logger) -> Callable[..., Variant]:
    """创建商品 + 规格，并按需放入若干库存单元"""
    counter = {"n": 0}

    def _make(price: str = "100000", units: int = 0, name: str = "1 month") -> Variant:
        counter["n"] += 1
        product = Product(name=f"Product {counter['n']}", slug=f"product-{counter['n']}")
        db.add(product)
        db.commit()
        db.refresh(product)
        variant = Variant(product_id=product.id, name=name, price=Decimal(price))
        db.add(variant)
        db.commit()
        db.refresh(variant)
        if units:
            add_credentials(
                session=db,
                variant_id=variant.id,
                credentials=[
                    Credential(email=f"account{i}@variant{variant.id}.test", password=f"pw-{i}")
                    for i in range(units)
                ],
                logger=logger,
            )
        return variant

    return _make


@pytest.fixture
def make_order(db: Session, make_user) -> Callable[..., Order]:
    counter = {"n": 0}

    def _make(
        total: str = "100000",
        status: OrderStatus = OrderStatus.pending,
        user: User | None = None,
    ) -> Order:
        counter["n"] += 1
        owner = user or make_user()
        order = Order(
            user_id=owner.id,
            invoice_number=f"INV-TEST-{counter['n']:04d}",
            total=Decimal(total),
            status=status,
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return _auth_headers


@pytest.fixture
def admin_headers(make_user) -> dict[str, str]:
    return _auth_headers(make_user(role=UserRole.admin))
