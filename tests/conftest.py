import os

# Settings are read at import time; configure before importing app modules.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from config.database import Base, get_db  # noqa: E402
from common.security import create_token  # noqa: E402
from modules.catalog.models import Product  # noqa: E402
from modules.inventory.models import Inventory  # noqa: E402
from modules.cart.models import CartItem  # noqa: E402
from modules.order.models import Order  # noqa: F401,E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    from main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==========================================
# Data builders
# ==========================================

@pytest.fixture()
def make_product(db):
    """Create a product, optionally with an inventory record (`stock`)."""
    def _make(name="Linen Shirt", price="50.00", category="shirts", stock=None, **extra):
        product = Product(name=name, price=Decimal(str(price)), category=category, **extra)
        db.add(product)
        db.flush()
        if stock is not None:
            db.add(Inventory(product_id=product.id, quantity=stock))
        db.commit()
        return product
    return _make


@pytest.fixture()
def add_line(db):
    """Insert a cart line directly, bypassing add-to-cart merging."""
    def _add(user_id, product_id, quantity):
        line = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(line)
        db.commit()
        return line
    return _add


# ==========================================
# Auth
# ==========================================

@pytest.fixture()
def headers_for():
    def _headers(user_id="user-1", role="user"):
        token = create_token({"userId": user_id, "role": role})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture()
def user_headers(headers_for):
    return headers_for("user-1")


@pytest.fixture()
def admin_headers(headers_for):
    return headers_for("admin-1", role="admin")
