import os
from datetime import datetime, timedelta, timezone

# Keep import-time side effects (init_db) away from the real database file
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base, get_db
from main import app
from models.address import Address
from models.coupon import Coupon
from models.product import Product, ProductVariant
from models.users import User
from utils.tokenJWT import token_for_user


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="customer", first_name="Jane", last_name="Doe"):
        counter["n"] += 1
        user = User(email=f"{role}{counter['n']}@example.com", role=role,
                    first_name=first_name, last_name=last_name)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", first_name="Store", last_name="Admin")


def auth(user):
    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture
def make_address(db):
    def _make(user, street="12 Market Street", is_default=False):
        address = Address(user_id=user.id, street=street, city="Springfield", state="IL",
                          country="USA", postal_code="62701", is_default=is_default)
        db.add(address)
        db.commit()
        db.refresh(address)
        return address
    return _make


@pytest.fixture
def address(customer, make_address):
    return make_address(customer, is_default=True)


@pytest.fixture
def make_variant(db):
    def _make(price=10.0, stock=10, color="Black", size="M", name="Basic Tee"):
        product = Product(name=name, category="Shirts", images=["tee.jpg"])
        variant = ProductVariant(price=price, stock=stock, color=color, size=size)
        product.variants = [variant]
        db.add(product)
        db.commit()
        db.refresh(variant)
        return variant
    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code="SAVE10", pct=10, expires_in=timedelta(days=30)):
        coupon = Coupon(code=code, discount_percentage=pct,
                        expires_at=datetime.now(timezone.utc) + expires_in)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon
    return _make


def reload(db, model, pk):
    db.expire_all()
    return db.get(model, pk)
