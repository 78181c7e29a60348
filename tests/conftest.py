"""
Shared fixtures: a SQLite database per test and in-memory stand-ins for
the external collaborators (payment gateway, redis lock, publisher,
notification queue, image host).
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import threading
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

import storefront.data.models  # noqa: F401
from storefront.data.database import Base, make_engine
from storefront.data.models import (
    CartItemModel,
    CategoryModel,
    OrderItemModel,
    OrderModel,
    ProductModel,
    UserModel,
)
from storefront.domain.enums import PaymentOutcome
from storefront.services.checkout_service import CheckoutService
from storefront.services.user_service import pwd_context


# ============================================================================
# Fakes
# ============================================================================


class FakePaymentClient:
    """Answers every authorize with ``outcome`` (or raises it)."""

    def __init__(self, outcome=PaymentOutcome.COMPLETED):
        self.outcome = outcome
        self.calls = []
        self.statuses = {}

    def authorize(self, amount_minor_units, method, order_id):
        self.calls.append((amount_minor_units, method, order_id))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def get_status(self, order_id):
        status = self.statuses.get(order_id, PaymentOutcome.UNKNOWN)
        if isinstance(status, Exception):
            raise status
        return status


class FakeLockService:
    def __init__(self):
        self.held = {}
        self._mutex = threading.Lock()

    def acquire_checkout_lock(self, user_id, ttl):
        with self._mutex:
            if user_id in self.held:
                return None
            token = uuid.uuid4().hex
            self.held[user_id] = token
            return token

    def release_checkout_lock(self, user_id, token):
        with self._mutex:
            if self.held.get(user_id) == token:
                del self.held[user_id]
                return True
            return False


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, topic, payload):
        self.events.append((topic, payload))

    def topics(self):
        return [topic for topic, _ in self.events]


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send_order_confirmation(self, order_id, recipient_email):
        self.sent.append((order_id, recipient_email))
        return True


class FakeImageClient:
    def __init__(self):
        self.uploads = []

    def upload(self, raw_image):
        self.uploads.append(raw_image)
        return f"https://images.test/{len(self.uploads)}.png"


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def payment():
    return FakePaymentClient()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def image_client():
    return FakeImageClient()


@pytest.fixture
def checkout(db, payment, lock_service, notifier, publisher):
    return CheckoutService(
        db=db,
        payment_client=payment,
        lock_service=lock_service,
        notifier=notifier,
        publisher=publisher,
    )


# ============================================================================
# Data helpers
# ============================================================================


def make_user(db, username="alice", role="user", email="alice@example.com"):
    user = UserModel(
        username=username,
        email=email,
        password_hash=pwd_context.hash("secret123"),
        role=role,
    )
    db.add(user)
    db.commit()
    return user


def make_category(db, name="Peripherals"):
    category = CategoryModel(name=name)
    db.add(category)
    db.commit()
    return category


def make_product(db, category, name="Keyboard", price="19.99", stock=10):
    product = ProductModel(
        name=name,
        description="A product used in tests",
        price=Decimal(price),
        stock=stock,
        category_id=category.id,
    )
    db.add(product)
    db.commit()
    return product


def put_in_cart(db, user, product, quantity):
    item = CartItemModel(user_id=user.id, product_id=product.id, quantity=quantity)
    db.add(item)
    db.commit()
    return item


def make_order(db, user, status="PENDING", payment_status="PENDING", items=()):
    """Insert an order directly, items as (product, quantity) pairs."""
    order = OrderModel(
        user_id=user.id,
        total=sum((p.price * q for p, q in items), Decimal("0.00")),
        status=status,
        payment_status=payment_status,
        payment_method="CARD",
        shipping_address="1 Test Street, Nairobi",
        items=[
            OrderItemModel(product_id=p.id, product_name=p.name, quantity=q, unit_price=p.price)
            for p, q in items
        ],
    )
    db.add(order)
    db.commit()
    return order


def stock_of(db, product_id):
    return db.execute(select(ProductModel.stock).where(ProductModel.id == product_id)).scalar_one()


def count_rows(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def cart_lines(db, user_id):
    return {
        item.product_id: item.quantity
        for item in db.execute(
            select(CartItemModel)
            .where(CartItemModel.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalars()
    }


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def category(db):
    return make_category(db)


@pytest.fixture
def product(db, category):
    return make_product(db, category)
