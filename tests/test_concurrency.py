"""
Two checkouts racing for the last unit of a product, each on its own
thread and database connection.
"""

import threading

from conftest import (
    FakePaymentClient,
    RecordingNotifier,
    RecordingPublisher,
    count_rows,
    make_product,
    make_user,
    put_in_cart,
    stock_of,
)
from storefront.data.models import OrderModel
from storefront.domain.enums import PaymentMethod
from storefront.domain.errors import OutOfStockError
from storefront.services.checkout_service import CheckoutService


def test_last_unit_sold_exactly_once(db, session_factory, category, lock_service):
    product = make_product(db, category, name="Last one", stock=1)
    buyers = [make_user(db, username=name, email=None) for name in ("ann", "ben")]
    for buyer in buyers:
        put_in_cart(db, buyer, product, 1)
    buyer_ids = [buyer.id for buyer in buyers]

    barrier = threading.Barrier(len(buyer_ids))
    results = {}

    def attempt(user_id):
        session = session_factory()
        try:
            svc = CheckoutService(
                db=session,
                payment_client=FakePaymentClient(),
                lock_service=lock_service,
                notifier=RecordingNotifier(),
                publisher=RecordingPublisher(),
            )
            barrier.wait()
            try:
                results[user_id] = svc.checkout(user_id, "1 Test Street, Nairobi", PaymentMethod.CARD).order.status
            except OutOfStockError:
                results[user_id] = "OUT_OF_STOCK"
        finally:
            session.close()

    threads = [threading.Thread(target=attempt, args=(uid,)) for uid in buyer_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results.values()) == ["OUT_OF_STOCK", "PROCESSING"]
    assert stock_of(db, product.id) == 0
    assert count_rows(db, OrderModel) == 1
