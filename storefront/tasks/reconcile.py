# storefront/tasks/reconcile.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.checkout_service import CheckoutService
from storefront.services.event_publisher import EventPublisher
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.reconcile.reconcile_pending_orders_task")
def reconcile_pending_orders_task():
    logger.info("Reconcile pending payments task started")

    db = SessionLocal()
    try:
        svc = CheckoutService(
            db=db,
            payment_client=PaymentClient(),
            lock_service=LockService(),
            notifier=NotificationService(),
            publisher=EventPublisher(),
        )
        return svc.reconcile_pending()
    finally:
        db.close()
