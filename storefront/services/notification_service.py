# storefront/services/notification_service.py
import smtplib
from email.message import EmailMessage

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.order_repo import OrderRepo
from storefront.utils.settings import EMAIL_FROM, EMAIL_HOST, EMAIL_PASSWORD, EMAIL_PORT, EMAIL_USER
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order confirmations, processed asynchronously by celery.
    Best-effort: a failure here never touches the order.
    """

    def send_order_confirmation(self, order_id: int, recipient_email: str | None) -> bool:
        if not recipient_email:
            logger.info(f"Order {order_id}: no email on file, skipping confirmation")
            return False
        try:
            send_order_confirmation_task.delay(order_id, recipient_email)
        except Exception as e:
            logger.warning(f"Could not enqueue confirmation for order {order_id}: {e}")
            return False
        return True


def render_confirmation(order) -> str:
    lines = [
        f"Order #{order.id} - {order.created_at:%Y-%m-%d}",
        "",
        "Thank you for your order! Here's a summary:",
        "",
    ]
    for item in order.items:
        lines.append(
            f"  {item.product_name}  {item.quantity} x {item.unit_price}  = {item.subtotal}"
        )
    lines += [
        "",
        f"Total items: {sum(i.quantity for i in order.items)}",
        f"Total: {order.total}",
        f"Shipping to: {order.shipping_address}",
        "",
        "Your order is being processed. You'll receive updates via email.",
    ]
    return "\n".join(lines)


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(order_id: int, recipient_email: str):
    db = SessionLocal()
    try:
        order = OrderRepo(db).get_order(order_id)
        if not order:
            logger.warning(f"[NOTIFICATION] Order {order_id} not found")
            return {"order_id": order_id, "status": "missing"}

        body = render_confirmation(order)

        if not EMAIL_HOST:
            logger.info(f"[NOTIFICATION] {recipient_email}: order {order_id} confirmed\n{body}")
            return {"order_id": order_id, "status": "logged"}

        msg = EmailMessage()
        msg["From"] = EMAIL_FROM
        msg["To"] = recipient_email
        msg["Subject"] = f"Order Confirmation #{order_id}"
        msg.set_content(body)

        with smtplib.SMTP(EMAIL_HOST, EMAIL_PORT, timeout=10) as smtp:
            smtp.starttls()
            if EMAIL_USER:
                smtp.login(EMAIL_USER, EMAIL_PASSWORD)
            smtp.send_message(msg)

        logger.info(f"[NOTIFICATION] Confirmation for order {order_id} sent to {recipient_email}")
        return {"order_id": order_id, "status": "sent"}
    finally:
        db.close()
