# storefront/services/checkout_service.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.domain.enums import OrderStatus, PaymentMethod, PaymentOutcome, PaymentStatus
from storefront.domain.errors import (
    CheckoutAlreadyInProgressError,
    EmptyCartError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    PaymentGatewayUnavailable,
    StorefrontError,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.cart_service import CartService
from storefront.services.event_publisher import EventPublisher
from storefront.services.inventory_service import InventoryLedger
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient, to_minor_units
from storefront.utils.settings import (
    CHECKOUT_LOCK_TTL_SECONDS,
    PAYMENT_EXPIRY_SECONDS,
    PAYMENT_PENDING_TIMEOUT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_UNRESOLVED = {
    "status": OrderStatus.PENDING.value,
    "payment_status": PaymentStatus.PENDING.value,
}


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass
class CheckoutResult:
    order: OrderModel
    # True when the gateway could not be reached and the order is still being processed
    accepted: bool = False


class CheckoutService:
    """
    Checkout state machine: cart -> order -> payment -> stock -> confirmation.

    1. load the cart (EmptyCart when there is nothing in it)
    2. snapshot unit prices and compute the total
    3+4. in one transaction: create the order (PENDING/PENDING), reserve stock
       for every line; any failure rolls both back
    5. ask the gateway (outside the transaction)
    6. COMPLETED -> PROCESSING, stock sold, ordered lines leave the cart
       FAILED    -> CANCELLED, stock released, cart untouched
       PENDING   -> nothing changes until a callback or the sweep resolves it

    Only this service moves an order between states, and every move is a
    conditional update on the current state, so a late callback, the sweep
    and an admin cannot apply the same transition twice.
    """

    def __init__(
        self,
        db: Session,
        payment_client: PaymentClient,
        lock_service: LockService,
        notifier: NotificationService,
        publisher: EventPublisher,
        pending_timeout: int = PAYMENT_PENDING_TIMEOUT_SECONDS,
        payment_expiry: int = PAYMENT_EXPIRY_SECONDS,
    ):
        self.orders = OrderRepo(db)
        self.carts = CartRepo(db)
        self.users = UserRepo(db)
        self.cart_service = CartService(db)
        self.ledger = InventoryLedger(db)
        self.payment_client = payment_client
        self.lock_service = lock_service
        self.notifier = notifier
        self.publisher = publisher
        self.pending_timeout = pending_timeout
        self.payment_expiry = payment_expiry

    # =====================================================
    # CHECKOUT
    # =====================================================
    def checkout(self, user_id: int, shipping_address: str, payment_method: PaymentMethod) -> CheckoutResult:
        token = self.lock_service.acquire_checkout_lock(user_id, ttl=CHECKOUT_LOCK_TTL_SECONDS)
        if not token:
            raise CheckoutAlreadyInProgressError()

        try:
            order = self._place_order(user_id, shipping_address, payment_method)
        finally:
            self.lock_service.release_checkout_lock(user_id, token)

        return self._collect_payment(order)

    def _place_order(self, user_id: int, shipping_address: str, payment_method: PaymentMethod) -> OrderModel:
        lines = self.carts.get_cart_items(user_id)
        if not lines:
            raise EmptyCartError()

        inflight = self.orders.find_inflight_order(user_id, {line.product_id for line in lines})
        if inflight:
            logger.info(f"User {user_id} already has order {inflight.id} awaiting payment")
            raise CheckoutAlreadyInProgressError(
                f"Order {inflight.id} for these items is still awaiting payment"
            )

        # price snapshot, later product edits never reach the order
        items = [
            OrderItemModel(
                product_id=line.product_id,
                product_name=line.product.name,
                quantity=line.quantity,
                unit_price=line.product.price,
            )
            for line in lines
        ]
        total = sum((i.unit_price * i.quantity for i in items), Decimal("0.00"))

        try:
            order = self.orders.add_order(
                OrderModel(
                    user_id=user_id,
                    total=total,
                    status=OrderStatus.PENDING.value,
                    payment_status=PaymentStatus.PENDING.value,
                    payment_method=PaymentMethod(payment_method).value,
                    shipping_address=shipping_address,
                    items=items,
                )
            )
            self.ledger.reserve_all(order.id, [(i.product_id, i.quantity) for i in items])
            self.orders.commit()
        except StorefrontError:
            self.orders.rollback()
            raise
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.exception(f"Checkout for user {user_id} failed while placing the order")
            raise InternalError() from e

        logger.info(f"Order {order.id} placed for user {user_id}, total {total}")
        return order

    def _collect_payment(self, order: OrderModel) -> CheckoutResult:
        try:
            outcome = self.payment_client.authorize(
                to_minor_units(order.total),
                PaymentMethod(order.payment_method),
                order.id,
            )
        except PaymentGatewayUnavailable:
            # stock stays reserved, the sweep or a callback settles the order
            logger.warning(f"Order {order.id} left PENDING, payment gateway unavailable")
            return CheckoutResult(order=order, accepted=True)

        return CheckoutResult(order=self.resolve_payment(order.id, outcome))

    # =====================================================
    # PAYMENT RESOLUTION
    # =====================================================
    def resolve_payment(self, order_id: int, outcome: PaymentOutcome, reference: str | None = None) -> OrderModel:
        """
        Apply a gateway verdict to an order. Safe to call more than once:
        an order that is no longer awaiting payment is returned unchanged.
        """
        order = self.orders.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        outcome = PaymentOutcome(outcome)
        if outcome == PaymentOutcome.PENDING:
            logger.info(f"Order {order_id} awaiting payment confirmation")
            return order

        if outcome == PaymentOutcome.COMPLETED:
            self._complete(order, reference)
        else:
            # the gateway either declined or never saw the payment
            self._fail(order, reference)

        return self.orders.get_order(order_id)

    def _complete(self, order: OrderModel, reference: str | None) -> bool:
        values = {
            "status": OrderStatus.PROCESSING.value,
            "payment_status": PaymentStatus.COMPLETED.value,
        }
        if reference:
            values["payment_reference"] = reference

        try:
            if not self.orders.transition(order.id, _UNRESOLVED, values):
                self.orders.rollback()
                self._log_late_verdict(order, PaymentStatus.COMPLETED)
                return False
            self.ledger.commit_order(order.id)
            self.cart_service.remove_ordered(order.user_id, order.items)
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.exception(f"Could not complete order {order.id}")
            raise InternalError() from e

        logger.info(f"Order {order.id} paid, moving to PROCESSING")

        user = self.users.get_user(order.user_id)
        self.notifier.send_order_confirmation(order.id, user.email if user else None)
        self._publish(order.id, order.user_id, OrderStatus.PROCESSING, PaymentStatus.COMPLETED)
        return True

    def _fail(self, order: OrderModel, reference: str | None = None) -> bool:
        values = {
            "status": OrderStatus.CANCELLED.value,
            "payment_status": PaymentStatus.FAILED.value,
        }
        if reference:
            values["payment_reference"] = reference

        try:
            if not self.orders.transition(order.id, _UNRESOLVED, values):
                self.orders.rollback()
                self._log_late_verdict(order, PaymentStatus.FAILED)
                return False
            released = self.ledger.release_order(order.id)
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.exception(f"Could not cancel order {order.id}")
            raise InternalError() from e

        logger.info(f"Order {order.id} cancelled, {released} reservation(s) released")
        self._publish(order.id, order.user_id, OrderStatus.CANCELLED, PaymentStatus.FAILED)
        return True

    def _log_late_verdict(self, order: OrderModel, verdict: PaymentStatus):
        current = self.orders.get_order(order.id)
        if verdict == PaymentStatus.COMPLETED and current.payment_status != PaymentStatus.COMPLETED.value:
            # money taken for an order we already gave up on
            logger.error(
                f"Payment completed for order {order.id} in state "
                f"{current.status}/{current.payment_status}, refund required"
            )
        else:
            logger.info(f"Order {order.id} already resolved ({current.payment_status})")

    # =====================================================
    # ADMIN
    # =====================================================
    def advance_status(self, order_id: int, status: OrderStatus) -> OrderModel:
        order = self.orders.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        status = OrderStatus(status)
        if not order.can_transition_to(status):
            raise InvalidTransitionError(f"Cannot move order from {order.status} to {status.value}")

        if status == OrderStatus.PROCESSING:
            raise InvalidTransitionError("Orders move to PROCESSING only when payment completes")

        if status == OrderStatus.CANCELLED:
            if not self._fail(order):
                raise InvalidTransitionError("Order was resolved in the meantime")
            return self.orders.get_order(order_id)

        moved = self.orders.transition(
            order_id,
            {"status": order.status},
            {"status": status.value},
        )
        if not moved:
            self.orders.rollback()
            raise InvalidTransitionError("Order was updated in the meantime")
        self.orders.commit()

        logger.info(f"Order {order_id}: {order.status} -> {status.value}")
        self._publish(order_id, order.user_id, status, PaymentStatus(order.payment_status))
        return self.orders.get_order(order_id)

    # =====================================================
    # RECONCILIATION SWEEP
    # =====================================================
    def reconcile_pending(self, now: datetime | None = None) -> dict:
        """
        Settle orders stuck awaiting payment.

        Orders older than ``pending_timeout`` are checked with the gateway.
        An order the gateway never saw is failed; one still pending after
        ``payment_expiry`` is cancelled. Unreachable gateway: try next run.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self.pending_timeout)
        expiry = now - timedelta(seconds=self.payment_expiry)
        stats = {"checked": 0, "completed": 0, "failed": 0, "pending": 0, "skipped": 0}

        for order in self.orders.list_unresolved_before(cutoff):
            stats["checked"] += 1
            try:
                outcome = self.payment_client.get_status(order.id)
            except PaymentGatewayUnavailable:
                stats["skipped"] += 1
                continue

            if outcome == PaymentOutcome.PENDING and _as_utc(order.created_at) < expiry:
                logger.info(f"Order {order.id} payment expired")
                outcome = PaymentOutcome.FAILED

            if outcome == PaymentOutcome.PENDING:
                stats["pending"] += 1
                continue

            resolved = self.resolve_payment(order.id, outcome)
            if resolved.payment_status == PaymentStatus.COMPLETED.value:
                stats["completed"] += 1
            else:
                stats["failed"] += 1

        logger.info(f"Reconciliation finished: {stats}")
        return stats

    def _publish(self, order_id: int, user_id: int, status: OrderStatus, payment_status: PaymentStatus):
        self.publisher.publish(
            "order-updated",
            {
                "id": order_id,
                "user_id": user_id,
                "status": status.value,
                "payment_status": payment_status.value,
            },
        )
