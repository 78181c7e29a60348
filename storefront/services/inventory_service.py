# storefront/services/inventory_service.py
from sqlalchemy.orm import Session

from storefront.data.models.stock_reservation import StockReservationModel
from storefront.domain.enums import ReservationStatus
from storefront.domain.errors import NotFoundError, OutOfStockError
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryLedger:
    """
    The only writer of product stock during checkout.

    Every decrement is a single conditional UPDATE (``stock >= qty``), so two
    concurrent reservations of the last unit cannot both succeed. The ledger
    never commits: it works inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def reserve(self, order_id: int, product_id: int, quantity: int) -> StockReservationModel:
        if quantity <= 0:
            raise ValueError("Reservation quantity must be positive")

        if self.repo.decrement_stock(product_id, quantity) == 0:
            product = self.repo.get_product(product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")
            raise OutOfStockError(product_id, product.name)

        reservation = self.repo.add_reservation(
            StockReservationModel(
                order_id=order_id,
                product_id=product_id,
                quantity=quantity,
                status=ReservationStatus.ACTIVE.value,
            )
        )
        logger.info(f"Reserved {quantity} x product {product_id} for order {order_id}")
        return reservation

    def reserve_all(self, order_id: int, lines) -> list[StockReservationModel]:
        """
        Reserve ``(product_id, quantity)`` pairs all-or-nothing.

        Lines are taken in product id order so two checkouts over overlapping
        products lock rows in the same order.
        """
        taken: list[StockReservationModel] = []
        try:
            for product_id, quantity in sorted(lines):
                taken.append(self.reserve(order_id, product_id, quantity))
        except Exception:
            for reservation in reversed(taken):
                self.release(reservation)
            raise
        return taken

    def release(self, reservation: StockReservationModel) -> bool:
        # flip the status first, a second release finds nothing ACTIVE
        flipped = self.repo.update_reservation_status(
            reservation.id, ReservationStatus.ACTIVE.value, ReservationStatus.RELEASED.value
        )
        if not flipped:
            return False
        self.repo.increment_stock(reservation.product_id, reservation.quantity)
        reservation.status = ReservationStatus.RELEASED.value
        logger.info(
            f"Released {reservation.quantity} x product {reservation.product_id} "
            f"for order {reservation.order_id}"
        )
        return True

    def commit(self, reservation: StockReservationModel) -> bool:
        flipped = self.repo.update_reservation_status(
            reservation.id, ReservationStatus.ACTIVE.value, ReservationStatus.COMMITTED.value
        )
        if flipped:
            reservation.status = ReservationStatus.COMMITTED.value
        return bool(flipped)

    def active_reservations(self, order_id: int) -> list[StockReservationModel]:
        return self.repo.get_reservations(order_id, ReservationStatus.ACTIVE.value)

    def release_order(self, order_id: int) -> int:
        return sum(1 for r in self.active_reservations(order_id) if self.release(r))

    def commit_order(self, order_id: int) -> int:
        return sum(1 for r in self.active_reservations(order_id) if self.commit(r))
