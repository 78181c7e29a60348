# storefront/services/order_service.py
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.enums import Role
from storefront.domain.errors import NotFoundError
from storefront.repos.order_repo import OrderRepo


class OrderService:
    """
    Read side of orders. Users see their own orders, admins see all.
    State changes go through CheckoutService.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def list_orders(self, user_id: int, role: str) -> list[OrderModel]:
        if role == Role.ADMIN.value:
            return self.repo.list_orders()
        return self.repo.list_orders(user_id)

    def get_order(self, order_id: int, user_id: int, role: str) -> OrderModel:
        order = self.repo.get_order(order_id)

        # someone else's order reads as missing
        if not order or (order.user_id != user_id and role != Role.ADMIN.value):
            raise NotFoundError("Order not found")

        return order
