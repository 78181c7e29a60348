# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.domain.enums import OrderStatus, PaymentStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_orders(self, user_id: int | None = None) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return list(self.db.execute(stmt).scalars())

    def find_inflight_order(self, user_id: int, product_ids) -> OrderModel | None:
        """An unresolved order of this user sharing at least one product."""
        return self.db.execute(
            select(OrderModel)
            .join(OrderItemModel, OrderItemModel.order_id == OrderModel.id)
            .where(
                OrderModel.user_id == user_id,
                OrderModel.status == OrderStatus.PENDING.value,
                OrderModel.payment_status == PaymentStatus.PENDING.value,
                OrderItemModel.product_id.in_(list(product_ids)),
            )
            .limit(1)
        ).scalar_one_or_none()

    def list_unresolved_before(self, cutoff: datetime) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(
                    OrderModel.status == OrderStatus.PENDING.value,
                    OrderModel.payment_status == PaymentStatus.PENDING.value,
                    OrderModel.created_at < cutoff,
                )
                .order_by(OrderModel.id)
            ).scalars()
        )

    def has_delivered_item(self, user_id: int, product_id: int) -> bool:
        return self.db.execute(
            select(OrderItemModel.id)
            .join(OrderModel, OrderItemModel.order_id == OrderModel.id)
            .where(
                OrderModel.user_id == user_id,
                OrderModel.status == OrderStatus.DELIVERED.value,
                OrderItemModel.product_id == product_id,
            )
            .limit(1)
        ).first() is not None

    def transition(self, order_id: int, expected: dict, values: dict) -> int:
        """
        Conditional update: applies ``values`` only if every column in
        ``expected`` still holds. Returns rows affected (0 or 1).
        """
        conditions = [getattr(OrderModel, col) == val for col, val in expected.items()]
        return self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        ).rowcount

    def refresh(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
