# storefront/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.enums import ORDER_TRANSITIONS, OrderStatus


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # written once at checkout, never recomputed
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="PENDING")  # PENDING, PROCESSING, DELIVERED, CANCELLED
    payment_status = Column(String(20), nullable=False, default="PENDING")  # PENDING, COMPLETED, FAILED
    payment_method = Column(String(20), nullable=False)
    payment_reference = Column(String(100), nullable=True)
    shipping_address = Column(String(500), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )

    def can_transition_to(self, status: OrderStatus) -> bool:
        return status in ORDER_TRANSITIONS[OrderStatus(self.status)]


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # snapshot of the product at checkout time; no FK so the line outlives the product
    product_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")

    @property
    def subtotal(self):
        return self.unit_price * self.quantity
