# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import CurrentUser, get_checkout_service, get_current_user, require_admin
from storefront.data.database import get_db
from storefront.domain.schemas import OrderOut, OrderStatusIn
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=List[OrderOut])
def list_orders(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).list_orders(user.id, user.role)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).get_order(order_id, user.id, user.role)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    _: CurrentUser = Depends(require_admin),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """Admin: forward-only status change (PROCESSING -> DELIVERED, PENDING -> CANCELLED)."""
    return svc.advance_status(order_id, payload.status)
