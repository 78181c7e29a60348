# storefront/api/routers/checkout.py
import hmac

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.orm import Session

from storefront.api.deps import CurrentUser, get_checkout_service, get_current_user
from storefront.data.database import get_db
from storefront.domain.enums import PaymentOutcome
from storefront.domain.errors import UnauthorizedError, ValidationError
from storefront.domain.schemas import CheckoutIn, CheckoutOut, OrderOut, PaymentCallbackIn
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.utils.settings import PAYMENT_CALLBACK_SECRET

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutOut)
def create_checkout(
    payload: CheckoutIn,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Places an order from the caller's cart and charges it.

    200 once the gateway answered (COMPLETED, PENDING or FAILED), 202 when
    the gateway was unreachable and the order is still being processed.
    """
    result = svc.checkout(user.id, payload.shipping_address, payload.payment_method)
    if result.accepted:
        response.status_code = 202

    order = OrderOut.model_validate(result.order)
    return {"order": order, "order_items": order.items, "payment_status": order.payment_status}


@router.get("/{order_id}", response_model=OrderOut)
def get_checkout(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return OrderService(db).get_order(order_id, user.id, user.role)


@router.post("/{order_id}/payment-callback", response_model=OrderOut)
def payment_callback(
    order_id: int,
    payload: PaymentCallbackIn,
    x_payment_token: str | None = Header(None),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """Gateway confirmation for payments that settle asynchronously (M-Pesa STK push)."""
    if not x_payment_token or not hmac.compare_digest(
        x_payment_token.encode(), PAYMENT_CALLBACK_SECRET.encode()
    ):
        raise UnauthorizedError("Invalid payment token")
    if payload.status.value == PaymentOutcome.PENDING.value:
        raise ValidationError("Callback must carry a final payment status")

    return svc.resolve_payment(order_id, PaymentOutcome(payload.status.value), payload.reference)
