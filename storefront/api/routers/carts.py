# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import CurrentUser, get_current_user
from storefront.data.database import get_db
from storefront.domain.schemas import CartItemIn, CartItemUpdateIn, CartOut, MessageOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).get_cart(user.id)


@router.post("", response_model=CartOut, status_code=201)
def add_item(
    payload: CartItemIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    svc.upsert(user.id, payload.product_id, payload.quantity)
    return svc.get_cart(user.id)


@router.put("/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: CartItemUpdateIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    svc.set_quantity(user.id, item_id, payload.quantity)
    return svc.get_cart(user.id)


@router.delete("/{item_id}", response_model=MessageOut)
def remove_item(
    item_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_service(db).remove_item(user.id, item_id)
    return {"message": "Item removed"}


@router.delete("", response_model=MessageOut)
def clear_cart(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    get_service(db).clear(user.id)
    return {"message": "Cart cleared"}
