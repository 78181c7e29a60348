from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import NotFoundError, OutOfStockError, ValidationError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Per-user cart: product -> quantity.

    Queries (get) read only; commands (upsert, set_quantity, remove, clear)
    modify state. Nothing here touches stock, the stock check on upsert is
    advisory and the real reservation happens at checkout.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    # query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        items = self.repo.get_cart_items(user_id)
        lines = [
            {
                "id": i.id,
                "product_id": i.product_id,
                "name": i.product.name,
                "quantity": i.quantity,
                "price": i.product.price,
                "subtotal": i.product.price * i.quantity,
            }
            for i in items
        ]
        total = sum((line["subtotal"] for line in lines), Decimal("0.00"))

        return {"user_id": user_id, "items": lines, "total": total}

    # commands
    def upsert(self, user_id: int, product_id: int, delta_qty: int) -> CartItemModel:
        if delta_qty <= 0:
            raise ValidationError("Quantity must be greater than 0")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")

        existing = self.repo.get_cart_item(user_id, product_id)
        new_qty = (existing.quantity if existing else 0) + delta_qty

        if new_qty > product.stock:
            raise OutOfStockError(product.id, product.name)

        if existing:
            logger.info(
                f"Product {product_id} already in cart of user {user_id}, "
                f"quantity {existing.quantity} -> {new_qty}"
            )
            existing.quantity = new_qty
            item = self.repo.add_cart_item(existing)
        else:
            logger.info(f"Adding product {product_id} to cart of user {user_id}")
            item = self.repo.add_cart_item(
                CartItemModel(user_id=user_id, product_id=product_id, quantity=new_qty)
            )

        self.repo.commit()
        return item

    def set_quantity(self, user_id: int, item_id: int, quantity: int) -> CartItemModel | None:
        """Returns the updated line, or None when quantity < 1 removed it."""
        item = self.repo.get_cart_item_by_id(user_id, item_id)
        if not item:
            raise NotFoundError("Cart item not found")

        if quantity < 1:
            self.repo.delete_cart_item(item)
            self.repo.commit()
            logger.info(f"Cart item {item_id} of user {user_id} removed")
            return None

        if quantity > item.product.stock:
            raise OutOfStockError(item.product_id, item.product.name)

        item.quantity = quantity
        self.repo.add_cart_item(item)
        self.repo.commit()
        return item

    def remove_item(self, user_id: int, item_id: int) -> None:
        item = self.repo.get_cart_item_by_id(user_id, item_id)
        if not item:
            raise NotFoundError("Cart item not found")
        self.repo.delete_cart_item(item)
        self.repo.commit()
        logger.info(f"Cart item {item_id} of user {user_id} removed")

    def clear(self, user_id: int) -> int:
        # idempotent, an empty cart stays empty
        removed = self.repo.delete_all(user_id)
        self.repo.commit()
        logger.info(f"Cart of user {user_id} cleared ({removed} lines)")
        return removed

    def remove_ordered(self, user_id: int, order_items: Iterable) -> None:
        """
        Take the ordered quantities out of the cart without committing.

        Lines the user added or grew after checking out stay in the cart.
        """
        for ordered in order_items:
            line = self.repo.get_cart_item(user_id, ordered.product_id)
            if not line:
                continue
            if line.quantity <= ordered.quantity:
                self.repo.delete_cart_item(line)
            else:
                line.quantity -= ordered.quantity
                self.repo.add_cart_item(line)
