# storefront/repos/product_repo.py
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.stock_reservation import StockReservationModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_products(self, category_id: int | None = None) -> list[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
        if category_id is not None:
            stmt = stmt.where(ProductModel.category_id == category_id)
        return list(self.db.execute(stmt).scalars())

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def save(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete(self, product_id: int) -> int:
        # core delete so the database cascades to cart lines and reviews
        rowcount = self.db.execute(
            delete(ProductModel).where(ProductModel.id == product_id)
        ).rowcount
        self.db.commit()
        return rowcount

    # ----- stock, used only by the inventory ledger -----

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        # UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q
        return self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        ).rowcount

    def increment_stock(self, product_id: int, quantity: int) -> int:
        return self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        ).rowcount

    def add_reservation(self, reservation: StockReservationModel) -> StockReservationModel:
        self.db.add(reservation)
        self.db.flush()
        return reservation

    def update_reservation_status(self, reservation_id: int, old_status: str, new_status: str) -> int:
        return self.db.execute(
            update(StockReservationModel)
            .where(
                StockReservationModel.id == reservation_id,
                StockReservationModel.status == old_status,
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        ).rowcount

    def get_reservations(self, order_id: int, status: str | None = None) -> list[StockReservationModel]:
        stmt = (
            select(StockReservationModel)
            .where(StockReservationModel.order_id == order_id)
            .order_by(StockReservationModel.product_id)
        )
        if status is not None:
            stmt = stmt.where(StockReservationModel.status == status)
        return list(self.db.execute(stmt).scalars())
