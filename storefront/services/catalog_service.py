# storefront/services/catalog_service.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import ConflictError, NotFoundError, ValidationError
from storefront.domain.schemas import CategoryOut, ProductIn, ProductOut
from storefront.repos.category_repo import CategoryRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.event_publisher import EventPublisher
from storefront.services.image_client import ImageClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CategoryService:
    def __init__(self, db: Session, publisher: EventPublisher):
        self.repo = CategoryRepo(db)
        self.publisher = publisher

    def list_categories(self) -> list[CategoryModel]:
        return self.repo.list_categories()

    def create_category(self, name: str) -> CategoryModel:
        if self.repo.get_by_name(name):
            raise ConflictError("Category already exists")
        category = self.repo.save(CategoryModel(name=name))
        logger.info(f"Category {category.id} created: {name}")
        self.publisher.publish("new-category", CategoryOut.model_validate(category).model_dump(mode="json"))
        return category

    def update_category(self, category_id: int, name: str) -> CategoryModel:
        category = self._get(category_id)
        other = self.repo.get_by_name(name)
        if other and other.id != category_id:
            raise ConflictError("Category already exists")
        category.name = name
        category = self.repo.save(category)
        logger.info(f"Category {category_id} updated: {name}")
        self.publisher.publish("update-category", CategoryOut.model_validate(category).model_dump(mode="json"))
        return category

    def delete_category(self, category_id: int) -> None:
        try:
            self.repo.delete(self._get(category_id))
        except IntegrityError as e:
            self.repo.db.rollback()
            raise ConflictError("Category still has products") from e
        logger.info(f"Category {category_id} deleted")
        self.publisher.publish("delete-category", {"id": category_id})

    def _get(self, category_id: int) -> CategoryModel:
        category = self.repo.get_category(category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category


class ProductService:
    """
    Catalog writes (admin). Setting stock here is the only way stock
    changes outside the inventory ledger.
    """

    def __init__(self, db: Session, image_client: ImageClient, publisher: EventPublisher):
        self.repo = ProductRepo(db)
        self.categories = CategoryRepo(db)
        self.image_client = image_client
        self.publisher = publisher

    def list_products(self, category_id: int | None = None) -> list[ProductModel]:
        return self.repo.list_products(category_id)

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, payload: ProductIn) -> ProductModel:
        if not payload.image:
            raise ValidationError("Image is required")
        self._check_category(payload.category_id)

        image_url = self.image_client.upload(payload.image)
        product = self.repo.save(
            ProductModel(
                name=payload.name,
                description=payload.description,
                price=payload.price,
                stock=payload.stock,
                category_id=payload.category_id,
                image_url=image_url,
            )
        )
        logger.info(f"Product {product.id} created: {product.name}")
        self.publisher.publish("new-product", ProductOut.model_validate(product).model_dump(mode="json"))
        return product

    def update_product(self, product_id: int, payload: ProductIn) -> ProductModel:
        product = self.get_product(product_id)
        self._check_category(payload.category_id)

        product.name = payload.name
        product.description = payload.description
        product.price = payload.price
        product.stock = payload.stock
        product.category_id = payload.category_id
        if payload.image:
            product.image_url = self.image_client.upload(payload.image)

        product = self.repo.save(product)
        logger.info(f"Product {product_id} updated: {product.name}")
        self.publisher.publish("update-product", ProductOut.model_validate(product).model_dump(mode="json"))
        return product

    def delete_product(self, product_id: int) -> None:
        if not self.repo.delete(product_id):
            raise NotFoundError("Product not found")
        logger.info(f"Product {product_id} deleted")
        self.publisher.publish("delete-product", {"id": product_id})

    def _check_category(self, category_id: int):
        if not self.categories.get_category(category_id):
            raise ValidationError("Valid category_id required")
