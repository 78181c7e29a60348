# storefront/api/routers/catalog.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.api.deps import CurrentUser, get_image_client, get_publisher, require_admin
from storefront.data.database import get_db
from storefront.domain.schemas import CategoryIn, CategoryOut, ProductIn, ProductOut
from storefront.services.catalog_service import CategoryService, ProductService
from storefront.services.event_publisher import EventPublisher
from storefront.services.image_client import ImageClient

categories_router = APIRouter(prefix="/categories", tags=["categories"])
products_router = APIRouter(prefix="/products", tags=["products"])


def get_category_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> CategoryService:
    return CategoryService(db, publisher)


def get_product_service(
    db: Session = Depends(get_db),
    image_client: ImageClient = Depends(get_image_client),
    publisher: EventPublisher = Depends(get_publisher),
) -> ProductService:
    return ProductService(db, image_client, publisher)


# ----- categories -----

@categories_router.get("", response_model=List[CategoryOut])
def list_categories(svc: CategoryService = Depends(get_category_service)):
    return svc.list_categories()


@categories_router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryIn,
    _: CurrentUser = Depends(require_admin),
    svc: CategoryService = Depends(get_category_service),
):
    return svc.create_category(payload.name)


@categories_router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryIn,
    _: CurrentUser = Depends(require_admin),
    svc: CategoryService = Depends(get_category_service),
):
    return svc.update_category(category_id, payload.name)


@categories_router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    _: CurrentUser = Depends(require_admin),
    svc: CategoryService = Depends(get_category_service),
):
    svc.delete_category(category_id)
    return Response(status_code=204)


# ----- products -----

@products_router.get("", response_model=List[ProductOut])
def list_products(
    category_id: Optional[int] = Query(None),
    svc: ProductService = Depends(get_product_service),
):
    return svc.list_products(category_id)


@products_router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    return svc.get_product(product_id)


@products_router.post("", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductIn,
    _: CurrentUser = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return svc.create_product(payload)


@products_router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductIn,
    _: CurrentUser = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return svc.update_product(product_id, payload)


@products_router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    _: CurrentUser = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    svc.delete_product(product_id)
    return Response(status_code=204)
