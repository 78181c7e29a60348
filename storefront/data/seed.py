# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal
from storefront.data.models import CategoryModel, ProductModel, UserModel
from storefront.services.user_service import pwd_context

CATALOG = {
    "Peripherals": [
        ("Keyboard", "Mechanical keyboard, brown switches", Decimal("199.99"), 25),
        ("Mouse", "Wireless mouse with USB receiver", Decimal("49.50"), 40),
    ],
    "Displays": [
        ("Monitor", "27 inch IPS monitor, 1440p", Decimal("899.00"), 5),
    ],
}


def seed():
    db = SessionLocal()
    try:
        # only seed an empty database
        if db.query(CategoryModel).first():
            return

        db.add(UserModel(username="admin", password_hash=pwd_context.hash("admin123"), role="admin"))
        for category_name, products in CATALOG.items():
            category = CategoryModel(name=category_name)
            db.add(category)
            db.flush()
            for name, description, price, stock in products:
                db.add(
                    ProductModel(
                        name=name,
                        description=description,
                        price=price,
                        stock=stock,
                        category_id=category.id,
                    )
                )
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
