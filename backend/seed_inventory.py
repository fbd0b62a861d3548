"""Seed a development database with a small catalog, customers and stock.

Safe to run repeatedly; existing rows are kept:

    python seed_inventory.py
"""
from decimal import Decimal

from ims.core.config import settings
from ims.db.init_db import init_db
from ims.db.session import Database
from ims.models.catalog import Brand, Category, ProductModel
from ims.models.customer import Customer
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.models.user import User, UserRole

CATALOG = [
    # category, brand, model number, selling price
    ("Routers", "Netgear", "R7000", "3290.00"),
    ("Routers", "TP-Link", "Archer C6", "1190.00"),
    ("Switches", "TP-Link", "TL-SG108", "690.00"),
    ("Laptops", "Lenovo", "ThinkPad T14", None),  # company assets, not for sale
]

CUSTOMERS = [
    ("C-001", "Somchai Store", "021234567"),
    ("C-002", "Bangkok Networks", "029876543"),
]


def _get_or_create(db, model, **fields):
    entry = db.query(model).filter_by(**fields).first()
    if not entry:
        entry = model(**fields)
        db.add(entry)
        db.flush()
    return entry


def seed_inventory(database: Database):
    db = database.session()
    try:
        admin = db.query(User).filter(User.role == UserRole.SUPER_ADMIN).first()
        if not admin:
            print("No SUPER_ADMIN found. Start the server once first.")
            return

        models = {}
        for category_name, brand_name, model_number, price in CATALOG:
            category = _get_or_create(db, Category, name=category_name)
            brand = _get_or_create(db, Brand, name=brand_name)
            product_model = db.query(ProductModel).filter_by(brand_id=brand.id, model_number=model_number).first()
            if not product_model:
                product_model = ProductModel(
                    model_number=model_number,
                    selling_price=Decimal(price) if price else None,
                    category_id=category.id,
                    brand_id=brand.id,
                    created_by_id=admin.id,
                )
                db.add(product_model)
                db.flush()
            models[model_number] = product_model

        for code, name, phone in CUSTOMERS:
            if not db.query(Customer).filter_by(customer_code=code).first():
                db.add(Customer(customer_code=code, name=name, phone=phone, created_by_id=admin.id))

        added = 0
        for model_number, product_model in models.items():
            is_asset = product_model.selling_price is None
            for n in range(1, 6):
                serial = f"{model_number.replace(' ', '').upper()}-{n:03d}"
                if db.query(InventoryItem).filter_by(serial_number=serial).first():
                    continue
                db.add(
                    InventoryItem(
                        item_type=ItemType.ASSET if is_asset else ItemType.SALE,
                        status=ItemStatus.IN_WAREHOUSE if is_asset else ItemStatus.IN_STOCK,
                        serial_number=serial,
                        asset_code=f"IT-{serial}" if is_asset else None,
                        product_model_id=product_model.id,
                        added_by_id=admin.id,
                    )
                )
                added += 1

        db.commit()
        print(f"Seeded {len(models)} product models, {len(CUSTOMERS)} customers, {added} new items")
    finally:
        db.close()


if __name__ == "__main__":
    database = Database(settings.DATABASE_URL)
    init_db(database)
    seed_inventory(database)
    database.dispose()
