"""
Shared fixtures: an in-memory database seeded with one user per role, a
small catalog, two customers, and a TestClient over the real application.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ims.core.security import create_access_token, get_password_hash
from ims.db.session import Database
from ims.main import create_app
from ims.models.catalog import Brand, Category, ProductModel
from ims.models.customer import Customer
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.models.user import AccountStatus, User, UserRole
from ims.schemas.user import TokenUser

PASSWORD = "password123"


@pytest.fixture
def database():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


def _user(db, username, role, status=AccountStatus.ACTIVE):
    user = User(
        username=username,
        email=f"{username}@example.com",
        name=username.replace("_", " ").title(),
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        account_status=status,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def super_admin(db):
    return _user(db, "root_admin", UserRole.SUPER_ADMIN)


@pytest.fixture
def admin(db):
    return _user(db, "shop_admin", UserRole.ADMIN)


@pytest.fixture
def employee(db):
    return _user(db, "staff_member", UserRole.EMPLOYEE)


@pytest.fixture
def disabled_user(db):
    return _user(db, "former_staff", UserRole.EMPLOYEE, AccountStatus.DISABLED)


@pytest.fixture
def catalog(db, admin):
    category = Category(name="Routers")
    brand = Brand(name="Netgear")
    db.add_all([category, brand])
    db.flush()
    priced = ProductModel(
        model_number="R7000",
        selling_price=Decimal("100.00"),
        category_id=category.id,
        brand_id=brand.id,
        created_by_id=admin.id,
    )
    cheap = ProductModel(
        model_number="GS108",
        selling_price=Decimal("49.99"),
        category_id=category.id,
        brand_id=brand.id,
        created_by_id=admin.id,
    )
    unpriced = ProductModel(model_number="PROTO-1", category_id=category.id, brand_id=brand.id)
    db.add_all([priced, cheap, unpriced])
    db.commit()
    return {"category": category, "brand": brand, "priced": priced, "cheap": cheap, "unpriced": unpriced}


@pytest.fixture
def customer(db, admin):
    customer = Customer(customer_code="C-001", name="Somchai Store", phone="021234567", created_by_id=admin.id)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@pytest.fixture
def other_customer(db, admin):
    customer = Customer(customer_code="C-002", name="Bangkok Networks", created_by_id=admin.id)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@pytest.fixture
def make_item(db, catalog, admin):
    """Factory for SALE items (IN_STOCK) and ASSET items (IN_WAREHOUSE)."""
    counter = {"n": 0}

    def make(model="priced", item_type=ItemType.SALE, **fields):
        counter["n"] += 1
        resting = ItemStatus.IN_STOCK if item_type == ItemType.SALE else ItemStatus.IN_WAREHOUSE
        values = {
            "item_type": item_type,
            "status": resting,
            "serial_number": f"SN-{counter['n']:04d}",
            "product_model_id": catalog[model].id,
            "added_by_id": admin.id,
        }
        if item_type == ItemType.ASSET:
            values["asset_code"] = f"AS-{counter['n']:04d}"
        values.update(fields)
        item = InventoryItem(**values)
        db.add(item)
        db.commit()
        return item.id

    return make


@pytest.fixture
def status_of(db):
    def status_of(item_id):
        db.expire_all()
        return db.get(InventoryItem, item_id).status

    return status_of


@pytest.fixture
def client(database, super_admin):
    # An existing user keeps startup from bootstrapping its own admin
    with TestClient(create_app(database)) as client:
        yield client


def _headers(user):
    token = create_access_token(TokenUser.model_validate(user).model_dump(mode="json"))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def super_admin_headers(super_admin):
    return _headers(super_admin)


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def employee_headers(employee):
    return _headers(employee)
