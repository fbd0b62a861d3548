from ims.models.catalog import ProductModel
from ims.models.customer import Customer
from ims.models.inventory import InventoryItem, ItemStatus, ItemType

from seed_inventory import seed_inventory


def test_seed_is_idempotent(database, db, super_admin):
    seed_inventory(database)
    seed_inventory(database)

    assert db.query(ProductModel).count() == 4
    assert db.query(Customer).count() == 2
    assert db.query(InventoryItem).count() == 20

    assets = db.query(InventoryItem).filter(InventoryItem.item_type == ItemType.ASSET).all()
    assert len(assets) == 5
    assert all(a.status == ItemStatus.IN_WAREHOUSE and a.asset_code for a in assets)
