import pytest

from ims.core.exceptions import (
    DeletionBlock,
    InvalidTransition,
    ItemDeletionBlocked,
    ItemsUnavailable,
    NotFound,
    UniqueConstraintViolation,
    ValidationError,
)
from ims.models.asset import AssetAssignmentItem, AssetHistory
from ims.models.borrowing import BorrowingItem
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.schemas.inventory import InventoryItemCreate, InventoryItemUpdate
from ims.services import asset_service, borrowing_service, inventory_service, sale_service
from ims.services.lifecycle import LEND, SELL, apply_transition, normalize_item_ids


def test_add_item_starts_in_stock(db, admin, catalog):
    item = inventory_service.add_item(
        db, InventoryItemCreate(serial_number=" SN-NEW ", mac_address="", product_model_id=catalog["priced"].id), admin
    )
    assert item.item_type == ItemType.SALE
    assert item.status == ItemStatus.IN_STOCK
    assert item.serial_number == "SN-NEW"
    assert item.mac_address is None
    assert item.added_by_id == admin.id


def test_add_item_rejects_asset_code(db, admin, catalog):
    with pytest.raises(ValidationError):
        inventory_service.add_item(
            db, InventoryItemCreate(asset_code="IT-1", product_model_id=catalog["priced"].id), admin
        )


def test_duplicate_serial_names_the_field(db, admin, catalog, make_item):
    make_item(serial_number="DUP-1")
    with pytest.raises(UniqueConstraintViolation) as exc:
        inventory_service.add_item(
            db, InventoryItemCreate(serial_number="DUP-1", product_model_id=catalog["priced"].id), admin
        )
    assert exc.value.fields == ("serial_number",)
    assert exc.value.message == "The following fields must be unique: serial_number"


def test_update_marks_defective_and_repairs(db, admin, make_item, status_of):
    item_id = make_item()

    inventory_service.update_item(db, item_id, InventoryItemUpdate(status=ItemStatus.DEFECTIVE), admin)
    assert status_of(item_id) == ItemStatus.DEFECTIVE

    inventory_service.update_item(db, item_id, InventoryItemUpdate(status=ItemStatus.IN_STOCK), admin)
    assert status_of(item_id) == ItemStatus.IN_STOCK


def test_update_cannot_sell_through_status(db, admin, make_item, status_of):
    item_id = make_item()
    with pytest.raises(InvalidTransition):
        inventory_service.update_item(db, item_id, InventoryItemUpdate(status=ItemStatus.SOLD), admin)
    assert status_of(item_id) == ItemStatus.IN_STOCK


def test_update_asset_repairs_to_warehouse(db, admin, make_item, status_of):
    asset_id = make_item(item_type=ItemType.ASSET, status=ItemStatus.DEFECTIVE)
    inventory_service.update_item(db, asset_id, InventoryItemUpdate(status=ItemStatus.IN_WAREHOUSE), admin)
    assert status_of(asset_id) == ItemStatus.IN_WAREHOUSE


def test_update_identifiers(db, admin, make_item):
    item_id = make_item()
    item = inventory_service.update_item(
        db, item_id, InventoryItemUpdate(serial_number="SN-EDITED", mac_address="AA:BB:CC:DD:EE:FF"), admin
    )
    assert item.serial_number == "SN-EDITED"
    assert item.mac_address == "AA:BB:CC:DD:EE:FF"


def test_update_missing_item(db, admin):
    with pytest.raises(NotFound):
        inventory_service.update_item(db, 9999, InventoryItemUpdate(serial_number="X"), admin)


def test_delete_blocked_when_sold(db, admin, super_admin, customer, make_item):
    item_id = make_item()
    sale_service.create_sale(db, customer.id, [item_id], admin)

    with pytest.raises(ItemDeletionBlocked) as exc:
        inventory_service.delete_item(db, item_id, super_admin)
    assert exc.value.reason == DeletionBlock.SOLD
    assert db.get(InventoryItem, item_id) is not None


def test_delete_blocked_when_borrowed(db, admin, customer, make_item):
    item_id = make_item()
    borrowing_service.create_borrowing(db, customer.id, [item_id], admin)

    with pytest.raises(ItemDeletionBlocked) as exc:
        inventory_service.delete_item(db, item_id, admin)
    assert exc.value.reason == DeletionBlock.BORROWED
    assert exc.value.message == "Cannot delete an item that is currently borrowed."


def test_delete_blocked_when_assigned(db, admin, employee, make_item):
    asset_id = make_item(item_type=ItemType.ASSET)
    asset_service.assign_assets(db, [asset_id], employee.id, admin)

    with pytest.raises(ItemDeletionBlocked) as exc:
        inventory_service.delete_item(db, asset_id, admin)
    assert exc.value.reason == DeletionBlock.ASSIGNED


def test_delete_removes_closed_history(db, admin, employee, customer, make_item):
    item_id = make_item()
    borrowing = borrowing_service.create_borrowing(db, customer.id, [item_id], admin)
    borrowing_service.return_items(db, borrowing.id, [item_id], admin)

    asset_id = make_item(item_type=ItemType.ASSET)
    asset_service.assign_assets(db, [asset_id], employee.id, admin)
    asset_service.return_asset(db, asset_id, admin)

    inventory_service.delete_item(db, item_id, admin)
    inventory_service.delete_item(db, asset_id, admin)

    db.expire_all()
    assert db.get(InventoryItem, item_id) is None
    assert db.get(InventoryItem, asset_id) is None
    assert db.query(BorrowingItem).count() == 0
    assert db.query(AssetAssignmentItem).count() == 0
    assert db.query(AssetHistory).count() == 0


def test_delete_missing_item(db, admin):
    with pytest.raises(NotFound):
        inventory_service.delete_item(db, 9999, admin)


def test_list_items_search_and_in_stock_picker(db, admin, customer, make_item):
    router_id = make_item("priced", serial_number="RTR-100")
    switch_id = make_item("cheap", mac_address="00:11:22:33:44:55")
    sold_id = make_item("cheap")
    sale_service.create_sale(db, customer.id, [sold_id], admin)

    assert [i.id for i in inventory_service.list_items(db, 1, 10, search="rtr")["data"]] == [router_id]
    assert [i.id for i in inventory_service.list_items(db, 1, 10, search="00:11:22:33:44:55")["data"]] == [switch_id]
    by_model = inventory_service.list_items(db, 1, 10, search="GS108")
    assert sorted(i.id for i in by_model["data"]) == sorted([switch_id, sold_id])
    sold = inventory_service.list_items(db, 1, 10, status=ItemStatus.SOLD)
    assert [i.id for i in sold["data"]] == [sold_id]

    assert sorted(i.id for i in inventory_service.items_in_stock(db)) == sorted([router_id, switch_id])


def test_pagination_envelope(db, make_item):
    for _ in range(5):
        make_item()
    page = inventory_service.list_items(db, page=2, limit=2)
    assert page["pagination"] == {"totalItems": 5, "totalPages": 3, "currentPage": 2, "itemsPerPage": 2}
    assert len(page["data"]) == 2


# --- the transition primitive ----------------------------------------------

def test_transition_claims_all_or_none(db, make_item, status_of):
    free = make_item()
    taken = make_item(status=ItemStatus.BORROWED)

    with pytest.raises(ItemsUnavailable):
        apply_transition(db, SELL, [free, taken])
    db.rollback()

    assert status_of(free) == ItemStatus.IN_STOCK


def test_transition_respects_item_type(db, make_item):
    asset_id = make_item(item_type=ItemType.ASSET, status=ItemStatus.IN_STOCK)
    with pytest.raises(ItemsUnavailable):
        apply_transition(db, LEND, [asset_id])
    db.rollback()


def test_normalize_item_ids():
    assert normalize_item_ids([3, 1, 2]) == [3, 1, 2]
    for bad in ([], None, [1, 1], [0], [True], ["7"]):
        with pytest.raises(ValidationError):
            normalize_item_ids(bad)
