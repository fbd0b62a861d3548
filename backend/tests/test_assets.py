import pytest

from ims.core.exceptions import ItemsUnavailable, NotFound, ValidationError
from ims.models.asset import AssetAssignment, AssetAssignmentItem, AssetHistory, AssignmentOutcome
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.schemas.inventory import AssetCreate
from ims.services import asset_service


@pytest.fixture
def make_asset(make_item):
    def make(**fields):
        return make_item(item_type=ItemType.ASSET, **fields)

    return make


def test_add_asset_starts_in_warehouse(db, admin, catalog):
    asset = asset_service.add_asset(
        db, AssetCreate(asset_code="IT-0001", serial_number="LAP-1", product_model_id=catalog["priced"].id), admin
    )
    assert asset.item_type == ItemType.ASSET
    assert asset.status == ItemStatus.IN_WAREHOUSE
    assert asset.asset_code == "IT-0001"


def test_add_asset_requires_product_model(db, admin):
    with pytest.raises(NotFound):
        asset_service.add_asset(db, AssetCreate(asset_code="IT-0002", product_model_id=9999), admin)


def test_assign_and_return(db, admin, employee, make_asset, status_of):
    asset_id = make_asset()

    assignment = asset_service.assign_assets(db, [asset_id], employee.id, admin, notes="Laptop for onboarding")
    assert status_of(asset_id) == ItemStatus.ASSIGNED
    assert db.get(InventoryItem, asset_id).assigned_to_id == employee.id
    assert assignment.assignee_id == employee.id
    assert assignment.returned_at is None

    returned = asset_service.return_asset(db, asset_id, admin)
    assert returned.status == ItemStatus.IN_WAREHOUSE
    assert returned.assigned_to_id is None

    history = asset_service.asset_history(db, asset_id)
    assert len(history) == 1
    assert history[0].outcome == AssignmentOutcome.RETURNED
    assert history[0].assignee_id == employee.id
    assert history[0].assignment_id == assignment.id
    assert db.get(AssetAssignment, assignment.id).returned_at is not None


def test_double_assignment_is_rejected(db, admin, employee, super_admin, make_asset):
    asset_id = make_asset()
    asset_service.assign_assets(db, [asset_id], employee.id, admin)

    with pytest.raises(ItemsUnavailable):
        asset_service.assign_assets(db, [asset_id], super_admin.id, admin)

    open_links = (
        db.query(AssetAssignmentItem)
        .filter(AssetAssignmentItem.inventory_item_id == asset_id, AssetAssignmentItem.returned_at.is_(None))
        .count()
    )
    assert open_links == 1
    assert db.query(AssetAssignment).count() == 1


def test_assignment_is_all_or_nothing(db, admin, employee, make_asset, status_of):
    free = make_asset()
    broken = make_asset(status=ItemStatus.DEFECTIVE)

    with pytest.raises(ItemsUnavailable):
        asset_service.assign_assets(db, [free, broken], employee.id, admin)

    assert status_of(free) == ItemStatus.IN_WAREHOUSE
    assert db.query(AssetAssignment).count() == 0


def test_sale_items_cannot_be_assigned(db, admin, employee, make_item):
    with pytest.raises(ItemsUnavailable):
        asset_service.assign_assets(db, [make_item()], employee.id, admin)


def test_cannot_assign_to_disabled_account(db, admin, disabled_user, make_asset):
    with pytest.raises(ValidationError):
        asset_service.assign_assets(db, [make_asset()], disabled_user.id, admin)


def test_cannot_assign_to_missing_user(db, admin, make_asset):
    with pytest.raises(NotFound):
        asset_service.assign_assets(db, [make_asset()], 9999, admin)


def test_assignment_closes_with_last_asset(db, admin, employee, make_asset):
    first, second = make_asset(), make_asset()
    assignment = asset_service.assign_assets(db, [first, second], employee.id, admin)

    asset_service.return_asset(db, first, admin)
    assert db.get(AssetAssignment, assignment.id).returned_at is None

    asset_service.return_asset(db, second, admin)
    db.expire_all()
    assert db.get(AssetAssignment, assignment.id).returned_at is not None


def test_return_of_unassigned_asset_is_rejected(db, admin, make_asset):
    with pytest.raises(ItemsUnavailable):
        asset_service.return_asset(db, make_asset(), admin)


def test_decommission_assigned_asset_closes_assignment(db, admin, employee, make_asset, status_of):
    asset_id = make_asset()
    assignment = asset_service.assign_assets(db, [asset_id], employee.id, admin)

    asset = asset_service.decommission_asset(db, asset_id, admin)

    assert asset.status == ItemStatus.DECOMMISSIONED
    assert asset.assigned_to_id is None
    history = db.query(AssetHistory).filter(AssetHistory.inventory_item_id == asset_id).one()
    assert history.outcome == AssignmentOutcome.DECOMMISSIONED
    assert db.get(AssetAssignment, assignment.id).returned_at is not None


def test_decommission_from_warehouse_and_defective(db, admin, make_asset, status_of):
    in_warehouse = make_asset()
    defective = make_asset(status=ItemStatus.DEFECTIVE)

    asset_service.decommission_asset(db, in_warehouse, admin)
    asset_service.decommission_asset(db, defective, admin)

    assert status_of(in_warehouse) == ItemStatus.DECOMMISSIONED
    assert status_of(defective) == ItemStatus.DECOMMISSIONED
    assert db.query(AssetHistory).count() == 0


def test_decommissioned_is_terminal(db, admin, employee, make_asset):
    asset_id = make_asset()
    asset_service.decommission_asset(db, asset_id, admin)

    with pytest.raises(ItemsUnavailable):
        asset_service.assign_assets(db, [asset_id], employee.id, admin)
    with pytest.raises(ItemsUnavailable):
        asset_service.return_asset(db, asset_id, admin)
    with pytest.raises(ItemsUnavailable):
        asset_service.decommission_asset(db, asset_id, admin)


def test_list_assets_search_by_assignee(db, admin, employee, make_asset):
    out, home = make_asset(), make_asset()
    asset_service.assign_assets(db, [out], employee.id, admin)

    page = asset_service.list_assets(db, 1, 10, search="staff member")
    assert [a.id for a in page["data"]] == [out]

    page = asset_service.list_assets(db, 1, 10, status=ItemStatus.IN_WAREHOUSE)
    assert [a.id for a in page["data"]] == [home]
