"""Sale operations: totals, all-or-nothing claims, update and delete reverts."""
from decimal import Decimal

import pytest

from ims.core.exceptions import ItemsUnavailable, NotFound, ValidationError
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.models.sale import Sale
from ims.services import sale_service


def test_calculate_vat_seven_percent():
    result = sale_service.calculate_vat(Decimal("100"))
    assert result["subtotal"] == Decimal("100.00")
    assert result["vat_amount"] == Decimal("7.00")
    assert result["total"] == Decimal("107.00")


def test_calculate_vat_rounds_to_cents():
    # 149.99 * 0.07 = 10.4993
    result = sale_service.calculate_vat(Decimal("149.99"))
    assert result["vat_amount"] == Decimal("10.50")
    assert result["total"] == Decimal("160.49")


def test_calculate_vat_custom_rate():
    result = sale_service.calculate_vat(200, vat_rate="0.10")
    assert result["vat_amount"] == Decimal("20.00")
    assert result["total"] == Decimal("220.00")


def test_sale_of_single_item(db, admin, customer, make_item, status_of):
    item_id = make_item()

    sale = sale_service.create_sale(db, customer.id, [item_id], admin)

    assert sale.subtotal == Decimal("100.00")
    assert sale.vat_amount == Decimal("7.00")
    assert sale.total == Decimal("107.00")
    assert sale.sold_by_id == admin.id
    assert status_of(item_id) == ItemStatus.SOLD
    assert db.get(InventoryItem, item_id).sale_id == sale.id


def test_sale_subtotal_sums_prices_and_treats_missing_price_as_zero(db, admin, customer, make_item):
    ids = [make_item("priced"), make_item("cheap"), make_item("unpriced")]

    sale = sale_service.create_sale(db, customer.id, ids, admin)

    assert sale.subtotal == Decimal("149.99")
    assert sale.vat_amount == Decimal("10.50")
    assert sale.total == Decimal("160.49")
    assert sorted(item.id for item in sale.items) == sorted(ids)


def test_sale_with_unavailable_item_changes_nothing(db, admin, customer, make_item, status_of):
    free = make_item()
    borrowed = make_item(status=ItemStatus.BORROWED)

    with pytest.raises(ItemsUnavailable) as exc:
        sale_service.create_sale(db, customer.id, [free, borrowed], admin)

    assert "not available for sale" in exc.value.message
    assert status_of(free) == ItemStatus.IN_STOCK
    assert db.query(Sale).count() == 0


def test_sale_rejects_missing_item(db, admin, customer, make_item):
    item_id = make_item()
    with pytest.raises(ItemsUnavailable):
        sale_service.create_sale(db, customer.id, [item_id, 9999], admin)


def test_sale_rejects_assets(db, admin, customer, make_item):
    asset_id = make_item(item_type=ItemType.ASSET)
    with pytest.raises(ItemsUnavailable):
        sale_service.create_sale(db, customer.id, [asset_id], admin)


@pytest.mark.parametrize("item_ids", [[], [1, 1], [0], [-3]])
def test_sale_rejects_bad_id_lists(db, admin, customer, item_ids):
    with pytest.raises(ValidationError):
        sale_service.create_sale(db, customer.id, item_ids, admin)


def test_sale_requires_existing_customer(db, admin, make_item, status_of):
    item_id = make_item()
    with pytest.raises(NotFound):
        sale_service.create_sale(db, 9999, [item_id], admin)
    assert status_of(item_id) == ItemStatus.IN_STOCK


def test_item_cannot_be_sold_twice(db, admin, customer, other_customer, make_item):
    item_id = make_item()
    sale_service.create_sale(db, customer.id, [item_id], admin)

    with pytest.raises(ItemsUnavailable):
        sale_service.create_sale(db, other_customer.id, [item_id], admin)
    assert db.query(Sale).count() == 1


def test_update_sale_replaces_item_set(db, admin, customer, make_item, status_of):
    first, second, third = make_item(), make_item(), make_item("cheap")
    sale = sale_service.create_sale(db, customer.id, [first, second], admin)

    updated = sale_service.update_sale(db, sale.id, [second, third], admin)

    assert status_of(first) == ItemStatus.IN_STOCK
    assert db.get(InventoryItem, first).sale_id is None
    assert status_of(second) == ItemStatus.SOLD
    assert status_of(third) == ItemStatus.SOLD
    assert updated.subtotal == Decimal("149.99")
    assert updated.total == Decimal("160.49")


def test_update_sale_rolls_back_when_new_item_unavailable(db, admin, customer, make_item, status_of):
    first = make_item()
    defective = make_item(status=ItemStatus.DEFECTIVE)
    sale = sale_service.create_sale(db, customer.id, [first], admin)

    with pytest.raises(ItemsUnavailable):
        sale_service.update_sale(db, sale.id, [defective], admin)

    assert status_of(first) == ItemStatus.SOLD
    assert db.get(InventoryItem, first).sale_id == sale.id
    assert db.get(Sale, sale.id).total == Decimal("107.00")


def test_update_sale_can_change_customer(db, admin, customer, other_customer, make_item):
    item_id = make_item()
    sale = sale_service.create_sale(db, customer.id, [item_id], admin)

    updated = sale_service.update_sale(db, sale.id, [item_id], admin, customer_id=other_customer.id)

    assert updated.customer_id == other_customer.id
    assert updated.total == Decimal("107.00")


def test_update_missing_sale(db, admin, make_item):
    with pytest.raises(NotFound):
        sale_service.update_sale(db, 9999, [make_item()], admin)


def test_delete_sale_returns_items_to_stock(db, super_admin, admin, customer, make_item, status_of):
    ids = [make_item(), make_item()]
    sale = sale_service.create_sale(db, customer.id, ids, admin)

    sale_service.delete_sale(db, sale.id, super_admin)

    assert db.get(Sale, sale.id) is None
    for item_id in ids:
        assert status_of(item_id) == ItemStatus.IN_STOCK
        assert db.get(InventoryItem, item_id).sale_id is None


def test_delete_missing_sale(db, super_admin):
    with pytest.raises(NotFound):
        sale_service.delete_sale(db, 9999, super_admin)


def test_list_sales_searches_customer_and_seller(db, admin, customer, other_customer, make_item):
    sale_service.create_sale(db, customer.id, [make_item()], admin)
    sale_service.create_sale(db, other_customer.id, [make_item()], admin)

    page = sale_service.list_sales(db, page=1, limit=10, search="somchai")
    assert page["pagination"]["totalItems"] == 1
    assert page["data"][0].customer.name == "Somchai Store"

    page = sale_service.list_sales(db, page=1, limit=10, search="shop admin")
    assert page["pagination"]["totalItems"] == 2
