"""Inventory items: add, edit, list and the deletion guard."""
import logging
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session, joinedload

from ims.core.audit import AuditLog
from ims.core.exceptions import DeletionBlock, ItemDeletionBlocked, NotFound, ValidationError
from ims.db.session import atomic
from ims.models.asset import AssetAssignmentItem, AssetHistory
from ims.models.borrowing import BorrowingItem
from ims.models.catalog import ProductModel
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.models.user import User
from ims.schemas.inventory import InventoryItemCreate, InventoryItemResponse, InventoryItemUpdate
from ims.services.lifecycle import apply_transition, has_open_link, transition_for_status_change
from ims.services.pagination import paginate

logger = logging.getLogger(__name__)


def _item_query(db: Session):
    return db.query(InventoryItem).options(
        joinedload(InventoryItem.product_model).joinedload(ProductModel.category),
        joinedload(InventoryItem.product_model).joinedload(ProductModel.brand),
        joinedload(InventoryItem.assigned_to),
    )


def _check_product_model(db: Session, product_model_id: int) -> None:
    if not db.get(ProductModel, product_model_id):
        raise NotFound("Product model")


def get_item(db: Session, item_id: int) -> InventoryItem:
    item = _item_query(db).filter(InventoryItem.id == item_id).first()
    if not item:
        raise NotFound("Inventory item")
    return item


def list_items(
    db: Session,
    page: int,
    limit: int,
    search: Optional[str] = None,
    status: Optional[ItemStatus] = None,
) -> dict:
    q = _item_query(db).filter(InventoryItem.item_type == ItemType.SALE)
    if search:
        model_match = select(ProductModel.id).where(ProductModel.model_number.ilike(f"%{search}%"))
        q = q.filter(
            or_(
                InventoryItem.serial_number.ilike(f"%{search}%"),
                InventoryItem.mac_address == search,
                InventoryItem.product_model_id.in_(model_match),
            )
        )
    if status:
        q = q.filter(InventoryItem.status == status)
    q = q.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())
    return paginate(q, page, limit, InventoryItemResponse)


def items_in_stock(db: Session) -> List[InventoryItem]:
    """Every sellable item, for pickers on the sale and borrowing forms."""
    return (
        _item_query(db)
        .filter(InventoryItem.item_type == ItemType.SALE, InventoryItem.status == ItemStatus.IN_STOCK)
        .order_by(InventoryItem.id)
        .all()
    )


def add_item(db: Session, data: InventoryItemCreate, user: User) -> InventoryItem:
    if data.asset_code:
        raise ValidationError("asset_code can only be set on assets.")

    with atomic(db):
        _check_product_model(db, data.product_model_id)
        item = InventoryItem(
            item_type=ItemType.SALE,
            status=ItemStatus.IN_STOCK,
            serial_number=data.serial_number,
            mac_address=data.mac_address,
            product_model_id=data.product_model_id,
            added_by_id=user.id,
        )
        db.add(item)
        db.flush()
        item_id = item.id

    AuditLog.log_action("create", "inventory_item", item_id, user, changes={"serial_number": data.serial_number})
    return get_item(db, item_id)


def update_item(db: Session, item_id: int, data: InventoryItemUpdate, user: User) -> InventoryItem:
    """Edit identifiers and product model; status only to or from DEFECTIVE."""
    changes = data.model_dump(exclude_unset=True)

    with atomic(db):
        item = db.get(InventoryItem, item_id)
        if not item:
            raise NotFound("Inventory item")

        new_status = changes.pop("status", None)
        if "asset_code" in changes and changes["asset_code"] and item.item_type != ItemType.ASSET:
            raise ValidationError("asset_code can only be set on assets.")
        if changes.get("product_model_id") is not None:
            _check_product_model(db, changes["product_model_id"])
        elif "product_model_id" in changes:
            raise ValidationError("product_model_id cannot be empty.")

        for field, value in changes.items():
            setattr(item, field, value)

        if new_status is not None and new_status != item.status:
            apply_transition(db, transition_for_status_change(item, new_status), [item_id])
            changes["status"] = new_status

    AuditLog.log_action("update", "inventory_item", item_id, user, changes=changes)
    return get_item(db, item_id)


def deletion_block(db: Session, item: InventoryItem) -> Optional[DeletionBlock]:
    """Reason the item may not be deleted, judged from status and open links."""
    if item.status == ItemStatus.SOLD or item.sale_id is not None:
        return DeletionBlock.SOLD
    if item.status == ItemStatus.BORROWED or has_open_link(db, BorrowingItem, item.id):
        return DeletionBlock.BORROWED
    if item.status == ItemStatus.ASSIGNED or has_open_link(db, AssetAssignmentItem, item.id):
        return DeletionBlock.ASSIGNED
    return None


def delete_item(db: Session, item_id: int, user: User) -> None:
    """Remove an item and its closed history, unless it is sold or out."""
    with atomic(db):
        item = db.get(InventoryItem, item_id)
        if not item:
            raise NotFound("Inventory item")
        reason = deletion_block(db, item)
        if reason:
            raise ItemDeletionBlocked(reason)

        # Only closed links remain at this point
        db.execute(delete(BorrowingItem).where(BorrowingItem.inventory_item_id == item_id))
        db.execute(delete(AssetAssignmentItem).where(AssetAssignmentItem.inventory_item_id == item_id))
        db.execute(delete(AssetHistory).where(AssetHistory.inventory_item_id == item_id))

        removed = db.execute(
            delete(InventoryItem)
            .where(
                InventoryItem.id == item_id,
                InventoryItem.sale_id.is_(None),
                InventoryItem.status.notin_([ItemStatus.SOLD, ItemStatus.BORROWED, ItemStatus.ASSIGNED]),
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        if removed != 1:
            # Claimed by a concurrent sale/borrowing/assignment since the check
            db.expire_all()
            raise ItemDeletionBlocked(deletion_block(db, db.get(InventoryItem, item_id)) or DeletionBlock.SOLD)
        db.expunge(item)

    logger.info(f"Inventory item #{item_id} deleted by user {user.id}")
    AuditLog.log_action("delete", "inventory_item", item_id, user)
