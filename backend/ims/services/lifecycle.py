"""
Inventory lifecycle: the only place item status changes.

Every sale, borrowing, assignment and decommission moves items with
`apply_transition`, a compare-and-set UPDATE that only touches rows still in
one of the transition's source statuses. The availability check therefore
happens inside the caller's transaction, in the same statement that claims
the rows: two concurrent requests can never both claim one IN_STOCK item,
because the loser's UPDATE matches fewer rows than it asked for and raises
`ItemsUnavailable`, which rolls the loser's whole transaction back.

Link helpers maintain the borrowing/assignment link tables. A link is open
while `returned_at` is null.

    SALE items                         ASSET items

    IN_STOCK --SELL--> SOLD            IN_WAREHOUSE --ASSIGN--> ASSIGNED
        ^   <--UNSELL--                    ^   <--UNASSIGN--       |
        |                                  |                       |
        +--LEND--> BORROWED                +--DECOMMISSION--+------+
        <--RECLAIM--                                        v
                                                     DECOMMISSIONED
    resting <--MARK_DEFECTIVE / REPAIR--> DEFECTIVE (both types)
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, List, Optional, Sequence, Type, Union

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ims.core.exceptions import InvalidTransition, ItemsUnavailable, ValidationError
from ims.models.asset import AssetAssignmentItem
from ims.models.borrowing import BorrowingItem
from ims.models.inventory import RESTING_STATUS, InventoryItem, ItemStatus, ItemType

logger = logging.getLogger(__name__)

LinkModel = Type[Union[BorrowingItem, AssetAssignmentItem]]

# Parent key column of each link table
_PARENT_KEY = {
    BorrowingItem: "borrowing_id",
    AssetAssignmentItem: "assignment_id",
}


@dataclass(frozen=True)
class Transition:
    name: str
    source: FrozenSet[ItemStatus]
    target: ItemStatus
    item_type: Optional[ItemType] = None
    # Verb used in "not available for <action>" errors
    action: str = ""


def _t(name, source, target, item_type=None, action=""):
    return Transition(name, frozenset(source), target, item_type, action or name.lower())


SELL = _t("SELL", {ItemStatus.IN_STOCK}, ItemStatus.SOLD, ItemType.SALE, "sale")
UNSELL = _t("UNSELL", {ItemStatus.SOLD}, ItemStatus.IN_STOCK, ItemType.SALE, "restocking")
LEND = _t("LEND", {ItemStatus.IN_STOCK}, ItemStatus.BORROWED, ItemType.SALE, "borrowing")
RECLAIM = _t("RECLAIM", {ItemStatus.BORROWED}, ItemStatus.IN_STOCK, ItemType.SALE, "return")
ASSIGN = _t("ASSIGN", {ItemStatus.IN_WAREHOUSE}, ItemStatus.ASSIGNED, ItemType.ASSET, "assignment")
UNASSIGN = _t("UNASSIGN", {ItemStatus.ASSIGNED}, ItemStatus.IN_WAREHOUSE, ItemType.ASSET, "return")
DECOMMISSION = _t(
    "DECOMMISSION",
    {ItemStatus.IN_WAREHOUSE, ItemStatus.ASSIGNED, ItemStatus.DEFECTIVE},
    ItemStatus.DECOMMISSIONED,
    ItemType.ASSET,
    "decommissioning",
)
MARK_DEFECTIVE = _t("MARK_DEFECTIVE", {ItemStatus.IN_STOCK, ItemStatus.IN_WAREHOUSE}, ItemStatus.DEFECTIVE)
REPAIR = _t("REPAIR", {ItemStatus.DEFECTIVE}, ItemStatus.IN_STOCK, ItemType.SALE, "repair")
REPAIR_ASSET = _t("REPAIR_ASSET", {ItemStatus.DEFECTIVE}, ItemStatus.IN_WAREHOUSE, ItemType.ASSET, "repair")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_item_ids(item_ids: Optional[Iterable[int]], field: str = "item_ids") -> List[int]:
    """Validate a requested id list: non-empty, positive integers, no duplicates."""
    ids = list(item_ids or [])
    if not ids:
        raise ValidationError(f"At least one item ID is required in {field}.")
    for item_id in ids:
        if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id <= 0:
            raise ValidationError(f"Invalid item ID: {item_id!r}")
    if len(set(ids)) != len(ids):
        raise ValidationError(f"Duplicate item IDs in {field}.")
    return ids


def apply_transition(db: Session, transition: Transition, item_ids: Sequence[int], **values) -> int:
    """Move every item in `item_ids` along `transition`, or none of them.

    Extra column values (sale_id, assigned_to_id, ...) are written in the
    same statement. Raises ItemsUnavailable when any item is missing, of the
    wrong type, or not in a source status; the caller's transaction must
    then be rolled back (ims.db.session.atomic does this).
    """
    ids = list(item_ids)
    if not ids:
        return 0
    # Pending inserts (the new sale/borrowing row) must exist before the UPDATE references them
    db.flush()

    stmt = update(InventoryItem).where(
        InventoryItem.id.in_(ids),
        InventoryItem.status.in_(list(transition.source)),
    )
    if transition.item_type is not None:
        stmt = stmt.where(InventoryItem.item_type == transition.item_type)
    stmt = stmt.values(status=transition.target, updated_at=func.now(), **values).execution_options(
        synchronize_session=False
    )
    result = db.execute(stmt)

    if result.rowcount != len(ids):
        logger.info(f"{transition.name} rejected: {result.rowcount}/{len(ids)} items eligible ({ids})")
        raise ItemsUnavailable(transition.action, ids)

    # Loaded InventoryItem instances no longer match the rows
    db.expire_all()
    logger.debug(f"{transition.name}: {ids} -> {transition.target.value}")
    return result.rowcount


def transition_for_status_change(item: InventoryItem, new_status: ItemStatus) -> Transition:
    """Pick the manual transition (defective/repair) for an item update."""
    resting = RESTING_STATUS[item.item_type]
    if new_status == ItemStatus.DEFECTIVE and item.status == resting:
        return MARK_DEFECTIVE
    if new_status == resting and item.status == ItemStatus.DEFECTIVE:
        return REPAIR if item.item_type == ItemType.SALE else REPAIR_ASSET
    raise InvalidTransition(
        f"Cannot change status from {item.status.value} to {new_status.value}; "
        f"use the sale, borrowing or asset operations instead."
    )


# --- link tables -----------------------------------------------------------

def _parent_column(link_model: LinkModel):
    return getattr(link_model, _PARENT_KEY[link_model])


def attach_links(db: Session, link_model: LinkModel, parent_id: int, item_ids: Sequence[int]) -> None:
    key = _PARENT_KEY[link_model]
    db.add_all([link_model(**{key: parent_id, "inventory_item_id": item_id}) for item_id in item_ids])


def open_linked_item_ids(
    db: Session, link_model: LinkModel, parent_id: int, item_ids: Optional[Sequence[int]] = None
) -> List[int]:
    """Items with an open link under `parent_id`, optionally restricted to `item_ids`."""
    stmt = select(link_model.inventory_item_id).where(
        _parent_column(link_model) == parent_id,
        link_model.returned_at.is_(None),
    )
    if item_ids is not None:
        stmt = stmt.where(link_model.inventory_item_id.in_(list(item_ids)))
    return list(db.scalars(stmt.order_by(link_model.inventory_item_id)))


def close_links(db: Session, link_model: LinkModel, parent_id: int, item_ids: Sequence[int], when: datetime) -> int:
    if not item_ids:
        return 0
    stmt = (
        update(link_model)
        .where(
            _parent_column(link_model) == parent_id,
            link_model.inventory_item_id.in_(list(item_ids)),
            link_model.returned_at.is_(None),
        )
        .values(returned_at=when)
        .execution_options(synchronize_session=False)
    )
    closed = db.execute(stmt).rowcount
    db.expire_all()
    return closed


def count_open_links(db: Session, link_model: LinkModel, parent_id: int) -> int:
    """Closure predicate: a parent closes when this reaches zero."""
    stmt = select(func.count()).select_from(link_model).where(
        _parent_column(link_model) == parent_id,
        link_model.returned_at.is_(None),
    )
    return db.scalar(stmt) or 0


def has_open_link(db: Session, link_model: LinkModel, item_id: int) -> bool:
    stmt = select(func.count()).select_from(link_model).where(
        link_model.inventory_item_id == item_id,
        link_model.returned_at.is_(None),
    )
    return (db.scalar(stmt) or 0) > 0


def open_link_for_item(db: Session, link_model: LinkModel, item_id: int):
    return db.scalars(
        select(link_model).where(
            link_model.inventory_item_id == item_id,
            link_model.returned_at.is_(None),
        )
    ).first()
