"""Assets: company-owned items handed out to employees.

    IN_WAREHOUSE --assign--> ASSIGNED --return--> IN_WAREHOUSE
    IN_WAREHOUSE / ASSIGNED / DEFECTIVE --decommission--> DECOMMISSIONED (final)

Each assignment period ends with an AssetHistory row, whether the asset came
back or was written off while out.
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload, selectinload

from ims.core.audit import AuditLog
from ims.core.exceptions import ItemsUnavailable, NotFound, ValidationError
from ims.db.session import atomic
from ims.models.asset import AssetAssignment, AssetAssignmentItem, AssetHistory, AssignmentOutcome
from ims.models.catalog import ProductModel
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.models.user import User
from ims.schemas.asset import AssignmentResponse
from ims.schemas.inventory import AssetCreate, InventoryItemResponse
from ims.services.lifecycle import (
    ASSIGN,
    DECOMMISSION,
    UNASSIGN,
    Transition,
    apply_transition,
    attach_links,
    close_links,
    count_open_links,
    normalize_item_ids,
    open_link_for_item,
    utcnow,
)
from ims.services.pagination import paginate

logger = logging.getLogger(__name__)


def _asset_query(db: Session):
    return db.query(InventoryItem).options(
        joinedload(InventoryItem.product_model).joinedload(ProductModel.category),
        joinedload(InventoryItem.product_model).joinedload(ProductModel.brand),
        joinedload(InventoryItem.assigned_to),
    ).filter(InventoryItem.item_type == ItemType.ASSET)


def get_asset(db: Session, item_id: int) -> InventoryItem:
    asset = _asset_query(db).filter(InventoryItem.id == item_id).first()
    if not asset:
        raise NotFound("Asset")
    return asset


def list_assets(
    db: Session,
    page: int,
    limit: int,
    search: Optional[str] = None,
    status: Optional[ItemStatus] = None,
) -> dict:
    q = _asset_query(db)
    if search:
        pattern = f"%{search}%"
        model_match = select(ProductModel.id).where(ProductModel.model_number.ilike(pattern))
        assignee_match = select(User.id).where(User.name.ilike(pattern))
        q = q.filter(
            or_(
                InventoryItem.asset_code.ilike(pattern),
                InventoryItem.serial_number.ilike(pattern),
                InventoryItem.product_model_id.in_(model_match),
                InventoryItem.assigned_to_id.in_(assignee_match),
            )
        )
    if status:
        q = q.filter(InventoryItem.status == status)
    q = q.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc())
    return paginate(q, page, limit, InventoryItemResponse)


def add_asset(db: Session, data: AssetCreate, user: User) -> InventoryItem:
    with atomic(db):
        if not db.get(ProductModel, data.product_model_id):
            raise NotFound("Product model")
        asset = InventoryItem(
            item_type=ItemType.ASSET,
            status=ItemStatus.IN_WAREHOUSE,
            asset_code=data.asset_code,
            serial_number=data.serial_number,
            mac_address=data.mac_address,
            product_model_id=data.product_model_id,
            added_by_id=user.id,
        )
        db.add(asset)
        db.flush()
        asset_id = asset.id

    AuditLog.log_action("create", "asset", asset_id, user, changes={"asset_code": data.asset_code})
    return get_asset(db, asset_id)


# --- assignments -------------------------------------------------------------

def _assignment_query(db: Session):
    return db.query(AssetAssignment).options(
        joinedload(AssetAssignment.assignee),
        joinedload(AssetAssignment.approved_by),
        selectinload(AssetAssignment.links).joinedload(AssetAssignmentItem.item).joinedload(InventoryItem.product_model),
    )


def get_assignment(db: Session, assignment_id: int) -> AssetAssignment:
    assignment = _assignment_query(db).filter(AssetAssignment.id == assignment_id).first()
    if not assignment:
        raise NotFound("Assignment")
    return assignment


def list_assignments(db: Session, page: int, limit: int, open_only: bool = False) -> dict:
    q = _assignment_query(db)
    if open_only:
        q = q.filter(AssetAssignment.returned_at.is_(None))
    q = q.order_by(AssetAssignment.assigned_at.desc(), AssetAssignment.id.desc())
    return paginate(q, page, limit, AssignmentResponse)


def assign_assets(
    db: Session,
    item_ids: Sequence[int],
    assignee_id: int,
    approver: User,
    notes: Optional[str] = None,
) -> AssetAssignment:
    """Hand one or more warehouse assets to an employee under one assignment."""
    ids = normalize_item_ids(item_ids, "inventory_item_ids")

    with atomic(db):
        assignee = db.get(User, assignee_id)
        if not assignee:
            raise NotFound("User")
        if not assignee.is_active:
            raise ValidationError("Cannot assign assets to a disabled account.")

        already_out = db.scalar(
            select(func.count())
            .select_from(AssetAssignmentItem)
            .where(
                AssetAssignmentItem.inventory_item_id.in_(ids),
                AssetAssignmentItem.returned_at.is_(None),
            )
        )
        if already_out:
            raise ItemsUnavailable(ASSIGN.action, ids)

        assignment = AssetAssignment(assignee_id=assignee_id, approved_by_id=approver.id, notes=notes)
        db.add(assignment)
        db.flush()
        assignment_id = assignment.id

        apply_transition(db, ASSIGN, ids, assigned_to_id=assignee_id)
        attach_links(db, AssetAssignmentItem, assignment_id, ids)

    logger.info(f"Assignment #{assignment_id}: assets {ids} -> user {assignee_id}")
    AuditLog.log_action("assign", "asset", assignment_id, approver, changes={"assignee_id": assignee_id, "item_ids": ids})
    return get_assignment(db, assignment_id)


def _release(db: Session, item_id: int, transition: Transition, outcome: AssignmentOutcome) -> Optional[int]:
    """Move one asset out of its assignment (if any) and record the period.

    Returns the id of the assignment that was closed for this asset.
    """
    if not db.get(InventoryItem, item_id):
        raise NotFound("Asset")

    link = open_link_for_item(db, AssetAssignmentItem, item_id)
    period = None
    if link:
        period = (link.assignment_id, link.assignment.assignee_id, link.linked_at)

    now = utcnow()
    apply_transition(db, transition, [item_id], assigned_to_id=None)
    if period is None:
        return None

    assignment_id, assignee_id, assigned_at = period
    close_links(db, AssetAssignmentItem, assignment_id, [item_id], now)
    db.add(
        AssetHistory(
            inventory_item_id=item_id,
            assignment_id=assignment_id,
            assignee_id=assignee_id,
            assigned_at=assigned_at,
            returned_at=now,
            outcome=outcome,
        )
    )
    if count_open_links(db, AssetAssignmentItem, assignment_id) == 0:
        db.get(AssetAssignment, assignment_id).returned_at = now
    return assignment_id


def return_asset(db: Session, item_id: int, user: User) -> InventoryItem:
    with atomic(db):
        assignment_id = _release(db, item_id, UNASSIGN, AssignmentOutcome.RETURNED)

    AuditLog.log_action("return", "asset", item_id, user, changes={"assignment_id": assignment_id})
    return get_asset(db, item_id)


def decommission_asset(db: Session, item_id: int, user: User) -> InventoryItem:
    """Write an asset off. There is no way back out of DECOMMISSIONED."""
    with atomic(db):
        assignment_id = _release(db, item_id, DECOMMISSION, AssignmentOutcome.DECOMMISSIONED)

    logger.info(f"Asset #{item_id} decommissioned by user {user.id}")
    AuditLog.log_action("decommission", "asset", item_id, user, changes={"assignment_id": assignment_id})
    return get_asset(db, item_id)


def asset_history(db: Session, item_id: int) -> List[AssetHistory]:
    get_asset(db, item_id)
    return (
        db.query(AssetHistory)
        .options(joinedload(AssetHistory.assignee))
        .filter(AssetHistory.inventory_item_id == item_id)
        .order_by(AssetHistory.returned_at.desc(), AssetHistory.id.desc())
        .all()
    )
