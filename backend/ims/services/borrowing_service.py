"""Borrowings: lend items to a customer and take them back, possibly in parts.

A borrowing closes (RETURNED) when its last open item link is closed, and
never reopens. Returned links stay in `borrowing_items` as history.
"""
import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, aliased, joinedload, selectinload

from ims.core.audit import AuditLog
from ims.core.exceptions import NotFound
from ims.db.session import atomic
from ims.models.borrowing import Borrowing, BorrowingItem, BorrowingStatus
from ims.models.customer import Customer
from ims.models.inventory import InventoryItem
from ims.models.user import User
from ims.schemas.borrowing import BorrowingResponse
from ims.services.lifecycle import (
    LEND,
    RECLAIM,
    apply_transition,
    attach_links,
    close_links,
    count_open_links,
    normalize_item_ids,
    open_linked_item_ids,
    utcnow,
)
from ims.services.pagination import paginate

logger = logging.getLogger(__name__)


def _borrowing_query(db: Session):
    return db.query(Borrowing).options(
        joinedload(Borrowing.borrower),
        joinedload(Borrowing.approved_by),
        selectinload(Borrowing.links).joinedload(BorrowingItem.item).joinedload(InventoryItem.product_model),
    )


def get_borrowing(db: Session, borrowing_id: int) -> Borrowing:
    borrowing = _borrowing_query(db).filter(Borrowing.id == borrowing_id).first()
    if not borrowing:
        raise NotFound("Borrowing")
    return borrowing


def list_borrowings(
    db: Session,
    page: int,
    limit: int,
    search: Optional[str] = None,
    status: Optional[BorrowingStatus] = None,
) -> dict:
    approver = aliased(User)
    q = (
        _borrowing_query(db)
        .join(Customer, Borrowing.borrower_id == Customer.id)
        .join(approver, Borrowing.approved_by_id == approver.id)
    )
    if search:
        by_serial = (
            select(BorrowingItem.borrowing_id)
            .join(InventoryItem, BorrowingItem.inventory_item_id == InventoryItem.id)
            .where(InventoryItem.serial_number.ilike(f"%{search}%"))
        )
        q = q.filter(
            or_(
                Customer.name.ilike(f"%{search}%"),
                approver.name.ilike(f"%{search}%"),
                Borrowing.id.in_(by_serial),
            )
        )
    if status:
        q = q.filter(Borrowing.status == status)
    q = q.order_by(Borrowing.borrow_date.desc(), Borrowing.id.desc())
    return paginate(q, page, limit, BorrowingResponse)


def create_borrowing(
    db: Session,
    customer_id: int,
    item_ids: Sequence[int],
    approver: User,
    due_date: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> Borrowing:
    """Lend every requested item, or none of them."""
    ids = normalize_item_ids(item_ids, "inventory_item_ids")

    with atomic(db):
        if not db.get(Customer, customer_id):
            raise NotFound("Customer")

        borrowing = Borrowing(
            borrower_id=customer_id,
            approved_by_id=approver.id,
            status=BorrowingStatus.BORROWED,
            due_date=due_date,
            notes=notes,
        )
        db.add(borrowing)
        db.flush()
        borrowing_id = borrowing.id

        apply_transition(db, LEND, ids)
        attach_links(db, BorrowingItem, borrowing_id, ids)

    logger.info(f"Borrowing #{borrowing_id} created: customer={customer_id} items={ids}")
    AuditLog.log_action("create", "borrowing", borrowing_id, approver, changes={"customer_id": customer_id, "item_ids": ids})
    return get_borrowing(db, borrowing_id)


def return_items(db: Session, borrowing_id: int, item_ids: Sequence[int], user: User) -> Borrowing:
    """Take back the requested items that are still out under this borrowing.

    Items that do not belong to the borrowing, or were already returned,
    are ignored. Closes the borrowing when nothing is left outstanding.
    """
    ids = normalize_item_ids(item_ids, "item_ids_to_return")

    with atomic(db):
        borrowing = db.get(Borrowing, borrowing_id)
        if not borrowing:
            raise NotFound("Borrowing")

        now = utcnow()
        returning = open_linked_item_ids(db, BorrowingItem, borrowing_id, ids)
        if returning:
            apply_transition(db, RECLAIM, returning)
            close_links(db, BorrowingItem, borrowing_id, returning, now)

        borrowing = db.get(Borrowing, borrowing_id)
        remaining = count_open_links(db, BorrowingItem, borrowing_id)
        closed = borrowing.status == BorrowingStatus.BORROWED and remaining == 0
        if closed:
            borrowing.status = BorrowingStatus.RETURNED
            borrowing.return_date = now

    if returning:
        logger.info(f"Borrowing #{borrowing_id}: returned {returning}, {remaining} still out")
        AuditLog.log_action(
            "return", "borrowing", borrowing_id, user,
            changes={"item_ids": returning, "remaining": remaining, "closed": closed},
        )
    return get_borrowing(db, borrowing_id)
