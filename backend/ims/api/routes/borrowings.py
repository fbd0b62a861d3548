"""Borrowings: items lent to customers."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.permissions import ADMIN_ACCESS
from ims.models.borrowing import BorrowingStatus
from ims.models.user import User
from ims.schemas.borrowing import BorrowingCreate, BorrowingResponse, BorrowingReturn
from ims.schemas.common import Page
from ims.services import borrowing_service

router = APIRouter()

admin = require_roles(*ADMIN_ACCESS)


@router.get("", response_model=Page[BorrowingResponse])
def list_borrowings(
    status: Optional[BorrowingStatus] = Query(None),
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return borrowing_service.list_borrowings(db, params.page, params.limit, params.search, status)


@router.get("/{borrowing_id}", response_model=BorrowingResponse)
def get_borrowing(borrowing_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return borrowing_service.get_borrowing(db, borrowing_id)


@router.post("", response_model=BorrowingResponse, status_code=status.HTTP_201_CREATED)
def create_borrowing(data: BorrowingCreate, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    return borrowing_service.create_borrowing(
        db, data.customer_id, data.inventory_item_ids, current_user, due_date=data.due_date, notes=data.notes
    )


@router.patch("/{borrowing_id}/return", response_model=BorrowingResponse)
def return_items(
    borrowing_id: int,
    data: BorrowingReturn,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    return borrowing_service.return_items(db, borrowing_id, data.item_ids_to_return, current_user)
