"""Customers: the buyers and borrowers of inventory."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.audit import AuditLog
from ims.core.exceptions import ConflictError, NotFound
from ims.core.permissions import ADMIN_ACCESS
from ims.db.session import atomic
from ims.models.borrowing import Borrowing, BorrowingItem
from ims.models.customer import Customer
from ims.models.inventory import InventoryItem
from ims.models.sale import Sale
from ims.models.user import User
from ims.schemas.borrowing import BorrowingResponse
from ims.schemas.common import Message
from ims.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from ims.schemas.sale import SaleResponse
from ims.services.pagination import paginate

router = APIRouter()

admin = require_roles(*ADMIN_ACCESS)


def _get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if not customer:
        raise NotFound("Customer")
    return customer


@router.get("")
def list_customers(
    all: bool = Query(False, description="Every customer, unpaginated (for pickers)"),
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    q = db.query(Customer)
    if all:
        return [CustomerResponse.model_validate(c) for c in q.order_by(Customer.name).all()]

    if params.search:
        q = q.filter(
            or_(
                Customer.name.ilike(f"%{params.search}%"),
                Customer.customer_code.ilike(f"%{params.search}%"),
                Customer.phone.ilike(f"%{params.search}%"),
            )
        )
    q = q.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(q, params.page, params.limit, CustomerResponse)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    data: CustomerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    with atomic(db):
        customer = Customer(**data.model_dump(), created_by_id=current_user.id)
        db.add(customer)
    db.refresh(customer)
    return customer


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _get_customer(db, customer_id)


@router.get("/{customer_id}/history")
def customer_history(customer_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    """Sales and borrowings of one customer, newest first."""
    customer = _get_customer(db, customer_id)
    sales = (
        db.query(Sale)
        .options(selectinload(Sale.items).joinedload(InventoryItem.product_model))
        .filter(Sale.customer_id == customer_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
    borrowings = (
        db.query(Borrowing)
        .options(selectinload(Borrowing.links).joinedload(BorrowingItem.item).joinedload(InventoryItem.product_model))
        .filter(Borrowing.borrower_id == customer_id)
        .order_by(Borrowing.borrow_date.desc(), Borrowing.id.desc())
        .all()
    )
    return {
        "customer": CustomerResponse.model_validate(customer),
        "sales": [SaleResponse.model_validate(s) for s in sales],
        "borrowings": [BorrowingResponse.model_validate(b) for b in borrowings],
    }


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: int,
    data: CustomerUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(admin),
):
    with atomic(db):
        customer = _get_customer(db, customer_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(customer, field, value)
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}", response_model=Message)
def delete_customer(customer_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    with atomic(db):
        customer = _get_customer(db, customer_id)
        has_history = (
            db.query(Sale.id).filter(Sale.customer_id == customer_id).first()
            or db.query(Borrowing.id).filter(Borrowing.borrower_id == customer_id).first()
        )
        if has_history:
            raise ConflictError("Cannot delete a customer with sales or borrowing history.")
        db.delete(customer)

    AuditLog.log_action("delete", "customer", customer_id, current_user)
    return {"message": "Customer deleted successfully."}
