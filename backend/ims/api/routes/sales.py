"""Sales. Creating and editing needs ADMIN; deleting needs SUPER_ADMIN."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.permissions import ADMIN_ACCESS, SUPER_ADMIN_ONLY
from ims.models.user import User
from ims.schemas.common import Message, Page
from ims.schemas.sale import SaleCreate, SaleResponse, SaleUpdate
from ims.services import sale_service

router = APIRouter()

admin = require_roles(*ADMIN_ACCESS)
super_admin = require_roles(*SUPER_ADMIN_ONLY)


@router.get("", response_model=Page[SaleResponse])
def list_sales(params: PageParams = Depends(), db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return sale_service.list_sales(db, params.page, params.limit, params.search)


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return sale_service.get_sale(db, sale_id)


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
def create_sale(data: SaleCreate, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    return sale_service.create_sale(db, data.customer_id, data.inventory_item_ids, current_user)


@router.put("/{sale_id}", response_model=SaleResponse)
def update_sale(
    sale_id: int,
    data: SaleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    return sale_service.update_sale(db, sale_id, data.inventory_item_ids, current_user, data.customer_id)


@router.delete("/{sale_id}", response_model=Message)
def delete_sale(sale_id: int, db: Session = Depends(get_db), current_user: User = Depends(super_admin)):
    sale_service.delete_sale(db, sale_id, current_user)
    return {"message": "Sale deleted successfully and items returned to stock."}
