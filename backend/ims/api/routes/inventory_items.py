"""Inventory items (sellable stock)."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.permissions import ADMIN_ACCESS
from ims.models.inventory import ItemStatus
from ims.models.user import User
from ims.schemas.common import Message
from ims.schemas.inventory import InventoryItemCreate, InventoryItemResponse, InventoryItemUpdate
from ims.services import inventory_service

router = APIRouter()

admin = require_roles(*ADMIN_ACCESS)


@router.get("")
def list_inventory_items(
    all: bool = Query(False, description="Every IN_STOCK item, unpaginated (for pickers)"),
    status: Optional[ItemStatus] = Query(None),
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    if all:
        return [InventoryItemResponse.model_validate(i) for i in inventory_service.items_in_stock(db)]
    return inventory_service.list_items(db, params.page, params.limit, params.search, status)


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_inventory_item(item_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return inventory_service.get_item(db, item_id)


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
def add_inventory_item(
    data: InventoryItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    return inventory_service.add_item(db, data, current_user)


@router.put("/{item_id}", response_model=InventoryItemResponse)
def update_inventory_item(
    item_id: int,
    data: InventoryItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    return inventory_service.update_item(db, item_id, data, current_user)


@router.delete("/{item_id}", response_model=Message)
def delete_inventory_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    inventory_service.delete_item(db, item_id, current_user)
    return {"message": "Inventory item deleted successfully."}
