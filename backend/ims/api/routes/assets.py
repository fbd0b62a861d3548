"""Company assets and their assignments to employees."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.permissions import ADMIN_ACCESS
from ims.models.inventory import ItemStatus
from ims.models.user import User
from ims.schemas.asset import AssetAssign, AssetHistoryResponse, AssignmentCreate, AssignmentResponse
from ims.schemas.common import Message, Page
from ims.schemas.inventory import AssetCreate, InventoryItemResponse, InventoryItemUpdate
from ims.services import asset_service, inventory_service

router = APIRouter()
assignments_router = APIRouter()

admin = require_roles(*ADMIN_ACCESS)


@router.get("", response_model=Page[InventoryItemResponse])
def list_assets(
    status: Optional[ItemStatus] = Query(None),
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return asset_service.list_assets(db, params.page, params.limit, params.search, status)


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
def add_asset(data: AssetCreate, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    return asset_service.add_asset(db, data, current_user)


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_asset(item_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return asset_service.get_asset(db, item_id)


@router.put("/{item_id}", response_model=InventoryItemResponse)
def update_asset(
    item_id: int,
    data: InventoryItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    asset_service.get_asset(db, item_id)
    inventory_service.update_item(db, item_id, data, current_user)
    return asset_service.get_asset(db, item_id)


@router.delete("/{item_id}", response_model=Message)
def delete_asset(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    asset_service.get_asset(db, item_id)
    inventory_service.delete_item(db, item_id, current_user)
    return {"message": "Asset deleted successfully."}


@router.patch("/{item_id}/assign", response_model=AssignmentResponse)
def assign_asset(
    item_id: int,
    data: AssetAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    return asset_service.assign_assets(db, [item_id], data.user_id, current_user, data.notes)


@router.patch("/{item_id}/return", response_model=InventoryItemResponse)
def return_asset(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    return asset_service.return_asset(db, item_id, current_user)


@router.patch("/{item_id}/decommission", response_model=InventoryItemResponse)
def decommission_asset(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    return asset_service.decommission_asset(db, item_id, current_user)


@router.get("/{item_id}/history", response_model=List[AssetHistoryResponse])
def asset_history(item_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return asset_service.asset_history(db, item_id)


# --- /asset-assignments ------------------------------------------------------

@assignments_router.get("", response_model=Page[AssignmentResponse])
def list_assignments(
    open: bool = Query(False, description="Only assignments with assets still out"),
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return asset_service.list_assignments(db, params.page, params.limit, open_only=open)


@assignments_router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
def create_assignment(
    data: AssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    return asset_service.assign_assets(db, data.inventory_item_ids, data.user_id, current_user, data.notes)


@assignments_router.get("/{assignment_id}", response_model=AssignmentResponse)
def get_assignment(assignment_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return asset_service.get_assignment(db, assignment_id)
