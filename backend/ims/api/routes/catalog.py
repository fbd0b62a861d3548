"""Catalog reference data: categories, brands and product models.

Plain CRUD; the store enforces uniqueness and refuses to delete entries
that are still in use.
"""
from typing import Type, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from ims.api.deps import PageParams, get_current_user, get_db, require_roles
from ims.core.audit import AuditLog
from ims.core.exceptions import NotFound
from ims.core.permissions import ADMIN_ACCESS
from ims.db.session import atomic
from ims.models.catalog import Brand, Category, ProductModel
from ims.models.user import User
from ims.schemas.catalog import NamedCreate, ProductModelCreate, ProductModelResponse, ProductModelUpdate
from ims.schemas.common import Message, NamedRef
from ims.services.pagination import paginate

admin = require_roles(*ADMIN_ACCESS)


def _named_router(model: Type[Union[Category, Brand]], label: str) -> APIRouter:
    """Categories and brands share the same shape: just a unique name."""
    router = APIRouter()

    def _get(db: Session, entry_id: int):
        entry = db.get(model, entry_id)
        if not entry:
            raise NotFound(label)
        return entry

    @router.get("", response_model=list[NamedRef])
    def list_entries(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
        return db.query(model).order_by(model.name).all()

    @router.post("", response_model=NamedRef, status_code=status.HTTP_201_CREATED)
    def create_entry(data: NamedCreate, db: Session = Depends(get_db), _: User = Depends(admin)):
        with atomic(db):
            entry = model(name=data.name.strip())
            db.add(entry)
        db.refresh(entry)
        return entry

    @router.put("/{entry_id}", response_model=NamedRef)
    def update_entry(entry_id: int, data: NamedCreate, db: Session = Depends(get_db), _: User = Depends(admin)):
        with atomic(db):
            entry = _get(db, entry_id)
            entry.name = data.name.strip()
        db.refresh(entry)
        return entry

    @router.delete("/{entry_id}", response_model=Message)
    def delete_entry(entry_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
        with atomic(db):
            db.delete(_get(db, entry_id))
        AuditLog.log_action("delete", model.__tablename__, entry_id, current_user)
        return {"message": f"{label} deleted successfully."}

    return router


categories_router = _named_router(Category, "Category")
brands_router = _named_router(Brand, "Brand")


# --- product models ----------------------------------------------------------

product_models_router = APIRouter()


def _model_query(db: Session):
    return db.query(ProductModel).options(joinedload(ProductModel.category), joinedload(ProductModel.brand))


def _get_product_model(db: Session, model_id: int) -> ProductModel:
    product_model = _model_query(db).filter(ProductModel.id == model_id).first()
    if not product_model:
        raise NotFound("Product model")
    return product_model


def _check_refs(db: Session, category_id=None, brand_id=None) -> None:
    if category_id is not None and not db.get(Category, category_id):
        raise NotFound("Category")
    if brand_id is not None and not db.get(Brand, brand_id):
        raise NotFound("Brand")


@product_models_router.get("")
def list_product_models(
    all: bool = Query(False, description="Every product model, unpaginated (for pickers)"),
    params: PageParams = Depends(),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    q = _model_query(db)
    if all:
        return [ProductModelResponse.model_validate(m) for m in q.order_by(ProductModel.model_number).all()]

    if params.search:
        brand_match = select(Brand.id).where(Brand.name.ilike(f"%{params.search}%"))
        q = q.filter(
            or_(
                ProductModel.model_number.ilike(f"%{params.search}%"),
                ProductModel.description.ilike(f"%{params.search}%"),
                ProductModel.brand_id.in_(brand_match),
            )
        )
    q = q.order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
    return paginate(q, params.page, params.limit, ProductModelResponse)


@product_models_router.get("/{model_id}", response_model=ProductModelResponse)
def get_product_model(model_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _get_product_model(db, model_id)


@product_models_router.post("", response_model=ProductModelResponse, status_code=status.HTTP_201_CREATED)
def create_product_model(
    data: ProductModelCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    with atomic(db):
        _check_refs(db, data.category_id, data.brand_id)
        product_model = ProductModel(**data.model_dump(), created_by_id=current_user.id)
        db.add(product_model)
        db.flush()
        model_id = product_model.id
    return _get_product_model(db, model_id)


@product_models_router.put("/{model_id}", response_model=ProductModelResponse)
def update_product_model(
    model_id: int,
    data: ProductModelUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin),
):
    changes = data.model_dump(exclude_unset=True)
    with atomic(db):
        product_model = db.get(ProductModel, model_id)
        if not product_model:
            raise NotFound("Product model")
        _check_refs(db, changes.get("category_id"), changes.get("brand_id"))
        for field, value in changes.items():
            setattr(product_model, field, value)

    if "selling_price" in changes:
        AuditLog.log_action("update", "product_model", model_id, current_user, changes={"selling_price": changes["selling_price"]})
    return _get_product_model(db, model_id)


@product_models_router.delete("/{model_id}", response_model=Message)
def delete_product_model(model_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin)):
    with atomic(db):
        product_model = db.get(ProductModel, model_id)
        if not product_model:
            raise NotFound("Product model")
        db.delete(product_model)
    AuditLog.log_action("delete", "product_model", model_id, current_user)
    return {"message": "Product model deleted successfully."}
