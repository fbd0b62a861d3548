"""Sales: selling moves items IN_STOCK -> SOLD; update and delete put them back.

Totals are always recomputed from the product-model selling prices of the
items at the time of the sale; nothing the client sends is trusted for money.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session, aliased, joinedload, selectinload

from ims.core.audit import AuditLog
from ims.core.config import settings
from ims.core.exceptions import ItemsUnavailable, NotFound
from ims.db.session import atomic
from ims.models.customer import Customer
from ims.models.inventory import InventoryItem, ItemStatus, ItemType
from ims.models.sale import Sale
from ims.models.user import User
from ims.schemas.sale import SaleResponse
from ims.services.lifecycle import SELL, UNSELL, apply_transition, normalize_item_ids
from ims.services.pagination import paginate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def calculate_vat(subtotal: Decimal | float, vat_rate: Decimal | float | str = settings.VAT_RATE) -> dict:
    """VAT breakdown for a sale.

    Args:
        subtotal: Sum of selling prices before tax
        vat_rate: VAT rate (7% unless configured otherwise)

    Returns:
        dict with subtotal, vat_rate, vat_amount, total; amounts rounded to cents
    """
    base = Decimal(str(subtotal)).quantize(CENT, rounding=ROUND_HALF_UP)
    rate = Decimal(str(vat_rate))
    vat_amount = (base * rate).quantize(CENT, rounding=ROUND_HALF_UP)

    return {
        "subtotal": base,
        "vat_rate": rate,
        "vat_amount": vat_amount,
        "total": base + vat_amount,
    }


def _subtotal(items: Sequence[InventoryItem]) -> Decimal:
    # Missing price counts as zero
    return sum(
        (Decimal(str(item.product_model.selling_price or 0)) for item in items),
        Decimal("0"),
    )


def _get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if not customer:
        raise NotFound("Customer")
    return customer


def _items_for_sale(db: Session, item_ids: List[int]) -> List[InventoryItem]:
    items = (
        db.query(InventoryItem)
        .options(joinedload(InventoryItem.product_model))
        .filter(
            InventoryItem.id.in_(item_ids),
            InventoryItem.status == ItemStatus.IN_STOCK,
            InventoryItem.item_type == ItemType.SALE,
        )
        .all()
    )
    if len(items) != len(item_ids):
        raise ItemsUnavailable(SELL.action, item_ids)
    return items


def _sale_query(db: Session):
    return db.query(Sale).options(
        joinedload(Sale.customer),
        joinedload(Sale.sold_by),
        selectinload(Sale.items).joinedload(InventoryItem.product_model),
    )


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = _sale_query(db).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFound("Sale")
    return sale


def list_sales(db: Session, page: int, limit: int, search: Optional[str] = None) -> dict:
    seller = aliased(User)
    q = _sale_query(db).join(Customer, Sale.customer_id == Customer.id).join(seller, Sale.sold_by_id == seller.id)
    if search:
        q = q.filter(or_(Customer.name.ilike(f"%{search}%"), seller.name.ilike(f"%{search}%")))
    q = q.order_by(Sale.sale_date.desc(), Sale.id.desc())
    return paginate(q, page, limit, SaleResponse)


def create_sale(db: Session, customer_id: int, item_ids: Sequence[int], seller: User) -> Sale:
    """Sell every requested item to the customer, or nothing at all."""
    ids = normalize_item_ids(item_ids, "inventory_item_ids")

    with atomic(db):
        customer = _get_customer(db, customer_id)
        totals = calculate_vat(_subtotal(_items_for_sale(db, ids)))

        sale = Sale(
            customer_id=customer.id,
            sold_by_id=seller.id,
            subtotal=totals["subtotal"],
            vat_amount=totals["vat_amount"],
            total=totals["total"],
        )
        db.add(sale)
        db.flush()  # Get ID for the item links
        sale_id = sale.id

        # Re-checks availability inside the transaction
        apply_transition(db, SELL, ids, sale_id=sale_id)

    logger.info(f"Sale #{sale_id} created: customer={customer_id} items={ids} total={totals['total']}")
    AuditLog.log_action(
        "create", "sale", sale_id, seller,
        changes={"customer_id": customer_id, "item_ids": ids, "total": totals["total"]},
    )
    return get_sale(db, sale_id)


def update_sale(
    db: Session,
    sale_id: int,
    item_ids: Sequence[int],
    user: User,
    customer_id: Optional[int] = None,
) -> Sale:
    """Replace the item set of a sale and recompute its totals."""
    ids = normalize_item_ids(item_ids, "inventory_item_ids")

    with atomic(db):
        sale = db.get(Sale, sale_id)
        if not sale:
            raise NotFound("Sale")
        if customer_id is not None:
            sale.customer_id = _get_customer(db, customer_id).id

        previous_ids = [item.id for item in sale.items]
        apply_transition(db, UNSELL, previous_ids, sale_id=None)

        totals = calculate_vat(_subtotal(_items_for_sale(db, ids)))
        apply_transition(db, SELL, ids, sale_id=sale_id)

        sale = db.get(Sale, sale_id)
        sale.subtotal = totals["subtotal"]
        sale.vat_amount = totals["vat_amount"]
        sale.total = totals["total"]

    AuditLog.log_action(
        "update", "sale", sale_id, user,
        changes={"previous_item_ids": previous_ids, "item_ids": ids, "total": totals["total"]},
    )
    return get_sale(db, sale_id)


def delete_sale(db: Session, sale_id: int, user: User) -> None:
    """Return every item of the sale to stock, then remove the sale row.

    The row is gone afterwards; the audit log entry is the only record.
    """
    with atomic(db):
        sale = db.get(Sale, sale_id)
        if not sale:
            raise NotFound("Sale")
        snapshot = {
            "customer_id": sale.customer_id,
            "sold_by_id": sale.sold_by_id,
            "subtotal": sale.subtotal,
            "vat_amount": sale.vat_amount,
            "total": sale.total,
            "sale_date": sale.sale_date,
            "item_ids": [item.id for item in sale.items],
        }

        apply_transition(db, UNSELL, snapshot["item_ids"], sale_id=None)
        db.delete(db.get(Sale, sale_id))

    logger.warning(f"Sale #{sale_id} deleted by user {user.id}; items {snapshot['item_ids']} back in stock")
    AuditLog.log_action("delete", "sale", sale_id, user, changes=snapshot)
