from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ims.db.base import Base


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    sold_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)  # Sum of selling prices
    vat_amount = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)  # subtotal + VAT
    sale_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    customer = relationship("Customer", backref="sales")
    sold_by = relationship("User")
    items = relationship("InventoryItem", back_populates="sale", order_by="InventoryItem.id")
