from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CustomerCreate(BaseModel):
    customer_code: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerUpdate(BaseModel):
    customer_code: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerBrief(BaseModel):
    id: int
    customer_code: str
    name: str

    class Config:
        from_attributes = True


class CustomerResponse(BaseModel):
    id: int
    customer_code: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
