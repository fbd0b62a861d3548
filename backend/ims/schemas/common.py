from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    totalItems: int
    totalPages: int
    currentPage: int
    itemsPerPage: int


class Page(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination


class Message(BaseModel):
    message: str


class NamedRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True
