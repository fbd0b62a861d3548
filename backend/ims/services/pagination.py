"""Pagination in the `{data, pagination}` envelope used by every list endpoint."""
import math
from typing import Any, Dict, Type

from pydantic import BaseModel
from sqlalchemy.orm import Query


def paginate(query: Query, page: int, limit: int, schema: Type[BaseModel]) -> Dict[str, Any]:
    total_items = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "data": [schema.model_validate(row) for row in rows],
        "pagination": {
            "totalItems": total_items,
            "totalPages": math.ceil(total_items / limit) if limit else 0,
            "currentPage": page,
            "itemsPerPage": limit,
        },
    }
