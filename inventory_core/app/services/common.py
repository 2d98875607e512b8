"""
Shared pieces of the service layer: the domain exception hierarchy,
Decimal helpers and pagination.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple, List, Any

from sqlalchemy.orm import Query


class ServiceError(Exception):
    """Base exception for business rule violations"""
    status_code = 400

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class NotFoundError(ServiceError):
    """A referenced row does not exist (or belongs to another company)"""
    status_code = 404


class AlreadyExistsError(ServiceError):
    """A uniqueness rule would be broken"""
    status_code = 409


class InvalidOperationError(ServiceError):
    """Raised when operation is not allowed in current state"""
    status_code = 400


class InsufficientStockError(ServiceError):
    """Raised when trying to take more than available"""
    status_code = 400


# =============================================================================
# DECIMAL UTILITIES
# =============================================================================

QUANTITY_PLACES = Decimal('0.001')
AMOUNT_PLACES = Decimal('0.01')
RATE_PLACES = Decimal('0.00001')


def to_decimal(value: float | int | str | Decimal | None, places: Decimal = QUANTITY_PLACES) -> Optional[Decimal]:
    """Normalize numeric input to a Decimal with fixed precision"""
    if value is None:
        return None
    return Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP)


# =============================================================================
# PAGINATION
# =============================================================================

def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], int]:
    """Return one page of a query and the total row count"""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def pagination_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "perPage": limit,
        "currentPage": page,
        "lastPage": math.ceil(total / limit) if limit else 0,
    }


def drop_required_nulls(model, data: dict) -> dict:
    """Leave out explicit nulls sent for columns that cannot hold them"""
    columns = model.__table__.columns
    return {
        field: value for field, value in data.items()
        if value is not None or field not in columns or columns[field].nullable
    }


def apply_changes(obj, data: dict):
    """Copy the fields of a partial update onto an ORM row"""
    for field, value in data.items():
        setattr(obj, field, value)
