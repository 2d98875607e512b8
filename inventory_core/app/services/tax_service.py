import logging
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.orm import Session

from ..models import Tax, TaxType, STATUS_ACTIVE
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, paginate, apply_changes, drop_required_nulls
)
from .currency_service import CurrencyService

logger = logging.getLogger(__name__)


class TaxService:

    @staticmethod
    def _validate(db: Session, tax_type: int, tax_value, currency_id: Optional[int]):
        value = Decimal(str(tax_value or 0))
        if value < 0:
            raise InvalidOperationError("Tax value cannot be negative")
        if tax_type == TaxType.EXEMPT and value != 0:
            raise InvalidOperationError("Exempt taxes must have a value of 0")
        if tax_type == TaxType.PERCENT and value > 100:
            raise InvalidOperationError("Percentage taxes must be between 0 and 100")
        if currency_id is not None:
            CurrencyService.get(db, currency_id)

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE):
        query = db.query(Tax).filter(Tax.company_id == company_id)
        if status is not None:
            query = query.filter(Tax.tax_status == status)
        return paginate(query.order_by(Tax.tax_code), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, tax_id: int) -> Tax:
        tax = db.query(Tax).filter(Tax.tax_id == tax_id, Tax.company_id == company_id).first()
        if not tax:
            raise NotFoundError("Tax not found")
        return tax

    @staticmethod
    def get_many(db: Session, company_id: int, tax_ids: List[int]) -> List[Tax]:
        """Taxes of the company for every id, or NotFoundError naming the missing ones"""
        unique_ids = set(tax_ids)
        taxes = db.query(Tax).filter(Tax.company_id == company_id, Tax.tax_id.in_(unique_ids)).all()
        missing = unique_ids - {t.tax_id for t in taxes}
        if missing:
            raise NotFoundError(f"Taxes not found: {sorted(missing)}")
        return taxes

    @staticmethod
    def _check_code(db: Session, company_id: int, code: str, exclude_id: Optional[int] = None):
        query = db.query(Tax).filter(Tax.company_id == company_id, Tax.tax_code == code)
        if exclude_id is not None:
            query = query.filter(Tax.tax_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Tax with code '{code}' already exists")

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> Tax:
        TaxService._check_code(db, company_id, data["tax_code"])
        TaxService._validate(db, data.get("tax_type", TaxType.PERCENT), data.get("tax_value"), data.get("currency_id"))

        tax = Tax(company_id=company_id, **data)
        db.add(tax)
        db.flush()
        logger.info("Created tax %s for company %s", tax.tax_code, company_id)
        return tax

    @staticmethod
    def update(db: Session, company_id: int, tax_id: int, data: dict) -> Tax:
        tax = TaxService.get(db, company_id, tax_id)
        data = drop_required_nulls(Tax, data)
        if data.get("tax_code") and data["tax_code"] != tax.tax_code:
            TaxService._check_code(db, company_id, data["tax_code"], exclude_id=tax_id)
        TaxService._validate(
            db,
            data.get("tax_type", tax.tax_type),
            data.get("tax_value", tax.tax_value),
            data.get("currency_id"),
        )
        apply_changes(tax, data)
        db.flush()
        return tax
