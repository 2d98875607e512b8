import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, case
from sqlalchemy.orm import Session

from ..models_inventory import (
    InventoryLot, InventoryVariant, Inventory, InventoryLotStorage, InventoryMovement
)
from ..models import STATUS_ACTIVE, STATUS_INACTIVE
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, paginate, apply_changes, drop_required_nulls
)
from .currency_service import CurrencyService
from .inventory_service import VariantService

logger = logging.getLogger(__name__)

EXPIRING_SOON_DAYS = 30


class LotService:

    @staticmethod
    def _company_lots(db: Session, company_id: int):
        return db.query(InventoryLot).join(
            InventoryVariant, InventoryLot.inv_var_id == InventoryVariant.inv_var_id
        ).join(
            Inventory, InventoryVariant.inv_id == Inventory.inv_id
        ).filter(Inventory.company_id == company_id)

    @staticmethod
    def _validate(db: Session, data: dict):
        for field in ("lot_unit_cost", "lot_unit_cost_ref"):
            value = data.get(field)
            if value is not None and Decimal(str(value)) < 0:
                raise InvalidOperationError(f"{field} cannot be negative")

        manufactured = data.get("manufacture_date")
        expires = data.get("expiration_date")
        if manufactured and expires and expires <= manufactured:
            raise InvalidOperationError("Expiration date must be after the manufacture date")

        CurrencyService.ensure_exists(db, data.get("lot_unit_currency_id"), data.get("lot_unit_currency_id_ref"))

    @staticmethod
    def _check_number(db: Session, inv_var_id: int, lot_number: str, exclude_id: Optional[int] = None):
        query = db.query(InventoryLot).filter(
            InventoryLot.inv_var_id == inv_var_id,
            InventoryLot.lot_number == lot_number
        )
        if exclude_id is not None:
            query = query.filter(InventoryLot.inv_lot_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Lot '{lot_number}' already exists for this variant")

    @staticmethod
    def get(db: Session, company_id: int, lot_id: int) -> InventoryLot:
        lot = LotService._company_lots(db, company_id).filter(InventoryLot.inv_lot_id == lot_id).first()
        if not lot:
            raise NotFoundError("Lot not found")
        return lot

    @staticmethod
    def list_by_variant(db: Session, company_id: int, inv_var_id: int, page: int, limit: int,
                        status: Optional[int] = None):
        VariantService.get(db, company_id, inv_var_id)
        query = db.query(InventoryLot).filter(InventoryLot.inv_var_id == inv_var_id)
        if status is not None:
            query = query.filter(InventoryLot.lot_status == status)
        query = query.order_by(InventoryLot.created_at.desc(), InventoryLot.inv_lot_id.desc())
        return paginate(query, page, limit)

    @staticmethod
    def search(db: Session, company_id: int, lot_number: str, page: int, limit: int):
        query = LotService._company_lots(db, company_id).filter(
            InventoryLot.lot_number.ilike(f"%{lot_number}%")
        ).order_by(InventoryLot.lot_number)
        return paginate(query, page, limit)

    @staticmethod
    def summary(db: Session, company_id: int, today: Optional[date] = None) -> dict:
        """Lot counts for the company; expiry buckets only count active lots"""
        today = today or date.today()
        horizon = today + timedelta(days=EXPIRING_SOON_DAYS)
        active = InventoryLot.lot_status == STATUS_ACTIVE

        row = LotService._company_lots(db, company_id).with_entities(
            func.count(InventoryLot.inv_lot_id),
            func.sum(case((active, 1), else_=0)),
            func.sum(case((InventoryLot.lot_status == STATUS_INACTIVE, 1), else_=0)),
            func.sum(case((
                active & (InventoryLot.expiration_date >= today) & (InventoryLot.expiration_date <= horizon), 1
            ), else_=0)),
            func.sum(case((active & (InventoryLot.expiration_date < today), 1), else_=0)),
        ).one()

        total, active_count, inactive_count, expiring, expired = row
        return {
            "total_lots": total or 0,
            "active_lots": active_count or 0,
            "inactive_lots": inactive_count or 0,
            "expiring_soon": expiring or 0,
            "expired": expired or 0,
            "expiring_window_days": EXPIRING_SOON_DAYS,
        }

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> InventoryLot:
        VariantService.get(db, company_id, data["inv_var_id"])
        LotService._validate(db, data)
        LotService._check_number(db, data["inv_var_id"], data["lot_number"])

        lot = InventoryLot(**data)
        db.add(lot)
        db.flush()
        logger.info("Created lot %s for variant %s", lot.lot_number, lot.inv_var_id)
        return lot

    @staticmethod
    def update(db: Session, company_id: int, lot_id: int, data: dict) -> InventoryLot:
        lot = LotService.get(db, company_id, lot_id)
        data = drop_required_nulls(InventoryLot, data)

        inv_var_id = data.get("inv_var_id", lot.inv_var_id)
        if inv_var_id != lot.inv_var_id:
            VariantService.get(db, company_id, inv_var_id)

        merged = {
            "manufacture_date": data.get("manufacture_date", lot.manufacture_date),
            "expiration_date": data.get("expiration_date", lot.expiration_date),
            "lot_unit_cost": data.get("lot_unit_cost"),
            "lot_unit_cost_ref": data.get("lot_unit_cost_ref"),
            "lot_unit_currency_id": data.get("lot_unit_currency_id"),
            "lot_unit_currency_id_ref": data.get("lot_unit_currency_id_ref"),
        }
        LotService._validate(db, merged)

        lot_number = data.get("lot_number", lot.lot_number)
        if (lot_number, inv_var_id) != (lot.lot_number, lot.inv_var_id):
            LotService._check_number(db, inv_var_id, lot_number, exclude_id=lot_id)

        apply_changes(lot, data)
        db.flush()
        return lot

    @staticmethod
    def set_status(db: Session, company_id: int, lot_id: int, status: int) -> InventoryLot:
        lot = LotService.get(db, company_id, lot_id)
        lot.lot_status = status
        db.flush()
        return lot

    @staticmethod
    def delete(db: Session, company_id: int, lot_id: int):
        lot = LotService.get(db, company_id, lot_id)
        in_use = db.query(InventoryLotStorage.inv_lot_storage_id).filter(
            InventoryLotStorage.inv_lot_id == lot_id
        ).first() or db.query(InventoryMovement.inv_storage_move_id).filter(
            InventoryMovement.inv_lot_id == lot_id
        ).first()
        if in_use:
            raise InvalidOperationError("Lot has stock or movements; deactivate it instead")
        db.delete(lot)
        db.flush()
        logger.info("Deleted lot %s", lot_id)
