"""
Currency Exchange Service
=========================
Company-scoped exchange configuration on top of the global currency catalog:
- at most one active LOCAL (base) exchange per company
- every create / change is snapshotted into the exchange history
- cross-rate conversion between two configured currencies
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..models import (
    Currency, CurrencyExchange, CurrencyExchangeHistory,
    CurrencyExchangeType, ExchangeMethod, STATUS_ACTIVE, STATUS_INACTIVE
)
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError,
    AMOUNT_PLACES, RATE_PLACES, paginate, apply_changes, drop_required_nulls
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONVERSION MATH
# =============================================================================

def cross_rate(from_rate: Decimal, to_rate: Decimal) -> Decimal:
    """Rate that takes an amount in the source currency to the target one"""
    if from_rate <= 0 or to_rate <= 0:
        raise InvalidOperationError("Exchange rates must be positive")
    return Decimal(to_rate) / Decimal(from_rate)


def convert_amount(amount: Decimal, from_rate: Decimal, to_rate: Decimal, method: int) -> Tuple[Decimal, Decimal]:
    """
    Convert ``amount`` using the target currency's method.

    Returns:
        (converted amount rounded to 2 places, exchange rate rounded to 5 places)
    """
    exchange_rate = cross_rate(from_rate, to_rate)
    if method == ExchangeMethod.DIVIDE:
        converted = Decimal(amount) / exchange_rate
    else:
        converted = Decimal(amount) * exchange_rate
    return (
        converted.quantize(AMOUNT_PLACES, rounding=ROUND_HALF_UP),
        exchange_rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP),
    )


# =============================================================================
# CURRENCY CATALOG
# =============================================================================

class CurrencyService:

    @staticmethod
    def list(db: Session, status: Optional[int] = STATUS_ACTIVE):
        query = db.query(Currency)
        if status is not None:
            query = query.filter(Currency.currency_status == status)
        return query.order_by(Currency.currency_name).all()

    @staticmethod
    def get(db: Session, currency_id: int) -> Currency:
        currency = db.get(Currency, currency_id)
        if not currency:
            raise NotFoundError("Currency not found")
        return currency

    @staticmethod
    def ensure_exists(db: Session, *currency_ids: Optional[int]):
        """Raise NotFoundError unless every non-null id is a known currency"""
        for currency_id in currency_ids:
            if currency_id is not None:
                CurrencyService.get(db, currency_id)

    @staticmethod
    def create(db: Session, data: dict) -> Currency:
        iso_code = data["currency_iso_code"].upper()
        if db.query(Currency).filter(Currency.currency_iso_code == iso_code).first():
            raise AlreadyExistsError(f"Currency '{iso_code}' already exists")
        currency = Currency(**{**data, "currency_iso_code": iso_code})
        db.add(currency)
        db.flush()
        return currency

    @staticmethod
    def update(db: Session, currency_id: int, data: dict) -> Currency:
        currency = CurrencyService.get(db, currency_id)
        data = drop_required_nulls(Currency, data)
        apply_changes(currency, data)
        db.flush()
        return currency


# =============================================================================
# COMPANY EXCHANGES
# =============================================================================

class CurrencyExchangeService:

    @staticmethod
    def _snapshot(db: Session, exchange: CurrencyExchange, user_id: Optional[int]):
        db.add(CurrencyExchangeHistory(
            currency_exc_id=exchange.currency_exc_id,
            company_id=exchange.company_id,
            currency_id=exchange.currency_id,
            currency_exc_rate=exchange.currency_exc_rate,
            currency_exc_type=exchange.currency_exc_type,
            exchange_method=exchange.exchange_method,
            currency_exc_status=exchange.currency_exc_status,
            user_id=user_id,
        ))

    @staticmethod
    def _find(db: Session, company_id: int, currency_id: int, exc_type: int,
              exclude_id: Optional[int] = None) -> Optional[CurrencyExchange]:
        query = db.query(CurrencyExchange).filter(
            CurrencyExchange.company_id == company_id,
            CurrencyExchange.currency_id == currency_id,
            CurrencyExchange.currency_exc_type == exc_type,
        )
        if exclude_id is not None:
            query = query.filter(CurrencyExchange.currency_exc_id != exclude_id)
        return query.first()

    @staticmethod
    def _active_base(db: Session, company_id: int, exclude_id: Optional[int] = None) -> Optional[CurrencyExchange]:
        query = db.query(CurrencyExchange).filter(
            CurrencyExchange.company_id == company_id,
            CurrencyExchange.currency_exc_type == CurrencyExchangeType.LOCAL,
            CurrencyExchange.currency_exc_status == STATUS_ACTIVE,
        )
        if exclude_id is not None:
            query = query.filter(CurrencyExchange.currency_exc_id != exclude_id)
        return query.first()

    @staticmethod
    def _active_for_currency(db: Session, company_id: int, currency_id: int) -> Optional[CurrencyExchange]:
        # LOCAL first, then STABLE, then REFERENCE
        return db.query(CurrencyExchange).filter(
            CurrencyExchange.company_id == company_id,
            CurrencyExchange.currency_id == currency_id,
            CurrencyExchange.currency_exc_status == STATUS_ACTIVE,
        ).order_by(CurrencyExchange.currency_exc_type).first()

    @staticmethod
    def list(db: Session, company_id: int):
        """Active exchanges of the company, by type then currency name"""
        return db.query(CurrencyExchange).join(
            Currency, CurrencyExchange.currency_id == Currency.currency_id
        ).filter(
            CurrencyExchange.company_id == company_id,
            CurrencyExchange.currency_exc_status == STATUS_ACTIVE,
        ).order_by(
            CurrencyExchange.currency_exc_type, Currency.currency_name
        ).all()

    @staticmethod
    def get(db: Session, company_id: int, currency_exc_id: int) -> CurrencyExchange:
        exchange = db.query(CurrencyExchange).filter(
            CurrencyExchange.currency_exc_id == currency_exc_id,
            CurrencyExchange.company_id == company_id,
        ).first()
        if not exchange:
            raise NotFoundError("Currency exchange not found")
        return exchange

    @staticmethod
    def get_base(db: Session, company_id: int) -> CurrencyExchange:
        base = CurrencyExchangeService._active_base(db, company_id)
        if not base:
            raise NotFoundError("Company has no base currency")
        return base

    @staticmethod
    def create(db: Session, company_id: int, data: dict, user_id: Optional[int] = None) -> CurrencyExchange:
        CurrencyService.get(db, data["currency_id"])

        exc_type = data.get("currency_exc_type", CurrencyExchangeType.REFERENCE)
        if CurrencyExchangeService._find(db, company_id, data["currency_id"], exc_type):
            raise AlreadyExistsError("This currency is already configured with that exchange type")

        status = data.get("currency_exc_status", STATUS_ACTIVE)
        if exc_type == CurrencyExchangeType.LOCAL and status == STATUS_ACTIVE \
                and CurrencyExchangeService._active_base(db, company_id):
            raise AlreadyExistsError("Company already has a base currency; use set-base to change it")

        exchange = CurrencyExchange(company_id=company_id, **data)
        db.add(exchange)
        db.flush()
        CurrencyExchangeService._snapshot(db, exchange, user_id)
        db.flush()

        logger.info(
            "Created currency exchange %s for company %s",
            exchange.currency_exc_id, company_id,
            extra={"currency_id": exchange.currency_id, "rate": exchange.currency_exc_rate}
        )
        return exchange

    @staticmethod
    def update(db: Session, company_id: int, currency_exc_id: int, data: dict,
               user_id: Optional[int] = None) -> CurrencyExchange:
        exchange = CurrencyExchangeService.get(db, company_id, currency_exc_id)
        data = drop_required_nulls(CurrencyExchange, data)

        currency_id = data.get("currency_id", exchange.currency_id)
        exc_type = data.get("currency_exc_type", exchange.currency_exc_type)
        status = data.get("currency_exc_status", exchange.currency_exc_status)

        if currency_id != exchange.currency_id:
            CurrencyService.get(db, currency_id)

        if (currency_id, exc_type) != (exchange.currency_id, exchange.currency_exc_type):
            if CurrencyExchangeService._find(db, company_id, currency_id, exc_type, exclude_id=currency_exc_id):
                raise AlreadyExistsError("This currency is already configured with that exchange type")

        if exc_type == CurrencyExchangeType.LOCAL and status == STATUS_ACTIVE \
                and CurrencyExchangeService._active_base(db, company_id, exclude_id=currency_exc_id):
            raise AlreadyExistsError("Company already has a base currency; use set-base to change it")

        # History keeps the state before the change
        CurrencyExchangeService._snapshot(db, exchange, user_id)
        apply_changes(exchange, data)
        db.flush()

        logger.info("Updated currency exchange %s for company %s", currency_exc_id, company_id)
        return exchange

    @staticmethod
    def convert(db: Session, company_id: int, from_currency_id: int, to_currency_id: int,
                amount: Decimal) -> dict:
        amount = Decimal(str(amount))
        if amount <= 0:
            raise InvalidOperationError("Amount must be greater than zero")

        source = CurrencyExchangeService._active_for_currency(db, company_id, from_currency_id)
        target = CurrencyExchangeService._active_for_currency(db, company_id, to_currency_id)
        if not source or not target:
            raise NotFoundError("Currencies not found for this company")

        if from_currency_id == to_currency_id:
            converted, rate, method = amount, Decimal("1"), "NONE"
        else:
            converted, rate = convert_amount(
                amount, source.currency_exc_rate, target.currency_exc_rate, target.exchange_method
            )
            method = ExchangeMethod.NAMES.get(target.exchange_method, "MULTIPLY")

        return {
            "from_currency_id": from_currency_id,
            "to_currency_id": to_currency_id,
            "amount": amount,
            "converted_amount": converted,
            "exchange_rate": rate,
            "exchange_method": method,
        }

    @staticmethod
    def history(db: Session, company_id: int, page: int, limit: int, currency_id: Optional[int] = None):
        query = db.query(CurrencyExchangeHistory).filter(
            CurrencyExchangeHistory.company_id == company_id
        )
        if currency_id:
            query = query.filter(CurrencyExchangeHistory.currency_id == currency_id)
        query = query.order_by(
            CurrencyExchangeHistory.created_at.desc(),
            CurrencyExchangeHistory.history_id.desc()
        )
        return paginate(query, page, limit)

    @staticmethod
    def set_base(db: Session, company_id: int, currency_id: int, user_id: Optional[int] = None) -> CurrencyExchange:
        """
        Make ``currency_id`` the company's base currency.

        The previous base is demoted to REFERENCE (or STABLE when the currency
        already holds a REFERENCE row); when both are taken it is deactivated. Both
        rows are written to history in their new state.
        Runs inside the caller's transaction; nothing is committed here.
        """
        target = CurrencyExchangeService._active_for_currency(db, company_id, currency_id)
        if not target:
            raise NotFoundError("Currency is not configured for this company")

        current = CurrencyExchangeService._active_base(db, company_id)
        if current is not None and current.currency_id == currency_id:
            return current

        if current is not None:
            for demoted_type in (CurrencyExchangeType.REFERENCE, CurrencyExchangeType.STABLE):
                if not CurrencyExchangeService._find(db, company_id, current.currency_id, demoted_type):
                    current.currency_exc_type = demoted_type
                    break
            else:
                current.currency_exc_status = STATUS_INACTIVE
            db.flush()
            CurrencyExchangeService._snapshot(db, current, user_id)

        # A base row left inactive by an earlier switch is revived instead of duplicated
        dormant = CurrencyExchangeService._find(db, company_id, currency_id, CurrencyExchangeType.LOCAL)
        if dormant is not None:
            target = dormant
        target.currency_exc_type = CurrencyExchangeType.LOCAL
        target.currency_exc_status = STATUS_ACTIVE
        db.flush()
        CurrencyExchangeService._snapshot(db, target, user_id)
        db.flush()

        logger.info(
            "Base currency of company %s set to currency %s",
            company_id, currency_id,
            extra={"previous_currency_id": current.currency_id if current else None}
        )
        return target
