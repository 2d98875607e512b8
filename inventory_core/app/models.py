"""
Tenancy, identity and reference data models.

Companies partition almost every other table through ``company_id``.
Users reach companies through ``users_companies``; admin users are not
bound to any company and pick one per request.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, SmallInteger, String, DateTime, Date, ForeignKey, Text,
    Boolean, Numeric, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from .db import Base


# =============================================================================
# STATUS FLAGS
# =============================================================================

STATUS_ACTIVE = 1
STATUS_INACTIVE = 0


class CurrencyExchangeType:
    """Role of a configured exchange within a company"""
    LOCAL = 1       # base currency
    STABLE = 2
    REFERENCE = 3

    ALL = (LOCAL, STABLE, REFERENCE)


class ExchangeMethod:
    """How an amount is converted into the target currency"""
    DIVIDE = 1
    MULTIPLY = 2

    ALL = (DIVIDE, MULTIPLY)
    NAMES = {DIVIDE: "DIVIDE", MULTIPLY: "MULTIPLY"}


class TaxType:
    EXEMPT = 1
    PERCENT = 2
    FIXED = 3

    ALL = (EXEMPT, PERCENT, FIXED)


# =============================================================================
# USERS & TENANCY
# =============================================================================

class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    user_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    is_admin = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    companies = relationship("Company", secondary="users_companies", back_populates="users")

    @property
    def is_active(self) -> bool:
        return self.user_status == STATUS_ACTIVE

    @property
    def company_ids(self):
        return [c.company_id for c in self.companies]


class UserCompany(Base):
    __tablename__ = "users_companies"

    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.company_id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Group(Base):
    __tablename__ = "groups"

    group_id = Column(Integer, primary_key=True, index=True)
    group_name = Column(String(100), unique=True, nullable=False)
    group_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    companies = relationship("Company", back_populates="group")


class Country(Base):
    __tablename__ = "countries"

    country_id = Column(Integer, primary_key=True, index=True)
    country_iso2 = Column(String(2), unique=True, nullable=False)
    country_iso3 = Column(String(3), nullable=True)
    country_name = Column(String(100), nullable=False)
    country_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    country_continent = Column(String(50), nullable=True, index=True)
    country_subcontinent = Column(String(50), nullable=True, index=True)
    country_currency_code = Column(String(5), nullable=True)
    country_phone_code = Column(String(10), nullable=True)


class Company(Base):
    __tablename__ = "companies"

    company_id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(150), unique=True, nullable=False)
    company_id_fiscal = Column(String(30), unique=True, nullable=False)
    company_email = Column(String(100), nullable=True)
    company_phone1 = Column(String(20), nullable=True)
    company_phone2 = Column(String(20), nullable=True)
    company_address = Column(Text, nullable=True)
    company_website = Column(String(150), nullable=True)
    company_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    company_start = Column(Date, nullable=True)
    company_end = Column(Date, nullable=True)
    group_id = Column(Integer, ForeignKey("groups.group_id"), nullable=True)
    country_id = Column(Integer, ForeignKey("countries.country_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    group = relationship("Group", back_populates="companies")
    country = relationship("Country")
    users = relationship("User", secondary="users_companies", back_populates="companies")


class Customer(Base):
    __tablename__ = "customers"

    cust_id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    cust_code = Column(String(20), nullable=False)
    cust_id_fiscal = Column(String(30), nullable=True)
    cust_description = Column(String(150), nullable=False)
    cust_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    cust_exempt = Column(SmallInteger, nullable=False, default=0)
    cust_address = Column(Text, nullable=True)
    cust_email = Column(String(100), nullable=True)
    cust_phone1 = Column(String(20), nullable=True)
    cust_phone2 = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('company_id', 'cust_code', name='uq_customer_company_code'),
    )


# =============================================================================
# CURRENCIES & TAXES
# =============================================================================

class Currency(Base):
    """Global currency catalog, shared by every company"""
    __tablename__ = "currencies"

    currency_id = Column(Integer, primary_key=True, index=True)
    currency_iso_code = Column(String(5), unique=True, nullable=False)
    currency_name = Column(String(40), nullable=False)
    currency_symbol = Column(String(10), nullable=True)
    currency_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)


class CurrencyExchange(Base):
    """
    A company's configured rate for one currency, relative to its base.

    The LOCAL row is the company's base currency; there is at most one.
    """
    __tablename__ = "currency_exchanges"

    currency_exc_id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    currency_id = Column(Integer, ForeignKey("currencies.currency_id"), nullable=False)
    currency_exc_rate = Column(Numeric(18, 8), nullable=False)
    currency_exc_type = Column(SmallInteger, nullable=False, default=CurrencyExchangeType.REFERENCE)
    exchange_method = Column(SmallInteger, nullable=False, default=ExchangeMethod.MULTIPLY)
    currency_exc_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    currency = relationship("Currency")

    __table_args__ = (
        UniqueConstraint('company_id', 'currency_id', 'currency_exc_type', name='uq_exchange_company_currency_type'),
    )


class CurrencyExchangeHistory(Base):
    """Snapshot of an exchange row each time it is created or changed"""
    __tablename__ = "currency_exchange_history"

    history_id = Column(Integer, primary_key=True, index=True)
    currency_exc_id = Column(Integer, ForeignKey("currency_exchanges.currency_exc_id"), nullable=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False)
    currency_id = Column(Integer, ForeignKey("currencies.currency_id"), nullable=False)
    currency_exc_rate = Column(Numeric(18, 8), nullable=False)
    currency_exc_type = Column(SmallInteger, nullable=False)
    exchange_method = Column(SmallInteger, nullable=False)
    currency_exc_status = Column(SmallInteger, nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    currency = relationship("Currency")

    __table_args__ = (
        Index('ix_exchange_history_company_date', 'company_id', 'created_at'),
    )


class Tax(Base):
    __tablename__ = "taxes"

    tax_id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    tax_code = Column(String(20), nullable=False)
    tax_name = Column(String(50), nullable=False)
    tax_description = Column(String(150), nullable=True)
    tax_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    tax_type = Column(SmallInteger, nullable=False, default=TaxType.PERCENT)
    tax_value = Column(Numeric(10, 4), nullable=False, default=0)
    currency_id = Column(Integer, ForeignKey("currencies.currency_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('company_id', 'tax_code', name='uq_tax_company_code'),
    )


# =============================================================================
# AUDIT
# =============================================================================

class AuditLog(Base):
    """
    Audit trail of sensitive actions (logins, user administration).
    Stock and price changes have their own history tables.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=False)
    action = Column(String(30), nullable=False)
    old_values = Column(Text, nullable=True)
    new_values = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    ip_address = Column(String(50), nullable=True)
    user_agent = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_audit_entity', 'entity_type', 'entity_id'),
        Index('ix_audit_user_date', 'user_id', 'created_at'),
    )
