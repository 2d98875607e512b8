"""
Groups, countries, companies and customers.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models import Group, Country, Company, Customer, STATUS_ACTIVE
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, paginate, apply_changes, drop_required_nulls
)

logger = logging.getLogger(__name__)


class GroupService:

    @staticmethod
    def list(db: Session, page: int, limit: int, status: Optional[int] = None):
        query = db.query(Group)
        if status is not None:
            query = query.filter(Group.group_status == status)
        return paginate(query.order_by(Group.group_name), page, limit)

    @staticmethod
    def get(db: Session, group_id: int) -> Group:
        group = db.get(Group, group_id)
        if not group:
            raise NotFoundError("Group not found")
        return group

    @staticmethod
    def create(db: Session, data: dict) -> Group:
        if db.query(Group).filter(Group.group_name == data["group_name"]).first():
            raise AlreadyExistsError(f"Group '{data['group_name']}' already exists")
        group = Group(**data)
        db.add(group)
        db.flush()
        logger.info("Created group %s", group.group_id)
        return group

    @staticmethod
    def update(db: Session, group_id: int, data: dict) -> Group:
        group = GroupService.get(db, group_id)
        data = drop_required_nulls(Group, data)
        name = data.get("group_name")
        if name and name != group.group_name:
            if db.query(Group).filter(Group.group_name == name, Group.group_id != group_id).first():
                raise AlreadyExistsError(f"Group '{name}' already exists")
        apply_changes(group, data)
        db.flush()
        return group


class CountryService:

    @staticmethod
    def list(db: Session, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE, search: Optional[str] = None):
        query = db.query(Country)
        if status is not None:
            query = query.filter(Country.country_status == status)
        if search:
            query = query.filter(Country.country_name.ilike(f"%{search}%"))
        return paginate(query.order_by(Country.country_name), page, limit)

    @staticmethod
    def list_all(db: Session) -> List[Country]:
        return db.query(Country).filter(
            Country.country_status == STATUS_ACTIVE
        ).order_by(Country.country_name).all()

    @staticmethod
    def list_by_region(db: Session, page: int, limit: int, continent: Optional[str] = None,
                       subcontinent: Optional[str] = None):
        """Active countries of a continent or subcontinent, by name"""
        query = db.query(Country).filter(Country.country_status == STATUS_ACTIVE)
        if continent is not None:
            query = query.filter(Country.country_continent == continent)
        if subcontinent is not None:
            query = query.filter(Country.country_subcontinent == subcontinent)
        return paginate(query.order_by(Country.country_name), page, limit)

    @staticmethod
    def region_names(db: Session, column) -> List[str]:
        """Distinct non-empty values of a region column among active countries"""
        rows = db.query(column).filter(
            Country.country_status == STATUS_ACTIVE,
            column.isnot(None)
        ).distinct().order_by(column).all()
        return [name for (name,) in rows]

    @staticmethod
    def get(db: Session, country_id: int) -> Country:
        country = db.get(Country, country_id)
        if not country:
            raise NotFoundError("Country not found")
        return country

    @staticmethod
    def get_by_iso2(db: Session, iso2: str) -> Country:
        country = db.query(Country).filter(Country.country_iso2 == iso2.upper()).first()
        if not country:
            raise NotFoundError(f"Country '{iso2.upper()}' not found")
        return country

    @staticmethod
    def create(db: Session, data: dict) -> Country:
        if db.query(Country).filter(Country.country_iso2 == data["country_iso2"]).first():
            raise AlreadyExistsError(f"Country '{data['country_iso2']}' already exists")
        country = Country(**data)
        db.add(country)
        db.flush()
        return country

    @staticmethod
    def update(db: Session, country_id: int, data: dict) -> Country:
        country = CountryService.get(db, country_id)
        data = drop_required_nulls(Country, data)
        apply_changes(country, data)
        db.flush()
        return country


class CompanyService:

    @staticmethod
    def _check_references(db: Session, data: dict):
        if data.get("group_id") is not None and db.get(Group, data["group_id"]) is None:
            raise NotFoundError("Group not found")
        if data.get("country_id") is not None and db.get(Country, data["country_id"]) is None:
            raise NotFoundError("Country not found")

    @staticmethod
    def _check_unique(db: Session, data: dict, exclude_id: Optional[int] = None):
        for field in ("company_name", "company_id_fiscal"):
            value = data.get(field)
            if not value:
                continue
            query = db.query(Company).filter(getattr(Company, field) == value)
            if exclude_id is not None:
                query = query.filter(Company.company_id != exclude_id)
            if query.first():
                raise AlreadyExistsError(f"A company with {field} '{value}' already exists")

    @staticmethod
    def _check_license(start, end):
        if start and end and start > end:
            raise InvalidOperationError("company_start must not be after company_end")

    @staticmethod
    def list(db: Session, page: int, limit: int, status: Optional[int] = None, search: Optional[str] = None):
        query = db.query(Company)
        if status is not None:
            query = query.filter(Company.company_status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                (Company.company_name.ilike(pattern)) |
                (Company.company_id_fiscal.ilike(pattern))
            )
        return paginate(query.order_by(Company.company_name), page, limit)

    @staticmethod
    def get(db: Session, company_id: int) -> Company:
        company = db.get(Company, company_id)
        if not company:
            raise NotFoundError("Company not found")
        return company

    @staticmethod
    def create(db: Session, data: dict) -> Company:
        CompanyService._check_unique(db, data)
        CompanyService._check_references(db, data)
        CompanyService._check_license(data.get("company_start"), data.get("company_end"))

        company = Company(**data)
        db.add(company)
        db.flush()
        logger.info("Created company %s (%s)", company.company_id, company.company_name)
        return company

    @staticmethod
    def update(db: Session, company_id: int, data: dict) -> Company:
        company = CompanyService.get(db, company_id)
        data = drop_required_nulls(Company, data)
        CompanyService._check_unique(db, data, exclude_id=company_id)
        CompanyService._check_references(db, data)
        CompanyService._check_license(
            data.get("company_start", company.company_start),
            data.get("company_end", company.company_end),
        )
        apply_changes(company, data)
        db.flush()
        return company


class CustomerService:

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE, search: Optional[str] = None):
        query = db.query(Customer).filter(Customer.company_id == company_id)
        if status is not None:
            query = query.filter(Customer.cust_status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                (Customer.cust_code.ilike(pattern)) |
                (Customer.cust_description.ilike(pattern)) |
                (Customer.cust_id_fiscal.ilike(pattern))
            )
        return paginate(query.order_by(Customer.cust_description), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, cust_id: int) -> Customer:
        customer = db.query(Customer).filter(
            Customer.cust_id == cust_id,
            Customer.company_id == company_id
        ).first()
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    @staticmethod
    def _check_code(db: Session, company_id: int, code: str, exclude_id: Optional[int] = None):
        query = db.query(Customer).filter(Customer.company_id == company_id, Customer.cust_code == code)
        if exclude_id is not None:
            query = query.filter(Customer.cust_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Customer with code '{code}' already exists")

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> Customer:
        CustomerService._check_code(db, company_id, data["cust_code"])
        customer = Customer(company_id=company_id, **data)
        db.add(customer)
        db.flush()
        return customer

    @staticmethod
    def update(db: Session, company_id: int, cust_id: int, data: dict) -> Customer:
        customer = CustomerService.get(db, company_id, cust_id)
        data = drop_required_nulls(Customer, data)
        if data.get("cust_code") and data["cust_code"] != customer.cust_code:
            CustomerService._check_code(db, company_id, data["cust_code"], exclude_id=cust_id)
        apply_changes(customer, data)
        db.flush()
        return customer
