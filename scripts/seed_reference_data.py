"""Seed the global currency and country catalogs.

Rows that already exist (by ISO code) are left untouched, so the script can
be re-run safely.

Usage:
  python scripts/seed_reference_data.py
"""
import logging

from inventory_core.app.db import SessionLocal, create_db_and_tables
from inventory_core.app.logging_config import setup_logging
from inventory_core.app.models import Currency, Country

logger = logging.getLogger("inventory_core.scripts.seed_reference_data")

CURRENCIES = [
    # iso, name, symbol
    ("USD", "US Dollar", "$"),
    ("EUR", "Euro", "€"),
    ("GBP", "Pound Sterling", "£"),
    ("VES", "Bolívar Soberano", "Bs."),
    ("COP", "Colombian Peso", "$"),
    ("MXN", "Mexican Peso", "$"),
    ("BRL", "Brazilian Real", "R$"),
    ("ARS", "Argentine Peso", "$"),
    ("CLP", "Chilean Peso", "$"),
    ("PEN", "Peruvian Sol", "S/"),
    ("CAD", "Canadian Dollar", "$"),
    ("JPY", "Yen", "¥"),
    ("CNY", "Yuan Renminbi", "¥"),
    ("INR", "Indian Rupee", "₹"),
]

COUNTRIES = [
    # iso2, iso3, name, continent, subcontinent, currency, phone
    ("US", "USA", "United States", "Americas", "Northern America", "USD", "+1"),
    ("CA", "CAN", "Canada", "Americas", "Northern America", "CAD", "+1"),
    ("MX", "MEX", "Mexico", "Americas", "Central America", "MXN", "+52"),
    ("VE", "VEN", "Venezuela", "Americas", "South America", "VES", "+58"),
    ("CO", "COL", "Colombia", "Americas", "South America", "COP", "+57"),
    ("BR", "BRA", "Brazil", "Americas", "South America", "BRL", "+55"),
    ("AR", "ARG", "Argentina", "Americas", "South America", "ARS", "+54"),
    ("CL", "CHL", "Chile", "Americas", "South America", "CLP", "+56"),
    ("PE", "PER", "Peru", "Americas", "South America", "PEN", "+51"),
    ("ES", "ESP", "Spain", "Europe", "Southern Europe", "EUR", "+34"),
    ("DE", "DEU", "Germany", "Europe", "Western Europe", "EUR", "+49"),
    ("GB", "GBR", "United Kingdom", "Europe", "Northern Europe", "GBP", "+44"),
    ("JP", "JPN", "Japan", "Asia", "Eastern Asia", "JPY", "+81"),
    ("CN", "CHN", "China", "Asia", "Eastern Asia", "CNY", "+86"),
    ("IN", "IND", "India", "Asia", "Southern Asia", "INR", "+91"),
]


def seed_currencies(db) -> int:
    existing = {code for (code,) in db.query(Currency.currency_iso_code).all()}
    added = 0
    for iso, name, symbol in CURRENCIES:
        if iso in existing:
            continue
        db.add(Currency(currency_iso_code=iso, currency_name=name, currency_symbol=symbol))
        added += 1
    return added


def seed_countries(db) -> int:
    existing = {code for (code,) in db.query(Country.country_iso2).all()}
    added = 0
    for iso2, iso3, name, continent, subcontinent, currency, phone in COUNTRIES:
        if iso2 in existing:
            continue
        db.add(Country(
            country_iso2=iso2,
            country_iso3=iso3,
            country_name=name,
            country_continent=continent,
            country_subcontinent=subcontinent,
            country_currency_code=currency,
            country_phone_code=phone,
        ))
        added += 1
    return added


def main():
    setup_logging(fmt="text")
    create_db_and_tables()
    db = SessionLocal()
    try:
        currencies = seed_currencies(db)
        countries = seed_countries(db)
        db.commit()
        logger.info("Seeded %d currencies and %d countries", currencies, countries)
    finally:
        db.close()


if __name__ == '__main__':
    main()
