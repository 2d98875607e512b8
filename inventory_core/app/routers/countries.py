from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import get_db, get_current_user, require_admin, PageParams
from ..models import Country
from ..responses import success, paginated
from ..services.tenancy_service import CountryService

router = APIRouter(prefix="/countries", tags=["countries"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=schemas.ApiResponse[List[schemas.CountryOut]])
def list_countries(
    status: Optional[int] = Query(1, ge=0, le=1),
    search: Optional[str] = None,
    pages: PageParams = Depends(),
    db: Session = Depends(get_db)
):
    countries, total = CountryService.list(db, pages.page, pages.limit, status, search)
    return paginated("Countries retrieved", countries, total, pages.page, pages.limit)


@router.get("/all", response_model=schemas.ApiResponse[List[schemas.CountryOut]])
def list_all_countries(db: Session = Depends(get_db)):
    return success("Countries retrieved", CountryService.list_all(db))


@router.get("/continents", response_model=schemas.ApiResponse[List[str]])
def list_continents(db: Session = Depends(get_db)):
    return success("Continents retrieved", CountryService.region_names(db, Country.country_continent))


@router.get("/subcontinents", response_model=schemas.ApiResponse[List[str]])
def list_subcontinents(db: Session = Depends(get_db)):
    return success("Subcontinents retrieved", CountryService.region_names(db, Country.country_subcontinent))


@router.get("/continent/{continent}", response_model=schemas.ApiResponse[List[schemas.CountryOut]])
def list_countries_by_continent(continent: str, pages: PageParams = Depends(), db: Session = Depends(get_db)):
    countries, total = CountryService.list_by_region(db, pages.page, pages.limit, continent=continent)
    return paginated("Countries retrieved", countries, total, pages.page, pages.limit)


@router.get("/subcontinent/{subcontinent}", response_model=schemas.ApiResponse[List[schemas.CountryOut]])
def list_countries_by_subcontinent(subcontinent: str, pages: PageParams = Depends(), db: Session = Depends(get_db)):
    countries, total = CountryService.list_by_region(db, pages.page, pages.limit, subcontinent=subcontinent)
    return paginated("Countries retrieved", countries, total, pages.page, pages.limit)


@router.get("/iso2/{iso2}", response_model=schemas.ApiResponse[schemas.CountryOut])
def get_country_by_iso2(iso2: str, db: Session = Depends(get_db)):
    return success("Country retrieved", CountryService.get_by_iso2(db, iso2))


@router.get("/{country_id}", response_model=schemas.ApiResponse[schemas.CountryOut])
def get_country(country_id: int, db: Session = Depends(get_db)):
    return success("Country retrieved", CountryService.get(db, country_id))


@router.post("", response_model=schemas.ApiResponse[schemas.CountryOut], status_code=201,
             dependencies=[Depends(require_admin)])
def create_country(data: schemas.CountryIn, db: Session = Depends(get_db)):
    country = CountryService.create(db, data.model_dump())
    db.commit()
    db.refresh(country)
    return success("Country created", country)


@router.put("/{country_id}", response_model=schemas.ApiResponse[schemas.CountryOut],
            dependencies=[Depends(require_admin)])
def update_country(country_id: int, data: schemas.CountryUpdate, db: Session = Depends(get_db)):
    country = CountryService.update(db, country_id, data.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(country)
    return success("Country updated", country)
