from typing import Optional, List, Generic, TypeVar
from datetime import date, datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

T = TypeVar("T")


# =============================================================================
# RESPONSE ENVELOPE
# =============================================================================

class Pagination(BaseModel):
    total: int
    perPage: int
    currentPage: int
    lastPage: int


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
    pagination: Optional[Pagination] = None


class StatusPatch(BaseModel):
    """Body of the PATCH endpoints that only toggle a status flag"""
    status: int = Field(..., ge=0, le=1)


# =============================================================================
# AUTH
# =============================================================================

class LoginIn(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshIn(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: "UserOut"


# =============================================================================
# USERS
# =============================================================================

class CompanyBrief(BaseModel):
    company_id: int
    company_name: str
    company_status: int

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    is_admin: bool = False
    company_ids: List[int] = []

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        return v.strip().lower()


class CompanyAdminIn(BaseModel):
    """A user created by an administrator and assigned to one company"""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        return v.strip().lower()


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    is_admin: Optional[bool] = None


class UserOut(BaseModel):
    user_id: int
    username: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    user_status: int
    is_admin: bool
    last_login: Optional[datetime]
    created_at: datetime
    companies: List[CompanyBrief] = []

    class Config:
        from_attributes = True


class ChangePasswordIn(BaseModel):
    current_password: Optional[str] = None
    new_password: str


class UserCompaniesIn(BaseModel):
    company_ids: List[int] = Field(..., min_length=1)


class AuditLogOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    action: str
    old_values: Optional[str]
    new_values: Optional[str]
    user_id: Optional[int]
    ip_address: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# GROUPS, COUNTRIES, COMPANIES
# =============================================================================

class GroupIn(BaseModel):
    group_name: str = Field(..., min_length=1, max_length=100)
    group_status: int = Field(1, ge=0, le=1)


class GroupUpdate(BaseModel):
    group_name: Optional[str] = Field(None, min_length=1, max_length=100)
    group_status: Optional[int] = Field(None, ge=0, le=1)


class GroupOut(BaseModel):
    group_id: int
    group_name: str
    group_status: int

    class Config:
        from_attributes = True


class CountryIn(BaseModel):
    country_iso2: str = Field(..., min_length=2, max_length=2)
    country_iso3: Optional[str] = Field(None, min_length=3, max_length=3)
    country_name: str = Field(..., min_length=1, max_length=100)
    country_status: int = Field(1, ge=0, le=1)
    country_continent: Optional[str] = Field(None, max_length=50)
    country_subcontinent: Optional[str] = Field(None, max_length=50)
    country_currency_code: Optional[str] = Field(None, max_length=5)
    country_phone_code: Optional[str] = Field(None, max_length=10)

    @field_validator('country_iso2', 'country_iso3')
    @classmethod
    def upper_iso(cls, v):
        return v.upper() if v else v


class CountryUpdate(BaseModel):
    country_iso3: Optional[str] = Field(None, min_length=3, max_length=3)
    country_name: Optional[str] = Field(None, min_length=1, max_length=100)
    country_status: Optional[int] = Field(None, ge=0, le=1)
    country_continent: Optional[str] = Field(None, max_length=50)
    country_subcontinent: Optional[str] = Field(None, max_length=50)
    country_currency_code: Optional[str] = Field(None, max_length=5)
    country_phone_code: Optional[str] = Field(None, max_length=10)


class CountryOut(BaseModel):
    country_id: int
    country_iso2: str
    country_iso3: Optional[str]
    country_name: str
    country_status: int
    country_continent: Optional[str]
    country_subcontinent: Optional[str]
    country_currency_code: Optional[str]
    country_phone_code: Optional[str]

    class Config:
        from_attributes = True


class CompanyIn(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=150)
    company_id_fiscal: str = Field(..., min_length=1, max_length=30)
    company_email: Optional[EmailStr] = None
    company_phone1: Optional[str] = Field(None, max_length=20)
    company_phone2: Optional[str] = Field(None, max_length=20)
    company_address: Optional[str] = None
    company_website: Optional[str] = Field(None, max_length=150)
    company_status: int = Field(1, ge=0, le=1)
    company_start: Optional[date] = None
    company_end: Optional[date] = None
    group_id: Optional[int] = None
    country_id: Optional[int] = None


class CompanyUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=150)
    company_id_fiscal: Optional[str] = Field(None, min_length=1, max_length=30)
    company_email: Optional[EmailStr] = None
    company_phone1: Optional[str] = Field(None, max_length=20)
    company_phone2: Optional[str] = Field(None, max_length=20)
    company_address: Optional[str] = None
    company_website: Optional[str] = Field(None, max_length=150)
    company_status: Optional[int] = Field(None, ge=0, le=1)
    company_start: Optional[date] = None
    company_end: Optional[date] = None
    group_id: Optional[int] = None
    country_id: Optional[int] = None


class CompanyOut(BaseModel):
    company_id: int
    company_name: str
    company_id_fiscal: str
    company_email: Optional[str]
    company_phone1: Optional[str]
    company_phone2: Optional[str]
    company_address: Optional[str]
    company_website: Optional[str]
    company_status: int
    company_start: Optional[date]
    company_end: Optional[date]
    group_id: Optional[int]
    country_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


Token.model_rebuild()
