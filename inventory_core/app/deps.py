"""Request dependencies shared by the routers"""

from fastapi import Query

from .db import get_db
from .security import get_current_user, require_admin, get_company_id

__all__ = ["get_db", "get_current_user", "require_admin", "get_company_id", "PageParams"]


class PageParams:
    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number, starting at 1"),
        limit: int = Query(10, ge=1, le=100, description="Rows per page"),
    ):
        self.page = page
        self.limit = limit
