from typing import Any, Optional

from .services.common import pagination_meta


def success(message: str, data: Any = None, pagination: Optional[dict] = None) -> dict:
    return {"success": True, "message": message, "data": data, "pagination": pagination}


def paginated(message: str, items: list, total: int, page: int, limit: int) -> dict:
    return success(message, items, pagination_meta(total, page, limit))


def error_body(message: str, errors: Optional[list] = None) -> dict:
    return {"success": False, "message": message, "errors": errors}
