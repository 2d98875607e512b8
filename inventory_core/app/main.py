import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .db import create_db_and_tables
from .logging_config import setup_logging
from .responses import error_body
from .services.common import ServiceError
from .auth import router as auth_router
from .users import router as users_router
from .customers import router as customers_router
from .routers.groups import router as groups_router
from .routers.countries import router as countries_router
from .routers.companies import router as companies_router
from .routers.taxes import router as taxes_router
from .routers.currencies import router as currencies_router
from .routers.currency_exchanges import router as currency_exchanges_router
from .routers.inventory_family import router as inventory_family_router
from .routers.inventory_storage import router as inventory_storage_router
from .routers.inventory_attributes import router as inventory_attributes_router
from .routers.inventory import router as inventory_router
from .routers.inventory_lots import router as inventory_lots_router
from .routers.types_of_prices import router as types_of_prices_router
from .routers.inventory_prices import router as inventory_prices_router
from .routers.inventory_variant_storages import router as inventory_variant_storages_router
from .routers.inventory_lots_storages import router as inventory_lots_storages_router
from .routers.inventory_movements import router as inventory_movements_router

API_PREFIX = "/api/v1"
SERVICE_NAME = "inventory-core"

logger = logging.getLogger(__name__)


def _validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for err in exc.errors():
        # Drop the "body" / "query" / "path" prefix
        location = [str(part) for part in err.get("loc", ())[1:]]
        errors.append({"field": ".".join(location) or None, "message": err.get("msg")})
    return errors


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("Service error on %s %s: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning(
                "Rejected %s %s: %s", request.method, request.url.path, exc.message,
                extra={"status_code": exc.status_code}
            )
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=error_body("Validation error", _validation_errors(exc)))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("Internal server error"))


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Inventory Core",
        description="Multi-company inventory, pricing and currency exchange backend",
        version="1.0.0"
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    for router in (
        auth_router,
        users_router,
        groups_router,
        countries_router,
        companies_router,
        customers_router,
        taxes_router,
        currencies_router,
        currency_exchanges_router,
        inventory_family_router,
        inventory_storage_router,
        inventory_attributes_router,
        inventory_lots_router,
        inventory_prices_router,
        inventory_variant_storages_router,
        inventory_lots_storages_router,
        inventory_movements_router,
        # /inventory/{inv_id} last so the nested /inventory/* prefixes win
        inventory_router,
        types_of_prices_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get(f"{API_PREFIX}/health", tags=["health"])
    def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
        }

    @app.on_event("startup")
    def on_startup():
        logger.info("Creating database tables at startup")
        create_db_and_tables()
        logger.info("Database ready")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("inventory_core.app.main:app", host="0.0.0.0", port=settings.port)
