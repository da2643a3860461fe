import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from storefront import config
from storefront.db import init_db
from storefront.errors import StoreError, translate_db_error
from storefront.routers import auth, cart, coupons, delivery, orders, products, users
from storefront.telegram.subscribe import start_polling

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)

# Сессии (user_id / role после логина)
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)


# ==== Errors ====
def _error_response(status_code: int, body: dict, exc: Exception = None) -> JSONResponse:
    if config.DEBUG and exc is not None:
        body["debug"] = {
            "message": str(exc),
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    return JSONResponse(body, status_code=status_code)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {
            "error": "Validation failed",
            "message": "The request did not pass validation",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
        status_code=400,
    )


@app.exception_handler(SQLAlchemyError)
async def db_error_handler(request: Request, exc: SQLAlchemyError):
    err = translate_db_error(exc)
    logger.error("Ошибка БД на %s %s: %s", request.method, request.url.path, exc)
    # 5xx: текст ошибки драйвера наружу только в DEBUG
    return _error_response(err.status_code, err.to_dict(), exc if err.status_code >= 500 else None)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Необработанная ошибка на %s %s", request.method, request.url.path)
    return _error_response(
        500,
        {"error": "Internal server error", "message": "An unexpected error occurred"},
        exc,
    )


# ==== Routers ====
for module in (auth, users, products, delivery, cart, coupons, orders):
    app.include_router(module.router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok", "env": config.ENV}


@app.on_event("startup")
async def startup_event():
    if config.AUTO_CREATE_TABLES:
        init_db()
    logger.info("🚀 %s запущен (env=%s)", config.APP_NAME, config.ENV)
    start_polling()
