import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .routers import auth, checkin, history, payments, reservations, slots
from .utils.request_id import REQUEST_ID_HEADER, get_request_id, resolve_request_id, set_request_id

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.auto_create_schema:
        from .database import create_schema

        await create_schema()
        logger.info("database schema ensured")
    yield


app = FastAPI(title="Tourbook API", lifespan=lifespan)


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "storage failure on %s %s (request_id=%s): %s",
        request.method,
        request.url.path,
        get_request_id(),
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "storage failure"},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.middleware("http")(request_id_middleware)
app.add_exception_handler(SQLAlchemyError, storage_error_handler)

app.include_router(auth.router)
app.include_router(slots.router)
app.include_router(slots.admin_router)
app.include_router(reservations.router)
app.include_router(reservations.admin_router)
app.include_router(checkin.router)
app.include_router(history.router)
app.include_router(payments.router)
