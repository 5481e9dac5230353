import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from tourbook.domain.errors import (
    DomainError,
    ExhaustedKeyspaceError,
    InsufficientCapacityError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from tourbook.main import app as tourbook_app
from tourbook.main import storage_error_handler
from tourbook.routers.errors import http_error


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (NotFoundError("missing"), 404),
        (InsufficientCapacityError(requested=3, remaining=1), 409),
        (InvalidStateError("canceled"), 409),
        (ValidationFailedError("bad"), 422),
        (ExhaustedKeyspaceError("full"), 503),
        (DomainError("other"), 400),
    ],
)
def test_http_error_maps_domain_errors(exc: DomainError, status_code: int) -> None:
    assert http_error(exc).status_code == status_code


def test_insufficient_capacity_message_names_remaining() -> None:
    assert http_error(InsufficientCapacityError(requested=3, remaining=1)).detail == "requested 3 seats but only 1 remain"


def test_storage_failure_returns_500_without_internals() -> None:
    app = FastAPI()
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)

    @app.get("/boom")
    async def boom() -> None:
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    client = TestClient(app, raise_server_exceptions=False)
    res = client.get("/boom")
    assert res.status_code == 500
    assert res.json() == {"detail": "storage failure"}


def test_health_endpoint() -> None:
    client = TestClient(tourbook_app)
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
    assert res.headers.get("X-Request-ID")
