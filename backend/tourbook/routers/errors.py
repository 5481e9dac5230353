from fastapi import HTTPException, status

from ..domain.errors import (
    DomainError,
    ExhaustedKeyspaceError,
    InsufficientCapacityError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from ..utils.audit_log import emit_audit_log

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientCapacityError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ValidationFailedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ExhaustedKeyspaceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: DomainError) -> HTTPException:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def audit(**kwargs: object) -> None:
    """Emit an audit record, turning a logging failure into a 500."""
    try:
        emit_audit_log(**kwargs)  # type: ignore[arg-type]
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failure") from exc
