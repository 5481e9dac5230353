import logging
from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from ..config import get_settings
from ..schemas import LoginRequest, TokenRead
from ..utils.auth import create_access_token, credentials_match

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["auth"])


@router.post("/login", response_model=TokenRead)
async def login(payload: LoginRequest) -> TokenRead:
    settings = get_settings()
    if not credentials_match(
        payload.username,
        payload.password,
        expected_username=settings.admin_username,
        expected_password=settings.admin_password,
    ):
        logger.warning("rejected admin login for %r", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token(
        subject=payload.username,
        secret=settings.auth_secret,
        algorithm=settings.auth_algorithm,
        expires_delta=timedelta(minutes=settings.auth_token_minutes),
    )
    return TokenRead(access_token=token)
