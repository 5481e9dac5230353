import secrets
from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

ADMIN_ROLE = "admin"


def create_access_token(
    *,
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=30))
    payload = {"sub": subject, "role": ADMIN_ROLE, "iat": now, "exp": exp}
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> str:
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if not sub:
        raise ValueError("token missing sub")
    if payload.get("role") != ADMIN_ROLE:
        raise ValueError("token is not an admin token")
    return str(sub)


def credentials_match(username: str, password: str, *, expected_username: str, expected_password: str) -> bool:
    # An unset admin password disables login entirely.
    if not expected_password:
        return False
    user_ok = secrets.compare_digest(username.encode(), expected_username.encode())
    pass_ok = secrets.compare_digest(password.encode(), expected_password.encode())
    return user_ok and pass_ok
