import logging
import secrets

from ..domain import checkin_codes
from ..domain.errors import ExhaustedKeyspaceError, NotFoundError
from ..domain.repositories import ReservationRepository, ReservationView

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 20


async def generate_checkin_code(
    res_repo: ReservationRepository,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    choose: checkin_codes.Chooser = secrets.choice,
) -> str:
    for attempt in range(1, max_attempts + 1):
        code = checkin_codes.random_code(choose)
        if not await res_repo.checkin_code_exists(code):
            return code
        logger.warning("check-in code collision on attempt %d", attempt)
    raise ExhaustedKeyspaceError(f"no free check-in code after {max_attempts} attempts")


async def lookup_by_code(res_repo: ReservationRepository, *, code: str) -> ReservationView:
    normalized = checkin_codes.normalize_code(code)
    if not normalized:
        raise NotFoundError("check-in code is empty")
    view = await res_repo.find_view_by_checkin_code(normalized)
    if view is None:
        raise NotFoundError("no reservation with that check-in code")
    return view
