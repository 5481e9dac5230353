import logging

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


# Provider callbacks are placeholders until provider credentials exist;
# payments are confirmed by an administrator.
@router.get("/mercadopago/callback")
async def mercadopago_callback(request: Request) -> dict[str, str]:
    logger.info("mercadopago callback received: %s", dict(request.query_params))
    return {"status": "ok", "provider": "mercadopago"}


@router.get("/paypal/callback")
async def paypal_callback(request: Request) -> dict[str, str]:
    logger.info("paypal callback received: %s", dict(request.query_params))
    return {"status": "ok", "provider": "paypal"}
