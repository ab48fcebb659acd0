"""Rye Webhook Route — authenticate, parse and dispatch Rye events.

Invariants:
    - The signature is checked against the raw body bytes, before JSON parsing
    - Missing secret → 500, missing header → 400, mismatch → 401, bad JSON → 400
    - Once authenticated, every event is acknowledged with 200 (Rye retries otherwise)
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.errors import InvalidRequestError, WebhookSignatureError
from app.core.rye_webhook import SIGNATURE_HEADER, verify_signature
from app.infrastructure.database import get_db
from app.services.handle_webhook import WebhookHandlers

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/rye", tags=["webhooks"])


@router.post("/webhooks")
async def rye_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    secret = get_settings().rye_webhook_secret_key
    if not secret:
        logger.error("Rye webhook secret is not configured")
        raise WebhookSignatureError("Webhook secret not configured", 500)
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        raise WebhookSignatureError("Missing signature header", 400)
    raw_body = await request.body()
    if not verify_signature(secret, raw_body, signature):
        raise WebhookSignatureError("Invalid signature", 401)

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise InvalidRequestError("Invalid JSON payload")
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid JSON payload")

    event_type = payload.get("type")
    if event_type == "WEBHOOK_URL_VERIFICATION":
        challenge = (payload.get("data") or {}).get("challenge")
        if not isinstance(challenge, str):
            raise InvalidRequestError("Challenge missing in verification request", field="challenge")
        return {"challenge": challenge}

    try:
        outcome = await WebhookHandlers(db).handle(payload)
    except Exception as e:
        await db.rollback()
        logger.error(
            f"Rye webhook processing failed: {e}",
            exc_info=True, extra={"event_type": event_type},
        )
        outcome = "failed"
    return {"received": True, "outcome": outcome}
