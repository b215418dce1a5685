import json
from decimal import Decimal
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from redis.exceptions import RedisError

from chauffeur_booking.core.config import CHARGE_COMPLETED_JOB, JOB_ATTEMPTS, PAYMENTS_QUEUE
from chauffeur_booking.core.dependencies import get_gateway, job_queue
from chauffeur_booking.core.errors import TransientInfraError
from chauffeur_booking.core.logging_config import get_logger
from chauffeur_booking.services.reconciliation import ChargeCompletedEvent

router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger("payment")

HANDLED_EVENTS = ("payment.captured", "payment_link.paid")


def extract_charge_event(body: dict) -> ChargeCompletedEvent:
    payload = body.get("payload") or {}
    payment = (payload.get("payment") or {}).get("entity") or {}
    link = (payload.get("payment_link") or {}).get("entity") or {}

    amount = payment.get("amount")
    return ChargeCompletedEvent(
        tx_ref=link.get("reference_id") or (payment.get("notes") or {}).get("tx_ref"),
        provider_charge_id=payment.get("id"),
        amount=Decimal(amount) / 100 if amount is not None else None,
        currency=payment.get("currency"),
    )


# ---------------------------------------------------------------------
# PROVIDER WEBHOOK
# ---------------------------------------------------------------------
@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: str = Header(default=""),
    gateway=Depends(get_gateway),
):
    raw = (await request.body()).decode()

    if not x_razorpay_signature or not gateway.verify_webhook_signature(raw, x_razorpay_signature):
        logger.warning("Webhook rejected: invalid signature")
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    body = json.loads(raw)
    event_name = body.get("event")
    if event_name not in HANDLED_EVENTS:
        logger.info(f"Webhook ignored | event={event_name}")
        return {"status": "ignored"}

    event = extract_charge_event(body)
    if not event.provider_charge_id:
        logger.warning(f"Webhook without charge id ignored | event={event_name}")
        return {"status": "ignored"}

    queue = job_queue(PAYMENTS_QUEUE)
    if queue.client is None:
        # provider retries on non-2xx
        raise TransientInfraError("Payment queue unavailable")

    try:
        job_id = queue.enqueue(
            CHARGE_COMPLETED_JOB,
            event.to_payload(),
            job_id=f"charge-{event.provider_charge_id}",
            attempts=JOB_ATTEMPTS,
        )
    except RedisError as e:
        raise TransientInfraError(f"Could not queue charge {event.provider_charge_id}: {e}") from e
    logger.info(f"Charge queued for reconciliation | tx_ref={event.tx_ref} | job={job_id}")
    return {"status": "queued", "job_id": job_id}
