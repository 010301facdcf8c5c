# vendor_contracts/jobs/scheduled.py
"""
Scheduled background jobs triggered by Cloud Scheduler → API endpoints.

Jobs:
  - contract-expiry-alerts: Daily at 9:00 UTC
"""

from datetime import date
from html import escape

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
import structlog

from vendor_contracts.config import settings
from vendor_contracts.dependencies import get_contract_engine
from vendor_contracts.schemas.contract import Contract
from vendor_contracts.services.contract_service import ContractEngine
from vendor_contracts.services.lifecycle import days_until
from vendor_contracts.services.notification_service import send_notification

logger = structlog.get_logger()
router = APIRouter()


async def _require_internal_auth(request: Request):
    """
    Verify request comes from Cloud Scheduler or internal service.
    Validates X-Internal-Secret header against INTERNAL_JOB_SECRET from settings.
    """
    secret = settings.INTERNAL_JOB_SECRET
    if not secret:
        # In development (DEBUG=True), allow unauthenticated internal calls
        if settings.DEBUG:
            return
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="INTERNAL_JOB_SECRET is not configured",
        )
    provided = request.headers.get("X-Internal-Secret")
    if not provided or provided != secret:
        logger.warning("internal_auth_failed", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )


def digest_items(contracts: list[Contract], today: date) -> str:
    """HTML list items for the digest; contract text is escaped."""
    return "".join(
        f"<li><strong>{escape(c.title)}</strong> ({escape(c.vendor_name)}): "
        f"{days_until(c.end_date, today)} days left</li>"
        for c in contracts
    )


@router.post("/contract-expiry-alerts")
async def contract_expiry_alerts(
    background_tasks: BackgroundTasks,
    engine: ContractEngine = Depends(get_contract_engine),
    _auth: None = Depends(_require_internal_auth),
):
    """Daily: email a digest of Active contracts ending within the expiry window."""
    await engine.reload()
    within_days = settings.CONTRACT_EXPIRY_WINDOW_DAYS
    expiring = engine.expiring(within_days)
    today = engine.today()

    for contract in expiring:
        logger.info(
            "contract_expiring",
            contract_id=contract.id,
            vendor_name=contract.vendor_name,
            days_remaining=days_until(contract.end_date, today),
        )

    if expiring:
        items = digest_items(expiring, today)
        background_tasks.add_task(
            send_notification,
            "contract_expiry_digest",
            settings.contract_notify_list,
            {"count": len(expiring), "within_days": within_days, "items": items},
        )

    logger.info("contract_expiry_check_complete", expiring_count=len(expiring))
    return {"expiring": len(expiring)}
