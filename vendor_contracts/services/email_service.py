"""
Outbound email over the Brevo transactional API.

Only 5xx responses and network failures are retried; a 4xx means the message
itself is wrong and is reported once.
"""

from dataclasses import dataclass, field
import logging
from typing import List, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
import structlog

from vendor_contracts.config import settings

logger = structlog.get_logger()
_std_logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
ACCEPTED_STATUSES = (201, 202)

_http_client: Optional[httpx.AsyncClient] = None


@dataclass
class OutboundEmail:
    recipients: List[str]
    subject: str
    html: str
    sender_name: str = field(default_factory=lambda: settings.APP_NAME)
    sender_email: str = field(default_factory=lambda: settings.EMAIL_FROM_ADDRESS)

    def to_brevo(self) -> dict:
        return {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": address} for address in self.recipients],
            "subject": self.subject,
            "htmlContent": self.html,
        }


class TransientEmailError(Exception):
    """Brevo was unreachable or answered 5xx."""


def _client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
    return _http_client


@retry(
    retry=retry_if_exception_type(TransientEmailError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    before_sleep=before_sleep_log(_std_logger, logging.WARNING),
    reraise=True,
)
async def _deliver(message: OutboundEmail, api_key: str) -> httpx.Response:
    headers = {
        "accept": "application/json",
        "api-key": api_key,
        "content-type": "application/json",
    }
    try:
        response = await _client().post(BREVO_API_URL, headers=headers, json=message.to_brevo())
    except httpx.TransportError as exc:
        logger.warning("email_transport_error", error=str(exc), subject=message.subject)
        raise TransientEmailError(str(exc)) from exc
    if response.status_code >= 500:
        logger.warning("email_provider_unavailable", status_code=response.status_code)
        raise TransientEmailError(f"Brevo returned {response.status_code}")
    return response


async def send_email(to_emails: List[str], subject: str, html_content: str) -> bool:
    """Returns True when Brevo accepted the message."""
    if not settings.BREVO_API_KEY:
        logger.warning("email_skipped", reason="BREVO_API_KEY not set", subject=subject)
        return False
    if not to_emails:
        logger.warning("email_skipped", reason="no recipients", subject=subject)
        return False

    message = OutboundEmail(recipients=list(to_emails), subject=subject, html=html_content)
    try:
        response = await _deliver(message, settings.BREVO_API_KEY)
    except TransientEmailError as exc:
        logger.error("email_delivery_gave_up", error=str(exc), to=message.recipients, subject=subject)
        return False

    if response.status_code in ACCEPTED_STATUSES:
        logger.info(
            "email_accepted",
            to=message.recipients,
            subject=subject,
            message_id=response.json().get("messageId"),
        )
        return True

    logger.error(
        "email_rejected",
        status_code=response.status_code,
        response=response.text[:500],
        to=message.recipients,
        subject=subject,
    )
    return False
