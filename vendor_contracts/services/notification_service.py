"""
Notification service: template rendering and dispatch via email.

Contract notifications are fire-and-forget: a failed or slow notification
never blocks or aborts the contract mutation that triggered it.
"""

from html import escape
from typing import Optional

import structlog

from vendor_contracts.config import settings
from vendor_contracts.schemas.contract import Contract
from vendor_contracts.services.email_service import send_email

logger = structlog.get_logger()

# ---------- Template registry ----------

TEMPLATES = {
    "contract_created": {
        "subject": "[Contracts] {title}: New {type} with {vendor_name}",
        "html": (
            "<h2>New Contract</h2>"
            "<p>A new contract <strong>{title}</strong> has been created for "
            "<strong>{vendor_name}</strong> and is ready for your review.</p>"
            "<p><strong>Value:</strong> {value_display}</p>"
            "<p><strong>Term:</strong> {start_date} to {end_date}</p>"
            "<p><strong>Status:</strong> {status}</p>"
        ),
    },
    "contract_notice": {
        "subject": "[Contracts] {title}: {status}",
        "html": (
            "<h2>Contract Update</h2>"
            "<p>The contract <strong>{title}</strong> with <strong>{vendor_name}</strong> "
            "is currently <strong>{status}</strong>.</p>"
            "<p><strong>Term:</strong> {start_date} to {end_date}</p>"
        ),
    },
    "contract_expiry_digest": {
        "subject": "[Contracts] {count} contract(s) expiring within {within_days} days",
        "html": (
            "<h2>Contracts Expiring Soon</h2>"
            "<ul>{items}</ul>"
            "<p>Please review renewals before the end dates.</p>"
        ),
        # Built by the caller from already-escaped fragments
        "html_safe": ("items",),
    },
}


def _format_value(value) -> str:
    return f"{value:,.2f}"


def _escape_context(context: dict, html_safe) -> dict:
    return {
        key: value if key in html_safe else escape(str(value))
        for key, value in context.items()
    }


def contract_context(contract: Contract) -> dict:
    return {
        "title": contract.title,
        "vendor_name": contract.vendor_name,
        "type": contract.type.value,
        "status": contract.status.value,
        "value_display": _format_value(contract.value),
        "start_date": contract.start_date.isoformat(),
        "end_date": contract.end_date.isoformat(),
    }


async def send_notification(
    template_id: str,
    recipient_emails: list[str],
    context: dict,
) -> bool:
    """Render template and dispatch email."""
    template = TEMPLATES.get(template_id)
    if not template:
        logger.warning("notification_template_not_found", template_id=template_id)
        return False

    emails = list(recipient_emails) if recipient_emails else []
    if not emails:
        logger.warning("notification_no_recipients", template_id=template_id)
        return False

    try:
        subject = template["subject"].format(**context)
        html = template["html"].format(**_escape_context(context, template.get("html_safe", ())))
    except KeyError as e:
        logger.error("notification_template_render_error", template_id=template_id, missing_key=str(e))
        return False

    result = await send_email(emails, subject, html)

    logger.info(
        "notification_sent",
        template_id=template_id,
        recipients=emails,
        success=result,
    )
    return result


class ContractNotifier:
    """Notification collaborator for contract events."""

    def __init__(self, recipients: Optional[list[str]] = None):
        self.recipients = recipients if recipients is not None else settings.contract_notify_list

    async def notify(self, contract: Contract, template_id: str = "contract_notice") -> None:
        try:
            await send_notification(template_id, self.recipients, contract_context(contract))
        except Exception as exc:
            # Notification failures must never abort a contract mutation
            logger.warning(
                "contract_notification_failed",
                contract_id=contract.id,
                template_id=template_id,
                error=str(exc),
            )
