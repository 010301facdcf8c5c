"""
Unit tests for vendor_contracts/services/notification_service.py

Email transport is patched out; no Brevo calls are made.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from vendor_contracts.jobs.scheduled import digest_items
from vendor_contracts.schemas.contract import Contract, ContractStatus, ContractType
from vendor_contracts.services.notification_service import (
    ContractNotifier,
    contract_context,
    send_notification,
)

SEND_EMAIL = "vendor_contracts.services.notification_service.send_email"


def _make_contract() -> Contract:
    ts = datetime(2026, 3, 1, tzinfo=timezone.utc)
    return Contract(
        id="contract-42",
        vendor_name="Cobalt Cloud Services",
        title="Hosting SOW",
        type=ContractType.SOW,
        value=Decimal("48500.5"),
        start_date=date(2026, 4, 1),
        end_date=date(2027, 3, 31),
        status=ContractStatus.SIGNED,
        created_at=ts,
        updated_at=ts,
    )


def test_contract_context():
    ctx = contract_context(_make_contract())
    assert ctx == {
        "title": "Hosting SOW",
        "vendor_name": "Cobalt Cloud Services",
        "type": "SOW",
        "status": "Signed",
        "value_display": "48,500.50",
        "start_date": "2026-04-01",
        "end_date": "2027-03-31",
    }


@pytest.mark.asyncio
async def test_send_notification_renders_template():
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        ok = await send_notification(
            "contract_notice", ["legal@acme.com"], contract_context(_make_contract())
        )

    assert ok is True
    to, subject, html = mock_send.call_args.args
    assert to == ["legal@acme.com"]
    assert "Hosting SOW" in subject
    assert "Signed" in subject
    assert "Cobalt Cloud Services" in html



@pytest.mark.asyncio
async def test_send_notification_escapes_contract_text():
    contract = _make_contract().model_copy(
        update={"title": "<script>alert(1)</script>", "vendor_name": "Smith & Sons"}
    )
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        await send_notification("contract_created", ["legal@acme.com"], contract_context(contract))

    _, subject, html = mock_send.call_args.args
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "Smith &amp; Sons" in html
    assert "<script>alert(1)</script>" in subject


@pytest.mark.asyncio
async def test_expiry_digest_keeps_item_markup():
    contract = _make_contract().model_copy(update={"title": "Ops & <Support>"})
    items = digest_items([contract], date(2027, 3, 1))
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        await send_notification(
            "contract_expiry_digest",
            ["legal@acme.com"],
            {"count": 1, "within_days": 30, "items": items},
        )

    html = mock_send.call_args.args[2]
    assert "<li><strong>Ops &amp; &lt;Support&gt;</strong> (Cobalt Cloud Services): 30 days left</li>" in html

@pytest.mark.asyncio
async def test_send_notification_unknown_template():
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        ok = await send_notification("contract_renewal", ["legal@acme.com"], {})

    assert ok is False
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_send_notification_without_recipients():
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        ok = await send_notification("contract_notice", [], contract_context(_make_contract()))

    assert ok is False
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_send_notification_missing_context_key():
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        ok = await send_notification("contract_notice", ["legal@acme.com"], {"title": "x"})

    assert ok is False
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_notifier_swallows_transport_errors():
    notifier = ContractNotifier(recipients=["legal@acme.com"])
    with patch(SEND_EMAIL, new=AsyncMock(side_effect=RuntimeError("connection refused"))):
        # must not raise
        await notifier.notify(_make_contract(), template_id="contract_created")


@pytest.mark.asyncio
async def test_notifier_uses_configured_recipients():
    notifier = ContractNotifier(recipients=["a@acme.com", "b@acme.com"])
    with patch(SEND_EMAIL, new=AsyncMock(return_value=True)) as mock_send:
        await notifier.notify(_make_contract())

    assert mock_send.call_args.args[0] == ["a@acme.com", "b@acme.com"]
