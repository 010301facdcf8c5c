"""
Unit tests for vendor_contracts/services/lifecycle.py

Pure rules, no storage and no clock:
  - derive_status: both signatures + start date → Active / Signed
  - days_until: calendar-day arithmetic
  - list_expiring: strict 0 < days <= window, status filter
  - classify_expiry: expired / expiring-soon / expiring / active
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vendor_contracts.schemas.contract import (
    Contract,
    ContractStatus,
    ContractType,
    ExpiryState,
)
from vendor_contracts.services.lifecycle import (
    classify_expiry,
    days_until,
    derive_status,
    list_expiring,
)

TODAY = date(2026, 3, 15)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_contract(
    status: ContractStatus = ContractStatus.DRAFT,
    company_signed: bool = False,
    vendor_signed: bool = False,
    start_date: date = date(2026, 1, 1),
    end_date: date = date(2026, 12, 31),
    contract_id: str = "contract-1",
) -> Contract:
    ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return Contract(
        id=contract_id,
        vendor_name="Acme Staffing",
        title="Staffing MSA",
        type=ContractType.MSA,
        value=Decimal("1000"),
        start_date=start_date,
        end_date=end_date,
        status=status,
        company_signed=company_signed,
        vendor_signed=vendor_signed,
        created_at=ts,
        updated_at=ts,
    )


# ---------------------------------------------------------------------------
# derive_status
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("start_offset", [-400, -1, 0])
def test_both_signed_and_started_is_active(start_offset):
    contract = _make_contract(
        status=ContractStatus.UNDER_REVIEW,
        company_signed=True,
        vendor_signed=True,
        start_date=TODAY + timedelta(days=start_offset),
    )
    assert derive_status(contract, TODAY) == ContractStatus.ACTIVE


@pytest.mark.parametrize("start_offset", [1, 30])
def test_both_signed_future_start_is_signed(start_offset):
    contract = _make_contract(
        status=ContractStatus.DRAFT,
        company_signed=True,
        vendor_signed=True,
        start_date=TODAY + timedelta(days=start_offset),
        end_date=TODAY + timedelta(days=365),
    )
    assert derive_status(contract, TODAY) == ContractStatus.SIGNED


@pytest.mark.parametrize(
    "company_signed,vendor_signed",
    [(False, False), (True, False), (False, True)],
)
@pytest.mark.parametrize("status", list(ContractStatus))
def test_partial_signatures_leave_status_alone(company_signed, vendor_signed, status):
    contract = _make_contract(
        status=status, company_signed=company_signed, vendor_signed=vendor_signed
    )
    assert derive_status(contract, TODAY) == status


def test_derivation_overrides_terminal_status_once_fully_signed():
    """Re-derivation has no memory of manual overrides."""
    contract = _make_contract(
        status=ContractStatus.TERMINATED, company_signed=True, vendor_signed=True
    )
    assert derive_status(contract, TODAY) == ContractStatus.ACTIVE


# ---------------------------------------------------------------------------
# days_until
# ---------------------------------------------------------------------------


def test_days_until_counts_calendar_days():
    assert days_until(date(2026, 3, 25), TODAY) == 10
    assert days_until(TODAY, TODAY) == 0
    assert days_until(date(2026, 3, 14), TODAY) == -1


def test_days_until_across_month_boundary():
    assert days_until(date(2026, 4, 1), date(2026, 3, 31)) == 1


# ---------------------------------------------------------------------------
# list_expiring
# ---------------------------------------------------------------------------


def test_list_expiring_bounds():
    in_ten = _make_contract(
        status=ContractStatus.ACTIVE, end_date=TODAY + timedelta(days=10), contract_id="c-10"
    )
    ends_today = _make_contract(
        status=ContractStatus.ACTIVE, end_date=TODAY, start_date=date(2025, 1, 1), contract_id="c-0"
    )
    ended_yesterday = _make_contract(
        status=ContractStatus.ACTIVE,
        end_date=TODAY - timedelta(days=1),
        start_date=date(2025, 1, 1),
        contract_id="c-minus-1",
    )
    at_window = _make_contract(
        status=ContractStatus.ACTIVE, end_date=TODAY + timedelta(days=30), contract_id="c-30"
    )
    past_window = _make_contract(
        status=ContractStatus.ACTIVE, end_date=TODAY + timedelta(days=31), contract_id="c-31"
    )

    result = list_expiring(
        [in_ten, ends_today, ended_yesterday, at_window, past_window],
        30,
        ContractStatus.ACTIVE,
        today=TODAY,
    )

    assert [c.id for c in result] == ["c-10", "c-30"]


def test_list_expiring_filters_on_status():
    signed = _make_contract(
        status=ContractStatus.SIGNED, end_date=TODAY + timedelta(days=5), contract_id="signed"
    )
    active = _make_contract(
        status=ContractStatus.ACTIVE, end_date=TODAY + timedelta(days=5), contract_id="active"
    )

    assert [c.id for c in list_expiring([signed, active], 30, ContractStatus.ACTIVE, TODAY)] == ["active"]
    assert [c.id for c in list_expiring([signed, active], 30, ContractStatus.SIGNED, TODAY)] == ["signed"]


def test_list_expiring_empty_input():
    assert list_expiring([], 30, ContractStatus.ACTIVE, TODAY) == []


# ---------------------------------------------------------------------------
# classify_expiry
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "offset,expected",
    [
        (-1, ExpiryState.EXPIRED),
        (0, ExpiryState.EXPIRING_SOON),
        (30, ExpiryState.EXPIRING_SOON),
        (31, ExpiryState.EXPIRING),
        (90, ExpiryState.EXPIRING),
        (91, ExpiryState.ACTIVE),
    ],
)
def test_classify_expiry_thresholds(offset, expected):
    assert classify_expiry(TODAY + timedelta(days=offset), TODAY) == expected
