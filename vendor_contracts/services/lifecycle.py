"""
Contract lifecycle rules. Pure functions, no I/O.

Status derivation after signatures:
  both parties signed and start date reached  → Active
  both parties signed, start date in future   → Signed
  otherwise                                   → unchanged (operator-set)

Expiry is never a stored transition here; "expiring soon" is computed from
calendar days between today and the end date.
"""

from datetime import date
from typing import Iterable, Optional

from vendor_contracts.schemas.contract import (
    Contract,
    ContractStatus,
    ExpiryState,
)

EXPIRING_SOON_DAYS = 30
EXPIRING_DAYS = 90


def derive_status(contract: Contract, today: Optional[date] = None) -> ContractStatus:
    if contract.company_signed and contract.vendor_signed:
        today = today or date.today()
        if contract.start_date <= today:
            return ContractStatus.ACTIVE
        return ContractStatus.SIGNED
    return contract.status


def days_until(end_date: date, today: Optional[date] = None) -> int:
    """Whole calendar days from today to end_date; 0 when it ends today."""
    return (end_date - (today or date.today())).days


def list_expiring(
    contracts: Iterable[Contract],
    within_days: int,
    as_of_status: ContractStatus = ContractStatus.ACTIVE,
    today: Optional[date] = None,
) -> list[Contract]:
    # Contracts ending today (0 days) are excluded: they count as expired,
    # not expiring.
    today = today or date.today()
    return [
        c
        for c in contracts
        if c.status == as_of_status and 0 < days_until(c.end_date, today) <= within_days
    ]


def classify_expiry(end_date: date, today: Optional[date] = None) -> ExpiryState:
    remaining = days_until(end_date, today)
    if remaining < 0:
        return ExpiryState.EXPIRED
    if remaining <= EXPIRING_SOON_DAYS:
        return ExpiryState.EXPIRING_SOON
    if remaining <= EXPIRING_DAYS:
        return ExpiryState.EXPIRING
    return ExpiryState.ACTIVE
