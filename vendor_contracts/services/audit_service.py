"""Audit trail service: builds and appends contract audit entries."""

from typing import Any, Optional
from datetime import datetime, timezone

import structlog

from vendor_contracts.schemas.contract import (
    AuditLogEntry,
    Contract,
    ContractStatus,
    SignatureParty,
)

logger = structlog.get_logger()

ACTION_CREATED = "Contract Created"
ACTION_UPDATED = "Contract Updated"

SIGNATURE_ACTIONS = {
    SignatureParty.COMPANY: "Company Signed",
    SignatureParty.VENDOR: "Vendor Signed",
}


def status_change_action(status: ContractStatus) -> str:
    return f"Status changed to {status.value}"


def compute_changed_fields(
    before: Optional[dict], after: Optional[dict]
) -> Optional[list[str]]:
    """Diff two state dicts and return list of changed field names."""
    if not before or not after:
        return None
    changed = []
    all_keys = set(before.keys()) | set(after.keys())
    for key in sorted(all_keys):
        if before.get(key) != after.get(key):
            changed.append(key)
    return changed or None


def build_audit_entry(
    action: str,
    actor: str,
    meta: Optional[dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
) -> AuditLogEntry:
    return AuditLogEntry(
        action=action,
        user=actor,
        timestamp=timestamp or datetime.now(timezone.utc),
        meta=meta,
    )


def append_audit_entry(contract: Contract, entry: AuditLogEntry) -> Contract:
    """
    Return a copy of the contract with the entry appended and updated_at
    moved to the entry's timestamp.

    Existing entries are carried over untouched; the log only grows.
    """
    updated = contract.model_copy(
        update={
            "audit_log": [*contract.audit_log, entry],
            "updated_at": entry.timestamp,
        }
    )
    logger.info(
        "audit_entry_appended",
        contract_id=contract.id,
        action=entry.action,
        actor=entry.user,
        entries=len(updated.audit_log),
    )
    return updated
