from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field

from vendor_contracts.schemas.common import CamelModel


class ContractStatus(str, Enum):
    DRAFT = "Draft"
    UNDER_REVIEW = "Under Review"
    SIGNED = "Signed"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    TERMINATED = "Terminated"


class ContractType(str, Enum):
    MSA = "MSA"
    SOW = "SOW"


class SignatureParty(str, Enum):
    COMPANY = "company"
    VENDOR = "vendor"


class ExpiryState(str, Enum):
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring-soon"
    EXPIRING = "expiring"
    ACTIVE = "active"


class AuditLogEntry(CamelModel):
    model_config = ConfigDict(frozen=True)

    action: str
    user: str
    timestamp: datetime
    meta: Optional[dict[str, Any]] = None


class DocumentRef(CamelModel):
    file_name: str
    url: str
    # False for the session-only reference used when the upload failed
    persisted: bool = True


class Contract(CamelModel):
    id: str
    vendor_name: str
    title: str
    type: ContractType
    value: Decimal = Decimal("0")
    start_date: date
    end_date: date
    status: ContractStatus = ContractStatus.DRAFT
    scope: str = ""
    milestones: str = ""
    payment_terms: str = ""
    company_signer: str = ""
    vendor_signer: str = ""
    company_signed: bool = False
    vendor_signed: bool = False
    pdf_file_name: Optional[str] = None
    pdf_url: Optional[str] = None
    audit_log: list[AuditLogEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ContractCreate(CamelModel):
    # Presence and date ordering are checked by the engine so that a
    # missing field surfaces as a contract ValidationError.
    vendor_name: Optional[str] = None
    title: Optional[str] = None
    type: Optional[ContractType] = None
    value: Decimal = Decimal("0")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ContractStatus] = None
    scope: str = ""
    milestones: str = ""
    payment_terms: str = ""
    company_signer: str = ""
    vendor_signer: str = ""
    company_signed: bool = False
    vendor_signed: bool = False


class ContractUpdate(CamelModel):
    vendor_name: Optional[str] = None
    title: Optional[str] = None
    type: Optional[ContractType] = None
    value: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ContractStatus] = None
    scope: Optional[str] = None
    milestones: Optional[str] = None
    payment_terms: Optional[str] = None
    company_signer: Optional[str] = None
    vendor_signer: Optional[str] = None
    company_signed: Optional[bool] = None
    vendor_signed: Optional[bool] = None


class StatusChangeRequest(CamelModel):
    status: ContractStatus


class ContractResponse(Contract):
    days_until_expiry: int
    expiry_state: ExpiryState


class ChangeEvent(CamelModel):
    """Change notification from the storage collaborator. Carries no payload
    guarantee; consumers reload."""

    event_type: str
    contract_id: Optional[str] = None
