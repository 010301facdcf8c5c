"""
Contract model: vendor agreements tracked through drafting, review,
signature and activation.

State machine: Draft → Under Review → Signed / Active → Expired / Terminated

The audit trail is stored inline as a JSON array on the contract row; it is
owned exclusively by the contract and only ever appended to.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from vendor_contracts.database import Base


class ContractRecord(Base):
    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Vendors are referenced by display name, not by foreign key
    vendor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Draft")
    scope: Mapped[Optional[str]] = mapped_column(Text)
    milestones: Mapped[Optional[str]] = mapped_column(Text)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text)
    company_signer: Mapped[Optional[str]] = mapped_column(String(200))
    vendor_signer: Mapped[Optional[str]] = mapped_column(String(200))
    company_signed: Mapped[bool] = mapped_column(Boolean, default=False)
    vendor_signed: Mapped[bool] = mapped_column(Boolean, default=False)
    pdf_file_name: Mapped[Optional[str]] = mapped_column(String(255))
    pdf_url: Mapped[Optional[str]] = mapped_column(Text)
    audit_log: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_contracts_status", "status"),
        Index("idx_contracts_end_date", "end_date"),
        Index("idx_contracts_vendor_name", "vendor_name"),
    )
