import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vendor_contracts.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Vendor(Base):
    __tablename__ = "vendors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="ACTIVE")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_vendors_name", "name"),
        Index("idx_vendors_status", "status"),
    )
