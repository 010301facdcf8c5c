"""
Contract storage collaborator.

The engine only depends on the ``ContractStore`` protocol. The SQLAlchemy
implementation owns the mapping between the in-memory ``Contract`` model and
the flat snake_case ``contracts`` row, and publishes a change event after
every successful write.
"""

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from vendor_contracts.exceptions import StorageError
from vendor_contracts.models.contract import ContractRecord
from vendor_contracts.schemas.contract import AuditLogEntry, ChangeEvent, Contract

logger = structlog.get_logger()


class ContractStore(Protocol):
    async def fetch_all(self) -> list[Contract]: ...

    async def create(self, contract: Contract) -> None: ...

    async def update(self, contract: Contract) -> None: ...

    def changes(self) -> AsyncIterator[ChangeEvent]: ...


class ChangeFeed:
    """In-process fan-out of change events to every active subscriber."""

    def __init__(self):
        self._subscribers: set[asyncio.Queue] = set()

    def publish(self, event: ChangeEvent) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(event)

    async def subscribe(self) -> AsyncIterator[ChangeEvent]:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def contract_to_row(c: Contract) -> dict:
    return {
        "id": c.id,
        "vendor_name": c.vendor_name,
        "title": c.title,
        "type": c.type.value,
        "value": c.value,
        "start_date": c.start_date,
        "end_date": c.end_date,
        "status": c.status.value,
        "scope": c.scope,
        "milestones": c.milestones,
        "payment_terms": c.payment_terms,
        "company_signer": c.company_signer,
        "vendor_signer": c.vendor_signer,
        "company_signed": c.company_signed,
        "vendor_signed": c.vendor_signed,
        "pdf_file_name": c.pdf_file_name or None,
        "pdf_url": c.pdf_url or None,
        "audit_log": [e.model_dump(mode="json") for e in c.audit_log],
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }


def row_to_contract(row: ContractRecord) -> Contract:
    return Contract(
        id=row.id,
        vendor_name=row.vendor_name,
        title=row.title,
        type=row.type,
        value=row.value,
        start_date=row.start_date,
        end_date=row.end_date,
        status=row.status,
        scope=row.scope or "",
        milestones=row.milestones or "",
        payment_terms=row.payment_terms or "",
        company_signer=row.company_signer or "",
        vendor_signer=row.vendor_signer or "",
        company_signed=bool(row.company_signed),
        vendor_signed=bool(row.vendor_signed),
        pdf_file_name=row.pdf_file_name,
        pdf_url=row.pdf_url,
        audit_log=[AuditLogEntry.model_validate(e) for e in (row.audit_log or [])],
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------


class SqlContractStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: Optional[ChangeFeed] = None,
    ):
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()

    async def fetch_all(self) -> list[Contract]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ContractRecord).order_by(ContractRecord.created_at.desc())
                )
                rows = result.scalars().all()
                contracts = [row_to_contract(r) for r in rows]
        except SQLAlchemyError as e:
            logger.error("contract_store_fetch_failed", error=str(e))
            raise StorageError(f"Failed to load contracts: {e}", title="Failed to load contracts") from e
        except PydanticValidationError as e:
            logger.error("contract_store_row_invalid", error=str(e))
            raise StorageError(
                f"Stored contract row is invalid: {e}", title="Failed to load contracts"
            ) from e
        logger.debug("contract_store_fetched", count=len(contracts))
        return contracts

    async def create(self, contract: Contract) -> None:
        try:
            async with self._session_factory() as session:
                session.add(ContractRecord(**contract_to_row(contract)))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("contract_store_create_failed", contract_id=contract.id, error=str(e))
            raise StorageError(f"Failed to create contract: {e}") from e
        logger.info("contract_store_created", contract_id=contract.id)
        self.feed.publish(ChangeEvent(event_type="INSERT", contract_id=contract.id))

    async def update(self, contract: Contract) -> None:
        values = contract_to_row(contract)
        values.pop("id")
        values.pop("created_at")
        try:
            async with self._session_factory() as session:
                row = await session.get(ContractRecord, contract.id)
                if row is None:
                    raise StorageError(f"Failed to update contract: no row for {contract.id}")
                for field, value in values.items():
                    setattr(row, field, value)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("contract_store_update_failed", contract_id=contract.id, error=str(e))
            raise StorageError(f"Failed to update contract: {e}") from e
        logger.info("contract_store_updated", contract_id=contract.id)
        self.feed.publish(ChangeEvent(event_type="UPDATE", contract_id=contract.id))

    def changes(self) -> AsyncIterator[ChangeEvent]:
        return self.feed.subscribe()
