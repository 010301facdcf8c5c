"""
Contract lifecycle engine.

Owns the in-memory contract list and every mutating operation on it:

  create_contract   → Draft (or operator-chosen status), "Contract Created"
  update_contract   → merge patch, "Contract Updated"
  record_signature  → set company/vendor flag, "<Party> Signed"
  change_status     → operator override, "Status changed to <status>"

Each mutation appends exactly one audit entry, bumps updated_at, persists the
full record through the storage collaborator and then reloads the list from
storage. The in-memory list is never patched optimistically.
"""

import asyncio
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError
import structlog

from vendor_contracts.config import settings
from vendor_contracts.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from vendor_contracts.schemas.contract import (
    Contract,
    ContractCreate,
    ContractStatus,
    ContractUpdate,
    DocumentRef,
    SignatureParty,
)
from vendor_contracts.services.audit_service import (
    ACTION_CREATED,
    ACTION_UPDATED,
    SIGNATURE_ACTIONS,
    append_audit_entry,
    build_audit_entry,
    compute_changed_fields,
    status_change_action,
)
from vendor_contracts.services.contract_store import ContractStore
from vendor_contracts.services.lifecycle import derive_status, list_expiring
from vendor_contracts.services.notification_service import ContractNotifier
from vendor_contracts.services.storage import DocumentStorage, DocumentUpload, local_document_ref

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)
E = TypeVar("E", bound=Enum)

REQUIRED_FIELDS = {
    "vendor_name": "vendor",
    "title": "title",
    "type": "contract type",
    "start_date": "start date",
    "end_date": "end date",
}

_UNTRACKED_FIELDS = {"id", "audit_log", "created_at", "updated_at"}


def new_contract_id() -> str:
    return f"contract-{uuid.uuid4().hex}"


def _describe_errors(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )


def _coerce(model: Type[M], data: Union[M, Mapping[str, Any], BaseModel]) -> M:
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_describe_errors(e)) from e


def _coerce_enum(enum_cls: Type[E], value: Union[E, str], label: str) -> E:
    """Accept enum members or their values, ignoring case, spaces and underscores."""
    if isinstance(value, enum_cls):
        return value
    key = str(value).replace(" ", "").replace("_", "").lower()
    for member in enum_cls:
        if member.value.replace(" ", "").replace("_", "").lower() == key:
            return member
    raise ValidationError(f"Unknown {label} '{value}'")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_contract_fields(values: Mapping[str, Any]) -> None:
    missing = [label for field, label in REQUIRED_FIELDS.items() if _is_blank(values.get(field))]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            title="Please complete the required fields",
        )
    value = values.get("value")
    if value is not None and value < 0:
        raise ValidationError("Contract value cannot be negative")
    if values["start_date"] > values["end_date"]:
        raise ValidationError(
            "Start date cannot be after end date", title="Invalid contract dates"
        )


def _snapshot(contract: Contract) -> dict:
    return contract.model_dump(mode="json", exclude=_UNTRACKED_FIELDS)


class ContractEngine:
    def __init__(
        self,
        store: ContractStore,
        documents: Optional[DocumentStorage] = None,
        notifier: Optional[ContractNotifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.store = store
        self.documents = documents
        self.notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._today = today or date.today
        self.contracts: list[Contract] = []
        # Fetches are numbered so a slow fetch never replaces a newer list
        self._fetch_seq = 0
        self._installed_seq = 0
        self._pending_notifications: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def reload(self) -> list[Contract]:
        """Replace the in-memory list with a full fetch from storage."""
        self._fetch_seq += 1
        seq = self._fetch_seq
        contracts = await self.store.fetch_all()
        if seq < self._installed_seq:
            logger.info("contracts_reload_superseded", fetch=seq, installed=self._installed_seq)
            return self.contracts
        self._installed_seq = seq
        self.contracts = contracts
        logger.info("contracts_reloaded", count=len(contracts), fetch=seq)
        return contracts

    def get(self, contract_id: str) -> Contract:
        for contract in self.contracts:
            if contract.id == contract_id:
                return contract
        raise NotFoundError(contract_id)

    async def find(self, contract_id: str) -> Contract:
        try:
            return self.get(contract_id)
        except NotFoundError:
            # The list may predate a write made elsewhere
            await self.reload()
            return self.get(contract_id)

    def today(self) -> date:
        return self._today()

    def expiring(
        self,
        within_days: Optional[int] = None,
        as_of_status: ContractStatus = ContractStatus.ACTIVE,
    ) -> list[Contract]:
        if within_days is None:
            within_days = settings.CONTRACT_EXPIRY_WINDOW_DAYS
        return list_expiring(self.contracts, within_days, as_of_status, today=self._today())

    async def watch_changes(self) -> None:
        """Reload the full list on every external change event."""
        async for event in self.store.changes():
            logger.info(
                "contract_change_detected",
                event_type=event.event_type,
                contract_id=event.contract_id,
            )
            try:
                await self.reload()
            except Exception as e:
                # The watcher outlives any single failed reload
                logger.error("contract_reload_failed", error=str(e), error_type=type(e).__name__)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self, previous: Optional[datetime] = None) -> datetime:
        now = self._clock()
        if previous is not None and now < previous:
            return previous
        return now

    def _rederive(self, contract: Contract) -> Contract:
        status = derive_status(contract, self._today())
        if status == contract.status:
            return contract
        logger.info(
            "contract_status_derived",
            contract_id=contract.id,
            from_status=contract.status.value,
            to_status=status.value,
        )
        return contract.model_copy(update={"status": status})

    async def _commit(self, write: Callable, contract: Contract) -> Contract:
        await write(contract)
        await self.reload()
        try:
            return self.get(contract.id)
        except NotFoundError:
            return contract

    def _dispatch_notification(self, contract: Contract, template_id: str) -> None:
        if self.notifier is None:
            return
        task = asyncio.create_task(self.notifier.notify(contract, template_id=template_id))
        self._pending_notifications.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Task) -> None:
        self._pending_notifications.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("contract_notification_failed", error=str(exc))

    async def wait_for_notifications(self) -> None:
        if self._pending_notifications:
            await asyncio.gather(*self._pending_notifications, return_exceptions=True)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def attach_document(self, upload: DocumentUpload) -> DocumentRef:
        """
        Store a document and return its reference.

        Upload failures degrade to a local, non-persistent reference so the
        surrounding edit still goes through.
        """
        if self.documents is None:
            logger.warning("document_storage_unconfigured", file_name=upload.file_name)
            return local_document_ref(upload.file_name)
        try:
            return await self.documents.upload(
                upload.content, upload.file_name, upload.content_type
            )
        except UploadError as e:
            logger.warning(
                "document_upload_degraded", file_name=upload.file_name, error=e.message
            )
            return local_document_ref(upload.file_name)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_contract(
        self,
        data: Union[ContractCreate, Mapping[str, Any]],
        actor: str,
        document: Optional[DocumentUpload] = None,
    ) -> Contract:
        payload = _coerce(ContractCreate, data)
        values = payload.model_dump()
        validate_contract_fields(values)

        values["status"] = values["status"] or ContractStatus.DRAFT
        if document is not None:
            ref = await self.attach_document(document)
            values.update(pdf_file_name=ref.file_name, pdf_url=ref.url)

        now = self._now()
        contract = Contract(
            id=new_contract_id(),
            **values,
            audit_log=[build_audit_entry(ACTION_CREATED, actor, timestamp=now)],
            created_at=now,
            updated_at=now,
        )
        contract = self._rederive(contract)

        created = await self._commit(self.store.create, contract)
        logger.info(
            "contract_created",
            contract_id=created.id,
            vendor_name=created.vendor_name,
            status=created.status.value,
            actor=actor,
        )
        self._dispatch_notification(created, "contract_created")
        return created

    async def update_contract(
        self,
        contract_id: str,
        patch: Union[ContractUpdate, Mapping[str, Any]],
        actor: str,
        document: Optional[DocumentUpload] = None,
    ) -> Contract:
        current = await self.find(contract_id)
        changes = {
            k: v
            for k, v in _coerce(ContractUpdate, patch).model_dump(exclude_unset=True).items()
            if v is not None
        }
        merged = current.model_copy(update=changes)
        validate_contract_fields(merged.model_dump())

        # The existing document is kept unless a new one is supplied
        if document is not None:
            ref = await self.attach_document(document)
            merged = merged.model_copy(
                update={"pdf_file_name": ref.file_name, "pdf_url": ref.url}
            )

        changed = compute_changed_fields(_snapshot(current), _snapshot(merged))
        entry = build_audit_entry(
            ACTION_UPDATED,
            actor,
            meta={"changedFields": changed} if changed else None,
            timestamp=self._now(current.updated_at),
        )
        updated = self._rederive(append_audit_entry(merged, entry))

        saved = await self._commit(self.store.update, updated)
        logger.info(
            "contract_updated",
            contract_id=contract_id,
            changed_fields=changed,
            status=saved.status.value,
            actor=actor,
        )
        return saved

    async def record_signature(
        self, contract_id: str, party: Union[SignatureParty, str], actor: str
    ) -> Contract:
        party = _coerce_enum(SignatureParty, party, "signing party")
        current = await self.find(contract_id)

        flag = "company_signed" if party is SignatureParty.COMPANY else "vendor_signed"
        # Signing twice is allowed and still recorded in the audit trail
        signed = current.model_copy(update={flag: True})
        entry = build_audit_entry(
            SIGNATURE_ACTIONS[party], actor, timestamp=self._now(current.updated_at)
        )
        updated = self._rederive(append_audit_entry(signed, entry))

        saved = await self._commit(self.store.update, updated)
        logger.info(
            "contract_signed",
            contract_id=contract_id,
            party=party.value,
            status=saved.status.value,
            actor=actor,
        )
        return saved

    async def change_status(
        self, contract_id: str, new_status: Union[ContractStatus, str], actor: str
    ) -> Contract:
        """Operator override. Any status may be set; nothing is re-derived."""
        status = _coerce_enum(ContractStatus, new_status, "contract status")
        current = await self.find(contract_id)

        entry = build_audit_entry(
            status_change_action(status),
            actor,
            meta={"from": current.status.value, "to": status.value},
            timestamp=self._now(current.updated_at),
        )
        updated = append_audit_entry(current.model_copy(update={"status": status}), entry)

        saved = await self._commit(self.store.update, updated)
        logger.info(
            "contract_status_changed",
            contract_id=contract_id,
            from_status=current.status.value,
            to_status=status.value,
            actor=actor,
        )
        return saved

    async def move_to_review(self, contract_id: str, actor: str) -> Contract:
        return await self.change_status(contract_id, ContractStatus.UNDER_REVIEW, actor)

    async def activate(self, contract_id: str, actor: str) -> Contract:
        current = await self.find(contract_id)
        if current.status != ContractStatus.SIGNED:
            raise InvalidTransitionError(
                contract_id, current.status.value, ContractStatus.ACTIVE.value
            )
        return await self.change_status(contract_id, ContractStatus.ACTIVE, actor)

    async def notify_client(self, contract_id: str) -> Contract:
        contract = await self.find(contract_id)
        self._dispatch_notification(contract, "contract_notice")
        return contract
