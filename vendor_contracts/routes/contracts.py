"""
Contract management: /api/v1/contracts

Lifecycle endpoints over the contract engine:
  Draft → Under Review → Signed / Active → Expired / Terminated
"""

from datetime import date
import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
import structlog

from vendor_contracts.dependencies import get_contract_engine
from vendor_contracts.exceptions import ValidationError
from vendor_contracts.middleware.auth import actor_of, get_current_user
from vendor_contracts.middleware.authorization import (
    CONTRACT_EDITOR_ROLES,
    STATUS_OVERRIDE_ROLES,
    require_roles,
)
from vendor_contracts.schemas.common import ErrorResponse
from vendor_contracts.schemas.contract import (
    AuditLogEntry,
    Contract,
    ContractCreate,
    ContractResponse,
    ContractStatus,
    ContractUpdate,
    SignatureParty,
    StatusChangeRequest,
)
from vendor_contracts.services.contract_service import ContractEngine
from vendor_contracts.services.lifecycle import classify_expiry, days_until
from vendor_contracts.services.storage import DocumentUpload

logger = structlog.get_logger()
router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }
)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _to_response(c: Contract, today: date) -> ContractResponse:
    return ContractResponse(
        **c.model_dump(),
        days_until_expiry=days_until(c.end_date, today),
        expiry_state=classify_expiry(c.end_date, today),
    )


async def _read_document(file: UploadFile) -> DocumentUpload:
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: {file.content_type}. Allowed: {sorted(ALLOWED_CONTENT_TYPES)}",
        )

    file_bytes = await file.read()
    if len(file_bytes) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Max size: {MAX_FILE_SIZE // (1024 * 1024)} MB",
        )

    return DocumentUpload(
        content=file_bytes,
        file_name=file.filename or "contract.pdf",
        content_type=file.content_type or "application/pdf",
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("", response_model=list[ContractResponse])
async def list_contracts(
    contract_status: Optional[ContractStatus] = Query(None, alias="status"),
    vendor_name: Optional[str] = Query(None, alias="vendorName"),
    current_user: dict = Depends(get_current_user),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """List contracts, newest first. Optional filters by status and vendor."""
    today = engine.today()
    items = engine.contracts
    if contract_status:
        items = [c for c in items if c.status == contract_status]
    if vendor_name:
        items = [c for c in items if c.vendor_name == vendor_name]
    return [_to_response(c, today) for c in items]


@router.get("/expiring", response_model=list[ContractResponse])
async def list_expiring_contracts(
    within_days: Optional[int] = Query(None, alias="withinDays", ge=1, le=365),
    current_user: dict = Depends(get_current_user),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """Active contracts ending within the window (today excluded)."""
    today = engine.today()
    return [_to_response(c, today) for c in engine.expiring(within_days)]


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    engine: ContractEngine = Depends(get_contract_engine),
):
    contract = await engine.find(contract_id)
    return _to_response(contract, engine.today())


@router.get("/{contract_id}/audit-log", response_model=list[AuditLogEntry])
async def get_audit_log(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """Audit trail, newest entry first."""
    contract = await engine.find(contract_id)
    return list(reversed(contract.audit_log))


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    body: ContractCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    contract = await engine.create_contract(body, actor=actor_of(current_user))
    return _to_response(contract, engine.today())


@router.post(
    "/with-document", response_model=ContractResponse, status_code=status.HTTP_201_CREATED
)
async def create_contract_with_document(
    contract: str = Form(..., description="ContractCreate fields as a JSON object"),
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """Multipart create: the contract and its document are saved together."""
    try:
        data = json.loads(contract)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Contract field is not valid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise ValidationError("Contract field must be a JSON object")

    upload = await _read_document(file)
    created = await engine.create_contract(data, actor=actor_of(current_user), document=upload)
    return _to_response(created, engine.today())


@router.patch("/{contract_id}", response_model=ContractResponse)
async def update_contract(
    contract_id: str,
    body: ContractUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    contract = await engine.update_contract(contract_id, body, actor=actor_of(current_user))
    return _to_response(contract, engine.today())


@router.post("/{contract_id}/document", response_model=ContractResponse)
async def upload_contract_document(
    contract_id: str,
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """Attach a signed document. Falls back to a session-only link if storage is down."""
    upload = await _read_document(file)
    contract = await engine.update_contract(
        contract_id, {}, actor=actor_of(current_user), document=upload
    )
    return _to_response(contract, engine.today())


@router.post("/{contract_id}/signatures/{party}", response_model=ContractResponse)
async def record_signature(
    contract_id: str,
    party: SignatureParty,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    contract = await engine.record_signature(contract_id, party, actor=actor_of(current_user))
    return _to_response(contract, engine.today())


@router.post("/{contract_id}/status", response_model=ContractResponse)
async def change_contract_status(
    contract_id: str,
    body: StatusChangeRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*STATUS_OVERRIDE_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """Operator override; any status may be set."""
    contract = await engine.change_status(contract_id, body.status, actor=actor_of(current_user))
    return _to_response(contract, engine.today())


@router.post("/{contract_id}/review", response_model=ContractResponse)
async def move_to_review(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    contract = await engine.move_to_review(contract_id, actor=actor_of(current_user))
    return _to_response(contract, engine.today())


@router.post("/{contract_id}/activate", response_model=ContractResponse)
async def activate_contract(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*CONTRACT_EDITOR_ROLES)),
    engine: ContractEngine = Depends(get_contract_engine),
):
    """Transition contract Signed → Active."""
    contract = await engine.activate(contract_id, actor=actor_of(current_user))
    return _to_response(contract, engine.today())


@router.post("/{contract_id}/notify", status_code=status.HTTP_202_ACCEPTED)
async def notify_client(
    contract_id: str,
    current_user: dict = Depends(get_current_user),
    engine: ContractEngine = Depends(get_contract_engine),
):
    contract = await engine.notify_client(contract_id)
    logger.info("contract_client_notified", contract_id=contract.id, actor=actor_of(current_user))
    return {"message": "Client notified", "contractId": contract.id}
