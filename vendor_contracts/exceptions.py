"""
Typed errors raised by the contract lifecycle engine.

Each error carries a machine-readable ``code``, a short ``title`` suitable
for an operator-facing toast, and the underlying message. The HTTP layer
renders them as ``{"error": {"code", "title", "message"}}``.

    ContractError
    +-- ValidationError
    |   +-- InvalidTransitionError
    +-- NotFoundError
    +-- StorageError
    +-- UploadError
"""

from typing import Optional


class ContractError(Exception):
    code: str = "CONTRACT_ERROR"
    title: str = "Contract operation failed"
    status_code: int = 500

    def __init__(self, message: str, title: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if title:
            self.title = title

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "title": self.title,
                "message": self.message,
            }
        }


class ValidationError(ContractError):
    """Missing required field or inconsistent dates. Never retried."""

    code = "VALIDATION_ERROR"
    title = "Invalid contract data"
    status_code = 400


class InvalidTransitionError(ValidationError):
    code = "INVALID_TRANSITION"
    title = "Status change not allowed"
    status_code = 409

    def __init__(self, contract_id: str, current_status: str, target_status: str):
        super().__init__(
            f"Cannot move contract {contract_id} from '{current_status}' to '{target_status}'"
        )
        self.contract_id = contract_id
        self.current_status = current_status
        self.target_status = target_status


class NotFoundError(ContractError):
    code = "CONTRACT_NOT_FOUND"
    title = "Contract not found"
    status_code = 404

    def __init__(self, contract_id: str):
        super().__init__(f"Contract {contract_id} does not exist")
        self.contract_id = contract_id


class StorageError(ContractError):
    """A persistence call failed; the attempted mutation is abandoned."""

    code = "STORAGE_ERROR"
    title = "Failed to save contract"
    status_code = 503


class UploadError(ContractError):
    code = "UPLOAD_ERROR"
    title = "Document upload failed"
    status_code = 502
