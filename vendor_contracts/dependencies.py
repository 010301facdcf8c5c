from fastapi import Request

from vendor_contracts.services.contract_service import ContractEngine
from vendor_contracts.services.vendor_directory import VendorDirectory


def get_contract_engine(request: Request) -> ContractEngine:
    """The app-wide engine built at startup (one in-memory list per process)."""
    return request.app.state.contract_engine


def get_vendor_directory(request: Request) -> VendorDirectory:
    return request.app.state.vendor_directory
