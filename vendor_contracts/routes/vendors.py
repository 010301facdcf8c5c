from fastapi import APIRouter, Depends

from vendor_contracts.dependencies import get_vendor_directory
from vendor_contracts.middleware.auth import get_current_user
from vendor_contracts.services.vendor_directory import VendorDirectory

router = APIRouter()


@router.get("/names", response_model=list[str])
async def list_vendor_names(
    current_user: dict = Depends(get_current_user),
    directory: VendorDirectory = Depends(get_vendor_directory),
):
    """Vendor display names available when drafting a contract."""
    return await directory.list_vendor_names()
