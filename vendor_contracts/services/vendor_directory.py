# vendor_contracts/services/vendor_directory.py
"""
Vendor directory collaborator: the display names operators pick from when
drafting a contract. Read-only from the contract engine's point of view.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vendor_contracts.models.vendor import Vendor


class VendorDirectory:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_vendor_names(self) -> list[str]:
        """Sorted, de-duplicated names of vendors that are not deleted."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Vendor.name).where(Vendor.deleted_at == None)  # noqa: E711
            )
            names = {row[0].strip() for row in result.all() if row[0] and row[0].strip()}
        return sorted(names)
