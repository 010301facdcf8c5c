"""Central model registry. Import all models so Alembic autodiscover works."""

from vendor_contracts.database import Base  # noqa: F401

from vendor_contracts.models.vendor import Vendor  # noqa: F401
from vendor_contracts.models.contract import ContractRecord  # noqa: F401
