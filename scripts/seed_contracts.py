"""
Seed vendors and random contracts through the contract engine.
Run:  PYTHONPATH=. python scripts/seed_contracts.py [count]
"""
import asyncio
import random
import sys
from datetime import date, timedelta
from decimal import Decimal

import structlog

import vendor_contracts.models  # noqa: F401
from vendor_contracts.database import close_db, get_session_factory, init_db
from vendor_contracts.logging_config import setup_logging
from vendor_contracts.models.vendor import Vendor
from vendor_contracts.services.contract_service import ContractEngine
from vendor_contracts.services.contract_store import SqlContractStore

logger = structlog.get_logger()

VENDORS = [
    "Acme Staffing", "Brightline Consulting", "Cobalt Cloud Services",
    "Delta Facilities", "Evergreen Logistics", "Fulcrum Security",
]

TITLES = [
    "Master Services Agreement", "Software Licensing Agreement",
    "Maintenance & Support Agreement", "Professional Services Contract",
    "Cloud Infrastructure Agreement", "Consulting Services Agreement",
    "Staffing Services Agreement", "Facility Management Contract",
]

PAYMENT_TERMS = ["Net 30", "Net 45", "50% upfront, 50% on delivery", "Monthly in arrears"]


def gen(seq: int) -> dict:
    start = date.today() + timedelta(days=random.randint(-540, 60))
    end = start + timedelta(days=random.randint(30, 730))
    contract_type = random.choice(["MSA", "SOW"])
    return {
        "vendorName": random.choice(VENDORS),
        "title": f"{random.choice(TITLES)} #{seq}",
        "type": contract_type,
        "value": Decimal(random.randint(5_000, 500_000)),
        "startDate": start,
        "endDate": end,
        "scope": f"Seed {contract_type} #{seq}.",
        "paymentTerms": random.choice(PAYMENT_TERMS),
        "companySigner": "Jordan Lee",
        "vendorSigner": "Account Manager",
    }


async def seed(count: int) -> None:
    setup_logging()
    await init_db()
    session_factory = get_session_factory()

    async with session_factory() as session:
        session.add_all([Vendor(name=name) for name in VENDORS])
        await session.commit()

    engine = ContractEngine(SqlContractStore(session_factory))
    for seq in range(1, count + 1):
        contract = await engine.create_contract(gen(seq), actor="seed-script")
        if random.random() < 0.6:
            await engine.record_signature(contract.id, "vendor", actor="seed-script")
            await engine.record_signature(contract.id, "company", actor="seed-script")

    logger.info("seed_complete", contracts=len(engine.contracts))
    await close_db()


if __name__ == "__main__":
    asyncio.run(seed(int(sys.argv[1]) if len(sys.argv) > 1 else 25))
