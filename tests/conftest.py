from datetime import date, datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from vendor_contracts.exceptions import StorageError
from vendor_contracts.schemas.contract import ChangeEvent, Contract
from vendor_contracts.services import auth_service
from vendor_contracts.services.contract_service import ContractEngine
from vendor_contracts.services.contract_store import ChangeFeed

TODAY = date(2026, 3, 15)
NOW = datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class InMemoryContractStore:
    """Storage collaborator double. Stores copies so callers can't mutate rows."""

    def __init__(self):
        self.rows: dict[str, Contract] = {}
        self.feed = ChangeFeed()
        self.fail_reads = False
        self.fail_writes = False
        self.fetch_calls = 0
        self.writes: list[tuple[str, str]] = []

    async def fetch_all(self) -> list[Contract]:
        self.fetch_calls += 1
        if self.fail_reads:
            raise StorageError("database unavailable", title="Failed to load contracts")
        return sorted(
            (c.model_copy(deep=True) for c in self.rows.values()),
            key=lambda c: c.created_at,
            reverse=True,
        )

    async def create(self, contract: Contract) -> None:
        if self.fail_writes:
            raise StorageError("Failed to create contract: connection reset")
        self.rows[contract.id] = contract.model_copy(deep=True)
        self.writes.append(("create", contract.id))
        self.feed.publish(ChangeEvent(event_type="INSERT", contract_id=contract.id))

    async def update(self, contract: Contract) -> None:
        if self.fail_writes:
            raise StorageError("Failed to update contract: connection reset")
        if contract.id not in self.rows:
            raise StorageError(f"Failed to update contract: no row for {contract.id}")
        self.rows[contract.id] = contract.model_copy(deep=True)
        self.writes.append(("update", contract.id))
        self.feed.publish(ChangeEvent(event_type="UPDATE", contract_id=contract.id))

    def changes(self):
        return self.feed.subscribe()


class FakeClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def notify(self, contract: Contract, template_id: str = "contract_notice") -> None:
        self.sent.append((contract.id, template_id))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store():
    return InMemoryContractStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(store, clock, notifier):
    return ContractEngine(store, notifier=notifier, clock=clock, today=lambda: TODAY)


@pytest.fixture
def make_payload():
    def _make(**overrides) -> dict:
        data = {
            "vendorName": "Acme Staffing",
            "title": "Staffing MSA 2026",
            "type": "MSA",
            "value": "120000.00",
            "startDate": "2026-01-01",
            "endDate": "2026-12-31",
            "scope": "Contract developers for the platform team",
            "milestones": "Q1 onboarding; Q3 review",
            "paymentTerms": "Net 30",
            "companySigner": "Jordan Lee",
            "vendorSigner": "Sam Patel",
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture(scope="session")
def rsa_keys():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def jwt_keys(monkeypatch, rsa_keys):
    monkeypatch.setattr(auth_service.keys, "private_pem", rsa_keys[0])
    monkeypatch.setattr(auth_service.keys, "public_pem", rsa_keys[1])


@pytest.fixture
def admin_token(jwt_keys):
    return auth_service.create_access_token(
        user_id="u-admin-0001", role="admin", email="admin@acme.com"
    )


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}
