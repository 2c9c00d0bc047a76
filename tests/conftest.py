"""
Pytest configuration and fixtures for ledger core tests.

This module provides:
- Sample TOML documents (minimal and rich)
- Store fixtures with a fixed "today"
- Recording and failing write targets for the persistence coordinator
- FastAPI test client bound to an in-memory write target
"""

import asyncio
from datetime import date
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from cashflow.app_context import AppContext, set_app_context
from cashflow.config.settings import Settings, reset_settings
from cashflow.main import app
from cashflow.services import DocumentStore
from cashflow.storage import MemoryWriteTarget, WriteResult


FIXED_TODAY = date(2024, 6, 15)


# =============================================================================
# SAMPLE DOCUMENTS
# =============================================================================


MINIMAL_TOML = """\
version = "1.0.0"

[metadata]
created = 2024-01-01T10:00:00Z
lastModified = 2024-01-01T10:00:00Z
defaultCurrency = "CHF"

[[currency]]
code = "CHF"
name = "Swiss Franc"
symbol = "CHF"
decimalPlaces = 2
isDefault = true

[[account]]
id = "acc_001"
name = "Assets:Bank:CHF"
type = "Assets"
currency = "CHF"
opened = 2024-01-01

[[transaction]]
id = "txn_001"
date = 2024-01-05
description = "Dépôt initial"
"""


SAMPLE_TOML = """\
version = "1.0.0"

[metadata]
created = 2024-01-01T10:00:00Z
lastModified = 2024-01-15T14:30:00Z
defaultCurrency = "CHF"

[[currency]]
code = "CHF"
name = "Swiss Franc"
symbol = "CHF"
decimalPlaces = 2
isDefault = true

[[currency]]
code = "EUR"
name = "Euro"
symbol = "€"
decimalPlaces = 2
isDefault = false

[[currency.exchangeRate]]
date = 2024-01-15
rate = 0.95
source = "BCE"

[[currency.exchangeRate]]
date = 2024-01-01
rate = 0.93
source = "BCE"

[[currency]]
code = "USD"
name = "US Dollar"
symbol = "$"
decimalPlaces = 2
isDefault = false

[[account]]
id = "acc_001"
name = "Assets:Bank:CHF"
type = "Assets"
currency = "CHF"
opened = 2024-01-01
description = "Compte courant"

[[account]]
id = "acc_002"
name = "Expenses:Food"
type = "Expenses"
currency = "CHF"
opened = 2024-01-01

[[account]]
id = "acc_003"
name = "Assets:Bank:EUR"
type = "Assets"
currency = "EUR"
opened = 2024-02-01

[[transaction]]
id = "txn_001"
date = 2024-01-05
description = "Courses"

[[transaction.posting]]
accountId = "acc_002"
amount = 45.5
currency = "CHF"

[[transaction.posting]]
accountId = "acc_001"
amount = -45.5
currency = "CHF"
"""


RICH_TOML = SAMPLE_TOML + """
[[budget]]
id = "bud_001"
name = "Alimentation"
period = "monthly"
amount = 600.0
accounts = ["acc_002"]

[budget.alerts]
threshold = 0.8

[[recurring]]
id = "rec_001"
description = "Loyer"
frequency = "monthly"
startDate = 2024-01-01
nextDate = "2024-07-01"
amount = 1850.25
"""


@pytest.fixture
def fixed_today() -> date:
    """Fixed 'today' for deterministic date validation."""
    return FIXED_TODAY


@pytest.fixture
def minimal_toml() -> str:
    return MINIMAL_TOML


@pytest.fixture
def sample_toml() -> str:
    return SAMPLE_TOML


@pytest.fixture
def rich_toml() -> str:
    return RICH_TOML


# =============================================================================
# STORE FIXTURES
# =============================================================================


@pytest.fixture
def store(fixed_today) -> DocumentStore:
    """Provide an empty store whose 'today' is fixed."""
    return DocumentStore(today=lambda: fixed_today)


@pytest.fixture
def loaded_store(store, sample_toml) -> DocumentStore:
    """Provide a store holding the sample document."""
    result = store.load(sample_toml)
    assert result.success, result.error
    return store


@pytest.fixture
def snapshots(loaded_store) -> list:
    """Snapshots received by an observer subscribed to the loaded store."""
    received: list = []
    loaded_store.subscribe(received.append)
    return received


# =============================================================================
# WRITE TARGETS
# =============================================================================


class RecordingTarget:
    """Write target that records payloads, optionally slow or failing."""

    def __init__(self, delay: float = 0.0, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.payloads: list[bytes] = []
        self.active = 0
        self.max_active = 0

    async def write(self, data: bytes) -> WriteResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail:
                return WriteResult(success=False, message="Disque plein")
            self.payloads.append(data)
            return WriteResult(success=True)
        finally:
            self.active -= 1

    @property
    def last_text(self) -> Optional[str]:
        return self.payloads[-1].decode("utf-8") if self.payloads else None


@pytest.fixture
def target_factory() -> Callable[..., RecordingTarget]:
    """Factory for recording write targets."""

    def _create(delay: float = 0.0, fail: bool = False) -> RecordingTarget:
        return RecordingTarget(delay=delay, fail=fail)

    return _create


# =============================================================================
# API TEST CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app_context(tmp_path) -> AppContext:
    """Provide an AppContext writing to memory, with autosave off."""
    reset_settings()
    settings = Settings(
        data_dir=tmp_path,
        autosave_enabled=False,
        autosave_debounce_seconds=0.05,
    )
    context = AppContext(settings=settings, target=MemoryWriteTarget())
    set_app_context(context)
    yield context
    set_app_context(None)
    reset_settings()


@pytest.fixture
def client(app_context) -> TestClient:
    """Provide FastAPI test client running the application lifespan."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def loaded_client(client, sample_toml) -> TestClient:
    """Provide a test client whose store holds the sample document."""
    response = client.post("/document/load", json={"content": sample_toml})
    assert response.status_code == 200, response.text
    return client
