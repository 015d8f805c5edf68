"""
Pytest Configuration and Fixtures

Shared fixtures for the CDS Hooks and FHIR client tests.
"""
import pytest
from datetime import datetime, timezone
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ltc888.core.cds import CDSHooksService, HookContext

BASE_URL = "http://localhost:3000"
NOW = datetime(2024, 6, 15, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time."""
    return NOW


@pytest.fixture
def service(now) -> CDSHooksService:
    """Bare dispatcher with a pinned clock."""
    return CDSHooksService(base_url=BASE_URL, clock=lambda: now)


@pytest.fixture
def context() -> HookContext:
    return HookContext(patient_id="patient-123", user_id="user-123")
