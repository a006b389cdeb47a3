"""
Shared test fixtures and configuration.

Environment strategy:
- All tests use .env.test (isolated, no model API or tool provider needed)
- The model and the tool provider are replaced by the stubs in tests/stubs.py
"""

from pathlib import Path

import pytest
from dotenv import load_dotenv

ENV_FILE = Path(__file__).parent.parent / ".env.test"

load_dotenv(ENV_FILE, override=True)

from hermes.domain.connection import ConnectionManager  # noqa: E402

from .stubs import StubToolProvider, factory_for  # noqa: E402


@pytest.fixture
def search_provider() -> StubToolProvider:
    """Tool provider offering the two catalogue tools used across tests."""
    return StubToolProvider(
        {
            "searchAreas": lambda args: '[{"primary_name": "Brooklyn", "region": "NY"}]',
            "listBrands": lambda args: '[{"key": "acme", "name": "Acme"}]',
        }
    )


@pytest.fixture
async def connected_manager(search_provider: StubToolProvider) -> ConnectionManager:
    """ConnectionManager already CONNECTED to ``search_provider``."""
    manager = ConnectionManager("stub://tools", provider_factory=factory_for(search_provider))
    await manager.connect()
    return manager


@pytest.fixture
def degraded_manager() -> ConnectionManager:
    """ConnectionManager that never connected (DEGRADED)."""
    return ConnectionManager("stub://tools", provider_factory=factory_for(ConnectionRefusedError("refused")))
