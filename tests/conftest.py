"""
Pytest configuration and fixtures for asset registry tests.
"""

import pytest

from registry.cache import BoundedCache
from registry.ledger import MemoryLedger
from registry.manager import RegistryManager
from registry.schema import Asset
from registry.storage import FileLedger


@pytest.fixture
def memory_ledger():
    """Create an empty in-memory ledger."""
    return MemoryLedger(organization="Org1MSP")


@pytest.fixture
def small_cache():
    """Create a cache with a small capacity."""
    return BoundedCache(capacity=3)


@pytest.fixture
def registry_manager(memory_ledger):
    """Create registry manager over the in-memory ledger."""
    return RegistryManager(memory_ledger)


@pytest.fixture
def file_ledger(tmp_path):
    """Create a file ledger in a temporary directory."""
    return FileLedger(data_dir=tmp_path / "ledger", organization="Org1MSP")


@pytest.fixture
def sample_asset():
    """Create sample asset."""
    return Asset(
        asset_id="A1",
        owner="alice",
        asset_type="gold",
        description="bar",
        value=10.5
    )
