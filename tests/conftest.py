"""
================================================================================
Herdbook - Unified Test Configuration and Fixtures
================================================================================

Description:
    Shared pytest configuration and fixtures for all tests (unit, API).
    Provides a temporary SQLite store with the schema and reference data
    installed, a repository over it, a small seeded farm, and a TestClient
    wired to the same store.

Fixtures:
    - temp_dir: Temporary directory for test files
    - db: SQLiteAdapter on a fresh database file
    - repository: FarmRepository over the test database
    - seeded_farm: One goat group with animals, production and ledger rows
    - client: FastAPI TestClient using the test database

================================================================================
"""
import pytest
import tempfile
import shutil
import sys
from pathlib import Path

# Add project root to path for all tests
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def db(temp_dir):
    """SQLite adapter with schema and reference data installed"""
    from herdbook.database_adapter import SQLiteAdapter
    from herdbook.database_schema import create_schema, seed_reference_data

    adapter = SQLiteAdapter(temp_dir / "test.db", timeout=5)
    create_schema(adapter)
    seed_reference_data(adapter)
    yield adapter
    adapter.close()


@pytest.fixture
def repository(db):
    """Farm repository over the test database"""
    from herdbook.repository import FarmRepository
    return FarmRepository(db)


@pytest.fixture
def categories(repository):
    """Seeded categories keyed by name"""
    return {category['name']: category for category in repository.list_categories()}


@pytest.fixture
def seeded_farm(repository, categories):
    """
    A goat group with two animals, production events and transactions.

    Transactions are inserted out of month order (2025-01, 2025-03, 2025-02).
    """
    group = repository.create_group({'name': 'Goat Herd A', 'species_id': '1'})
    other_group = repository.create_group({'name': 'Broilers', 'species_id': '5'})

    animals = [
        repository.create_animal({'external_id': 'G-001', 'species_id': '1', 'group_id': group['id'],
                                  'sex': 'female', 'status': 'active'}),
        repository.create_animal({'external_id': 'G-002', 'species_id': '1', 'group_id': group['id'],
                                  'sex': 'male', 'status': 'sold'}),
        repository.create_animal({'external_id': 'P-001', 'species_id': '5', 'group_id': other_group['id'],
                                  'sex': 'unknown', 'status': 'active'}),
    ]

    production = [
        repository.create_production_record({'species_id': '1', 'group_id': group['id'],
                                             'event_type': 'milk_volume', 'date': '2025-01-10',
                                             'milk_volume': 12.5, 'milk_unit': 'L'}),
        repository.create_production_record({'species_id': '1', 'group_id': group['id'],
                                             'event_type': 'birth', 'date': '2025-02-01', 'quantity': 2}),
        repository.create_production_record({'species_id': '1', 'group_id': group['id'],
                                             'event_type': 'birth', 'date': '2025-02-20', 'quantity': 3}),
        repository.create_production_record({'species_id': '5', 'group_id': other_group['id'],
                                             'event_type': 'egg_count', 'date': '2025-02-05', 'egg_count': 40}),
    ]

    transactions = [
        repository.create_financial_transaction({'species_id': '1', 'group_id': group['id'],
                                                 'category_id': categories['Milk Sales']['id'],
                                                 'type': 'income', 'amount': 1000.0, 'currency': 'USD',
                                                 'date': '2025-01-15'}),
        repository.create_financial_transaction({'species_id': '1', 'group_id': group['id'],
                                                 'category_id': categories['Feed']['id'],
                                                 'type': 'expense', 'amount': 200.0, 'currency': 'USD',
                                                 'date': '2025-03-02'}),
        repository.create_financial_transaction({'species_id': '1', 'group_id': group['id'],
                                                 'category_id': categories['Veterinary']['id'],
                                                 'type': 'expense', 'amount': 50.0, 'currency': 'USD',
                                                 'date': '2025-02-11'}),
        repository.create_financial_transaction({'species_id': '5', 'group_id': other_group['id'],
                                                 'category_id': categories['Animal Sales']['id'],
                                                 'type': 'income', 'amount': 250.5, 'currency': 'USD',
                                                 'date': '2025-02-28'}),
    ]

    return {
        'group': group,
        'other_group': other_group,
        'animals': animals,
        'production': production,
        'transactions': transactions,
    }


@pytest.fixture
def client(db):
    """FastAPI test client using the test database"""
    from fastapi.testclient import TestClient
    from herdbook.app import app, app_state

    previous = app_state["db"]
    app_state["db"] = db
    yield TestClient(app)
    app_state["db"] = previous


@pytest.fixture
def premium_tier(monkeypatch):
    """Switch the mock subscription tier to premium"""
    from herdbook.config import config
    monkeypatch.setattr(config.auth, "mock_user_tier", "premium")


@pytest.fixture
def free_tier(monkeypatch):
    """Force the mock subscription tier to free"""
    from herdbook.config import config
    monkeypatch.setattr(config.auth, "mock_user_tier", "free")


@pytest.fixture
def project_root_path():
    """Return the project root path"""
    return project_root
