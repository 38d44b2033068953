"""
Database Schema Definition

Table definitions for species, groups, animals, production records,
financial transactions, categories, FX rates and report jobs, plus the
reference seed (built-in species and starter categories). The DDL is written
for PostgreSQL and normalized by the SQLite adapter.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from typing import List, Tuple

from .database_adapter import DatabaseAdapter

logger = logging.getLogger(__name__)


def get_schema_sql() -> str:
    """Get the complete database schema SQL"""
    return """
CREATE TABLE IF NOT EXISTS species (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    is_dairy BOOLEAN NOT NULL DEFAULT FALSE,
    is_ruminant BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS animal_groups (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    species_id TEXT NOT NULL REFERENCES species(id),
    location_id TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    active BOOLEAN NOT NULL DEFAULT TRUE
);

CREATE INDEX IF NOT EXISTS idx_animal_groups_species ON animal_groups(species_id);

CREATE TABLE IF NOT EXISTS animals (
    id TEXT PRIMARY KEY,
    external_id TEXT UNIQUE,
    species_id TEXT NOT NULL REFERENCES species(id),
    group_id TEXT REFERENCES animal_groups(id),
    sex TEXT NOT NULL,
    dob DATE,
    status TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '[]'
);

CREATE INDEX IF NOT EXISTS idx_animals_status ON animals(status);
CREATE INDEX IF NOT EXISTS idx_animals_group ON animals(group_id);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    parent_id TEXT REFERENCES categories(id),
    is_active BOOLEAN NOT NULL DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS production_records (
    id TEXT PRIMARY KEY,
    species_id TEXT NOT NULL REFERENCES species(id),
    animal_id TEXT REFERENCES animals(id),
    group_id TEXT REFERENCES animal_groups(id),
    event_type TEXT NOT NULL,
    event_subtype TEXT,
    date DATE NOT NULL,
    quantity NUMERIC(14, 4),
    unit TEXT,
    weight_value NUMERIC(14, 4),
    weight_unit TEXT,
    egg_count INTEGER,
    milk_volume NUMERIC(14, 4),
    milk_unit TEXT,
    notes TEXT,
    source_imported BOOLEAN NOT NULL DEFAULT FALSE,
    source_origin TEXT,
    created_by TEXT,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_production_records_date ON production_records(date);
CREATE INDEX IF NOT EXISTS idx_production_records_group ON production_records(group_id);
CREATE INDEX IF NOT EXISTS idx_production_records_event ON production_records(event_type);

CREATE TABLE IF NOT EXISTS financial_transactions (
    id TEXT PRIMARY KEY,
    species_id TEXT REFERENCES species(id),
    group_id TEXT REFERENCES animal_groups(id),
    category_id TEXT NOT NULL REFERENCES categories(id),
    type TEXT NOT NULL,
    amount NUMERIC(14, 4) NOT NULL,
    currency TEXT NOT NULL,
    fx_rate_to_base NUMERIC(14, 4) NOT NULL DEFAULT 1,
    base_amount_cached NUMERIC(14, 4) NOT NULL,
    date DATE NOT NULL,
    vendor_or_buyer TEXT,
    memo TEXT,
    created_by TEXT,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_financial_transactions_date ON financial_transactions(date);
CREATE INDEX IF NOT EXISTS idx_financial_transactions_group ON financial_transactions(group_id);

CREATE TABLE IF NOT EXISTS fx_rates (
    id TEXT PRIMARY KEY,
    date DATE NOT NULL,
    currency TEXT NOT NULL,
    rate_to_base NUMERIC(14, 4) NOT NULL
);

CREATE TABLE IF NOT EXISTS report_jobs (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    params_json TEXT,
    payload TEXT,
    uri TEXT,
    error TEXT,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_report_jobs_status ON report_jobs(status, created_at);
"""


# (id, name, is_dairy, is_ruminant)
SEED_SPECIES: List[Tuple[str, str, bool, bool]] = [
    ('1', 'Goat', True, True),
    ('2', 'Cattle', True, True),
    ('3', 'Sheep', True, True),
    ('4', 'Pig', False, False),
    ('5', 'Poultry', False, False),
    ('6', 'Rabbit', False, False),
]

# (name, type)
SEED_CATEGORIES: List[Tuple[str, str]] = [
    ('Feed', 'expense'),
    ('Veterinary', 'expense'),
    ('Labor', 'expense'),
    ('Utilities', 'expense'),
    ('Equipment', 'expense'),
    ('Housing', 'expense'),
    ('Transport', 'expense'),
    ('Milk Sales', 'income'),
    ('Animal Sales', 'income'),
    ('Grants', 'income'),
    ('Other', 'income'),
]


def create_schema(adapter: DatabaseAdapter) -> None:
    """Create all tables and indexes if they do not exist"""
    adapter.execute_script(get_schema_sql())
    logger.info(f"Schema ensured ({adapter.db_type})")


def seed_reference_data(adapter: DatabaseAdapter) -> None:
    """Insert the built-in species and starter categories into an empty store"""
    from .repository import FarmRepository

    repository = FarmRepository(adapter)

    if not repository.list_species():
        for species_id, name, is_dairy, is_ruminant in SEED_SPECIES:
            repository.create_species(name, is_dairy, is_ruminant, species_id=species_id)
        logger.info(f"Seeded {len(SEED_SPECIES)} species")

    if not repository.list_categories():
        for name, category_type in SEED_CATEGORIES:
            repository.create_category({'name': name, 'type': category_type})
        logger.info(f"Seeded {len(SEED_CATEGORIES)} categories")
