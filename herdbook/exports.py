"""
CSV Exports

Full-table CSV exports of production records and financial transactions.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from typing import List

import pandas as pd

from .repository import FarmRepository

logger = logging.getLogger(__name__)

PRODUCTION_COLUMNS: List[str] = [
    'id', 'species_id', 'animal_id', 'group_id', 'event_type', 'event_subtype', 'date',
    'quantity', 'unit', 'weight_value', 'weight_unit', 'egg_count', 'milk_volume', 'milk_unit',
    'notes', 'source_imported', 'source_origin', 'created_by', 'created_at',
]

FINANCIAL_COLUMNS: List[str] = [
    'id', 'species_id', 'group_id', 'category_id', 'type', 'amount', 'currency',
    'fx_rate_to_base', 'base_amount_cached', 'date', 'vendor_or_buyer', 'memo',
    'created_by', 'created_at',
]


def _to_csv(rows, columns: List[str]) -> str:
    # Header row is written even when there are no records
    frame = pd.DataFrame(rows, columns=columns)
    return frame.to_csv(index=False)


def export_production_csv(repository: FarmRepository) -> str:
    rows = repository.list_production_records()
    logger.info(f"Exporting {len(rows)} production records")
    return _to_csv(rows, PRODUCTION_COLUMNS)


def export_financials_csv(repository: FarmRepository) -> str:
    rows = repository.list_financial_transactions()
    logger.info(f"Exporting {len(rows)} financial transactions")
    return _to_csv(rows, FINANCIAL_COLUMNS)
