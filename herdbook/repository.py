"""
Farm Repository

Data access for the record endpoints: species, groups, animals, production
records, financial transactions, categories, FX rates and report jobs. All
reads and writes go through an injected DatabaseAdapter, so tests can run
against a temporary SQLite store.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import json
import logging
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .database_adapter import DatabaseAdapter
from .reports.filters import build_record_filters

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_db(value: Any) -> Any:
    """Convert a Python value into something every driver binds the same way"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return value


class FarmRepository:
    """CRUD operations over the farm tables"""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _insert(self, table: str, values: Dict[str, Any]) -> None:
        columns = list(values)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        self.db.execute(query, [_to_db(values[c]) for c in columns])

    def _get(self, table: str, record_id: str) -> Optional[Row]:
        return self.db.fetchone(f"SELECT * FROM {table} WHERE id = $1", [record_id])

    def _update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Optional[Row]:
        """Apply column changes and return the updated row, or None if missing"""
        if changes:
            assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(changes, start=1))
            params = [_to_db(v) for v in changes.values()] + [record_id]
            updated = self.db.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ${len(params)}", params
            )
            if updated == 0:
                return None
        return self._get(table, record_id)

    def _count(self, table: str) -> int:
        row = self.db.fetchone(f"SELECT COUNT(*) AS count FROM {table}")
        return int(row['count']) if row else 0

    def _list(self, table: str, order_by: str, **filters: Any) -> List[Row]:
        where_clause, params = build_record_filters(**filters)
        return self.db.fetchall(f"SELECT * FROM {table}{where_clause} ORDER BY {order_by}", params)

    # ------------------------------------------------------------------
    # Species
    # ------------------------------------------------------------------

    def list_species(self) -> List[Row]:
        return self.db.fetchall("SELECT * FROM species ORDER BY name ASC")

    def get_species(self, species_id: str) -> Optional[Row]:
        return self._get('species', species_id)

    def create_species(self, name: str, is_dairy: bool, is_ruminant: bool,
                       species_id: Optional[str] = None) -> Row:
        species_id = species_id or str(uuid.uuid4())
        self._insert('species', {
            'id': species_id,
            'name': name,
            'is_dairy': is_dairy,
            'is_ruminant': is_ruminant,
            'created_at': _now(),
        })
        return self.get_species(species_id)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def list_groups(self, species_id: Optional[str] = None) -> List[Row]:
        return self._list('animal_groups', 'name ASC', species_id=species_id)

    def get_group(self, group_id: str) -> Optional[Row]:
        return self._get('animal_groups', group_id)

    def count_groups(self) -> int:
        return self._count('animal_groups')

    def create_group(self, data: Dict[str, Any]) -> Row:
        group_id = str(uuid.uuid4())
        self._insert('animal_groups', {
            'id': group_id,
            'name': data['name'],
            'species_id': data['species_id'],
            'location_id': data.get('location_id'),
            'tags': data.get('tags') or [],
            'active': True,
        })
        logger.info(f"Created group {group_id} ({data['name']})")
        return self.get_group(group_id)

    def update_group(self, group_id: str, changes: Dict[str, Any]) -> Optional[Row]:
        return self._update('animal_groups', group_id, changes)

    # ------------------------------------------------------------------
    # Animals
    # ------------------------------------------------------------------

    def list_animals(self, species_id: Optional[str] = None, group_id: Optional[str] = None) -> List[Row]:
        return self._list('animals', 'external_id ASC', species_id=species_id, group_id=group_id)

    def get_animal(self, animal_id: str) -> Optional[Row]:
        return self._get('animals', animal_id)

    def count_animals(self) -> int:
        return self._count('animals')

    def create_animal(self, data: Dict[str, Any]) -> Row:
        animal_id = str(uuid.uuid4())
        self._insert('animals', {
            'id': animal_id,
            'external_id': data.get('external_id'),
            'species_id': data['species_id'],
            'group_id': data.get('group_id'),
            'sex': data['sex'],
            'dob': data.get('dob'),
            'status': data['status'],
            'tags': data.get('tags') or [],
        })
        return self.get_animal(animal_id)

    def update_animal(self, animal_id: str, changes: Dict[str, Any]) -> Optional[Row]:
        return self._update('animals', animal_id, changes)

    # ------------------------------------------------------------------
    # Production records
    # ------------------------------------------------------------------

    def list_production_records(self, species_id: Optional[str] = None, group_id: Optional[str] = None,
                                animal_id: Optional[str] = None, event_type: Optional[str] = None,
                                date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[Row]:
        return self._list(
            'production_records', 'date DESC',
            species_id=species_id, group_id=group_id, animal_id=animal_id,
            event_type=event_type, date_from=date_from, date_to=date_to,
        )

    def get_production_record(self, record_id: str) -> Optional[Row]:
        return self._get('production_records', record_id)

    def create_production_record(self, data: Dict[str, Any]) -> Row:
        record_id = str(uuid.uuid4())
        values = {'id': record_id}
        values.update(data)
        values['created_at'] = _now()
        self._insert('production_records', values)
        return self.get_production_record(record_id)

    def update_production_record(self, record_id: str, changes: Dict[str, Any]) -> Optional[Row]:
        return self._update('production_records', record_id, changes)

    # ------------------------------------------------------------------
    # Financial transactions
    # ------------------------------------------------------------------

    def list_financial_transactions(self, category_id: Optional[str] = None, species_id: Optional[str] = None,
                                    group_id: Optional[str] = None, date_from: Optional[str] = None,
                                    date_to: Optional[str] = None, currency: Optional[str] = None) -> List[Row]:
        return self._list(
            'financial_transactions', 'date DESC',
            category_id=category_id, species_id=species_id, group_id=group_id,
            date_from=date_from, date_to=date_to, currency=currency,
        )

    def get_financial_transaction(self, transaction_id: str) -> Optional[Row]:
        return self._get('financial_transactions', transaction_id)

    def create_financial_transaction(self, data: Dict[str, Any]) -> Row:
        # TODO: look up fx_rates by date and currency instead of defaulting to 1.0
        fx_rate_to_base = data.get('fx_rate_to_base') or 1.0
        transaction_id = str(uuid.uuid4())
        values = {'id': transaction_id}
        values.update(data)
        values['fx_rate_to_base'] = fx_rate_to_base
        values['base_amount_cached'] = data['amount'] * fx_rate_to_base
        values['created_at'] = _now()
        self._insert('financial_transactions', values)
        return self.get_financial_transaction(transaction_id)

    def update_financial_transaction(self, transaction_id: str, changes: Dict[str, Any]) -> Optional[Row]:
        existing = self.get_financial_transaction(transaction_id)
        if existing is None:
            return None

        changes = dict(changes)
        if 'amount' in changes or 'fx_rate_to_base' in changes:
            amount = float(changes.get('amount', existing['amount']))
            fx_rate_to_base = float(changes.get('fx_rate_to_base') or existing['fx_rate_to_base'] or 1.0)
            changes['fx_rate_to_base'] = fx_rate_to_base
            changes['base_amount_cached'] = amount * fx_rate_to_base
        return self._update('financial_transactions', transaction_id, changes)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> List[Row]:
        return self.db.fetchall("SELECT * FROM categories ORDER BY name ASC")

    def create_category(self, data: Dict[str, Any]) -> Row:
        category_id = str(uuid.uuid4())
        self._insert('categories', {
            'id': category_id,
            'name': data['name'],
            'type': data['type'],
            'parent_id': data.get('parent_id'),
            'is_active': data.get('is_active', True),
        })
        return self._get('categories', category_id)

    # ------------------------------------------------------------------
    # FX rates
    # ------------------------------------------------------------------

    def list_fx_rates(self, currency: Optional[str] = None) -> List[Row]:
        return self._list('fx_rates', 'date DESC', currency=currency)

    def create_fx_rate(self, rate_date: Any, currency: str, rate_to_base: float) -> Row:
        rate_id = str(uuid.uuid4())
        self._insert('fx_rates', {
            'id': rate_id,
            'date': rate_date,
            'currency': currency,
            'rate_to_base': rate_to_base,
        })
        return self._get('fx_rates', rate_id)

    # ------------------------------------------------------------------
    # Report jobs
    # ------------------------------------------------------------------

    def create_job(self, job_type: str, params: Optional[Dict[str, Any]] = None,
                   payload: Optional[str] = None) -> Row:
        job_id = str(uuid.uuid4())
        self._insert('report_jobs', {
            'id': job_id,
            'type': job_type,
            'status': 'pending',
            'params_json': json.dumps(params) if params is not None else None,
            'payload': payload,
            'created_at': _now(),
        })
        logger.info(f"Queued {_to_db(job_type)} job {job_id}")
        return self.get_job(job_id)

    def get_job(self, job_id: str) -> Optional[Row]:
        return self._get('report_jobs', job_id)

    def next_pending_job(self) -> Optional[Row]:
        return self.db.fetchone(
            "SELECT * FROM report_jobs WHERE status = $1 ORDER BY created_at ASC LIMIT 1",
            ['pending']
        )

    def update_job(self, job_id: str, **changes: Any) -> Optional[Row]:
        changes['updated_at'] = _now()
        return self._update('report_jobs', job_id, changes)
