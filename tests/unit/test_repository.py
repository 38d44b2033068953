"""
================================================================================
Herdbook - Farm Repository Unit Tests
================================================================================

Description:
    Tests for FarmRepository against a temporary SQLite database: reference
    seeding, CRUD for groups, animals, production records, financial
    transactions and categories, base amount computation and the job queue.

================================================================================
"""
import json
from datetime import date

import pytest

from herdbook.database_adapter import ReferenceViolation, UniqueViolation
from herdbook.database_schema import SEED_CATEGORIES, SEED_SPECIES, seed_reference_data
from herdbook.domain import FxRate, JobType


class TestReferenceData:
    """Test suite for the built-in species and categories"""

    def test_species_seeded(self, repository):
        species = repository.list_species()

        assert len(species) == len(SEED_SPECIES)
        assert [s['name'] for s in species] == sorted(s[1] for s in SEED_SPECIES)

    def test_categories_seeded(self, repository):
        assert len(repository.list_categories()) == len(SEED_CATEGORIES)

    def test_seeding_is_idempotent(self, db, repository):
        seed_reference_data(db)

        assert len(repository.list_species()) == len(SEED_SPECIES)


class TestGroupsAndAnimals:
    """Test suite for groups and animals"""

    def test_create_group_stores_tags_as_json(self, repository):
        group = repository.create_group({'name': 'Ewes', 'species_id': '3', 'tags': ['spring']})

        assert group['name'] == 'Ewes'
        assert json.loads(group['tags']) == ['spring']
        assert repository.count_groups() == 1

    def test_group_requires_known_species(self, repository):
        with pytest.raises(ReferenceViolation):
            repository.create_group({'name': 'Ghosts', 'species_id': 'nope'})

    def test_update_group(self, repository):
        group = repository.create_group({'name': 'Ewes', 'species_id': '3'})

        updated = repository.update_group(group['id'], {'name': 'Ewes 2025', 'active': False})

        assert updated['name'] == 'Ewes 2025'
        assert updated['active'] == 0

    def test_update_missing_group(self, repository):
        assert repository.update_group('missing', {'name': 'x'}) is None

    def test_list_animals_by_group(self, repository, seeded_farm):
        animals = repository.list_animals(group_id=seeded_farm['group']['id'])

        assert [a['external_id'] for a in animals] == ['G-001', 'G-002']

    def test_duplicate_external_id(self, repository, seeded_farm):
        with pytest.raises(UniqueViolation):
            repository.create_animal({'external_id': 'G-001', 'species_id': '1',
                                      'sex': 'female', 'status': 'active'})

    def test_partial_animal_update_keeps_other_fields(self, repository, seeded_farm):
        animal = seeded_farm['animals'][0]

        updated = repository.update_animal(animal['id'], {'status': 'sold'})

        assert updated['status'] == 'sold'
        assert updated['external_id'] == 'G-001'
        assert updated['group_id'] == animal['group_id']


class TestProductionRecords:
    """Test suite for production records"""

    def test_filtered_list_newest_first(self, repository, seeded_farm):
        records = repository.list_production_records(event_type='birth')

        assert [r['date'] for r in records] == ['2025-02-20', '2025-02-01']

    def test_date_range(self, repository, seeded_farm):
        records = repository.list_production_records(date_from='2025-02-01', date_to='2025-02-10')

        assert sorted(r['date'] for r in records) == ['2025-02-01', '2025-02-05']


class TestFinancialTransactions:
    """Test suite for financial transactions"""

    def test_fx_defaults_to_one(self, repository, categories):
        tx = repository.create_financial_transaction({
            'category_id': categories['Feed']['id'], 'type': 'expense',
            'amount': 120.0, 'currency': 'USD', 'date': '2025-04-01',
        })

        assert tx['fx_rate_to_base'] == 1.0
        assert tx['base_amount_cached'] == 120.0

    def test_base_amount_uses_fx_rate(self, repository, categories):
        tx = repository.create_financial_transaction({
            'category_id': categories['Feed']['id'], 'type': 'expense',
            'amount': 100.0, 'currency': 'EUR', 'fx_rate_to_base': 1.1, 'date': '2025-04-01',
        })

        assert tx['base_amount_cached'] == pytest.approx(110.0)

    def test_update_recomputes_base_amount(self, repository, seeded_farm):
        tx = seeded_farm['transactions'][1]

        updated = repository.update_financial_transaction(tx['id'], {'amount': 300.0})
        assert updated['base_amount_cached'] == 300.0

        updated = repository.update_financial_transaction(tx['id'], {'fx_rate_to_base': 2.0})
        assert updated['base_amount_cached'] == 600.0

    def test_update_without_amount_keeps_base(self, repository, seeded_farm):
        tx = seeded_farm['transactions'][0]

        updated = repository.update_financial_transaction(tx['id'], {'memo': 'March milk'})

        assert updated['memo'] == 'March milk'
        assert updated['base_amount_cached'] == 1000.0

    def test_unknown_category(self, repository):
        with pytest.raises(ReferenceViolation):
            repository.create_financial_transaction({
                'category_id': 'nope', 'type': 'income', 'amount': 1.0,
                'currency': 'USD', 'date': '2025-01-01',
            })

    def test_filter_by_currency(self, repository, seeded_farm):
        assert len(repository.list_financial_transactions(currency='USD')) == 4
        assert repository.list_financial_transactions(currency='EUR') == []


class TestFxRates:
    """Test suite for stored FX rates"""

    def test_create_and_list_by_currency(self, repository):
        repository.create_fx_rate(date(2025, 1, 31), 'EUR', 1.08)
        repository.create_fx_rate(date(2025, 2, 28), 'EUR', 1.05)
        repository.create_fx_rate(date(2025, 2, 28), 'GBP', 1.26)

        rates = [FxRate.model_validate(row) for row in repository.list_fx_rates(currency='EUR')]

        assert [r.date for r in rates] == [date(2025, 2, 28), date(2025, 1, 31)]
        assert rates[0].rate_to_base == pytest.approx(1.05)
        assert len(repository.list_fx_rates()) == 3


class TestJobQueue:
    """Test suite for report jobs"""

    def test_create_and_fetch(self, repository):
        job = repository.create_job(JobType.INVESTOR_REPORT, params={'speciesId': '1'})

        assert job['type'] == 'investor_report'
        assert job['status'] == 'pending'
        assert json.loads(job['params_json']) == {'speciesId': '1'}

    def test_next_pending_is_oldest(self, repository):
        first = repository.create_job(JobType.PRODUCTION_IMPORT, payload='a,b\n1,2\n')
        repository.create_job(JobType.INVESTOR_REPORT)

        assert repository.next_pending_job()['id'] == first['id']

        repository.update_job(first['id'], status='completed')
        assert repository.next_pending_job()['type'] == 'investor_report'

    def test_update_sets_timestamp(self, repository):
        job = repository.create_job(JobType.INVESTOR_REPORT)

        updated = repository.update_job(job['id'], status='running')

        assert updated['status'] == 'running'
        assert updated['updated_at'] is not None
