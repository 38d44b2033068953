"""
Records Module

CRUD endpoints for the farm's reference data, herd and ledger records.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""
