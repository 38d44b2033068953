"""
Herdbook

Backend for a livestock farm: herd and ledger records, production economics
analytics, reports and background report jobs.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

__version__ = "1.0.0"
