"""
Care Ledger - Source Package

Financial ledger for elder-care facilities: resident monthly fees,
accounts payable and accounts receivable, with a derived metrics
snapshot for the financial dashboard.

DESIGN PRINCIPLES:
1. The data store is the system of record; the cache follows it
2. Fail early, fail visibly
3. No silent corrections
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Care Ledger Team"
