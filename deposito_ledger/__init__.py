"""
Deposito Ledger

Savings accounts under fixed "deposito" interest tiers, with an append-only
transaction log, tiered compound-interest projections and Decimal precision
for every monetary value.
"""

__version__ = "1.0.0"
