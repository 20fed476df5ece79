"""
Bank Ledger

A single-process ledger of bank accounts with append-only transaction
history, atomic transfers and Decimal money math throughout.
"""

__version__ = "1.0.0"
