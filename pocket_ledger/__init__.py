"""
Pocket Ledger - Source Package

A personal income/expense ledger whose dashboard stays live: every change
in the record store arrives as a fresh snapshot, and every summary is
recomputed from it.

DESIGN PRINCIPLES:
1. The store is the single source of truth; the cache only mirrors it
2. Derived views are pure functions of one snapshot
3. Invalid writes never reach the store
4. Failures surface; the core never retries a write on its own
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
