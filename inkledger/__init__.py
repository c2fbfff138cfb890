"""
Casa Ink Ledger - Source Package

Daily cash-flow ledger for a small tattoo studio: staff record each
payment and everyone sees the same list and the same total for today.

DESIGN PRINCIPLES:
1. The store owns the canonical copy, clients only project it
2. Every snapshot replaces the whole local list
3. Today's total is always recomputed from scratch
4. Failures become visible state, never crashes
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Casa Ink Team"
