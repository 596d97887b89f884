"""
Household Ledger - Source Package

A local-first expense tracker for a household: members, spending
categories and dated transactions, kept in sync with a remote
document store and pushed live to whatever renders them.

DESIGN PRINCIPLES:
1. The remote store is the source of truth, the local view is a replica
2. Observers always see the freshest locally-known state
3. Every mutation goes through one write pipeline
4. Legacy records are normalized on read, never rewritten silently
5. Storage backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
