"""
Group Ledger - Source Package

A personal and group expense tracker: log your own income and expenses,
share costs with a group during an event, and work out who owes whom.

DESIGN PRINCIPLES:
1. The balance and settlement engine is pure: same input, same output
2. Bad data is tolerated by the engine and reported by the validator
3. No silent corrections
4. Every change is auditable
5. Storage is an opaque, swappable key-value store
"""

__version__ = "1.0.0"
__author__ = "Group Ledger Team"
