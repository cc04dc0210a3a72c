"""
Balance and settlement engine.

Both components are pure functions over plain models:
    members + expenses -> compute_balances -> resolve_settlements
"""

from groupledger.engine.balances import (
    compute_balances,
    net_balances,
    total_balance,
)
from groupledger.engine.settlement import (
    SETTLEMENT_TOLERANCE,
    apply_settlements,
    resolve_settlements,
    settle,
)

__all__ = [
    "SETTLEMENT_TOLERANCE",
    "apply_settlements",
    "compute_balances",
    "net_balances",
    "resolve_settlements",
    "settle",
    "total_balance",
]
