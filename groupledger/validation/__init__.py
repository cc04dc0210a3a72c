"""Ledger validation package."""

from groupledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
