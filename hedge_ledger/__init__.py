"""Hedge position lifecycle ledger service package."""
