# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB LedgerSight
---------------

A Python engine turning the transactional records of Small and
Medium-sized Businesses (sales invoices, expenses, supplier invoices, bank
transactions) into accounting artifacts.

Main capabilities:
- balance sheet with a reported balance check (assets = liabilities + equity),
- income statement consistent with the aggregated net income,
- VAT liability broken out by rate, goods and services,
- progressive-bracket corporate tax estimate,
- VAT declarations for France (CA3) and Belgium (Intervat),
- automatic bank reconciliation against open invoices,
- a database-first architecture for record sets (SQLite) with CSV imports.

SMB LedgerSight separates storage (SQLite), computation (pure functions over
frozen records), configuration (TOML) and presentation (CLI).


Version: 0.1.0

Usage:
    ledgersight --help
"""

__all__ = [
    "accounts",
    "declarations",
    "engine",
    "reconciliation",
    "service",
    "statements",
    "tax",
]

__version__ = "0.1.0"
