"""Equity and cash ledger for a startup's founders.

Workspaces hold founders with their equity percentages, three append-only
money ledgers (capital, expenses, revenue) and an immutable audit trail.
Dashboards and exit payouts are derived from those on demand.
"""

__version__ = "0.1.0"
