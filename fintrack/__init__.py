"""
Fintrack - Source Package

The reactive data-synchronization and aggregation core of a personal
finance tracker. It keeps local mirrors of remote per-account collections
(incomes, expenses, bank accounts, budgets) in sync and derives the
dashboard figures from them.

DESIGN PRINCIPLES:
1. Stale-but-present data beats a blank dashboard
2. Every asynchronous result is checked against the scope it started under
3. Aggregates are pure and recomputed from scratch
4. Remote store is swappable
"""

__version__ = "1.0.0"
__author__ = "Fintrack Team"
