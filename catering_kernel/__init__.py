"""
Catering Kernel - Event Lifecycle & Financial Ledger

A pure, command-oriented core for catering engagements with:
- Event state machine (lead -> confirmed -> lost/cancelled)
- Append-only audit trail on every ledger mutation
- Formula-driven special charge amounts
- Derived financial aggregates (total bill, balance due, profit)
- Optimistic concurrency on whole-document persistence
"""

__version__ = "0.1.0"
