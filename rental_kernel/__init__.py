"""
Rental Kernel - reservation ledger and lifecycle core

A pure, append-only reservation accounting core with:
- Integer minor-unit money
- Derived payment summaries from an immutable transaction ledger
- Guarded fulfillment transitions
- Optimistic concurrency on reservation records
"""

__version__ = "0.1.0"
