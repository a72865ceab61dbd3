"""
Exchange bounded context: domain layer.

This module contains all domain logic for the exchange context:
- Wallets and balance invariants
- Market-order pricing, fees and funds checks
- The append-only order ledger record
- Payment methods for funding events
"""
