"""
Infrastructure adapters for the exchange bounded context.

Each adapter implements a domain port (ABC) and connects
to external systems: the wallet/ledger database and the
public market-data API.
"""
