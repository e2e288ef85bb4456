"""Application layer: persistence ports and ledger use cases."""
