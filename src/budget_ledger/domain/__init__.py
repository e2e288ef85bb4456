"""Domain layer: ledger entities, errors and pure rules."""
