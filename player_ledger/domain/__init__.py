"""Pure domain values: packed words and ledger records."""
