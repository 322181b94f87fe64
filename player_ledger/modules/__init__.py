"""Domain services of the player ledger."""
