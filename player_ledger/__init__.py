"""
Player Ledger
=============

Signature-gated player identity and asset ledger for a game backend.

Accounts are created with an admin signature and destroyed with both an
admin and a player signature over the same lifecycle message. Everything
else in the ledger (currencies, items, fragments, league records and
progression) hangs off the account identity.
"""

__version__ = "1.0.0"
