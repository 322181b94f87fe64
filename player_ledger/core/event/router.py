"""
Wildcard event-name matching.

Supported patterns
------------------
- Exact:    "account.created"  -> only "account.created"
- Global:   "*"                -> any event
- Prefix:   "account.*"        -> "account.created", "account.deleted"
- Suffix:   "*.credited"       -> "ledger.currency.credited"
- Sandwich: "ledger.*.granted" -> "ledger.item.granted", "ledger.fragment.granted"

Matching is case-sensitive. Repeated wildcards collapse ("**" -> "*").
"""

from __future__ import annotations


class EventRouter:
    """Stateless matcher between event names and wildcard patterns."""

    def matches(self, event_name: str, pattern: str) -> bool:
        """
        >>> EventRouter().matches("account.deleted", "account.*")
        True
        >>> EventRouter().matches("ledger.item.granted", "account.*")
        False
        """
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        parts = pattern.split("*")
        head, tail = parts[0], parts[-1]

        if head and not event_name.startswith(head):
            return False
        if tail and not event_name.endswith(tail):
            return False
        if len(head) + len(tail) > len(event_name):
            return False

        # Middle pieces must appear in order between head and tail.
        cursor = len(head)
        limit = len(event_name) - len(tail)
        for piece in parts[1:-1]:
            if not piece:
                continue
            found = event_name.find(piece, cursor, limit)
            if found == -1:
                return False
            cursor = found + len(piece)

        return True
