"""
Domain value objects for ledger records.

These are immutable views of what the store returns. Default instances
(`Balance()`, `OwnedItem()`, ...) are exactly what an unwritten or cleared
record reads as, so a never-created account and a deleted one are
indistinguishable through this layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple

from player_ledger.domain import packing


@dataclass(frozen=True)
class Balance:
    """(gold, marble) packed as low and high halves of one word."""

    gold: int = 0
    marble: int = 0

    def __post_init__(self) -> None:
        # Validates both halves.
        packing.pack(self.gold, self.marble, low_field="gold", high_field="marble")

    @classmethod
    def from_word(cls, word: int) -> Balance:
        gold, marble = packing.unpack(word)
        return cls(gold=gold, marble=marble)

    def to_word(self) -> int:
        return packing.pack(self.gold, self.marble, low_field="gold", high_field="marble")

    def credit(self, gold: int = 0, marble: int = 0) -> Balance:
        word = packing.add_low(self.to_word(), gold, field="gold")
        word = packing.add_high(word, marble, field="marble")
        return Balance.from_word(word)

    def debit(self, gold: int = 0, marble: int = 0) -> Balance:
        return self.credit(gold=-gold, marble=-marble)

    @property
    def is_zero(self) -> bool:
        return self.gold == 0 and self.marble == 0


@dataclass(frozen=True)
class Progression:
    """(draws_per_match, draw_length) packed like `Balance`."""

    draws_per_match: int = 0
    draw_length: int = 0

    def __post_init__(self) -> None:
        packing.pack(
            self.draws_per_match,
            self.draw_length,
            low_field="draws_per_match",
            high_field="draw_length",
        )

    @classmethod
    def from_word(cls, word: int) -> Progression:
        draws_per_match, draw_length = packing.unpack(word)
        return cls(draws_per_match=draws_per_match, draw_length=draw_length)

    def to_word(self) -> int:
        return packing.pack(
            self.draws_per_match,
            self.draw_length,
            low_field="draws_per_match",
            high_field="draw_length",
        )

    @property
    def is_zero(self) -> bool:
        return self.draws_per_match == 0 and self.draw_length == 0


@dataclass(frozen=True)
class OwnedItem:
    """Ownership flag plus catalog-defined attributes (opaque here)."""

    owned: bool = False
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OwnedItemFragment:
    owned: bool = False
    amount: int = 0
    attributes: Dict[str, Any] = field(default_factory=dict)

    def add(self, amount: int) -> OwnedItemFragment:
        return replace(self, owned=True, amount=self.amount + amount)


@dataclass(frozen=True)
class LeagueData:
    points: int = 0
    wins: int = 0
    losses: int = 0


@dataclass(frozen=True)
class AccountSnapshot:
    """
    Result of a bulk read.

    `items`, `fragments` and `league_records` hold one element per requested
    ID, in request order.
    """

    balance: Balance
    items: Tuple[OwnedItem, ...]
    fragments: Tuple[OwnedItemFragment, ...]
    progression: Progression
    league_records: Tuple[LeagueData, ...]

    @property
    def is_empty(self) -> bool:
        return (
            self.balance.is_zero
            and self.progression.is_zero
            and all(item == OwnedItem() for item in self.items)
            and all(fragment == OwnedItemFragment() for fragment in self.fragments)
            and all(record == LeagueData() for record in self.league_records)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balance": {"gold": self.balance.gold, "marble": self.balance.marble},
            "items": [
                {"owned": item.owned, "attributes": dict(item.attributes)}
                for item in self.items
            ],
            "fragments": [
                {
                    "owned": fragment.owned,
                    "amount": fragment.amount,
                    "attributes": dict(fragment.attributes),
                }
                for fragment in self.fragments
            ],
            "progression": {
                "draws_per_match": self.progression.draws_per_match,
                "draw_length": self.progression.draw_length,
            },
            "league_records": [
                {"points": record.points, "wins": record.wins, "losses": record.losses}
                for record in self.league_records
            ],
        }
