from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import DeckExhausted, ParseError

RANKS: Tuple[str, ...] = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")
SUITS: Tuple[str, ...] = ("♠", "♥", "♦", "♣")
FACE_RANKS = frozenset({"J", "Q", "K"})

# ASCII aliases so cards can be typed without the suit glyphs.
SUIT_ALIASES = {"s": "♠", "h": "♥", "d": "♦", "c": "♣"}


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ParseError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ParseError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    @property
    def is_face(self) -> bool:
        return self.rank in FACE_RANKS

    @property
    def is_red(self) -> bool:
        return self.suit in ("♥", "♦")

    def __str__(self) -> str:
        return self.label


def new_deck() -> List[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def shuffle(deck: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Fisher-Yates shuffle into a fresh list; ``deck`` is left untouched."""
    rng = rng or random.Random()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def card_value(card: Card) -> int:
    # Niu Niu counting: ace low, tens and faces all worth 10.
    if card.rank == "A":
        return 1
    if card.rank in FACE_RANKS:
        return 10
    return int(card.rank)


class Deck:
    """Cursor over an immutable shuffled card order."""

    def __init__(self, cards: Iterable[Card]) -> None:
        self._cards: Tuple[Card, ...] = tuple(cards)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._cards) - self._cursor

    @property
    def remaining(self) -> List[Card]:
        return list(self._cards[self._cursor :])

    @property
    def dealt(self) -> int:
        return self._cursor

    def draw(self, count: int = 1) -> List[Card]:
        if count < 0:
            raise ValueError("Cannot draw a negative number of cards")
        if len(self) < count:
            raise DeckExhausted(f"Not enough cards left in deck ({len(self)} < {count})")
        cards = list(self._cards[self._cursor : self._cursor + count])
        self._cursor += count
        return cards

    def draw_one(self) -> Card:
        return self.draw(1)[0]


def build_deck(seed: Optional[int] = None, rng: Optional[random.Random] = None) -> Deck:
    if rng is None:
        rng = random.Random(seed)
    return Deck(shuffle(new_deck(), rng))


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if not isinstance(label, str) or len(label) < 2:
        raise ParseError(f"Invalid card label: {label!r}")
    rank, suit = label[:-1].upper(), label[-1]
    suit = SUIT_ALIASES.get(suit.lower(), suit)
    return Card(rank, suit)


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
