from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple, Sequence, Tuple, Union

from .cards import Card, card_value
from .errors import UnknownOutcome
from .money import round_cents

HAND_SIZE = 5
_ALL_INDICES = tuple(range(HAND_SIZE))


class NiuniuCategory(str, Enum):
    NONE = "none"
    NIU1 = "niu1"
    NIU2 = "niu2"
    NIU3 = "niu3"
    NIU4 = "niu4"
    NIU5 = "niu5"
    NIU6 = "niu6"
    NIU7 = "niu7"
    NIU8 = "niu8"
    NIU9 = "niu9"
    NIUNIU = "niuniu"
    WUHUA = "wuhua"
    ZHADAN = "zhadan"
    WUXIAO = "wuxiao"


class CategoryInfo(NamedTuple):
    label: str
    label_cn: str
    multiplier: int
    bull_number: int


CATEGORY_TABLE: Dict[NiuniuCategory, CategoryInfo] = {
    NiuniuCategory.NONE: CategoryInfo("No Bull", "无牛", 1, 0),
    NiuniuCategory.NIU1: CategoryInfo("Bull 1", "牛1", 1, 1),
    NiuniuCategory.NIU2: CategoryInfo("Bull 2", "牛2", 1, 2),
    NiuniuCategory.NIU3: CategoryInfo("Bull 3", "牛3", 1, 3),
    NiuniuCategory.NIU4: CategoryInfo("Bull 4", "牛4", 1, 4),
    NiuniuCategory.NIU5: CategoryInfo("Bull 5", "牛5", 1, 5),
    NiuniuCategory.NIU6: CategoryInfo("Bull 6", "牛6", 1, 6),
    NiuniuCategory.NIU7: CategoryInfo("Bull 7", "牛7", 2, 7),
    NiuniuCategory.NIU8: CategoryInfo("Bull 8", "牛8", 2, 8),
    NiuniuCategory.NIU9: CategoryInfo("Bull 9", "牛9", 3, 9),
    NiuniuCategory.NIUNIU: CategoryInfo("Niu Niu", "牛牛", 3, 10),
    NiuniuCategory.WUHUA: CategoryInfo("5 Face", "五花牛", 5, 13),
    NiuniuCategory.ZHADAN: CategoryInfo("Bomb", "炸弹牛", 5, 14),
    NiuniuCategory.WUXIAO: CategoryInfo("5 Small", "五小牛", 5, 15),
}

_BY_BULL = {info.bull_number: category for category, info in CATEGORY_TABLE.items()}


@dataclass(frozen=True)
class NiuniuResult:
    category: NiuniuCategory
    three_cards: Tuple[int, ...] = ()
    two_cards: Tuple[int, ...] = ()

    @property
    def multiplier(self) -> int:
        return CATEGORY_TABLE[self.category].multiplier

    @property
    def bull_number(self) -> int:
        return CATEGORY_TABLE[self.category].bull_number

    @property
    def label(self) -> str:
        return CATEGORY_TABLE[self.category].label

    @property
    def label_cn(self) -> str:
        return CATEGORY_TABLE[self.category].label_cn


def category_for_bull(bull_number: int) -> NiuniuCategory:
    try:
        return _BY_BULL[bull_number]
    except KeyError:
        raise UnknownOutcome(f"No Niu Niu category for bull number {bull_number}") from None


def evaluate_niuniu(cards: Sequence[Card]) -> NiuniuResult:
    """Classify a five-card hand. Specials are checked before bull partitions.

    Hands of the wrong size (mid-deal inspection) count as no bull.
    """
    if len(cards) != HAND_SIZE:
        return NiuniuResult(NiuniuCategory.NONE)

    values = [card_value(card) for card in cards]
    special = ((0, 1, 2), (3, 4))

    if all(value <= 4 for value in values) and sum(values) <= 10:
        return NiuniuResult(NiuniuCategory.WUXIAO, *special)

    if 4 in Counter(card.rank for card in cards).values():
        return NiuniuResult(NiuniuCategory.ZHADAN, *special)

    if all(card.is_face for card in cards):
        return NiuniuResult(NiuniuCategory.WUHUA, *special)

    # combinations() yields i<j<k in index order, so the first hit is stable.
    for triple in itertools.combinations(_ALL_INDICES, 3):
        if sum(values[idx] for idx in triple) % 10:
            continue
        pair = tuple(idx for idx in _ALL_INDICES if idx not in triple)
        bull = sum(values[idx] for idx in pair) % 10
        category = NiuniuCategory.NIUNIU if bull == 0 else category_for_bull(bull)
        return NiuniuResult(category, triple, pair)

    return NiuniuResult(NiuniuCategory.NONE, (), _ALL_INDICES)


def parse_category(label: Union[str, NiuniuCategory]) -> NiuniuCategory:
    if isinstance(label, NiuniuCategory):
        return label
    text = str(label).strip()
    for category, info in CATEGORY_TABLE.items():
        if text.casefold() in (category.value, info.label.casefold()) or text == info.label_cn:
            return category
    raise UnknownOutcome(f"Unknown Niu Niu hand: {label!r}")


def compare_niuniu(player: NiuniuCategory, dealer: NiuniuCategory) -> int:
    ours = CATEGORY_TABLE[player].bull_number
    theirs = CATEGORY_TABLE[dealer].bull_number
    return (ours > theirs) - (ours < theirs)


def niuniu_pnl(bet: float, category: NiuniuCategory, won: bool) -> float:
    amount = bet * CATEGORY_TABLE[category].multiplier
    return round_cents(amount if won else -amount)


def resolve_niuniu_pnl(
    bet: float,
    player: NiuniuCategory,
    dealer: NiuniuCategory,
    ties_favor_dealer: bool = False,
) -> float:
    """Player pnl against the banker; the winning hand's multiplier is paid."""
    outcome = compare_niuniu(player, dealer)
    if outcome > 0:
        return niuniu_pnl(bet, player, won=True)
    if outcome < 0 or ties_favor_dealer:
        return niuniu_pnl(bet, dealer, won=False)
    return 0.0
