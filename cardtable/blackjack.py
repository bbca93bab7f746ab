from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Sequence, Union

from .cards import Card, Deck
from .errors import UnknownOutcome
from .money import round_cents

if TYPE_CHECKING:
    from .dealing import Hand

BLACKJACK = 21
DEALER_STANDS_ON = 17
CHARLIE_CARDS = 5


@dataclass(frozen=True)
class BlackjackResult:
    total: int
    is_soft: bool
    is_blackjack: bool
    is_bust: bool

    @property
    def display(self) -> str:
        if self.is_blackjack:
            return "BJ"
        if self.is_bust:
            return "Bust"
        return str(self.total)


def blackjack_card_value(card: Card) -> int:
    if card.rank == "A":
        return 11
    if card.is_face:
        return 10
    return int(card.rank)


def evaluate_blackjack(cards: Sequence[Card]) -> BlackjackResult:
    if not cards:
        return BlackjackResult(total=0, is_soft=False, is_blackjack=False, is_bust=False)

    total = sum(blackjack_card_value(card) for card in cards)
    soft_aces = sum(1 for card in cards if card.rank == "A")
    while total > BLACKJACK and soft_aces:
        total -= 10
        soft_aces -= 1

    return BlackjackResult(
        total=total,
        is_soft=soft_aces > 0,
        is_blackjack=len(cards) == 2 and total == BLACKJACK,
        is_bust=total > BLACKJACK,
    )


class BlackjackOutcome(str, Enum):
    BLACKJACK = "blackjack"
    WIN = "win"
    PUSH = "push"
    LOSE = "lose"
    BUST = "bust"
    SURRENDER = "surrender"
    DOUBLE_WIN = "double-win"
    DOUBLE_LOSE = "double-lose"
    FIVE_CARD_CHARLIE = "five-card-charlie"


PAYOUTS: Dict[BlackjackOutcome, float] = {
    BlackjackOutcome.BLACKJACK: 1.5,
    BlackjackOutcome.WIN: 1.0,
    BlackjackOutcome.PUSH: 0.0,
    BlackjackOutcome.LOSE: -1.0,
    BlackjackOutcome.BUST: -1.0,
    BlackjackOutcome.SURRENDER: -0.5,
    BlackjackOutcome.DOUBLE_WIN: 2.0,
    BlackjackOutcome.DOUBLE_LOSE: -2.0,
    BlackjackOutcome.FIVE_CARD_CHARLIE: 2.0,
}


def parse_outcome(label: Union[str, BlackjackOutcome]) -> BlackjackOutcome:
    if isinstance(label, BlackjackOutcome):
        return label
    try:
        return BlackjackOutcome(str(label).strip().casefold())
    except ValueError:
        raise UnknownOutcome(f"Unknown blackjack outcome: {label!r}") from None


def blackjack_pnl(bet: float, outcome: Union[str, BlackjackOutcome]) -> float:
    return round_cents(bet * PAYOUTS[parse_outcome(outcome)])


class HandValue(str, Enum):
    BLACKJACK = "blackjack"
    V21 = "21"
    V20 = "20"
    V19 = "19"
    V18 = "18"
    V17 = "17"
    V16 = "16"
    V15 = "15"
    V14 = "14"
    V13 = "13"
    TWELVE_OR_LESS = "12 or less"
    BUST = "bust"

    @property
    def points(self) -> int:
        # Only meaningful for the numeric members; blackjack/bust are
        # resolved before any numeric comparison.
        if self is HandValue.TWELVE_OR_LESS:
            return 12
        if self is HandValue.BLACKJACK:
            return BLACKJACK
        if self is HandValue.BUST:
            return 0
        return int(self.value)


def hand_value(result: BlackjackResult) -> HandValue:
    if result.is_blackjack:
        return HandValue.BLACKJACK
    if result.is_bust:
        return HandValue.BUST
    if result.total <= 12:
        return HandValue.TWELVE_OR_LESS
    return HandValue(str(result.total))


def parse_hand_value(label: Union[str, HandValue]) -> HandValue:
    if isinstance(label, HandValue):
        return label
    try:
        return HandValue(str(label).strip().casefold())
    except ValueError:
        raise UnknownOutcome(f"Unknown blackjack hand value: {label!r}") from None


def resolve_hand_values(player: HandValue, dealer: HandValue) -> BlackjackOutcome:
    if player is HandValue.BUST:
        return BlackjackOutcome.LOSE
    if dealer is HandValue.BUST:
        return BlackjackOutcome.BLACKJACK if player is HandValue.BLACKJACK else BlackjackOutcome.WIN
    if player is HandValue.BLACKJACK and dealer is HandValue.BLACKJACK:
        return BlackjackOutcome.PUSH
    if player is HandValue.BLACKJACK:
        return BlackjackOutcome.BLACKJACK
    if dealer is HandValue.BLACKJACK:
        return BlackjackOutcome.LOSE
    if player.points > dealer.points:
        return BlackjackOutcome.WIN
    if player.points < dealer.points:
        return BlackjackOutcome.LOSE
    return BlackjackOutcome.PUSH


def compare_hand_values(player: Union[str, HandValue], dealer: Union[str, HandValue], bet: float) -> float:
    outcome = resolve_hand_values(parse_hand_value(player), parse_hand_value(dealer))
    return blackjack_pnl(bet, outcome)


def dealer_should_hit(result: BlackjackResult, stand_on: int = DEALER_STANDS_ON) -> bool:
    return result.total < stand_on and not result.is_bust


def play_dealer(cards: List[Card], deck: Deck, stand_on: int = DEALER_STANDS_ON) -> BlackjackResult:
    """Draw into ``cards`` until the dealer stands; soft and hard 17 both stand."""
    result = evaluate_blackjack(cards)
    while dealer_should_hit(result, stand_on):
        cards.append(deck.draw_one())
        result = evaluate_blackjack(cards)
    return result


def outcome_from_hands(player: "Hand", dealer_cards: Sequence[Card]) -> BlackjackOutcome:
    ours = evaluate_blackjack(player.cards)
    if ours.is_bust:
        return BlackjackOutcome.DOUBLE_LOSE if player.doubled else BlackjackOutcome.BUST
    if len(player.cards) >= CHARLIE_CARDS:
        return BlackjackOutcome.FIVE_CARD_CHARLIE

    outcome = resolve_hand_values(hand_value(ours), hand_value(evaluate_blackjack(dealer_cards)))
    if player.doubled and outcome is BlackjackOutcome.WIN:
        return BlackjackOutcome.DOUBLE_WIN
    if player.doubled and outcome is BlackjackOutcome.LOSE:
        return BlackjackOutcome.DOUBLE_LOSE
    return outcome
