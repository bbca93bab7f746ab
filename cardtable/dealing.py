from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .cards import Card, Deck, build_deck, cards_to_labels
from .errors import HandLocked
from .niuniu import HAND_SIZE as NIUNIU_HAND_SIZE

BLACKJACK_OPENING_CARDS = 2


@dataclass
class Hand:
    cards: List[Card] = field(default_factory=list)
    doubled: bool = False
    stood: bool = False

    @property
    def locked(self) -> bool:
        return self.doubled or self.stood

    @property
    def labels(self) -> List[str]:
        return cards_to_labels(self.cards)


@dataclass
class DealResult:
    # The deck keeps its cursor so hits and doubles continue from the same shoe.
    deck: Deck
    hands: Dict[str, Hand]
    dealer_id: str
    dealer: Hand

    @property
    def remaining(self) -> List[Card]:
        return self.deck.remaining

    def hand_for(self, participant_id: str) -> Hand:
        if participant_id == self.dealer_id:
            return self.dealer
        try:
            return self.hands[participant_id]
        except KeyError:
            raise ValueError(f"No hand dealt to {participant_id}") from None


def _check_seating(player_ids: Sequence[str], dealer_id: str) -> None:
    if len(set(player_ids)) != len(player_ids):
        raise ValueError("Duplicate player id in deal")
    if dealer_id in player_ids:
        raise ValueError("Dealer cannot also be dealt a player hand")


def deal_niuniu(
    player_ids: Sequence[str],
    dealer_id: str,
    rng: Optional[random.Random] = None,
) -> DealResult:
    _check_seating(player_ids, dealer_id)
    deck = build_deck(rng=rng)
    hands = {pid: Hand(deck.draw(NIUNIU_HAND_SIZE)) for pid in player_ids}
    dealer = Hand(deck.draw(NIUNIU_HAND_SIZE))
    return DealResult(deck=deck, hands=hands, dealer_id=dealer_id, dealer=dealer)


def deal_blackjack(
    player_ids: Sequence[str],
    dealer_id: str,
    rng: Optional[random.Random] = None,
) -> DealResult:
    _check_seating(player_ids, dealer_id)
    deck = build_deck(rng=rng)
    hands = {pid: Hand() for pid in player_ids}
    dealer = Hand()
    # One card per pass, players in seat order then the dealer.
    for _ in range(BLACKJACK_OPENING_CARDS):
        for pid in player_ids:
            hands[pid].cards.append(deck.draw_one())
        dealer.cards.append(deck.draw_one())
    return DealResult(deck=deck, hands=hands, dealer_id=dealer_id, dealer=dealer)


def hit(deck: Deck, hand: Hand) -> Card:
    if hand.locked:
        raise HandLocked("Hand is locked")
    card = deck.draw_one()
    hand.cards.append(card)
    return card


def double_down(deck: Deck, hand: Hand) -> Card:
    card = hit(deck, hand)
    hand.doubled = True
    return card


def stand(hand: Hand) -> None:
    if hand.locked:
        raise HandLocked("Hand is locked")
    hand.stood = True
