from __future__ import annotations

import random
from typing import List

from cardtable.blackjack import evaluate_blackjack
from cardtable.game import RoomEngine
from cardtable.models import GameType, RuleConfig
from cardtable.money import to_cents


def create_room(
    *,
    game: GameType = GameType.NIUNIU,
    players: int = 3,
    base_bet: float = 10,
    ties_favor_dealer: bool = False,
    seed: int = 42,
) -> RoomEngine:
    """Room with ``players`` seated; the first player is host and dealer."""
    engine = RoomEngine(
        "ROOM01",
        RuleConfig(game=game, base_bet=base_bet, ties_favor_dealer=ties_favor_dealer),
        rng=random.Random(seed),
    )
    for idx in range(players):
        engine.add_player(f"Player{idx}")
    engine.set_dealer(engine.players[0].id)
    return engine


def player_ids(engine: RoomEngine) -> List[str]:
    return [player.id for player in engine.non_dealers()]


def total_cents(engine: RoomEngine) -> int:
    return sum(to_cents(player.score) for player in engine.players)


def play_blackjack_round(engine: RoomEngine, hit_below: int = 15) -> None:
    """Deal, let every player hit up to ``hit_below`` and stand, then run the dealer."""
    engine.start_round()
    deal = engine.deal_cards()
    for pid, hand in deal.hands.items():
        while not hand.locked and evaluate_blackjack(hand.cards).total < hit_below:
            engine.hit(pid)
        if not hand.locked:
            engine.stand(pid)
    engine.play_dealer()
    engine.submit_results()
