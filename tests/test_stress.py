from cardtable.models import GameType
from cardtable.settlement import apply_transfers

from .helpers import create_room, play_blackjack_round, total_cents


def test_niuniu_session_of_many_dealt_rounds_stays_zero_sum():
    engine = create_room(players=6, seed=1_000)
    for round_idx in range(300):
        if round_idx % 50 == 0:
            engine.set_dealer(engine.players[round_idx // 50 % len(engine.players)].id)
        engine.start_round()
        engine.deal_cards()
        engine.submit_results()
        assert total_cents(engine) == 0

    balances = engine.balances()
    transfers = engine.end_session()
    assert all(value == 0 for value in apply_transfers(balances, transfers).values())


def test_blackjack_session_with_hits_stays_zero_sum():
    engine = create_room(game=GameType.BLACKJACK, players=5, seed=2_000)
    for round_idx in range(200):
        play_blackjack_round(engine, hit_below=12 + round_idx % 6)
        assert total_cents(engine) == 0

    balances = engine.balances()
    transfers = engine.end_session()
    debtors = sum(1 for _, amount in balances if amount < 0)
    creditors = sum(1 for _, amount in balances if amount > 0)
    assert len(transfers) <= max(debtors + creditors - 1, 0)
    assert all(value == 0 for value in apply_transfers(balances, transfers).values())


def test_undo_every_round_returns_to_zero():
    engine = create_room(players=4, seed=3_000)
    for _ in range(25):
        engine.start_round()
        engine.deal_cards()
        engine.submit_results()
    for _ in range(25):
        engine.undo_last_round()
    assert all(player.score == 0 for player in engine.players)
    assert engine.current_round == 0
