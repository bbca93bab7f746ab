import random

import pytest

from cardtable.cards import build_deck, new_deck
from cardtable.dealing import deal_blackjack, deal_niuniu, double_down, hit, stand
from cardtable.errors import DeckExhausted, HandLocked


def test_niuniu_deal_accounts_for_every_card():
    players = ["p1", "p2", "p3"]
    deal = deal_niuniu(players, "dealer", rng=random.Random(7))

    assert all(len(deal.hands[pid].cards) == 5 for pid in players)
    assert len(deal.dealer.cards) == 5
    assert len(deal.remaining) == 52 - 5 * (len(players) + 1)

    dealt = [card for pid in players for card in deal.hands[pid].cards] + deal.dealer.cards
    assert len(set(dealt)) == len(dealt)
    assert set(dealt) | set(deal.remaining) == set(new_deck())


def test_niuniu_deals_players_in_order_then_dealer():
    expected = build_deck(rng=random.Random(7)).remaining
    deal = deal_niuniu(["p1", "p2"], "dealer", rng=random.Random(7))
    assert deal.hands["p1"].cards == expected[0:5]
    assert deal.hands["p2"].cards == expected[5:10]
    assert deal.dealer.cards == expected[10:15]
    assert deal.remaining == expected[15:]


def test_blackjack_deal_alternates_like_a_table():
    expected = build_deck(rng=random.Random(21)).remaining
    deal = deal_blackjack(["p1", "p2"], "dealer", rng=random.Random(21))
    assert deal.hands["p1"].cards == [expected[0], expected[3]]
    assert deal.hands["p2"].cards == [expected[1], expected[4]]
    assert deal.dealer.cards == [expected[2], expected[5]]
    assert len(deal.remaining) == 46


def test_hit_draws_from_front_of_remaining_deck():
    deal = deal_blackjack(["p1"], "dealer", rng=random.Random(3))
    upcoming = deal.remaining[0]
    card = hit(deal.deck, deal.hands["p1"])
    assert card == upcoming
    assert deal.hands["p1"].cards[-1] == upcoming
    assert len(deal.remaining) == 52 - 4 - 1


def test_double_down_draws_once_then_locks():
    deal = deal_blackjack(["p1"], "dealer", rng=random.Random(4))
    hand = deal.hands["p1"]
    double_down(deal.deck, hand)
    assert len(hand.cards) == 3
    assert hand.doubled and hand.locked
    with pytest.raises(HandLocked):
        hit(deal.deck, hand)


def test_stand_locks_hand():
    deal = deal_blackjack(["p1"], "dealer", rng=random.Random(5))
    hand = deal.hands["p1"]
    stand(hand)
    with pytest.raises(HandLocked):
        hit(deal.deck, hand)
    with pytest.raises(HandLocked):
        stand(hand)


def test_hand_for_resolves_players_and_dealer():
    deal = deal_niuniu(["p1"], "dealer", rng=random.Random(6))
    assert deal.hand_for("dealer") is deal.dealer
    assert deal.hand_for("p1") is deal.hands["p1"]
    with pytest.raises(ValueError, match="No hand dealt"):
        deal.hand_for("ghost")


def test_deal_rejects_bad_seating():
    with pytest.raises(ValueError, match="Duplicate player"):
        deal_niuniu(["p1", "p1"], "dealer")
    with pytest.raises(ValueError, match="Dealer cannot"):
        deal_blackjack(["p1", "dealer"], "dealer")


def test_deck_exhaustion_is_fatal():
    players = [f"p{idx}" for idx in range(10)]
    with pytest.raises(DeckExhausted):
        deal_niuniu(players, "dealer")
