import pytest

from cardtable.blackjack import (
    BlackjackOutcome,
    HandValue,
    blackjack_pnl,
    compare_hand_values,
    dealer_should_hit,
    evaluate_blackjack,
    hand_value,
    outcome_from_hands,
    play_dealer,
    resolve_hand_values,
)
from cardtable.cards import Deck, parse_cards
from cardtable.dealing import Hand
from cardtable.errors import UnknownOutcome


def test_pair_of_aces_reduces_one_ace():
    result = evaluate_blackjack(parse_cards(["A♠", "A♥"]))
    assert result.total == 12
    assert result.is_soft is True
    assert result.is_bust is False
    assert result.is_blackjack is False
    assert result.display == "12"


def test_ace_king_is_a_natural():
    result = evaluate_blackjack(parse_cards(["A♠", "K♥"]))
    assert result.total == 21
    assert result.is_blackjack is True
    assert result.display == "BJ"


def test_three_card_21_is_not_blackjack():
    result = evaluate_blackjack(parse_cards(["7♠", "7♥", "7♦"]))
    assert result.total == 21
    assert result.is_blackjack is False
    assert result.display == "21"


def test_soft_hand_turns_hard_after_reduction():
    assert evaluate_blackjack(parse_cards(["A♠", "6♥"])).is_soft is True
    hard = evaluate_blackjack(parse_cards(["A♠", "6♥", "K♦"]))
    assert hard.total == 17
    assert hard.is_soft is False


def test_two_aces_and_nine_keep_one_soft_ace():
    result = evaluate_blackjack(parse_cards(["A♠", "A♥", "9♦"]))
    assert result.total == 21
    assert result.is_soft is True


def test_bust_hand():
    result = evaluate_blackjack(parse_cards(["K♠", "Q♥", "5♦"]))
    assert result.total == 25
    assert result.is_bust is True
    assert result.display == "Bust"


def test_empty_hand_defaults_to_zero():
    result = evaluate_blackjack([])
    assert result.total == 0
    assert not result.is_bust
    assert not result.is_blackjack


def test_pnl_table():
    cases = [
        ("blackjack", 15),
        ("win", 10),
        ("push", 0),
        ("lose", -10),
        ("bust", -10),
        ("surrender", -5),
        ("double-win", 20),
        ("double-lose", -20),
        ("five-card-charlie", 20),
    ]
    for label, expected in cases:
        assert blackjack_pnl(10, label) == expected, label
    assert blackjack_pnl(7, BlackjackOutcome.BLACKJACK) == 10.5
    assert blackjack_pnl(10, "WIN") == 10


def test_unknown_outcome_fails_loudly():
    with pytest.raises(UnknownOutcome, match="Unknown blackjack outcome"):
        blackjack_pnl(10, "insurance")


def test_hand_value_labels():
    assert hand_value(evaluate_blackjack(parse_cards(["A♠", "Q♥"]))) == HandValue.BLACKJACK
    assert hand_value(evaluate_blackjack(parse_cards(["9♠", "Q♥"]))) == HandValue.V19
    assert hand_value(evaluate_blackjack(parse_cards(["2♠", "Q♥"]))) == HandValue.TWELVE_OR_LESS
    assert hand_value(evaluate_blackjack(parse_cards(["K♠", "Q♥", "2♦"]))) == HandValue.BUST


def test_comparator_precedence():
    cases = [
        ("bust", "bust", -10),
        ("blackjack", "bust", 15),
        ("18", "bust", 10),
        ("blackjack", "blackjack", 0),
        ("blackjack", "21", 15),
        ("21", "blackjack", -10),
        ("20", "19", 10),
        ("17", "20", -10),
        ("18", "18", 0),
        ("13", "12 or less", 10),
        ("12 or less", "12 or less", 0),
    ]
    for player, dealer, expected in cases:
        assert compare_hand_values(player, dealer, 10) == expected, (player, dealer)


def test_resolve_hand_values_returns_outcomes():
    assert resolve_hand_values(HandValue.V20, HandValue.V19) == BlackjackOutcome.WIN
    assert resolve_hand_values(HandValue.BLACKJACK, HandValue.V20) == BlackjackOutcome.BLACKJACK
    with pytest.raises(UnknownOutcome):
        compare_hand_values("22", "20", 10)


def test_dealer_hits_until_seventeen():
    cards = parse_cards(["10♠", "6♥"])
    deck = Deck(parse_cards(["5♦", "K♣"]))
    result = play_dealer(cards, deck)
    assert result.total == 21
    assert [card.label for card in cards] == ["10♠", "6♥", "5♦"]
    assert len(deck) == 1


def test_dealer_stands_on_soft_seventeen():
    cards = parse_cards(["A♠", "6♥"])
    deck = Deck(parse_cards(["5♦"]))
    result = play_dealer(cards, deck)
    assert result.total == 17
    assert len(cards) == 2
    assert not dealer_should_hit(result)


def test_dealer_stops_when_bust():
    cards = parse_cards(["10♠", "6♥"])
    result = play_dealer(cards, Deck(parse_cards(["K♦", "2♣"])))
    assert result.is_bust
    assert len(cards) == 3


def test_outcome_from_hands():
    dealer = parse_cards(["10♠", "8♥"])
    assert outcome_from_hands(Hand(parse_cards(["K♠", "Q♥", "5♦"])), dealer) == BlackjackOutcome.BUST
    assert outcome_from_hands(Hand(parse_cards(["K♠", "Q♥", "5♦"]), doubled=True), dealer) == BlackjackOutcome.DOUBLE_LOSE
    charlie = Hand(parse_cards(["2♠", "3♥", "2♦", "3♣", "4♠"]))
    assert outcome_from_hands(charlie, dealer) == BlackjackOutcome.FIVE_CARD_CHARLIE
    assert outcome_from_hands(Hand(parse_cards(["5♠", "6♥", "9♦"]), doubled=True), dealer) == BlackjackOutcome.DOUBLE_WIN
    assert outcome_from_hands(Hand(parse_cards(["5♠", "6♥", "4♦"]), doubled=True), dealer) == BlackjackOutcome.DOUBLE_LOSE
    assert outcome_from_hands(Hand(parse_cards(["5♠", "6♥", "7♦"]), doubled=True), dealer) == BlackjackOutcome.PUSH
    assert outcome_from_hands(Hand(parse_cards(["A♠", "J♥"])), dealer) == BlackjackOutcome.BLACKJACK
