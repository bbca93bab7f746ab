import random

import pytest

from cardtable.cards import Card, Deck, build_deck, card_value, new_deck, parse_cards, parse_label, shuffle
from cardtable.errors import DeckExhausted, ParseError


def test_new_deck_has_52_unique_cards():
    deck = new_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52


def test_shuffle_returns_permutation_without_mutating_input():
    deck = new_deck()
    original = list(deck)
    shuffled = shuffle(deck, random.Random(3))
    assert deck == original
    assert shuffled is not deck
    assert sorted(shuffled, key=lambda c: c.label) == sorted(original, key=lambda c: c.label)
    assert shuffled != original


def test_shuffle_is_reproducible_with_seeded_rng():
    assert shuffle(new_deck(), random.Random(11)) == shuffle(new_deck(), random.Random(11))


def test_card_value_uses_niuniu_counting():
    assert card_value(Card("A", "♠")) == 1
    assert card_value(Card("7", "♥")) == 7
    for rank in ("10", "J", "Q", "K"):
        assert card_value(Card(rank, "♦")) == 10


def test_parse_label_accepts_glyphs_and_ascii_suits():
    assert parse_label("10♥") == Card("10", "♥")
    assert parse_label("Ks") == Card("K", "♠")
    assert parse_label("ad") == Card("A", "♦")
    assert [card.label for card in parse_cards(["2c", "Q♣"])] == ["2♣", "Q♣"]


def test_card_validation_rejects_invalid_labels():
    with pytest.raises(ParseError, match="Invalid rank"):
        Card("1", "♠")
    with pytest.raises(ParseError, match="Invalid suit"):
        Card("A", "x")
    with pytest.raises(ParseError, match="Invalid card label"):
        parse_label("K")
    # ParseError is still a ValueError for callers that only know the builtin.
    with pytest.raises(ValueError):
        parse_label("11♠")


def test_deck_cursor_tracks_remaining_cards():
    deck = build_deck(seed=5)
    first = deck.draw(5)
    assert len(first) == 5
    assert len(deck) == 47
    assert deck.dealt == 5
    assert set(first).isdisjoint(deck.remaining)
    upcoming = deck.remaining[0]
    assert deck.draw_one() == upcoming
    assert len(deck) == 46


def test_deck_raises_when_exhausted():
    deck = Deck([Card("A", "♥"), Card("K", "♦")])
    deck.draw(2)
    with pytest.raises(DeckExhausted, match="Not enough cards"):
        deck.draw(1)
