"""Scoring core for Niu Niu and Blackjack rooms: evaluators, dealing and settlement."""

from .blackjack import BlackjackOutcome, BlackjackResult, HandValue, blackjack_pnl, compare_hand_values, evaluate_blackjack
from .cards import Card, Deck, RANKS, SUITS, build_deck, card_value, new_deck, parse_cards, parse_label, shuffle
from .dealing import DealResult, Hand, deal_blackjack, deal_niuniu, double_down, hit, stand
from .errors import DeckExhausted, HandLocked, ParseError, RoundStateError, SettlementImbalance, UnknownOutcome
from .game import RoomEngine
from .models import GameType, Participant, RoomStatus, Round, RoundResult, RuleConfig
from .niuniu import NiuniuCategory, NiuniuResult, evaluate_niuniu, resolve_niuniu_pnl
from .settlement import Transfer, apply_transfers, settle
from .store import InMemoryRoomStore, RoomStore

__all__ = [
    "BlackjackOutcome",
    "BlackjackResult",
    "HandValue",
    "blackjack_pnl",
    "compare_hand_values",
    "evaluate_blackjack",
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "build_deck",
    "card_value",
    "new_deck",
    "parse_cards",
    "parse_label",
    "shuffle",
    "DealResult",
    "Hand",
    "deal_blackjack",
    "deal_niuniu",
    "double_down",
    "hit",
    "stand",
    "DeckExhausted",
    "HandLocked",
    "ParseError",
    "RoundStateError",
    "SettlementImbalance",
    "UnknownOutcome",
    "RoomEngine",
    "GameType",
    "Participant",
    "RoomStatus",
    "Round",
    "RoundResult",
    "RuleConfig",
    "NiuniuCategory",
    "NiuniuResult",
    "evaluate_niuniu",
    "resolve_niuniu_pnl",
    "Transfer",
    "apply_transfers",
    "settle",
    "InMemoryRoomStore",
    "RoomStore",
]
