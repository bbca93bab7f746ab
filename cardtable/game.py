from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .blackjack import (
    PAYOUTS,
    BlackjackOutcome,
    BlackjackResult,
    HandValue,
    blackjack_pnl,
    evaluate_blackjack,
    hand_value,
    outcome_from_hands,
    parse_hand_value,
    parse_outcome,
    play_dealer,
    resolve_hand_values,
)
from .cards import Card
from .dealing import DealResult, Hand, deal_blackjack, deal_niuniu, double_down, hit, stand
from .errors import HandLocked, RoundStateError
from .models import (
    DEALER_OUTCOME,
    GameType,
    Participant,
    Round,
    RoomStatus,
    RoundResult,
    RuleConfig,
)
from .money import from_cents, round_cents, to_cents
from .niuniu import CATEGORY_TABLE, NiuniuCategory, compare_niuniu, evaluate_niuniu, parse_category, resolve_niuniu_pnl
from .settlement import Transfer, check_balanced, settle
from .store import generate_player_id

LOGGER = logging.getLogger("cardtable")

# RoomEngine keeps one room's players and rounds in memory. Role
# checks and transport live in the host; callers serialize access per room.


class RoomEngine:
    """Score keeping for a single room of Niu Niu or Blackjack."""

    def __init__(self, room_id: str, config: RuleConfig, rng: Optional[random.Random] = None) -> None:
        self.room_id = room_id
        self.config = config
        self.players: List[Participant] = []
        self.rounds: List[Round] = []
        self.status = RoomStatus.WAITING
        self.current_round = 0
        self.created_at = datetime.now(timezone.utc).isoformat()
        # Per-round scratch state, reset whenever a round opens or closes.
        self.drafts: Dict[str, RoundResult] = {}
        self.dealer_hand: Optional[Union[NiuniuCategory, HandValue]] = None
        self.deal: Optional[DealResult] = None
        self._rng = rng or random.Random()

    @property
    def is_niuniu(self) -> bool:
        return self.config.game == GameType.NIUNIU

    # Roster -----------------------------------------------------------

    def add_player(self, name: str, player_id: Optional[str] = None) -> Participant:
        display = name.strip()
        if not display:
            raise ValueError("NAME_REQUIRED")

        existing = self.find_by_name(display)
        if existing:
            existing.connected = True
            return existing
        if self.status == RoomStatus.SETTLED:
            raise RoundStateError("Room already settled")

        pid = player_id or generate_player_id(self._rng)
        while any(player.id == pid for player in self.players):
            pid = generate_player_id(self._rng)
        player = Participant(id=pid, name=display, is_host=not self.players, bet=self.config.base_bet)
        self.players.append(player)
        return player

    def find_by_name(self, name: str) -> Optional[Participant]:
        for player in self.players:
            if player.name == name:
                return player
        return None

    def get_player(self, player_id: str) -> Participant:
        for player in self.players:
            if player.id == player_id:
                return player
        raise ValueError("Player not found")

    @property
    def dealer(self) -> Optional[Participant]:
        return next((player for player in self.players if player.is_dealer), None)

    @property
    def host(self) -> Optional[Participant]:
        return next((player for player in self.players if player.is_host), None)

    def non_dealers(self) -> List[Participant]:
        return [player for player in self.players if not player.is_dealer]

    def remove_player(self, player_id: str) -> Participant:
        player = self.get_player(player_id)
        if to_cents(player.score) != 0:
            raise ValueError("Cannot remove a player with an open balance")
        self.players.remove(player)
        self.drafts.pop(player_id, None)
        if player.is_host and self.players:
            self.players[0].is_host = True
        return player

    def set_dealer(self, player_id: Optional[str]) -> None:
        if player_id is not None:
            self.get_player(player_id)
        for player in self.players:
            player.is_dealer = player.id == player_id
        if player_id is not None:
            self.drafts.pop(player_id, None)

    def transfer_host(self, from_id: str, to_id: str) -> None:
        current = self.get_player(from_id)
        target = self.get_player(to_id)
        if not current.is_host:
            raise ValueError("Not host")
        current.is_host = False
        target.is_host = True

    def set_bet(self, player_id: str, bet: float) -> Participant:
        player = self.get_player(player_id)
        player.bet = _check_bet(bet)
        entry = self.drafts.get(player_id)
        if entry is not None:
            entry.bet = player.bet
            self._recompute(entry)
        return player

    def set_connected(self, player_id: str, connected: bool) -> None:
        self.get_player(player_id).connected = connected

    def adjust_score(self, player_id: str, amount: float) -> Participant:
        player = self.get_player(player_id)
        player.score = _add(player.score, amount)
        LOGGER.info("Room %s: %s score adjusted by %s", self.room_id, player.name, amount)
        return player

    # Round lifecycle --------------------------------------------------

    def start_round(self) -> Round:
        if self.status == RoomStatus.SETTLED:
            raise RoundStateError("Room already settled")
        if self.status == RoomStatus.PLAYING:
            raise RoundStateError("Round already in progress")
        self.status = RoomStatus.PLAYING
        self.current_round += 1
        round_ = Round(number=self.current_round)
        self.rounds.append(round_)
        self._reset_round_state()
        return round_

    def _open_round(self) -> Round:
        if self.status != RoomStatus.PLAYING or not self.rounds:
            raise RoundStateError("No active round")
        return self.rounds[-1]

    def _reset_round_state(self) -> None:
        self.drafts = {}
        self.dealer_hand = None
        self.deal = None

    def _draft(self, player_id: str) -> RoundResult:
        entry = self.drafts.get(player_id)
        if entry is not None:
            return entry
        player = self.get_player(player_id)
        if player.is_dealer:
            raise ValueError("Dealer result is derived from the players")
        entry = RoundResult(participant_id=player.id, name=player.name, bet=player.bet)
        self.drafts[player_id] = entry
        return entry

    def record_outcome(self, player_id: str, label: str, bet: Optional[float] = None) -> RoundResult:
        self._open_round()
        entry = self._draft(player_id)
        if bet is not None:
            entry.bet = _check_bet(bet)
        if self.is_niuniu:
            entry.hand = parse_category(label)
            entry.outcome = entry.hand
        else:
            entry.outcome = parse_outcome(label)
            entry.hand = None
        # Picking a new outcome hands the pnl back to the calculator.
        entry.custom_pnl = False
        self._recompute(entry)
        return entry

    def record_hand_value(self, player_id: str, label: str) -> RoundResult:
        if self.is_niuniu:
            return self.record_outcome(player_id, label)
        self._open_round()
        entry = self._draft(player_id)
        entry.hand = parse_hand_value(label)
        entry.outcome = None
        entry.custom_pnl = False
        self._recompute(entry)
        return entry

    def set_dealer_hand(self, label: str) -> None:
        self._open_round()
        self.dealer_hand = parse_category(label) if self.is_niuniu else parse_hand_value(label)
        for entry in self.drafts.values():
            self._recompute(entry)

    def set_pnl(self, player_id: str, pnl: float) -> RoundResult:
        self._open_round()
        entry = self._draft(player_id)
        entry.pnl = round_cents(pnl)
        entry.custom_pnl = True
        return entry

    def _recompute(self, entry: RoundResult) -> None:
        if entry.custom_pnl:
            return
        if self.is_niuniu:
            self._recompute_niuniu(entry)
            return
        if isinstance(entry.hand, HandValue) and isinstance(self.dealer_hand, HandValue):
            entry.outcome = resolve_hand_values(entry.hand, self.dealer_hand)
        if isinstance(entry.outcome, BlackjackOutcome):
            entry.multiplier = PAYOUTS[entry.outcome]
            entry.pnl = blackjack_pnl(entry.bet, entry.outcome)

    def _recompute_niuniu(self, entry: RoundResult) -> None:
        category = entry.hand
        if not isinstance(category, NiuniuCategory):
            return
        dealer = self.dealer_hand
        if not isinstance(dealer, NiuniuCategory):
            # Nothing to compare against yet.
            entry.multiplier = CATEGORY_TABLE[category].multiplier
            entry.pnl = 0.0
            return
        player_wins = compare_niuniu(category, dealer) > 0
        entry.multiplier = CATEGORY_TABLE[category if player_wins else dealer].multiplier
        entry.pnl = resolve_niuniu_pnl(entry.bet, category, dealer, self.config.ties_favor_dealer)

    # Cards ------------------------------------------------------------

    def deal_cards(self) -> DealResult:
        self._open_round()
        dealer = self.dealer
        if dealer is None:
            raise RoundStateError("Assign a dealer before dealing")
        player_ids = [player.id for player in self.non_dealers()]
        if not player_ids:
            raise RoundStateError("No players to deal to")

        self._reset_round_state()
        if self.is_niuniu:
            self.deal = deal_niuniu(player_ids, dealer.id, rng=self._rng)
            self.dealer_hand = evaluate_niuniu(self.deal.dealer.cards).category
            for pid, hand in self.deal.hands.items():
                entry = self._draft(pid)
                entry.hand = entry.outcome = evaluate_niuniu(hand.cards).category
                self._recompute(entry)
        else:
            self.deal = deal_blackjack(player_ids, dealer.id, rng=self._rng)
            for pid in player_ids:
                self._draft(pid)
        LOGGER.debug("Room %s round %s dealt %s cards", self.room_id, self.current_round, self.deal.deck.dealt)
        return self.deal

    def _blackjack_hand(self, player_id: str) -> Tuple[DealResult, Hand]:
        if self.is_niuniu:
            raise ValueError("Niu Niu hands are fixed once dealt")
        self._open_round()
        if self.deal is None:
            raise RoundStateError("Cards have not been dealt")
        if player_id == self.deal.dealer_id:
            raise ValueError("Dealer draws through play_dealer")
        if self.deal.dealer.stood:
            raise HandLocked("Dealer has already played")
        return self.deal, self.deal.hand_for(player_id)

    def hit(self, player_id: str) -> Card:
        deal, hand = self._blackjack_hand(player_id)
        card = hit(deal.deck, hand)
        if evaluate_blackjack(hand.cards).is_bust:
            hand.stood = True
        return card

    def double_down(self, player_id: str) -> Card:
        deal, hand = self._blackjack_hand(player_id)
        entry = self._draft(player_id)
        card = double_down(deal.deck, hand)
        # The stake stays as is; the doubled hand settles as double-win or double-lose.
        LOGGER.debug("Room %s: %s doubled on a bet of %s", self.room_id, entry.name, entry.bet)
        return card

    def stand(self, player_id: str) -> None:
        _, hand = self._blackjack_hand(player_id)
        stand(hand)

    def play_dealer(self) -> BlackjackResult:
        if self.is_niuniu:
            raise ValueError("Niu Niu has no dealer draw")
        self._open_round()
        if self.deal is None:
            raise RoundStateError("Cards have not been dealt")
        deal = self.deal
        result = play_dealer(deal.dealer.cards, deal.deck, self.config.dealer_stands_on)
        deal.dealer.stood = True
        self.dealer_hand = hand_value(result)
        for pid, hand in deal.hands.items():
            entry = self._draft(pid)
            if entry.custom_pnl:
                continue
            entry.hand = None
            entry.outcome = outcome_from_hands(hand, deal.dealer.cards)
            self._recompute(entry)
        return result

    # Submission -------------------------------------------------------

    def submit_results(self, results: Optional[Sequence[RoundResult]] = None) -> List[RoundResult]:
        round_ = self._open_round()
        if results is None:
            entries = [self.drafts[player.id] for player in self.non_dealers() if player.id in self.drafts]
        else:
            entries = list(results)
        if not entries:
            raise ValueError("No results to submit")

        dealer = self.dealer
        for entry in entries:
            self.get_player(entry.participant_id)
            if (dealer is None or entry.participant_id != dealer.id) and entry.bet <= 0:
                raise ValueError("Bet must be positive")

        if not any(dealer and entry.participant_id == dealer.id for entry in entries):
            if dealer is None:
                raise RoundStateError("Assign a dealer before submitting results")
            total = sum(to_cents(entry.pnl) for entry in entries)
            entries.append(
                RoundResult(
                    participant_id=dealer.id,
                    name=dealer.name,
                    bet=0,
                    outcome=DEALER_OUTCOME,
                    multiplier=1,
                    pnl=from_cents(-total),
                )
            )

        for entry in entries:
            player = self.get_player(entry.participant_id)
            player.score = _add(player.score, entry.pnl)

        round_.results = entries
        self.status = RoomStatus.WAITING
        self._reset_round_state()
        LOGGER.info(
            "Room %s round %s submitted: %s",
            self.room_id,
            round_.number,
            {entry.name: entry.pnl for entry in entries},
        )
        return entries

    def undo_last_round(self) -> Round:
        if self.status == RoomStatus.SETTLED:
            raise RoundStateError("Room already settled")
        if not self.rounds or not self.rounds[-1].submitted:
            raise RoundStateError("No submitted round to undo")
        seated = {player.id for player in self.players}
        departed = [entry.name for entry in self.rounds[-1].results if entry.participant_id not in seated]
        if departed:
            raise RoundStateError(f"Cannot undo a round played by departed players: {', '.join(departed)}")
        round_ = self.rounds.pop()
        for entry in round_.results:
            player = self.get_player(entry.participant_id)
            player.score = _add(player.score, -entry.pnl)
        self.current_round = max(0, self.current_round - 1)
        self.status = RoomStatus.WAITING
        LOGGER.info("Room %s round %s undone", self.room_id, round_.number)
        return round_

    def cancel_round(self) -> Round:
        if self.status != RoomStatus.PLAYING or not self.rounds or self.rounds[-1].submitted:
            raise RoundStateError("Only an open round without results can be cancelled")
        round_ = self.rounds.pop()
        self.current_round = max(0, self.current_round - 1)
        self.status = RoomStatus.WAITING
        self._reset_round_state()
        return round_

    # Settlement -------------------------------------------------------

    def balances(self) -> List[Tuple[str, float]]:
        return [(player.name, player.score) for player in self.players]

    def imbalance(self) -> float:
        """Sum of all balances; anything but 0 blocks end_session."""
        return from_cents(sum(to_cents(player.score) for player in self.players))

    def end_session(self) -> List[Transfer]:
        if self.status == RoomStatus.PLAYING:
            raise RoundStateError("Finish or cancel the open round first")
        balances = self.balances()
        check_balanced(balances)
        self.status = RoomStatus.SETTLED
        transfers = settle(balances)
        LOGGER.info("Room %s settled with %s transfers", self.room_id, len(transfers))
        return transfers

    # Payloads ---------------------------------------------------------

    def state_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "id": self.room_id,
            "game": self.config.game.value,
            "status": self.status.value,
            "current_round": self.current_round,
            "base_bet": self.config.base_bet,
            "ties_favor_dealer": self.config.ties_favor_dealer,
            "created_at": self.created_at,
            "players": [player.to_dict() for player in self.players],
            "rounds": [round_.to_dict() for round_ in self.rounds],
            "pending": {pid: entry.to_dict() for pid, entry in self.drafts.items()},
            "dealer_hand": self.dealer_hand.value if self.dealer_hand is not None else None,
        }
        if self.deal is not None:
            payload["cards"] = {
                "hands": {pid: hand.labels for pid, hand in self.deal.hands.items()},
                "dealer": self.deal.dealer.labels,
                "remaining": len(self.deal.deck),
            }
        return payload


def _check_bet(bet: float) -> float:
    if bet is None or bet <= 0:
        raise ValueError("Bet must be positive")
    return round_cents(bet)


def _add(balance: float, delta: float) -> float:
    return from_cents(to_cents(balance) + to_cents(delta))
