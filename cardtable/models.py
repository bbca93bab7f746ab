from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from .blackjack import DEALER_STANDS_ON, BlackjackOutcome, HandValue
from .niuniu import NiuniuCategory

DEALER_OUTCOME = "Dealer"

Outcome = Union[NiuniuCategory, BlackjackOutcome, str]


class GameType(str, Enum):
    BLACKJACK = "21"
    NIUNIU = "niuniu"


class RoomStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    SETTLED = "settled"


@dataclass
class RuleConfig:
    game: GameType = GameType.NIUNIU
    base_bet: float = 10
    ties_favor_dealer: bool = False
    dealer_stands_on: int = DEALER_STANDS_ON


@dataclass
class Participant:
    id: str
    name: str
    score: float = 0.0
    is_host: bool = False
    is_dealer: bool = False
    bet: float = 0.0
    connected: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "is_host": self.is_host,
            "is_dealer": self.is_dealer,
            "bet": self.bet,
            "connected": self.connected,
        }


@dataclass
class RoundResult:
    participant_id: str
    name: str
    bet: float
    outcome: Optional[Outcome] = None
    multiplier: float = 1
    pnl: float = 0.0
    # What the pnl was derived from: a Niu Niu category or a blackjack hand value.
    hand: Optional[Union[NiuniuCategory, HandValue]] = None
    custom_pnl: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "participant_id": self.participant_id,
            "name": self.name,
            "bet": self.bet,
            "outcome": _label(self.outcome),
            "multiplier": self.multiplier,
            "pnl": self.pnl,
            "hand": _label(self.hand),
            "custom_pnl": self.custom_pnl,
        }


@dataclass
class Round:
    number: int
    results: List[RoundResult] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def submitted(self) -> bool:
        return bool(self.results)

    def to_dict(self) -> Dict[str, object]:
        return {
            "number": self.number,
            "timestamp": self.timestamp,
            "results": [result.to_dict() for result in self.results],
        }


def _label(value: Optional[Outcome]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return value
