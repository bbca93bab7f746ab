from __future__ import annotations

# Each error subclasses the builtin it specialises, so callers catching
# ValueError / RuntimeError still see it.


class CardTableError(Exception):
    code = "TABLE_ERROR"


class ParseError(CardTableError, ValueError):
    code = "BAD_CARD"


class UnknownOutcome(CardTableError, ValueError):
    code = "UNKNOWN_OUTCOME"


class HandLocked(CardTableError, ValueError):
    code = "HAND_LOCKED"


class DeckExhausted(CardTableError, RuntimeError):
    code = "DECK_EXHAUSTED"


class RoundStateError(CardTableError, RuntimeError):
    code = "BAD_ROUND_STATE"


class SettlementImbalance(CardTableError, RuntimeError):
    code = "UNBALANCED"

    def __init__(self, total: float) -> None:
        super().__init__(f"Balances sum to {total:.2f}, expected 0")
        self.total = total
