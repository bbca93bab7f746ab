"""End-of-session debt settlement.

Balances are reduced to debtor -> creditor payments with a greedy sweep: the
largest remaining debt is matched against the largest remaining credit until
one side runs out. This is not a global minimum-transfer solver, but it never
produces more than ``debtors + creditors - 1`` payments and is deterministic
for a given input order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from .errors import SettlementImbalance
from .money import from_cents, to_cents

Balances = Union[Mapping[str, float], Iterable[Tuple[str, float]]]


@dataclass(frozen=True)
class Transfer:
    debtor: str
    creditor: str
    amount: float

    def as_dict(self) -> Dict[str, object]:
        return {"from": self.debtor, "to": self.creditor, "amount": self.amount}


def _pairs(balances: Balances) -> List[Tuple[str, float]]:
    if isinstance(balances, Mapping):
        return list(balances.items())
    return list(balances)


def check_balanced(balances: Balances) -> None:
    total = sum(to_cents(amount) for _, amount in _pairs(balances))
    if total != 0:
        raise SettlementImbalance(from_cents(total))


def settle(balances: Balances, strict: bool = False) -> List[Transfer]:
    pairs = _pairs(balances)
    if strict:
        check_balanced(pairs)

    # Work in whole cents; anything under a cent is treated as settled.
    debtors = [[name, -to_cents(amount)] for name, amount in pairs if to_cents(amount) < 0]
    creditors = [[name, to_cents(amount)] for name, amount in pairs if to_cents(amount) > 0]
    # sort() is stable, so equal amounts keep their input order.
    debtors.sort(key=lambda entry: entry[1], reverse=True)
    creditors.sort(key=lambda entry: entry[1], reverse=True)

    transfers: List[Transfer] = []
    di = ci = 0
    while di < len(debtors) and ci < len(creditors):
        debtor, creditor = debtors[di], creditors[ci]
        amount = min(debtor[1], creditor[1])
        if amount > 0:
            transfers.append(Transfer(debtor[0], creditor[0], from_cents(amount)))
        debtor[1] -= amount
        creditor[1] -= amount
        if debtor[1] <= 0:
            di += 1
        if creditor[1] <= 0:
            ci += 1
    return transfers


def apply_transfers(balances: Balances, transfers: Iterable[Transfer]) -> Dict[str, float]:
    """Balances after every debtor pays and every creditor is paid."""
    cents = {name: to_cents(amount) for name, amount in _pairs(balances)}
    for transfer in transfers:
        paid = to_cents(transfer.amount)
        cents[transfer.debtor] = cents.get(transfer.debtor, 0) + paid
        cents[transfer.creditor] = cents.get(transfer.creditor, 0) - paid
    return {name: from_cents(amount) for name, amount in cents.items()}
