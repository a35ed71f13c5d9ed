"""Wallet balance effects of a transaction.

``balance_deltas`` is pure: it maps one transaction and a direction onto the
per-wallet balance changes it implies. ``BalanceMutator`` writes those
changes and nothing else.

    income    wallet_id  +amount
    expense   wallet_id  -amount
    transfer  wallet_id  -(amount + fee)   to_wallet_id  +amount

A transfer row without ``to_wallet_id`` has no effect at all (the fee is not
charged either). ``sign`` is +1 to apply and -1 to reverse.
"""
from pocketledger.database.wallet_dao import WalletDAO
from pocketledger.models.transaction import Transaction

APPLY = 1
REVERSE = -1


def balance_deltas(tx: Transaction, sign: int = APPLY) -> dict[int, float]:
    if sign not in (APPLY, REVERSE):
        raise ValueError(f"sign must be +1 or -1, got {sign}")
    deltas: dict[int, float] = {}

    def add(wallet_id: int, delta: float):
        deltas[wallet_id] = deltas.get(wallet_id, 0.0) + delta

    if tx.type == "income":
        add(tx.wallet_id, tx.amount * sign)
    elif tx.type == "expense":
        add(tx.wallet_id, -tx.amount * sign)
    elif tx.type == "transfer" and tx.to_wallet_id is not None:
        fee = tx.transfer_fee or 0.0
        add(tx.wallet_id, -(tx.amount + fee) * sign)
        add(tx.to_wallet_id, tx.amount * sign)
    return deltas


class BalanceMutator:
    def __init__(self, wallet_dao: WalletDAO):
        self._wallet_dao = wallet_dao

    def apply(self, tx: Transaction, sign: int = APPLY) -> dict[int, float]:
        """Write the deltas for tx; the caller owns the surrounding DB transaction."""
        deltas = balance_deltas(tx, sign)
        for wallet_id, delta in deltas.items():
            if delta:
                self._wallet_dao.adjust_balance(wallet_id, delta)
        return deltas

    def reverse(self, tx: Transaction) -> dict[int, float]:
        return self.apply(tx, REVERSE)
