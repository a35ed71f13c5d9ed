import pytest

from pocketledger.app import Ledger


@pytest.fixture
def ledger():
    """A fresh in-memory ledger with schema only (no seeded data)."""
    led = Ledger.in_memory()
    yield led
    led.close()


@pytest.fixture
def bank(ledger):
    return ledger.wallets.create("Savings", "bank", balance=1000.0)


@pytest.fixture
def cash(ledger):
    return ledger.wallets.create("Pocket cash", "cash", balance=0.0)


@pytest.fixture
def food(ledger):
    return ledger.categories.create("Food", "expense", "#FF6B6B")
