import pytest

from roster_enricher.credits import CreditLedger
from roster_enricher.errors import InsufficientCredits


class BalanceSequence:
    """Balance query returning queued values, then repeating the last one."""

    def __init__(self, *values) -> None:
        self.values = list(values)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


def test_reserve_refuses_unaffordable_cost_before_running_body() -> None:
    ledger = CreditLedger(BalanceSequence(4))
    ran = []

    with pytest.raises(InsufficientCredits) as info:
        with ledger.reserve(6):
            ran.append(True)

    assert ran == []
    assert info.value.required == 6
    assert info.value.remaining == 4
    assert ledger.remaining == 4
    assert ledger.used == 0


def test_reserve_rereads_balance_before_and_after() -> None:
    query = BalanceSequence(10, 8)
    ledger = CreditLedger(query)

    with ledger.reserve(2):
        assert ledger.remaining == 10

    assert query.calls == 2
    assert ledger.remaining == 8
    assert ledger.used == 2


def test_failed_body_records_no_usage_and_rereads_balance() -> None:
    query = BalanceSequence(10, 10)
    ledger = CreditLedger(query)

    with pytest.raises(RuntimeError):
        with ledger.reserve(3):
            raise RuntimeError("boom")

    assert ledger.used == 0
    assert query.calls == 2


def test_unknown_balance_proceeds_when_allowed() -> None:
    ledger = CreditLedger(lambda: None)

    with ledger.reserve(2):
        pass

    assert ledger.remaining is None
    assert ledger.used == 2


def test_unknown_balance_is_refused_when_strict() -> None:
    ledger = CreditLedger(lambda: None, allow_unknown_balance=False)

    with pytest.raises(InsufficientCredits):
        ledger.check(1)


def test_balance_decremented_locally_when_post_read_fails() -> None:
    query = BalanceSequence(5, None)
    ledger = CreditLedger(query)

    with ledger.reserve(2):
        pass

    assert ledger.remaining == 3


def test_zero_cost_always_passes() -> None:
    ledger = CreditLedger(BalanceSequence(0))
    ledger.refresh()
    ledger.check(0)
