import asyncio
import logging
import random
from decimal import Decimal

import pytest

from paper_rebalancer import CASH_KEY, PaperRebalancer, PriceRefresher
from paper_rebalancer.context import get_current_cycle

from tests.conftest import FakeQuoteProvider, crypto, equity, make_portfolio, usd


class CycleRecorder(logging.Handler):
    """Collects the cycle context active when each record is emitted"""

    def __init__(self):
        super().__init__()
        self.cycles = []

    def emit(self, record):
        self.cycles.append(get_current_cycle())


class TestRebalance:

    def test_two_asset_cycle(self, two_asset_portfolio):
        result = PaperRebalancer(two_asset_portfolio).rebalance()

        assert result.success
        assert [(o.symbol, o.quantity) for o in result.orders] == [("A", Decimal("-2.5")), ("B", Decimal("2.5"))]
        assert result.sweep_orders == []
        assert two_asset_portfolio.get_position("A").quantity == Decimal("7.5")
        assert two_asset_portfolio.get_position("B").quantity == Decimal("7.5")
        assert result.cash_balance == usd(0)
        assert result.total_value_before == result.total_value_after == usd(150)
        assert result.weights == {"A": Decimal("0.5"), "B": Decimal("0.5"), CASH_KEY: Decimal(0)}

    def test_mixed_cycle_conserves_value(self, mixed_portfolio):
        result = PaperRebalancer(mixed_portfolio).rebalance()

        assert result.success
        assert result.total_value_after == usd(10000)
        assert [o.symbol for o in result.orders] == ["ETH", "SPY", "NVDA"]
        assert {o.symbol for o in result.sweep_orders} == {"SPY", "NVDA", "ETH"}
        assert mixed_portfolio.cash >= usd(0)
        assert abs(sum(result.weights.values()) - 1) <= Decimal("1e-8")

    def test_second_pass_is_a_no_op(self, two_asset_portfolio):
        rebalancer = PaperRebalancer(two_asset_portfolio)
        rebalancer.rebalance()
        result = rebalancer.rebalance()
        assert result.success
        assert result.orders == []

    def test_unheld_target_is_reported(self):
        portfolio = make_portfolio(
            positions=[equity("A", 10, 10), equity("B", 5, 10)],
            target_weights={"A": "0.4", "B": "0.4", "C": "0.2"},
        )
        result = PaperRebalancer(portfolio).rebalance()
        assert result.success
        assert any("C" in warning for warning in result.warnings)
        assert "C" not in [o.symbol for o in result.orders]

    def test_zero_value_portfolio_fails(self):
        portfolio = make_portfolio([equity("A", 0, 10)], {"A": 1})
        result = PaperRebalancer(portfolio).rebalance()
        assert not result.success
        assert result.error_kind == "DivideByZeroError"
        assert result.orders == []

    def test_sweep_without_eligible_positions_fails(self):
        portfolio = make_portfolio(
            positions=[equity("OLD", 1, 10)],
            target_weights={"CASH": "1"},
            cash=10,
        )
        result = PaperRebalancer(portfolio).rebalance()
        assert not result.success
        assert result.error_kind == "DivideByZeroError"
        assert result.total_value_before == usd(20)

    def test_value_drift_is_detected(self, two_asset_portfolio):
        rebalancer = PaperRebalancer(two_asset_portfolio)

        def leaky_sweep(portfolio):
            portfolio.cash = portfolio.cash + usd("0.01")
            return []

        rebalancer.sweep.sweep = leaky_sweep
        result = rebalancer.rebalance()

        assert not result.success
        assert result.error_kind == "ValueConservationError"

    def test_preview_does_not_trade(self, two_asset_portfolio):
        preview = PaperRebalancer(two_asset_portfolio).calculate_rebalance()
        assert preview.success
        assert preview.current_value == usd(150)
        assert len(preview.proposed_trades) == 2
        assert two_asset_portfolio.get_position("A").quantity == Decimal(10)
        assert two_asset_portfolio.cash.is_zero()


class TestRunCycle:

    def test_cycle_refreshes_then_rebalances(self, two_asset_portfolio):
        quotes = FakeQuoteProvider({"A": 12.0, "B": 8.0})
        rebalancer = PaperRebalancer(two_asset_portfolio, PriceRefresher(quotes))

        result = asyncio.run(rebalancer.run_cycle())

        assert result.success
        assert result.total_value_before == usd(160)
        assert two_asset_portfolio.get_position("A").current_price() == usd(12)
        assert two_asset_portfolio.get_position("B").quantity == Decimal(10)

    def test_failed_refresh_skips_rebalance(self, two_asset_portfolio):
        quotes = FakeQuoteProvider({"A": 12.0, "B": 8.0}, fail=["B"])
        rebalancer = PaperRebalancer(two_asset_portfolio, PriceRefresher(quotes))

        result = asyncio.run(rebalancer.run_cycle())

        assert not result.success
        assert result.error_kind == "PriceFetchFailedError"
        assert result.symbol == "B"
        assert two_asset_portfolio.get_position("A").current_price() == usd(10)
        assert two_asset_portfolio.get_position("A").quantity == Decimal(10)

    def test_cycle_can_reuse_cached_quotes(self, two_asset_portfolio):
        quotes = FakeQuoteProvider({"A": 10.0, "B": 10.0})
        rebalancer = PaperRebalancer(two_asset_portfolio, PriceRefresher(quotes))

        asyncio.run(rebalancer.run_cycle(use_cached_prices=True))
        asyncio.run(rebalancer.run_cycle())

        assert quotes.cache_flags == [True, True, False, False]

    def test_cycle_without_refresher_uses_last_prices(self, two_asset_portfolio):
        result = asyncio.run(PaperRebalancer(two_asset_portfolio).run_cycle())
        assert result.success
        assert result.total_value_before == usd(150)

    def test_concurrent_cycles_are_serialized(self, two_asset_portfolio):
        quotes = FakeQuoteProvider({"A": 10.0, "B": 10.0}, delays={"A": 0.01})
        rebalancer = PaperRebalancer(two_asset_portfolio, PriceRefresher(quotes))

        async def two_cycles():
            return await asyncio.gather(rebalancer.run_cycle(), rebalancer.run_cycle())

        first, second = asyncio.run(two_cycles())

        assert first.success and second.success
        assert len(first.orders) == 2
        assert second.orders == []

    def test_log_records_carry_cycle_context(self, two_asset_portfolio):
        recorder = CycleRecorder()
        logger = logging.getLogger("tests.rebalancer.cycle")
        logger.setLevel(logging.INFO)
        logger.addHandler(recorder)
        try:
            asyncio.run(PaperRebalancer(two_asset_portfolio, logger=logger).run_cycle())
        finally:
            logger.removeHandler(recorder)

        assert recorder.cycles
        cycle_ids = {cycle.cycle_id for cycle in recorder.cycles}
        assert len(cycle_ids) == 1
        assert all(cycle.portfolio == "test" for cycle in recorder.cycles)


def random_portfolio(seed):
    """Random holdings and integer-ratio targets with a non-zero cash target"""
    rng = random.Random(seed)
    count = rng.randint(1, 5)
    positions = []
    for i in range(count):
        quantity = Decimal(rng.randint(1 if i == 0 else 0, 100000)) / 100
        price = Decimal(rng.randint(1, 1000000)) / 100
        if i % 2:
            positions.append(crypto(f"C{i}", f"coin-{i}", quantity, price))
        else:
            positions.append(equity(f"E{i}", quantity, price))

    parts = [rng.randint(0, 10) for _ in positions] + [rng.randint(1, 10)]
    total = sum(parts)
    targets = {p.symbol: Decimal(part) / total for p, part in zip(positions, parts)}
    targets[CASH_KEY] = Decimal(parts[-1]) / total
    return make_portfolio(positions, targets, cash=Decimal(rng.randint(0, 1000000)) / 100, threshold="0")


class TestCycleInvariants:

    @pytest.mark.parametrize("seed", range(25))
    def test_value_conserved_and_weights_normalized(self, seed):
        portfolio = random_portfolio(seed)

        result = PaperRebalancer(portfolio).rebalance()

        assert result.success, result.error
        assert result.total_value_before == result.total_value_after
        assert abs(sum(result.weights.values()) - 1) <= Decimal("1e-8")
        assert portfolio.cash >= usd(0)
        assert all(p.quantity >= 0 for p in portfolio.positions)
