from decimal import Decimal

import pytest

from paper_rebalancer import (
    FrequencyPolicy,
    NoRebalancePolicy,
    RebalancePlanner,
    ValuationEngine,
    WeightCalculator,
)
from paper_rebalancer.config import TradingConfig

from tests.conftest import equity, make_portfolio, usd


def plan(portfolio, **trading):
    WeightCalculator().compute_weights(portfolio)
    return RebalancePlanner(TradingConfig(**trading)).plan(portfolio)


class TestRebalancePlanner:

    def test_two_asset_scenario(self, two_asset_portfolio):
        orders = plan(two_asset_portfolio)

        assert [(o.symbol, o.quantity) for o in orders] == [("A", Decimal("-2.5")), ("B", Decimal("2.5"))]
        sell, buy = orders
        assert sell.price == usd(10)
        assert sell.current_quantity == Decimal(10)
        assert sell.target_value == usd(75)
        assert buy.target_value == usd(75)

    def test_planning_does_not_mutate_holdings(self, two_asset_portfolio):
        plan(two_asset_portfolio)
        assert two_asset_portfolio.get_position("A").quantity == Decimal(10)
        assert two_asset_portfolio.cash == usd(0)

    def test_balanced_portfolio_is_a_no_op(self):
        portfolio = make_portfolio(
            positions=[equity("A", 5, 20), equity("B", 10, 10)],
            target_weights={"A": "0.4", "B": "0.4", "CASH": "0.2"},
            cash=50,
        )
        assert plan(portfolio) == []

    @pytest.mark.parametrize("threshold", ["0.01", "0.05", "1", "1000"])
    def test_balanced_portfolio_any_threshold(self, threshold):
        portfolio = make_portfolio(
            positions=[equity("A", 3, 100), equity("B", 6, 50)],
            target_weights={"A": "0.5", "B": "0.5"},
            threshold=threshold,
        )
        assert plan(portfolio) == []

    def test_deviation_within_threshold_is_skipped(self, two_asset_portfolio):
        two_asset_portfolio.policy.threshold = Decimal(25)
        assert plan(two_asset_portfolio) == []

    def test_deviation_just_above_threshold_trades(self, two_asset_portfolio):
        two_asset_portfolio.policy.threshold = Decimal("24.99")
        assert len(plan(two_asset_portfolio)) == 2

    def test_untargeted_positions_are_never_liquidated(self):
        portfolio = make_portfolio(
            positions=[equity("A", 10, 10), equity("LEGACY", 100, 1)],
            target_weights={"A": "1"},
        )
        orders = plan(portfolio)
        assert [o.symbol for o in orders] == ["A"]
        assert orders[0].quantity == Decimal(10)

    def test_orders_follow_position_order(self):
        portfolio = make_portfolio(
            positions=[equity("Z", 1, 10), equity("M", 1, 10), equity("A", 8, 10)],
            target_weights={"A": "0.2", "M": "0.4", "Z": "0.4"},
        )
        assert [o.symbol for o in plan(portfolio)] == ["Z", "M", "A"]

    def test_missing_snapshot_entry_counts_as_zero(self, two_asset_portfolio):
        WeightCalculator().compute_weights(two_asset_portfolio)
        del two_asset_portfolio.actual_weights["B"]
        orders = RebalancePlanner().plan(two_asset_portfolio)
        buy = next(o for o in orders if o.symbol == "B")
        assert buy.quantity == Decimal("7.5")

    def test_total_value_captured_once(self, two_asset_portfolio):
        class CountingValuation(ValuationEngine):
            calls = 0

            def total_value(self, portfolio):
                self.calls += 1
                return super().total_value(portfolio)

        valuation = CountingValuation()
        WeightCalculator().compute_weights(two_asset_portfolio)
        RebalancePlanner(valuation=valuation).plan(two_asset_portfolio)
        assert valuation.calls == 1

    def test_quantities_rounded_to_precision(self):
        portfolio = make_portfolio(
            positions=[equity("A", 10, 3), equity("B", 0, 7)],
            target_weights={"A": "0.5", "B": "0.5"},
        )
        sell, buy = plan(portfolio, quantity_precision=4)
        # 15 / 3 is exact, 15 / 7 rounds down for a buy
        assert sell.quantity == Decimal("-5")
        assert buy.quantity == Decimal("2.1428")

    def test_full_liquidation_of_targeted_position(self):
        portfolio = make_portfolio(
            positions=[equity("A", 3, 7), equity("B", 0, 7)],
            target_weights={"A": "0", "B": "1"},
        )
        sell, buy = plan(portfolio, quantity_precision=2)
        assert sell.quantity == Decimal("-3")
        assert buy.quantity == Decimal("3")

    @pytest.mark.parametrize("exact,held,expected", [
        ("-1.000000001", "5", "-1.00000001"),
        ("-3.000000004", "3", "-3"),
        ("-3.00000002", "3", "-3.00000002"),
        ("2.999999999", "0", "2.99999999"),
    ])
    def test_size_quantity(self, exact, held, expected):
        sized = RebalancePlanner()._size_quantity(Decimal(exact), Decimal(held))
        assert sized == Decimal(expected)

    @pytest.mark.parametrize("policy", [FrequencyPolicy(), NoRebalancePolicy()])
    def test_policies_without_threshold_trade_any_deviation(self, policy):
        portfolio = make_portfolio(
            positions=[equity("A", 1, 100), equity("B", 1, "100.02")],
            target_weights={"A": "0.5", "B": "0.5"},
        )
        portfolio.policy = policy
        assert len(plan(portfolio)) == 2
