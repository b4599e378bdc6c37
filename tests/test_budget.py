"""Tests for the Exploration Budget Ledger."""

import pytest

from tollgate.gate import BudgetConfig, ExplorationBudget, RiskTier


@pytest.fixture
def budget(clock) -> ExplorationBudget:
    return ExplorationBudget(clock=clock)


class TestCurve:
    """Test how actions move the budget."""

    def test_starts_at_target(self, budget):
        status = budget.status()
        assert status.budget == pytest.approx(0.07)
        assert status.actions_in_window == 0
        assert status.can_explore

    def test_first_risky_action_depletes(self, budget):
        """One CORE action out of one is far above target pace."""
        budget.record_action(RiskTier.CORE, "modify_self_config")
        assert budget.current == pytest.approx(0.06535)

    def test_readonly_recovers_toward_target(self, budget):
        budget.adjust("down")
        assert budget.current == pytest.approx(0.05)
        budget.record_action(RiskTier.READONLY)
        assert budget.current == pytest.approx(0.051)

    def test_write_normal_leaves_budget(self, budget):
        budget.record_action(RiskTier.WRITE_NORMAL)
        assert budget.current == pytest.approx(0.07)
        assert budget.actions_in_window == 1

    def test_risky_within_pace_costs_nothing(self, budget):
        """A risky action below target pace does not deplete."""
        for _ in range(20):
            budget.record_action(RiskTier.WRITE_NORMAL)
        budget.record_action(RiskTier.CORE)
        assert budget.current == pytest.approx(0.07)

    def test_never_below_floor(self, budget):
        for _ in range(5):
            budget.record_action(RiskTier.CORE)
        assert budget.current == pytest.approx(0.05)


class TestAllowance:
    """Test can_take_risk."""

    def test_allowance_until_share_exceeds_budget(self, budget):
        allowed = 0
        while budget.can_take_risk().allowed:
            budget.record_action(RiskTier.CORE)
            allowed += 1
        assert allowed == 5
        refusal = budget.can_take_risk()
        assert refusal.reason.startswith("Exploration budget exhausted")
        assert refusal.budget == pytest.approx(0.05)

    def test_window_rollover_resets_counters(self, clock):
        """Counters reset at window end; the budget carries over."""
        budget = ExplorationBudget(BudgetConfig(window_actions=4), clock=clock)
        budget.record_action(RiskTier.CORE)
        carried = budget.current
        for _ in range(3):
            budget.record_action(RiskTier.WRITE_NORMAL)
        assert budget.actions_in_window == 0
        assert budget.risky_actions_in_window == 0
        assert budget.current == pytest.approx(carried)


class TestOperations:
    """Test operator-facing operations."""

    def test_adjust(self, budget):
        assert budget.adjust("up") == pytest.approx(0.08)
        assert budget.adjust("down") == pytest.approx(0.06)
        assert budget.adjust("reset") == pytest.approx(0.07)

    def test_adjust_clamped(self, budget):
        for _ in range(10):
            budget.adjust("up")
        assert budget.current == pytest.approx(0.12)

    def test_unknown_adjustment_ignored(self, budget):
        assert budget.adjust("sideways") == pytest.approx(0.07)

    def test_record_never_raises(self, budget):
        """A bad tier is logged, not raised."""
        budget.record_action(None)
        assert 0.05 <= budget.current <= 0.12

    def test_history(self, budget, clock):
        budget.record_action(RiskTier.CORE, "first")
        clock.advance(minutes=1)
        budget.record_action(RiskTier.READONLY, "ignored")
        budget.record_action(RiskTier.WRITE_CRITICAL, "second")
        history = budget.history()
        assert [a.tool_name for a in history] == ["first", "second"]
        assert history[1].timestamp == clock.now
        assert budget.history(1)[0].tool_name == "second"
        assert budget.history(0) == []

    def test_report(self, budget):
        report = budget.render_report()
        assert "EXPLORATION BUDGET" in report
        assert "No risky actions yet" in report
        budget.record_action(RiskTier.CORE, "modify_self_config")
        assert "modify_self_config" in budget.render_report()

    def test_status_dict(self, budget):
        data = budget.status().to_dict()
        assert data["remaining_actions"] == 100
        assert data["can_explore"] is True


class TestConfig:

    def test_defaults_valid(self):
        assert BudgetConfig().problems() == []

    def test_bad_ordering(self):
        problems = BudgetConfig(floor=0.2, target=0.1).problems()
        assert any("floor <= target" in p for p in problems)

    def test_bad_window(self):
        assert "window_actions must be >= 1" in BudgetConfig(window_actions=0).problems()
