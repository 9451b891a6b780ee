"""
Tests for decision.py

Validity rules, ranking key and string form of Decisions.
"""

import pytest
from dataclasses import FrozenInstanceError

from agent.decision import Decision, DecisionKind, round_half_up


class TestDecisionValidity:
    """is_valid() accepts only known kinds, non-negative priority, non-empty id"""

    def test_well_formed_decision_is_valid(self):
        decision = Decision(DecisionKind.BUILD, 50, "build_wall")
        assert decision.is_valid()

    def test_zero_priority_is_valid(self):
        assert Decision(DecisionKind.MOVE, 0, "patrol_move").is_valid()

    def test_negative_priority_is_invalid(self):
        assert not Decision(DecisionKind.BUILD, -1, "build_wall").is_valid()

    def test_empty_action_id_is_invalid(self):
        assert not Decision(DecisionKind.BUILD, 50, "").is_valid()

    def test_unknown_kind_is_invalid(self):
        assert not Decision("teleport", 50, "teleport_home").is_valid()

    def test_missing_kind_is_invalid(self):
        assert not Decision(None, 50, "build_wall").is_valid()

    def test_string_kind_is_accepted(self):
        decision = Decision("produce", 60, "produce_archer")
        assert decision.is_valid()
        assert decision.kind_value == "produce"


class TestDecisionValue:
    """Decisions are immutable values"""

    def test_decision_is_frozen(self):
        decision = Decision(DecisionKind.BUILD, 50, "build_wall")
        with pytest.raises(FrozenInstanceError):
            decision.priority = 99

    def test_cost_is_read_only(self):
        decision = Decision(DecisionKind.BUILD, 50, "build_wall", cost={'gold': 80})
        with pytest.raises(TypeError):
            decision.cost['gold'] = 0
        assert decision.cost == {'gold': 80}

    def test_cost_is_copied_from_the_caller(self):
        cost = {'gold': 80}
        decision = Decision(DecisionKind.BUILD, 50, "build_wall", cost=cost)
        cost['gold'] = 1
        assert decision.cost['gold'] == 80

    def test_total_cost_sums_resources(self):
        decision = Decision(DecisionKind.BUILD, 50, "build_wall", cost={'gold': 80, 'stone': 120})
        assert decision.total_cost == 200

    def test_total_cost_of_free_action_is_zero(self):
        assert Decision(DecisionKind.ATTACK, 54, "attack_c1").total_cost == 0

    def test_created_at_defaults_to_now(self):
        decision = Decision(DecisionKind.BUILD, 50, "build_wall")
        assert decision.created_at > 0

    def test_str_format(self):
        decision = Decision(DecisionKind.BUILD, 50, "build_wall")
        assert str(decision) == "Decision(build: build_wall, priority: 50)"


class TestRanking:
    """sort_key orders by priority desc, then benefit desc"""

    def test_higher_priority_first(self):
        low = Decision(DecisionKind.BUILD, 40, "build_wall", expected_benefit=90)
        high = Decision(DecisionKind.BUILD, 80, "build_barracks", expected_benefit=10)
        assert sorted([low, high], key=Decision.sort_key) == [high, low]

    def test_benefit_breaks_ties(self):
        a = Decision(DecisionKind.PRODUCE, 75, "produce_archer", expected_benefit=55)
        b = Decision(DecisionKind.PRODUCE, 75, "produce_swordsman", expected_benefit=50)
        assert sorted([b, a], key=Decision.sort_key) == [a, b]


class TestRoundHalfUp:
    """Rounding matches the game's integer priorities (halves go up)"""

    @pytest.mark.parametrize("value,expected", [
        (2.5, 3),
        (2.4, 2),
        (120.0, 120),
        (0.5, 1),
        (-0.5, 0),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected
