"""
Tests for MovementStrategy.

One decision per objective per idle army, plus reinforcement across armies.
"""

import copy
import random
from unittest.mock import MagicMock

from agent.ai_config import AIConfig
from agent.decision import DecisionKind
from agent.interfaces import Target
from agent.intel import StraightLinePathfinder
from agent.scenario import build_demo_world
from agent.strategies.movement_strategy import MoveOrder, MovementStrategy
from agent.world import Army, Castle, Ledger, PlayerState, Snapshot


def make_intel(castle_threat=0.0, army_threat=0.0, targets=None, odds=None,
               unexplored=None, coverage=1.0, strengths=None):
    intel = MagicMock()
    intel.castle_threat.return_value = castle_threat
    intel.army_threat.return_value = army_threat
    intel.find_targets.return_value = targets or []
    odds = odds or {}
    intel.win_probability.side_effect = lambda army, target, snapshot: odds.get(target.entity_id, 0.0)
    intel.unexplored_areas.return_value = unexplored or []
    intel.scouting_coverage.return_value = coverage
    strengths = strengths or {}
    intel.army_strength.side_effect = lambda army: strengths.get(army.army_id, 50.0)
    return intel


def make_snapshot(armies, castles=None):
    player = PlayerState('p1', 'Crimson', is_ai=True, ledger=Ledger(resources={'gold': 0}))
    if castles is None:
        castles = (Castle('c1', 'p1', (10, 10)),)
    return Snapshot(player_id='p1', players=(player,), castles=tuple(castles), armies=tuple(armies))


def by_action(decisions):
    return {d.action_id: d for d in decisions}


class TestIdleArmies:

    def test_lone_quiet_army_only_patrols(self):
        army = Army('a1', 'p1', (20, 20), units={'swordsman': 5})
        strategy = MovementStrategy(intel=make_intel(), rng=random.Random(7))
        decisions = strategy.evaluate(make_snapshot([army]))

        assert [d.action_id for d in decisions] == ['patrol_move']
        patrol = decisions[0]
        assert patrol.kind == DecisionKind.MOVE
        assert patrol.priority == 20
        assert patrol.expected_benefit == 10

    def test_patrol_stays_within_radius(self):
        army = Army('a1', 'p1', (20, 20), units={'swordsman': 5})
        strategy = MovementStrategy(intel=make_intel(), rng=random.Random(11))
        order = strategy.evaluate(make_snapshot([army]))[0].target
        dx = order.destination[0] - 20
        dy = order.destination[1] - 20
        assert dx * dx + dy * dy <= 25.0001

    def test_moving_armies_are_skipped(self):
        army = Army('a1', 'p1', (20, 20), units={'swordsman': 5}, destination=(30, 30))
        strategy = MovementStrategy(intel=make_intel(castle_threat=0.9, army_threat=0.9))
        assert strategy.evaluate(make_snapshot([army])) == []

    def test_move_order_payload(self):
        army = Army('a1', 'p1', (20, 20), units={'swordsman': 5})
        strategy = MovementStrategy(intel=make_intel(), rng=random.Random(7))
        decision = strategy.evaluate(make_snapshot([army]))[0]

        assert isinstance(decision.target, MoveOrder)
        assert decision.target.army_id == 'a1'
        assert decision.target.objective == 'patrol_move'
        assert decision.target.path == (decision.target.destination,)
        assert decision.actor is army


class TestAttackMovement:

    def test_best_target_weighs_distance(self):
        far_castle = Target('castle', 'c9', (30, 0), 'p2', strategic_value=90)
        near_army = Target('army', 'p2-army-1', (5, 0), 'p2', strategic_value=60)
        intel = make_intel(targets=[far_castle, near_army], odds={'c9': 0.8, 'p2-army-1': 0.8})
        strategy = MovementStrategy(intel=intel)
        army = Army('a1', 'p1', (0, 0), units={'knight': 5})

        decision = strategy.evaluate_attack_movement(army, make_snapshot([army]))

        assert decision.action_id == 'attack_move'
        assert decision.target.destination == (5, 0)
        assert decision.priority == 48
        assert decision.expected_benefit == 60

    def test_no_targets_no_attack(self):
        strategy = MovementStrategy(intel=make_intel())
        army = Army('a1', 'p1', (0, 0), units={'knight': 5})
        assert strategy.evaluate_attack_movement(army, make_snapshot([army])) is None

    def test_target_score(self):
        army = Army('a1', 'p1', (0, 0))
        target = Target('castle', 'c9', (30, 0), 'p2', strategic_value=90)
        assert MovementStrategy.calculate_target_score(army, target, 0.5) == 15.0


class TestDefensiveMovement:

    def test_guard_threatened_castle(self):
        strategy = MovementStrategy(intel=make_intel(castle_threat=0.6))
        army = Army('a1', 'p1', (0, 0), units={'swordsman': 5})
        decision = strategy.evaluate_defensive_movement(army, make_snapshot([army]))

        assert decision.action_id == 'defensive_move'
        assert decision.target.destination == (12, 12)
        assert decision.priority == 88
        assert decision.expected_benefit == 70

    def test_nearest_threatened_castle_wins(self):
        castles = [Castle('c1', 'p1', (50, 50)), Castle('c2', 'p1', (5, 5))]
        strategy = MovementStrategy(intel=make_intel(castle_threat=0.9))
        army = Army('a1', 'p1', (0, 0))
        decision = strategy.evaluate_defensive_movement(army, make_snapshot([army], castles))
        assert decision.target.destination == (7, 7)

    def test_no_defense_at_half_threat(self):
        strategy = MovementStrategy(intel=make_intel(castle_threat=0.5))
        army = Army('a1', 'p1', (0, 0))
        assert strategy.evaluate_defensive_movement(army, make_snapshot([army])) is None


class TestScoutingMovement:

    def test_scout_heads_for_nearest_unexplored_area(self):
        intel = make_intel(unexplored=[(20.0, 20.0), (5.0, 5.0)])
        strategy = MovementStrategy(intel=intel)
        scout = Army('s1', 'p1', (0, 0), units={'knight': 1}, speed=10)

        decision = strategy.evaluate_scouting_movement(scout, make_snapshot([scout]), coverage=0.9)

        assert decision.action_id == 'scout_move'
        assert decision.target.destination == (5.0, 5.0)
        assert decision.priority == 40
        assert decision.expected_benefit == 30

    def test_low_coverage_bonus(self):
        strategy = MovementStrategy(intel=make_intel(unexplored=[(5.0, 5.0)]))
        scout = Army('s1', 'p1', (0, 0), units={'knight': 1}, speed=10)
        decision = strategy.evaluate_scouting_movement(scout, make_snapshot([scout]), coverage=0.2)
        assert decision.priority == 50

    def test_large_or_slow_armies_do_not_scout(self):
        strategy = MovementStrategy(intel=make_intel(unexplored=[(5.0, 5.0)]))
        big = Army('a1', 'p1', (0, 0), units={'knight': 4}, speed=10)
        slow = Army('a2', 'p1', (0, 0), units={'guard': 1}, speed=4)
        snapshot = make_snapshot([big, slow])
        assert strategy.evaluate_scouting_movement(big, snapshot) is None
        assert strategy.evaluate_scouting_movement(slow, snapshot) is None


class TestRetreatMovement:

    def test_retreat_to_nearest_castle(self):
        castles = [Castle('c1', 'p1', (50, 50)), Castle('c2', 'p1', (5, 5))]
        strategy = MovementStrategy(intel=make_intel(army_threat=0.4))
        army = Army('a1', 'p1', (0, 0), units={'archer': 2})
        decision = strategy.evaluate_retreat_movement(army, make_snapshot([army], castles))

        assert decision.action_id == 'retreat_move'
        assert decision.target.destination == (5, 5)
        assert decision.priority == 94
        assert decision.expected_benefit == 80

    def test_retreat_at_threshold(self):
        strategy = MovementStrategy(intel=make_intel(army_threat=0.3))
        army = Army('a1', 'p1', (0, 0))
        assert strategy.evaluate_retreat_movement(army, make_snapshot([army])) is not None

    def test_no_retreat_below_threshold(self):
        strategy = MovementStrategy(intel=make_intel(army_threat=0.2))
        army = Army('a1', 'p1', (0, 0))
        assert strategy.evaluate_retreat_movement(army, make_snapshot([army])) is None

    def test_no_castle_to_retreat_to(self):
        strategy = MovementStrategy(intel=make_intel(army_threat=0.9))
        army = Army('a1', 'p1', (0, 0))
        assert strategy.evaluate_retreat_movement(army, make_snapshot([army], castles=[])) is None


class TestReinforcement:

    def test_strong_idle_army_reinforces_weak_one(self):
        strong = Army('a1', 'p1', (0, 0), units={'knight': 10})
        weak = Army('a2', 'p1', (8, 8), units={'archer': 1})
        intel = make_intel(strengths={'a1': 100.0, 'a2': 20.0})
        strategy = MovementStrategy(intel=intel)

        decisions = strategy.evaluate_reinforcement_needs(make_snapshot([strong, weak]))

        assert len(decisions) == 1
        reinforce = decisions[0]
        assert reinforce.action_id == 'reinforce_move'
        assert reinforce.target.army_id == 'a1'
        assert reinforce.target.destination == (8, 8)
        assert reinforce.priority == 50
        assert reinforce.expected_benefit == 45

    def test_even_armies_need_no_reinforcement(self):
        armies = [Army('a1', 'p1', (0, 0)), Army('a2', 'p1', (8, 8))]
        strategy = MovementStrategy(intel=make_intel())
        assert strategy.evaluate_reinforcement_needs(make_snapshot(armies)) == []

    def test_single_army_never_reinforces(self):
        strategy = MovementStrategy(intel=make_intel(strengths={'a1': 1.0}))
        assert strategy.evaluate_reinforcement_needs(make_snapshot([Army('a1', 'p1', (0, 0))])) == []

    def test_moving_helper_is_not_used(self):
        strong = Army('a1', 'p1', (0, 0), destination=(1, 1))
        weak = Army('a2', 'p1', (8, 8))
        intel = make_intel(strengths={'a1': 100.0, 'a2': 20.0})
        strategy = MovementStrategy(intel=intel)
        assert strategy.evaluate_reinforcement_needs(make_snapshot([strong, weak])) == []


class TestPathfinding:

    def test_unreachable_destination_yields_no_decision(self):
        pathfinder = MagicMock()
        pathfinder.find_path.return_value = None
        strategy = MovementStrategy(intel=make_intel(), pathfinder=pathfinder)
        army = Army('a1', 'p1', (20, 20))
        assert strategy.evaluate(make_snapshot([army])) == []

    def test_path_from_pathfinder_is_carried(self):
        pathfinder = MagicMock()
        pathfinder.find_path.return_value = [(21, 20), (22, 21), (12, 12)]
        strategy = MovementStrategy(intel=make_intel(castle_threat=0.6), pathfinder=pathfinder)
        army = Army('a1', 'p1', (20, 20))
        decision = strategy.evaluate_defensive_movement(army, make_snapshot([army]))
        assert decision.target.path == ((21, 20), (22, 21), (12, 12))


class TestDifficulty:

    def test_expert_retreats_earlier(self):
        config = AIConfig.from_dict({'ai': {'difficulty': {'expert': {'retreat_threshold': 0.2,
                                                                     'scouting_range': 20}}}})
        strategy = MovementStrategy(config=config, intel=make_intel(army_threat=0.25))
        army = Army('a1', 'p1', (0, 0))
        snapshot = make_snapshot([army])
        assert strategy.evaluate_retreat_movement(army, snapshot) is None

        strategy.set_difficulty('expert')
        assert strategy.retreat_threshold == 0.2
        assert strategy.scouting_range == 20
        assert strategy.evaluate_retreat_movement(army, snapshot) is not None


class TestSnapshotIsReadOnly:

    def test_evaluate_leaves_snapshot_untouched(self):
        world = build_demo_world(2, seed=3)
        world.add_army(Army('scout', 'player-1', (30, 30), units={'knight': 1}, speed=10))
        snapshot = world.snapshot('player-1')
        before = copy.deepcopy(snapshot)

        decisions = MovementStrategy(rng=random.Random(4), pathfinder=StraightLinePathfinder()).evaluate(snapshot)

        assert decisions
        assert snapshot == before
