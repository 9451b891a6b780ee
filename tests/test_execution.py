"""
Tests for the execution back-ends.

The world back-end must re-check everything against the live world, since
decisions are built from snapshot copies that may be stale by the time they
are executed.
"""

import pytest

from agent.agent_controller import AgentController
from agent.ai_config import AIConfig
from agent.decision import Decision, DecisionKind
from agent.execution import StubExecutionBackend, WorldExecutionBackend, _item_type
from agent.interfaces import Target
from agent.strategies.base import Strategy
from agent.strategies.movement_strategy import MoveOrder
from agent.world import Army, Castle, GameWorld, Ledger, PlayerState

CONFIG = AIConfig.from_dict({
    'units': {
        'swordsman': {'speed': 5},
        'knight': {'speed': 10},
        'guard': {'speed': 4},
    },
})


def make_world():
    world = GameWorld(32, 32)
    world.add_player(PlayerState('p1', 'Crimson', is_ai=True,
                                 ledger=Ledger(resources={'gold': 500, 'wood': 200, 'stone': 100})))
    world.add_player(PlayerState('p2', 'Azure', is_ai=True,
                                 ledger=Ledger(resources={'gold': 500, 'wood': 200, 'stone': 100})))
    world.add_castle(Castle('c1', 'p1', (5, 5), buildings=['town_hall', 'barracks'], building_slots=3))
    world.add_castle(Castle('c2', 'p2', (25, 25), buildings=['town_hall']))
    return world


def build_decision(snapshot, building, cost=None):
    castle = snapshot.my_castles[0]
    return Decision(DecisionKind.BUILD, 50, f"build_{building}", target=castle,
                    cost=cost if cost is not None else {'gold': 100}, actor=castle)


def produce_decision(snapshot, unit, cost=None, prefix='produce'):
    castle = snapshot.my_castles[0]
    return Decision(DecisionKind.PRODUCE, 50, f"{prefix}_{unit}", target=castle,
                    cost=cost if cost is not None else {'gold': 50}, actor=castle)


class TestItemType:

    @pytest.mark.parametrize("action_id,expected", [
        ('build_gold_mine', 'gold_mine'),
        ('produce_archer', 'archer'),
        ('defend_guard', 'guard'),
        ('build', None),
        ('', None),
    ])
    def test_item_type(self, action_id, expected):
        assert _item_type(action_id) == expected


class TestStubBackend:

    def test_everything_fails(self):
        backend = StubExecutionBackend()
        decision = Decision(DecisionKind.BUILD, 50, 'build_wall')
        assert backend.execute_build(decision, None) is False
        assert backend.execute_produce(decision, None) is False
        assert backend.execute_move(decision, None) is False
        assert backend.execute_attack(decision, None) is False


class TestBuild:

    def test_build_spends_and_adds_building(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')

        assert backend.execute_build(build_decision(snapshot, 'wall'), snapshot)
        assert world.castles['c1'].buildings == ['town_hall', 'barracks', 'wall']
        assert world.players['p1'].ledger.resources['gold'] == 400

    def test_snapshot_is_not_modified(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        backend.execute_build(build_decision(snapshot, 'wall'), snapshot)
        assert snapshot.my_castles[0].buildings == ['town_hall', 'barracks']

    def test_unique_building_not_built_twice(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        assert not backend.execute_build(build_decision(snapshot, 'barracks'), snapshot)
        assert world.players['p1'].ledger.resources['gold'] == 500

    def test_slot_taken_earlier_in_the_cycle(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')

        assert backend.execute_build(build_decision(snapshot, 'wall'), snapshot)
        # Castle had 3 slots; the stale snapshot still shows one free
        assert not backend.execute_build(build_decision(snapshot, 'quarry'), snapshot)

    def test_unaffordable_build(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        assert not backend.execute_build(build_decision(snapshot, 'wall', {'gold': 9999}), snapshot)
        assert world.castles['c1'].buildings == ['town_hall', 'barracks']

    def test_cannot_build_in_foreign_castle(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        enemy_snapshot = world.snapshot('p2')
        decision = build_decision(world.snapshot('p1'), 'wall')
        assert not backend.execute_build(decision, enemy_snapshot)


class TestProduce:

    def test_new_unit_forms_an_army(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')

        assert backend.execute_produce(produce_decision(snapshot, 'knight'), snapshot)

        armies = world.armies_of('p1')
        assert len(armies) == 1
        assert armies[0].units == {'knight': 1}
        assert armies[0].position == (5, 5)
        assert armies[0].speed == 10
        assert world.players['p1'].ledger.resources['gold'] == 450

    def test_unit_joins_garrison_at_slowest_speed(self):
        world = make_world()
        garrison = world.add_army(Army('g1', 'p1', (5, 5), units={'knight': 2}, speed=10))
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')

        assert backend.execute_produce(produce_decision(snapshot, 'guard', prefix='defend'), snapshot)
        assert garrison.units == {'knight': 2, 'guard': 1}
        assert garrison.speed == 4
        assert len(world.armies_of('p1')) == 1

    def test_moving_army_does_not_absorb_recruits(self):
        world = make_world()
        world.add_army(Army('g1', 'p1', (5, 5), units={'knight': 2}, destination=(20, 20)))
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')

        backend.execute_produce(produce_decision(snapshot, 'swordsman'), snapshot)
        assert len(world.armies_of('p1')) == 2

    def test_unaffordable_unit(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        assert not backend.execute_produce(produce_decision(snapshot, 'knight', {'mana': 10}), snapshot)
        assert world.armies_of('p1') == []


class TestMove:

    def move_decision(self, army_id, destination, objective='patrol_move'):
        order = MoveOrder(army_id, destination, (destination,), objective)
        return Decision(DecisionKind.MOVE, 20, objective, target=order)

    def test_move_sets_destination_and_path(self):
        world = make_world()
        army = world.add_army(Army('a1', 'p1', (5, 5)))
        backend = WorldExecutionBackend(world, CONFIG)

        assert backend.execute_move(self.move_decision('a1', (9, 9)), world.snapshot('p1'))
        assert army.destination == (9, 9)
        assert army.path == [(9, 9)]

    def test_army_already_moving(self):
        world = make_world()
        world.add_army(Army('a1', 'p1', (5, 5)))
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')

        assert backend.execute_move(self.move_decision('a1', (9, 9)), snapshot)
        assert not backend.execute_move(self.move_decision('a1', (1, 1), 'retreat_move'), snapshot)

    def test_out_of_bounds_destination(self):
        world = make_world()
        world.add_army(Army('a1', 'p1', (5, 5)))
        backend = WorldExecutionBackend(world, CONFIG)
        assert not backend.execute_move(self.move_decision('a1', (40, 9)), world.snapshot('p1'))

    def test_cannot_move_enemy_army(self):
        world = make_world()
        world.add_army(Army('b1', 'p2', (25, 25)))
        backend = WorldExecutionBackend(world, CONFIG)
        assert not backend.execute_move(self.move_decision('b1', (20, 20)), world.snapshot('p1'))

    def test_move_needs_a_move_order(self):
        world = make_world()
        backend = WorldExecutionBackend(world, CONFIG)
        decision = Decision(DecisionKind.MOVE, 20, 'patrol_move', target=(3, 3))
        assert not backend.execute_move(decision, world.snapshot('p1'))


class TestAttack:

    def test_attack_live_castle(self):
        world = make_world()
        army = world.add_army(Army('a1', 'p1', (20, 20), units={'knight': 5}))
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        target = Target('castle', 'c2', (25, 25), 'p2', 90)
        decision = Decision(DecisionKind.ATTACK, 63, 'attack_c2', target=target, actor=snapshot.my_armies[0])

        assert backend.execute_attack(decision, snapshot)
        assert army.destination == (25, 25)
        assert army.attack_target == 'c2'

    def test_attack_on_vanished_army(self):
        world = make_world()
        world.add_army(Army('a1', 'p1', (20, 20), units={'knight': 5}))
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        target = Target('army', 'p2-army-9', (22, 22), 'p2', 60)
        decision = Decision(DecisionKind.ATTACK, 48, 'attack_p2-army-9', target=target,
                            actor=snapshot.my_armies[0])
        assert not backend.execute_attack(decision, snapshot)

    def test_moving_army_keeps_its_order(self):
        world = make_world()
        army = world.add_army(Army('a1', 'p1', (20, 20), units={'knight': 5}))
        army.destination = (10, 10)
        backend = WorldExecutionBackend(world, CONFIG)
        snapshot = world.snapshot('p1')
        target = Target('castle', 'c2', (25, 25), 'p2', 90)
        decision = Decision(DecisionKind.ATTACK, 63, 'attack_c2', target=target, actor=snapshot.my_armies[0])

        assert not backend.execute_attack(decision, snapshot)
        assert army.destination == (10, 10)
        assert army.attack_target is None

    def test_highest_priority_attack_wins_the_cycle(self):
        """Lower-ranked attacks for the same army fail instead of replacing the first order"""
        world = make_world()
        army = world.add_army(Army('a1', 'p1', (20, 20), units={'knight': 5}))
        world.add_army(Army('e1', 'p2', (22, 22), units={'swordsman': 1}))
        snapshot = world.snapshot('p1')
        actor = snapshot.my_armies[0]
        castle_attack = Decision(DecisionKind.ATTACK, 80, 'attack_c2',
                                 target=Target('castle', 'c2', (25, 25), 'p2', 90), actor=actor)
        army_attack = Decision(DecisionKind.ATTACK, 40, 'attack_e1',
                               target=Target('army', 'e1', (22, 22), 'p2', 60), actor=actor)

        class TwoAttacks(Strategy):
            def evaluate(self, snapshot):
                return [army_attack, castle_attack]

        controller = AgentController(
            'p1',
            config=AIConfig.from_dict({'ai': {'log_decisions': False}}),
            backend=WorldExecutionBackend(world, CONFIG),
            clock=lambda: 50000.0,
            strategies={'attacks': TwoAttacks("Attacks")},
        )
        report = controller.make_decisions(snapshot)

        assert report.executed == 1
        assert report.failed == 1
        assert army.attack_target == 'c2'
        assert army.destination == (25, 25)
