"""
Tests for difficulty.py

Profile resolution: built-in defaults, config layers, key-wise merging and
unknown-level fallback.
"""

from agent.ai_config import AIConfig
from agent.difficulty import (
    DEFAULT_BUILDING_PRIORITIES,
    DEFAULT_RESOURCE_THRESHOLDS,
    DifficultyLevel,
    all_profiles,
    normalize_level,
    resolve_profile,
)


class TestBuiltInProfiles:
    """Without config every level resolves from built-in tables"""

    def test_multipliers(self):
        profiles = all_profiles(None)
        assert profiles['easy'].priority_multiplier == 0.8
        assert profiles['medium'].priority_multiplier == 1.0
        assert profiles['hard'].priority_multiplier == 1.2
        assert profiles['expert'].priority_multiplier == 1.4

    def test_decision_intervals(self):
        profiles = all_profiles(None)
        assert profiles['easy'].decision_interval_ms == 3000
        assert profiles['medium'].decision_interval_ms == 2000
        assert profiles['hard'].decision_interval_ms == 1000
        assert profiles['expert'].decision_interval_ms == 750

    def test_every_level_is_complete(self):
        for level, profile in all_profiles(None).items():
            assert profile.level == level
            assert profile.resource_thresholds == DEFAULT_RESOURCE_THRESHOLDS
            assert profile.building_priorities == DEFAULT_BUILDING_PRIORITIES
            assert set(profile.army_composition) == {'balanced', 'offensive', 'defensive'}
            assert profile.scouting_range == 15
            assert profile.retreat_threshold == 0.3


class TestConfigLayers:
    """Later layers win; dict fields merge key by key"""

    def setup_method(self):
        self.config = AIConfig.from_dict({
            'ai': {
                'decision_interval': 2500,
                'resource_thresholds': {'gold': 1200},
                'difficulty': {
                    'medium': {'scouting_range': 12},
                    'hard': {
                        'decision_interval': 800,
                        'resource_thresholds': {'wood': 900},
                    },
                    'expert': {'priority_multiplier': 2.0},
                },
            },
        })

    def test_base_table_overrides_builtin(self):
        profile = resolve_profile(self.config, 'medium')
        assert profile.decision_interval_ms == 2500
        assert profile.resource_thresholds['gold'] == 1200
        assert profile.resource_thresholds['stone'] == 300

    def test_medium_layer_applies_to_other_levels(self):
        assert resolve_profile(self.config, 'medium').scouting_range == 12
        assert resolve_profile(self.config, 'easy').scouting_range == 12

    def test_level_override_merges_keywise(self):
        profile = resolve_profile(self.config, 'hard')
        assert profile.decision_interval_ms == 800
        assert profile.resource_thresholds == {'gold': 1200, 'wood': 900, 'stone': 300, 'mana': 200}

    def test_builtin_level_default_beats_base_interval(self):
        # easy has no config override, so the built-in 3000 applies
        assert resolve_profile(self.config, 'easy').decision_interval_ms == 3000

    def test_config_multiplier_override(self):
        assert resolve_profile(self.config, 'expert').priority_multiplier == 2.0

    def test_partial_level_inherits_medium_tables(self):
        profile = resolve_profile(self.config, 'expert')
        assert profile.building_priorities == DEFAULT_BUILDING_PRIORITIES
        assert profile.decision_interval_ms == 750

    def test_resolution_is_repeatable(self):
        first = resolve_profile(self.config, 'hard')
        second = resolve_profile(self.config, 'hard')
        assert first == second


class TestLevelNames:

    def test_unknown_level_falls_back_to_medium(self):
        assert normalize_level('nightmare') == 'medium'
        assert resolve_profile(None, 'nightmare').level == 'medium'

    def test_enum_and_case_insensitive_names(self):
        assert normalize_level(DifficultyLevel.HARD) == 'hard'
        assert normalize_level('EXPERT') == 'expert'

    def test_missing_level_is_medium(self):
        assert normalize_level(None) == 'medium'

    def test_to_dict_round_trips_tables(self):
        data = resolve_profile(None, 'hard').to_dict()
        assert data['level'] == 'hard'
        assert data['priority_multiplier'] == 1.2
        assert data['army_composition']['balanced']['knight'] == 0.2
