#!/usr/bin/env python3
"""
Compare the difficulty profiles resolved from two AI config files.

Usage:
    python -m tools.compare_configs configs/default.json configs/experimental.json
    python -m tools.compare_configs a.json b.json --level hard --json

Shows, per difficulty level, every profile value that differs between the
two files after all fallbacks are applied (base tables, medium overrides,
built-in level defaults, level overrides).
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from agent.ai_config import AIConfig
from agent.difficulty import DifficultyLevel, all_profiles


def flatten(values: Dict[str, Any], prefix: str = '') -> Dict[str, Any]:
    """{'a': {'b': 1}} -> {'a.b': 1}"""
    flat = {}
    for key, value in values.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten(value, path))
        else:
            flat[path] = value
    return flat


def compare_profiles(config1: AIConfig, config2: AIConfig, levels: List[str] = None) -> Dict[str, Any]:
    """
    Compare resolved profiles level by level.

    Returns:
        Dict with config names and, per level, the differing values
    """
    profiles1 = all_profiles(config1)
    profiles2 = all_profiles(config2)
    levels = levels or [lvl.value for lvl in DifficultyLevel]

    comparison = {
        'config1': {'name': config1.name, 'version': config1.version, 'path': str(config1.path)},
        'config2': {'name': config2.name, 'version': config2.version, 'path': str(config2.path)},
        'levels': {},
    }

    for level in levels:
        flat1 = flatten(profiles1[level].to_dict())
        flat2 = flatten(profiles2[level].to_dict())
        differences = []
        for key in sorted(set(flat1) | set(flat2)):
            if key == 'level':
                continue
            v1, v2 = flat1.get(key), flat2.get(key)
            if v1 != v2:
                differences.append({'key': key, 'config1': v1, 'config2': v2})
        comparison['levels'][level] = differences

    comparison['total_differences'] = sum(len(d) for d in comparison['levels'].values())
    return comparison


def print_comparison(comparison: Dict[str, Any]):
    """Print comparison in human-readable format."""
    c1 = comparison['config1']
    c2 = comparison['config2']

    print("\n" + "=" * 70)
    print("DIFFICULTY PROFILE COMPARISON")
    print("=" * 70)
    print(f"  1: {c1['name']} v{c1['version']} ({c1['path']})")
    print(f"  2: {c2['name']} v{c2['version']} ({c2['path']})")

    for level, differences in comparison['levels'].items():
        print(f"\n[{level}]")
        if not differences:
            print("  (identical)")
            continue
        print(f"  {'Key':<40} {'Config 1':>12} {'Config 2':>12}")
        print("  " + "-" * 66)
        for diff in differences:
            print(f"  {diff['key']:<40} {str(diff['config1']):>12} {str(diff['config2']):>12}")

    print("\n" + "=" * 70)
    print(f"TOTAL DIFFERENCES: {comparison['total_differences']}")
    print("=" * 70)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Compare resolved difficulty profiles of two AI configs')
    parser.add_argument('config1', type=str,
                        help='Path to first AI config (baseline)')
    parser.add_argument('config2', type=str,
                        help='Path to second AI config (experimental)')
    parser.add_argument('--level', action='append', choices=[lvl.value for lvl in DifficultyLevel],
                        help='Only compare this level (repeatable)')
    parser.add_argument('--json', action='store_true',
                        help='Output as JSON instead of human-readable')

    args = parser.parse_args(argv)

    for path in (args.config1, args.config2):
        if not Path(path).exists():
            print(f"ERROR: Config file not found: {path}")
            return 1

    config1 = AIConfig(args.config1)
    config2 = AIConfig(args.config2)
    for cfg in (config1, config2):
        if not cfg.is_loaded:
            print(f"ERROR: Could not load config from {cfg.path}")
            return 1

    comparison = compare_profiles(config1, config2, args.level)

    if args.json:
        print(json.dumps(comparison, indent=2))
    else:
        print_comparison(comparison)
    return 0


if __name__ == '__main__':
    sys.exit(main())
