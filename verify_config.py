#!/usr/bin/env python3
"""Simple script to verify config.example.yaml structure without loading the app."""

import yaml
from pathlib import Path


def verify_config_structure():
    """Verify config.example.yaml has the expected structure."""
    config_file = Path("config.example.yaml")

    if not config_file.exists():
        print("✗ config.example.yaml not found")
        return False

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except Exception as e:
        print(f"✗ Failed to parse config.example.yaml: {e}")
        return False

    errors = []

    if not isinstance(config, dict):
        print("✗ config.example.yaml must contain a mapping")
        return False

    known_sections = ['promoter', 'polling', 'dispatch', 'logging']
    for key in config:
        if key not in known_sections:
            errors.append(f"Unknown top-level key: {key}")

    for key in known_sections:
        if key in config and not isinstance(config[key], dict):
            errors.append(f"'{key}' must be a dictionary")

    promoter = config.get('promoter') or {}
    if isinstance(promoter, dict):
        if 'interval' in promoter and not isinstance(promoter['interval'], str):
            errors.append("'promoter.interval' must be a duration string (e.g. 10m)")
        batch_size = promoter.get('batch_size', 100)
        if not isinstance(batch_size, int) or not 1 <= batch_size <= 1000:
            errors.append("'promoter.batch_size' must be an integer between 1 and 1000")

    polling = config.get('polling') or {}
    if isinstance(polling, dict):
        interval_ms = polling.get('interval_ms', 30000)
        if not isinstance(interval_ms, int) or not 1000 <= interval_ms <= 3_600_000:
            errors.append("'polling.interval_ms' must be an integer between 1000 and 3600000")

    dispatch = config.get('dispatch') or {}
    if isinstance(dispatch, dict):
        flag = dispatch.get('exclude_actor_from_case_members', True)
        if not isinstance(flag, bool):
            errors.append("'dispatch.exclude_actor_from_case_members' must be true or false")
        end = dispatch.get('default_quiet_hours_end', "08:00")
        if not isinstance(end, str) or ':' not in end:
            errors.append("'dispatch.default_quiet_hours_end' must be an HH:MM string")

    logging_section = config.get('logging') or {}
    if isinstance(logging_section, dict):
        if logging_section.get('format', 'key-value') not in ('json', 'key-value'):
            errors.append("'logging.format' must be json or key-value")

    if errors:
        print("✗ config.example.yaml validation failed:")
        for error in errors:
            print(f"  - {error}")
        return False
    else:
        print("✓ config.example.yaml structure is valid")
        print(f"  - Promoter interval: {promoter.get('interval', 'not set')}")
        print(f"  - Promoter batch size: {promoter.get('batch_size', 'not set')}")
        print(f"  - Poll interval: {polling.get('interval_ms', 'not set')} ms")
        print(f"  - Default time zone: {dispatch.get('default_timezone', 'not set')}")
        return True


if __name__ == "__main__":
    import sys
    success = verify_config_structure()
    sys.exit(0 if success else 1)
