# reqsmith/settings.py
"""
Settings files for the CLI and API.
A settings file is YAML or JSON and may extend another one via an 'extends' key.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

import config
from reqsmith.colors import format_log_prefix

SETTINGS_KEYS = ("target", "scheme", "protocol_version", "verbose", "debug")


def load_settings(settings_path: Path, debug: bool = False, verbose: bool = False) -> Dict[str, Any]:
    """
    Loads a settings file, following its 'extends' chain.

    Args:
        settings_path: Path to the .yaml/.yml/.json file.
        debug: Flag for debug output.
        verbose: Flag for verbose output.

    Returns:
        Merged settings dictionary (the extending file wins).

    Raises:
        FileNotFoundError: If the file or a base it extends does not exist.
    """
    settings_path = Path(settings_path)
    with settings_path.open('r', encoding='utf-8') as f:
        if settings_path.suffix.lower() in ('.yaml', '.yml'):
            settings = yaml.safe_load(f) or {}
        else:
            settings = json.load(f)

    extends_path = settings.pop('extends', None)
    if not extends_path:
        if verbose:
            print(format_log_prefix("INFO", f"Loaded settings from {settings_path}"))
        return settings

    if extends_path.startswith('/'):
        base_path = Path(extends_path)
    elif extends_path.startswith('../'):
        # Relative to the extending file
        base_path = settings_path.parent / extends_path
    else:
        # Relative to the current working directory
        base_path = Path.cwd() / extends_path

    if debug:
        print(format_log_prefix("DEBUG", f"Resolved extends path {extends_path} -> {base_path}"))

    if not base_path.exists():
        raise FileNotFoundError(f"Base settings file not found: {base_path}")

    base_settings = load_settings(base_path, debug, verbose)
    merged = deep_merge(base_settings, settings)

    if verbose:
        print(format_log_prefix("INFO", f"Loaded settings from {settings_path} (extends {base_path})"))

    return merged


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merges two dictionaries, with override values taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def resolve_settings(settings: Optional[Dict[str, Any]] = None, **overrides: Any) -> Dict[str, Any]:
    """
    Combines config.py defaults, a loaded settings dict and explicit overrides.
    Overrides that are None are ignored; unknown keys are dropped.
    """
    resolved: Dict[str, Any] = {
        "target": None,
        "scheme": config.DEFAULT_SCHEME,
        "protocol_version": config.DEFAULT_PROTOCOL_VERSION,
        "verbose": config.VERBOSE_MODE,
        "debug": config.DEBUG_MODE,
    }
    for source in (settings or {}, overrides):
        for key in SETTINGS_KEYS:
            if source.get(key) is not None:
                resolved[key] = source[key]
    return resolved
