"""
Configuration management for vistamatch
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG = {
    "detection": {
        "detector": "SHITOMASI",
        "focus_region": None,  # [x, y, width, height]
        "max_keypoints": None,
        "shitomasi": {
            "block_size": 4,
            "max_overlap": 0.0,
            "quality_level": 0.01,
            "k": 0.04
        },
        "harris": {
            "block_size": 2,
            "aperture_size": 3,
            "k": 0.04,
            "min_response": 120,
            "max_overlap": 0.0,
            "suppression": "best_match"
        },
        "fast": {
            "threshold": 80,
            "nonmax_suppression": True,
            "type": "TYPE_9_16"
        },
        "brisk": {
            "threshold": 30,
            "octaves": 3,
            "pattern_scale": 1.0
        },
        "orb": {},
        "akaze": {},
        "sift": {}
    },
    "description": {
        "descriptor": "BRISK",
        "brisk": {
            "threshold": 30,
            "octaves": 3,
            "pattern_scale": 1.0
        },
        "orb": {},
        "akaze": {},
        "sift": {},
        "freak": {}
    },
    "matching": {
        "matcher": "MAT_BF",
        "selector": "SEL_NN",
        "ratio": 0.8
    },
    "pipeline": {
        "buffer_size": 2
    }
}


def merge_config(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration file on top of the defaults.

    Args:
        config_path: Path to a YAML file (optional)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        raise ValueError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return merge_config(DEFAULT_CONFIG, user_config)
