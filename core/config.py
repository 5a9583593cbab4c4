"""
Runtime configuration.

Defaults are usable as-is; a YAML file can override them:

    merge_policy: merge
    home: /home/dev
    limits:
      max_rule_bytes: 10000
      max_context_bytes: 12000
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.file_writer import MergePolicy
from core.security_patterns import ContentLimits


@dataclass
class SyncConfig:
    limits: ContentLimits = field(default_factory=ContentLimits)
    merge_policy: MergePolicy = MergePolicy.REPLACE
    home: Optional[Path] = None


_LIMIT_KEYS = {f.name for f in fields(ContentLimits)}
_TOP_LEVEL_KEYS = {'limits', 'merge_policy', 'home'}


def config_from_dict(data: Dict[str, Any]) -> SyncConfig:
    """
    Build a SyncConfig from a plain mapping.

    Raises:
        ValueError: On unknown keys or invalid values
    """
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    limits_data = data.get('limits') or {}
    if not isinstance(limits_data, dict):
        raise ValueError("'limits' must be a mapping")
    unknown = set(limits_data) - _LIMIT_KEYS
    if unknown:
        raise ValueError(f"Unknown limit keys: {', '.join(sorted(unknown))}")
    for key, value in limits_data.items():
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValueError(f"Limit '{key}' must be a positive integer")

    try:
        merge_policy = MergePolicy(data.get('merge_policy', MergePolicy.REPLACE.value))
    except ValueError:
        raise ValueError(f"Invalid merge_policy: {data.get('merge_policy')!r}")

    home = data.get('home')
    return SyncConfig(
        limits=ContentLimits(**limits_data),
        merge_policy=merge_policy,
        home=Path(home).expanduser() if home else None,
    )


def load_config(path: Path) -> SyncConfig:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is invalid or contains unknown keys
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}")
    if data is None:
        return SyncConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")
    return config_from_dict(data)
