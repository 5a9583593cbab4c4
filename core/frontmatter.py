"""
YAML frontmatter parsing for markdown-based configuration files.

Used for Kiro steering documents and Cursor .mdc rules, both of which put
a ``---`` delimited YAML block in front of a markdown body.
"""

import re
from typing import Any, Dict, Tuple

import yaml

FRONTMATTER_PATTERN = re.compile(r'^---\r?\n(.*?)\r?\n---\r?\n?(.*)$', re.DOTALL)


def parse_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a markdown document into frontmatter and body.

    Args:
        content: Full file content

    Returns:
        Tuple of (frontmatter dict, body). Documents without frontmatter
        return an empty dict and the unchanged content.

    Raises:
        ValueError: If the frontmatter block is not a YAML mapping
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return {}, content

    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML frontmatter: {e}")

    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ValueError("YAML frontmatter must be a mapping")
    return meta, match.group(2)


def render_frontmatter(meta: Dict[str, Any], body: str) -> str:
    """Render frontmatter and body back into a markdown document."""
    if not meta:
        return body
    yaml_str = yaml.dump(meta, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return f"---\n{yaml_str}---\n{body}"
