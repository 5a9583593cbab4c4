"""
Claude Code to Kiro conversion.

CLAUDE.md becomes the requirements of a spec named 'project', each section
of CLAUDE.local.md becomes a steering rule and commands become manual
hooks. Permissions, env and statusLine settings are dropped.
"""

from core.canonical_models import AIPlatform
from .base import ConverterStrategy
from .feature_mappings import CLAUDE_CODE_TO_KIRO
from .transforms import (
    commands_to_hooks,
    markdown_to_specs,
    markdown_to_steering_rules,
    settings_without_claude_only,
)


class ClaudeCodeToKiroConverter(ConverterStrategy):
    """Converts Claude Code payloads into Kiro payloads."""

    source_platform = AIPlatform.CLAUDE_CODE
    target_platform = AIPlatform.KIRO
    feature_mapping = CLAUDE_CODE_TO_KIRO
    transforms = {
        'claude_md': markdown_to_specs,
        'claude_local_md': markdown_to_steering_rules,
        'commands': commands_to_hooks,
        'settings': settings_without_claude_only,
    }
