"""
Claude Code to Cursor conversion.

Instruction documents become always-applied .mdc rules.
"""

from core.canonical_models import AIPlatform
from .base import ConverterStrategy
from .feature_mappings import CLAUDE_CODE_TO_CURSOR
from .transforms import (
    claude_local_md_to_rules,
    claude_md_to_rules,
    settings_without_claude_only,
)


class ClaudeCodeToCursorConverter(ConverterStrategy):
    """Converts Claude Code payloads into Cursor payloads."""

    source_platform = AIPlatform.CLAUDE_CODE
    target_platform = AIPlatform.CURSOR
    feature_mapping = CLAUDE_CODE_TO_CURSOR
    transforms = {
        'claude_md': claude_md_to_rules,
        'claude_local_md': claude_local_md_to_rules,
        'settings': settings_without_claude_only,
    }
