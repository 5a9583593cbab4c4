"""
Cursor to Claude Code conversion.

Rules and .cursorrules are merged into CLAUDE.md.
"""

from core.canonical_models import AIPlatform
from .base import ConverterStrategy
from .feature_mappings import CURSOR_TO_CLAUDE_CODE
from .transforms import copy_settings, cursor_rules_to_markdown, legacy_rules_to_markdown


class CursorToClaudeCodeConverter(ConverterStrategy):
    """Converts Cursor payloads into Claude Code payloads."""

    source_platform = AIPlatform.CURSOR
    target_platform = AIPlatform.CLAUDE_CODE
    feature_mapping = CURSOR_TO_CLAUDE_CODE
    transforms = {
        'rules': cursor_rules_to_markdown,
        'legacy_rules': legacy_rules_to_markdown,
        'settings': copy_settings,
    }
