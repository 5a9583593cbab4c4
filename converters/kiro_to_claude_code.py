"""
Kiro to Claude Code conversion.

Specs become CLAUDE.md, steering rules become CLAUDE.local.md and enabled
hooks become slash commands. Task templates have no Claude Code equivalent.
"""

from core.canonical_models import AIPlatform
from .base import ConverterStrategy
from .feature_mappings import KIRO_TO_CLAUDE_CODE
from .transforms import hooks_to_commands, specs_to_instructions, steering_to_markdown


class KiroToClaudeCodeConverter(ConverterStrategy):
    """Converts Kiro payloads into Claude Code payloads."""

    source_platform = AIPlatform.KIRO
    target_platform = AIPlatform.CLAUDE_CODE
    feature_mapping = KIRO_TO_CLAUDE_CODE
    transforms = {
        'specs': specs_to_instructions,
        'steering_rules': steering_to_markdown,
        'hooks': hooks_to_commands,
    }
