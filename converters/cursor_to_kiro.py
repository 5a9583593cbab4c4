"""
Cursor to Kiro conversion.

Rules and .cursorrules become steering documents and shell tasks become
manual command hooks. Editor settings, extensions, snippets and launch
configurations have no Kiro equivalent.
"""

from core.canonical_models import AIPlatform
from .base import ConverterStrategy
from .feature_mappings import CURSOR_TO_KIRO
from .transforms import cursor_rules_to_steering, legacy_rules_to_steering, tasks_to_hooks


class CursorToKiroConverter(ConverterStrategy):
    """Converts Cursor payloads into Kiro payloads."""

    source_platform = AIPlatform.CURSOR
    target_platform = AIPlatform.KIRO
    feature_mapping = CURSOR_TO_KIRO
    transforms = {
        'rules': cursor_rules_to_steering,
        'legacy_rules': legacy_rules_to_steering,
        'tasks': tasks_to_hooks,
    }
