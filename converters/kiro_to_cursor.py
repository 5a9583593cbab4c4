"""
Kiro to Cursor conversion.

Steering rules and specs become .mdc rules and command hooks become
.vscode tasks.
"""

from core.canonical_models import AIPlatform
from .base import ConverterStrategy
from .feature_mappings import KIRO_TO_CURSOR
from .transforms import hooks_to_tasks, specs_to_cursor_rules, steering_to_cursor_rules


class KiroToCursorConverter(ConverterStrategy):
    """Converts Kiro payloads into Cursor payloads."""

    source_platform = AIPlatform.KIRO
    target_platform = AIPlatform.CURSOR
    feature_mapping = KIRO_TO_CURSOR
    transforms = {
        'steering_rules': steering_to_cursor_rules,
        'specs': specs_to_cursor_rules,
        'hooks': hooks_to_tasks,
    }
