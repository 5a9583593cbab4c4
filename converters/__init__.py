"""
Converter strategies between platform payloads in a canonical context.

One converter exists per ordered platform pair. Each converter:
- Reports which source features survive (validate_compatibility)
- Maps the source payload onto the target payload (convert)
- Deploys the converted payload through the target builder (deploy)

Available converters:
- KiroToClaudeCodeConverter / ClaudeCodeToKiroConverter
- KiroToCursorConverter / CursorToKiroConverter
- ClaudeCodeToCursorConverter / CursorToClaudeCodeConverter
"""

from .base import ConverterStrategy, compatibility_score
from .claude_code_to_cursor import ClaudeCodeToCursorConverter
from .claude_code_to_kiro import ClaudeCodeToKiroConverter
from .cursor_to_claude_code import CursorToClaudeCodeConverter
from .cursor_to_kiro import CursorToKiroConverter
from .kiro_to_claude_code import KiroToClaudeCodeConverter
from .kiro_to_cursor import KiroToCursorConverter

ALL_CONVERTERS = (
    KiroToClaudeCodeConverter,
    ClaudeCodeToKiroConverter,
    KiroToCursorConverter,
    CursorToKiroConverter,
    ClaudeCodeToCursorConverter,
    CursorToClaudeCodeConverter,
)

__all__ = [
    'ConverterStrategy',
    'compatibility_score',
    'ALL_CONVERTERS',
    'ClaudeCodeToCursorConverter',
    'ClaudeCodeToKiroConverter',
    'CursorToClaudeCodeConverter',
    'CursorToKiroConverter',
    'KiroToClaudeCodeConverter',
    'KiroToCursorConverter',
]
