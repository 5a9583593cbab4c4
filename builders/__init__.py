"""
Platform builders for turning on-disk IDE configuration into canonical contexts.

Each builder knows how to:
- Detect whether a directory holds the platform's configuration
- Extract workspace and user-level files into a platform payload
- Normalize the payload into a TaptikContext
- Validate structure and run the content security pass
- Render the payload back into native files and deploy them

Available builders:
- ClaudeCodeBuilder: Claude Code (CLAUDE.md, .claude/, .mcp.json)
- KiroBuilder: Kiro (.kiro/specs, .kiro/steering, .kiro/hooks)
- CursorBuilder: Cursor (.cursor/rules, .cursorrules, .vscode/)
"""

from .base import PlatformBuilder
from .claude_code import ClaudeCodeBuilder
from .cursor import CursorBuilder
from .kiro import KiroBuilder

__all__ = [
    'PlatformBuilder',
    'ClaudeCodeBuilder',
    'CursorBuilder',
    'KiroBuilder',
]
