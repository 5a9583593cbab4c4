"""
Claude Code platform builder.

Reads:
- CLAUDE.md and CLAUDE.local.md instruction documents
- .claude/settings.json, overridden per key by ~/.claude/settings.json
- MCP servers from .mcp.json / .claude/mcp.json and ~/.claude/mcp.json
- slash commands from .claude/commands/*.md and .claude/commands.json
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.canonical_models import (
    AIPlatform,
    Category,
    ClaudeCodeConfig,
    ProjectData,
    PromptData,
    TaptikContext,
    ToolData,
)
from core.content_security import AIContent, ContextContent, PromptContent
from core.file_writer import GeneratedFile
from core.results import ValidationResult
from .base import (
    PathLike,
    PlatformBuilder,
    mcp_servers_to_map,
    mcp_text_fields,
    merge_settings,
    slugify,
)

logger = logging.getLogger(__name__)

CLAUDE_DIR = '.claude'
CLAUDE_MD = 'CLAUDE.md'
CLAUDE_LOCAL_MD = 'CLAUDE.local.md'


class ClaudeCodeBuilder(PlatformBuilder):
    """Builder for Claude Code projects."""

    config_type = ClaudeCodeConfig
    marker_paths = (CLAUDE_DIR, CLAUDE_MD, CLAUDE_LOCAL_MD)
    empty_configuration_suggestion = 'Add .claude/settings.json or CLAUDE.md file'

    @property
    def platform(self) -> AIPlatform:
        return AIPlatform.CLAUDE_CODE

    def extract(self, root: PathLike) -> ClaudeCodeConfig:
        root = Path(root)
        self._require_detected(root)
        claude = root / CLAUDE_DIR
        user_claude = self.file_system.get_user_home() / CLAUDE_DIR

        return ClaudeCodeConfig(
            settings=merge_settings(
                self._read_dict_optional(claude / 'settings.json'),
                self._read_dict_optional(user_claude / 'settings.json'),
            ),
            mcp_servers=self._read_mcp_servers(
                [root / '.mcp.json', claude / 'mcp.json'],
                [user_claude / 'mcp.json'],
            ),
            commands=self._extract_commands(claude),
            claude_md=self._read_text_optional(root / CLAUDE_MD),
            claude_local_md=self._read_text_optional(root / CLAUDE_LOCAL_MD),
        )

    def _extract_commands(self, claude: Path) -> Optional[Dict[str, str]]:
        commands: Optional[Dict[str, str]] = None
        commands_dir = claude / 'commands'
        if self.file_system.is_directory(commands_dir):
            commands = {}
            for path in self._list_files(commands_dir, ('.md',)):
                commands[path.stem] = self.file_system.read_file(path)

        data = self._read_json_optional(claude / 'commands.json')
        if data is not None:
            commands = commands if commands is not None else {}
            entries = data.get('commands', data) if isinstance(data, dict) else data
            if isinstance(entries, dict):
                entries = [{'name': name, 'command': value} for name, value in entries.items()]
            for entry in entries if isinstance(entries, list) else []:
                if not isinstance(entry, dict) or not entry.get('name'):
                    logger.warning('Skipping unnamed command in .claude/commands.json')
                    continue
                text = entry.get('command') or entry.get('content') or entry.get('prompt') or ''
                # Markdown command files take precedence over the JSON listing
                commands.setdefault(str(entry['name']), str(text))
        return commands

    # -- normalize ----------------------------------------------------------

    def section_payloads(self, raw: ClaudeCodeConfig) -> Dict[Category, Any]:
        sections = {}
        if raw.claude_md:
            sections[Category.PROJECT] = ProjectData(claude_instructions=raw.claude_md)
        if raw.claude_local_md:
            sections[Category.PROMPTS] = PromptData(custom_instructions=raw.claude_local_md)
        if raw.mcp_servers or raw.commands:
            sections[Category.TOOLS] = ToolData(
                mcp_servers=list(raw.mcp_servers) if raw.mcp_servers else None,
                custom_commands=dict(raw.commands) if raw.commands else None,
            )
        return sections

    def _complete_from_context(self, config: ClaudeCodeConfig,
                               context: TaptikContext) -> ClaudeCodeConfig:
        project = context.section(Category.PROJECT)
        if config.claude_md is None and project is not None:
            config.claude_md = project.data.claude_instructions
        prompts = context.section(Category.PROMPTS)
        if config.claude_local_md is None and prompts is not None:
            config.claude_local_md = prompts.data.custom_instructions
        return config

    # -- validate -----------------------------------------------------------

    def _validate_structure(self, raw: ClaudeCodeConfig, validation: ValidationResult):
        self._validate_mcp_servers(raw.mcp_servers, validation)
        for name, text in (raw.commands or {}).items():
            if not text.strip():
                validation.add_warning(f"commands.{name}", 'Command has no content')
        permissions = (raw.settings or {}).get('permissions')
        if permissions is not None and not isinstance(permissions, dict):
            validation.add_error('settings.permissions', 'permissions must be an object',
                                 code='INVALID_PERMISSIONS')

    def text_fields(self, raw: ClaudeCodeConfig) -> List[Tuple[str, Any]]:
        fields = [(CLAUDE_MD, raw.claude_md), (CLAUDE_LOCAL_MD, raw.claude_local_md),
                  ('settings', raw.settings)]
        for name, text in (raw.commands or {}).items():
            fields.append((f"commands.{name}", text))
        fields.extend(mcp_text_fields(raw.mcp_servers))
        return fields

    def ai_content(self, raw: ClaudeCodeConfig) -> AIContent:
        contexts = [ContextContent(name=name, content=text)
                    for name, text in ((CLAUDE_MD, raw.claude_md),
                                       (CLAUDE_LOCAL_MD, raw.claude_local_md)) if text]
        prompts = [PromptContent(name=name, content=text)
                   for name, text in (raw.commands or {}).items()]
        return AIContent(contexts=contexts, prompts=prompts)

    # -- render -------------------------------------------------------------

    def scaffold_directories(self) -> List[str]:
        return [CLAUDE_DIR, f"{CLAUDE_DIR}/commands"]

    def render_files(self, raw: ClaudeCodeConfig) -> List[GeneratedFile]:
        files = []
        if raw.claude_md is not None:
            files.append(GeneratedFile(CLAUDE_MD, raw.claude_md, component='claude_md'))
        if raw.claude_local_md is not None:
            files.append(GeneratedFile(CLAUDE_LOCAL_MD, raw.claude_local_md,
                                       component='claude_local_md'))
        if raw.settings is not None:
            files.append(GeneratedFile(f"{CLAUDE_DIR}/settings.json", dict(raw.settings),
                                       component='settings'))
        if raw.mcp_servers is not None:
            files.append(GeneratedFile('.mcp.json', mcp_servers_to_map(raw.mcp_servers),
                                       component='mcp'))
        for name, text in (raw.commands or {}).items():
            files.append(GeneratedFile(f"{CLAUDE_DIR}/commands/{slugify(name)}.md", text,
                                       component=f"commands.{name}"))
        return files
