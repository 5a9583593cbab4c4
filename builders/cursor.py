"""
Cursor platform builder.

Reads:
- .cursor/rules/*.mdc project rules (frontmatter: description, globs, alwaysApply)
- legacy .cursorrules
- .cursor/settings.json, overridden per key by ~/.cursor/settings.json
- .vscode/settings.json project settings (flattened dotted keys)
- MCP servers from .cursor/mcp.json and ~/.cursor/mcp.json
- .vscode/extensions.json, *.code-snippets, tasks.json and launch.json
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.canonical_models import (
    AIPlatform,
    Category,
    CursorConfig,
    CursorRule,
    ProjectData,
    PromptData,
    TaptikContext,
    ToolData,
)
from core.content_security import AIContent, RuleContent
from core.file_writer import GeneratedFile
from core.frontmatter import parse_frontmatter, render_frontmatter
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

CURSOR_DIR = '.cursor'
VSCODE_DIR = '.vscode'
CURSORRULES = '.cursorrules'
TASKS_VERSION = '2.0.0'
LAUNCH_VERSION = '0.2.0'


def flatten_settings(settings: Dict[str, Any], prefix: str = '') -> Dict[str, Any]:
    """
    Flatten nested settings into dotted keys.

    ``{"editor": {"tabSize": 2}}`` becomes ``{"editor.tabSize": 2}``. Keys that
    are already dotted are kept as they are.
    """
    flat = {}
    for key, value in settings.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            flat.update(flatten_settings(value, name))
        else:
            flat[name] = value
    return flat


def parse_globs(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return [part.strip() for part in str(value).split(',') if part.strip()]


def parse_rule_document(name: str, content: str) -> CursorRule:
    meta, body = parse_frontmatter(content)
    return CursorRule(
        name=name,
        content=body.strip(),
        description=meta.get('description') or None,
        globs=parse_globs(meta.get('globs')),
        always_apply=bool(meta.get('alwaysApply', False)),
    )


def render_rule_document(rule: CursorRule) -> str:
    meta = {
        'description': rule.description or '',
        'globs': ','.join(rule.globs),
        'alwaysApply': rule.always_apply,
    }
    return render_frontmatter(meta, rule.content.rstrip('\n') + '\n')


class CursorBuilder(PlatformBuilder):
    """Builder for Cursor projects."""

    config_type = CursorConfig
    marker_paths = (CURSOR_DIR, CURSORRULES)
    empty_configuration_suggestion = 'Add .cursor/rules or a .cursorrules file'

    @property
    def platform(self) -> AIPlatform:
        return AIPlatform.CURSOR

    def extract(self, root: PathLike) -> CursorConfig:
        root = Path(root)
        self._require_detected(root)
        cursor = root / CURSOR_DIR
        vscode = root / VSCODE_DIR
        user_cursor = self.file_system.get_user_home() / CURSOR_DIR

        return CursorConfig(
            settings=merge_settings(
                self._read_dict_optional(cursor / 'settings.json'),
                self._read_dict_optional(user_cursor / 'settings.json'),
            ),
            project_settings=self._read_dict_optional(vscode / 'settings.json'),
            rules=self._extract_rules(cursor / 'rules'),
            legacy_rules=self._read_text_optional(root / CURSORRULES),
            mcp_servers=self._read_mcp_servers([cursor / 'mcp.json'],
                                               [user_cursor / 'mcp.json']),
            extensions=self._extract_list(vscode / 'extensions.json', 'recommendations'),
            snippets=self._extract_snippets(vscode),
            tasks=self._extract_named(vscode / 'tasks.json', 'tasks', 'label'),
            launch=self._extract_named(vscode / 'launch.json', 'configurations', 'name'),
        )

    def _extract_rules(self, rules_dir: Path) -> Optional[List[CursorRule]]:
        if not self.file_system.is_directory(rules_dir):
            return None
        rules = []
        for path in self._list_files(rules_dir, ('.mdc',)):
            try:
                rules.append(parse_rule_document(path.stem, self.file_system.read_file(path)))
            except ValueError as e:
                logger.warning(f"Skipping rule file {path}: {e}")
        return rules

    def _extract_list(self, path: Path, key: str) -> Optional[List[Any]]:
        data = self._read_dict_optional(path)
        if data is None:
            return None
        items = data.get(key)
        if not isinstance(items, list):
            logger.warning(f"Ignoring {path}: '{key}' is not a list")
            return None
        return items

    def _extract_named(self, path: Path, key: str, name_key: str) -> Optional[List[Dict[str, Any]]]:
        items = self._extract_list(path, key)
        if items is None:
            return None
        named = []
        for index, item in enumerate(items):
            if not isinstance(item, dict) or not item.get(name_key):
                logger.warning(f"Skipping {key}[{index}] without a {name_key} in {path}")
                continue
            named.append(item)
        return named

    def _extract_snippets(self, vscode: Path) -> Optional[Dict[str, Dict[str, Any]]]:
        files = self._list_files(vscode, ('.code-snippets',))
        if not files:
            return None
        snippets = {}
        for path in files:
            data = self._read_dict_optional(path)
            if data is not None:
                snippets[path.name[:-len('.code-snippets')]] = data
        return snippets

    # -- normalize ----------------------------------------------------------

    def section_payloads(self, raw: CursorConfig) -> Dict[Category, Any]:
        sections = {}
        if raw.rules:
            sections[Category.PROJECT] = ProjectData(cursor_rules=list(raw.rules))
        if raw.legacy_rules:
            sections[Category.PROMPTS] = PromptData(custom_instructions=raw.legacy_rules)
        if raw.mcp_servers:
            sections[Category.TOOLS] = ToolData(mcp_servers=list(raw.mcp_servers))
        return sections

    def _complete_from_context(self, config: CursorConfig, context: TaptikContext) -> CursorConfig:
        project = context.section(Category.PROJECT)
        if config.rules is None and project is not None and project.data.cursor_rules:
            config.rules = list(project.data.cursor_rules)
        return config

    # -- validate -----------------------------------------------------------

    def _validate_structure(self, raw: CursorConfig, validation: ValidationResult):
        for index, rule in enumerate(raw.rules or []):
            path = f"rules[{rule.name or index}]"
            if not rule.name:
                validation.add_error(path, 'Rule must have a name', code='MISSING_NAME')
            if not rule.content.strip():
                validation.add_warning(path, 'Rule has no content')
            if not rule.always_apply and not rule.globs and not rule.description:
                validation.add_warning(path, 'Rule has no globs, description or alwaysApply '
                                             'and will only apply when mentioned')
        for index, task in enumerate(raw.tasks or []):
            if not isinstance(task, dict) or not task.get('label'):
                validation.add_error(f"tasks[{index}]", 'Task must have a label',
                                     code='MISSING_NAME')
        for index, configuration in enumerate(raw.launch or []):
            if not isinstance(configuration, dict) or not configuration.get('name'):
                validation.add_error(f"launch[{index}]", 'Launch configuration must have a name',
                                     code='MISSING_NAME')
        self._validate_mcp_servers(raw.mcp_servers, validation)

    def text_fields(self, raw: CursorConfig) -> List[Tuple[str, Any]]:
        fields = []
        for rule in raw.rules or []:
            fields.append((f"rules.{rule.name}", render_rule_document(rule)))
        fields.extend([(CURSORRULES, raw.legacy_rules), ('settings', raw.settings),
                       ('project_settings', flatten_settings(raw.project_settings)
                        if raw.project_settings is not None else None),
                       ('extensions', raw.extensions), ('snippets', raw.snippets),
                       ('tasks', raw.tasks), ('launch', raw.launch)])
        fields.extend(mcp_text_fields(raw.mcp_servers))
        return fields

    def ai_content(self, raw: CursorConfig) -> AIContent:
        rules = [RuleContent(id=rule.name, name=rule.name, content=render_rule_document(rule))
                 for rule in raw.rules or []]
        if raw.legacy_rules:
            rules.append(RuleContent(id=CURSORRULES, name=CURSORRULES, content=raw.legacy_rules))
        return AIContent(rules=rules)

    # -- render -------------------------------------------------------------

    def scaffold_directories(self) -> List[str]:
        return [CURSOR_DIR, f"{CURSOR_DIR}/rules", VSCODE_DIR]

    def render_files(self, raw: CursorConfig) -> List[GeneratedFile]:
        files = []
        for rule in raw.rules or []:
            files.append(GeneratedFile(f"{CURSOR_DIR}/rules/{slugify(rule.name)}.mdc",
                                       render_rule_document(rule),
                                       component=f"rules.{rule.name}"))
        if raw.legacy_rules is not None:
            files.append(GeneratedFile(CURSORRULES, raw.legacy_rules, component='legacy_rules'))
        if raw.settings is not None:
            files.append(GeneratedFile(f"{CURSOR_DIR}/settings.json", dict(raw.settings),
                                       component='settings'))
        if raw.project_settings is not None:
            files.append(GeneratedFile(f"{VSCODE_DIR}/settings.json",
                                       flatten_settings(raw.project_settings),
                                       component='project_settings'))
        if raw.mcp_servers is not None:
            files.append(GeneratedFile(f"{CURSOR_DIR}/mcp.json",
                                       mcp_servers_to_map(raw.mcp_servers), component='mcp'))
        if raw.extensions is not None:
            files.append(GeneratedFile(f"{VSCODE_DIR}/extensions.json",
                                       {'recommendations': list(raw.extensions)},
                                       component='extensions'))
        for name, snippets in (raw.snippets or {}).items():
            files.append(GeneratedFile(f"{VSCODE_DIR}/{slugify(name)}.code-snippets",
                                       dict(snippets), component=f"snippets.{name}"))
        if raw.tasks is not None:
            files.append(GeneratedFile(f"{VSCODE_DIR}/tasks.json",
                                       {'version': TASKS_VERSION, 'tasks': list(raw.tasks)},
                                       component='tasks'))
        if raw.launch is not None:
            files.append(GeneratedFile(f"{VSCODE_DIR}/launch.json",
                                       {'version': LAUNCH_VERSION,
                                        'configurations': list(raw.launch)},
                                       component='launch'))
        return files
