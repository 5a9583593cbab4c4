"""
Kiro platform builder.

Kiro keeps its configuration under ``.kiro/``:

    .kiro/specs/<feature>/{requirements,design,tasks}.md
    .kiro/steering/*.md            (YAML frontmatter: inclusion, fileMatchPattern)
    .kiro/hooks/*.kiro.hook|*.json
    .kiro/templates/*.json
    .kiro/settings/mcp.json        (also ~/.kiro/settings/mcp.json)
    .kiro/settings/project.json    (also ~/.kiro/settings/project.json)

Spec documents may pull in other files with ``#[[file:relative/path]]``;
references are resolved against the project root and must stay inside it.
"""

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.canonical_models import (
    AIPlatform,
    Category,
    Hook,
    KiroConfig,
    KiroSpec,
    ProjectData,
    SteeringRule,
    TaptikContext,
    TaskTemplate,
    ToolData,
)
from core.content_security import AIContent, ContextContent, PromptContent, RuleContent
from core.file_writer import GeneratedFile
from core.frontmatter import parse_frontmatter, render_frontmatter
from core.results import ValidationResult
from .base import (
    PathLike,
    PlatformBuilder,
    merge_named_records,
    merge_settings,
    mcp_servers_to_map,
    mcp_text_fields,
    slugify,
)

logger = logging.getLogger(__name__)

KIRO_DIR = '.kiro'
SPECS_PATH = '.kiro/specs'
SPEC_DOCUMENTS = ('requirements', 'design', 'tasks')
FILE_REFERENCE_PATTERN = re.compile(r'#\[\[file:([^\]]+)\]\]')

# First keyword found in a steering file name decides its priority
STEERING_PRIORITIES = (
    ('principle', 100),
    ('persona', 90),
    ('architecture', 80),
    ('standard', 70),
    ('tdd', 60),
    ('test', 60),
    ('git', 50),
    ('prd', 40),
    ('project-context', 30),
    ('flag', 20),
    ('mcp', 10),
)
DEFAULT_STEERING_PRIORITY = 50


def steering_priority(name: str) -> int:
    lowered = name.lower()
    for keyword, priority in STEERING_PRIORITIES:
        if keyword in lowered:
            return priority
    return DEFAULT_STEERING_PRIORITY


def parse_steering_document(name: str, content: str) -> SteeringRule:
    """
    Break a steering markdown file into a SteeringRule.

    The description is the first non-heading line and rules are the
    top-level bullet items.
    """
    meta, body = parse_frontmatter(content)
    description = ''
    rules = []
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(('- ', '* ')):
            rules.append(stripped[2:].strip())
        elif not description and not stripped.startswith('#'):
            description = stripped
    priority = meta.get('priority')
    return SteeringRule(
        name=name,
        content=body.strip(),
        description=description,
        rules=rules,
        priority=int(priority) if isinstance(priority, int) else steering_priority(name),
        inclusion=str(meta.get('inclusion') or 'always'),
        file_match_pattern=meta.get('fileMatchPattern'),
    )


def render_steering_document(rule: SteeringRule) -> str:
    meta: Dict[str, Any] = {'inclusion': rule.inclusion}
    if rule.file_match_pattern:
        meta['fileMatchPattern'] = rule.file_match_pattern
    body = rule.content
    if not body:
        lines = [f"# {rule.name.replace('-', ' ').replace('_', ' ').title()}", '']
        if rule.description:
            lines.extend([rule.description, ''])
        lines.extend(f"- {item}" for item in rule.rules)
        body = '\n'.join(lines)
    return render_frontmatter(meta, body.rstrip('\n') + '\n')


class KiroBuilder(PlatformBuilder):
    """Builder for Kiro projects."""

    config_type = KiroConfig
    empty_configuration_suggestion = 'Add .kiro/steering or .kiro/specs to the project'

    @property
    def platform(self) -> AIPlatform:
        return AIPlatform.KIRO

    def _detect(self, root: Path) -> bool:
        kiro = root / KIRO_DIR
        if not self.file_system.is_directory(kiro):
            return False
        return self.file_system.exists(kiro / 'specs') or self.file_system.exists(kiro / 'steering')

    # -- extract ------------------------------------------------------------

    def extract(self, root: PathLike) -> KiroConfig:
        root = Path(root)
        self._require_detected(root)
        kiro = root / KIRO_DIR
        user_kiro = self.file_system.get_user_home() / KIRO_DIR

        return KiroConfig(
            specs=self._extract_specs(root, kiro / 'specs'),
            steering_rules=self._extract_steering(kiro / 'steering', user_kiro / 'steering'),
            hooks=self._extract_hooks(kiro / 'hooks'),
            task_templates=self._extract_templates(kiro / 'templates'),
            project_settings=merge_settings(
                self._read_dict_optional(kiro / 'settings' / 'project.json'),
                self._read_dict_optional(user_kiro / 'settings' / 'project.json'),
            ),
            mcp_servers=self._read_mcp_servers(
                [kiro / 'settings' / 'mcp.json', kiro / 'mcp.json'],
                [user_kiro / 'settings' / 'mcp.json'],
            ),
        )

    def _extract_specs(self, root: Path, specs_dir: Path) -> Optional[List[KiroSpec]]:
        if not self.file_system.is_directory(specs_dir):
            return None
        specs = []
        for name in self.file_system.read_directory(specs_dir):
            spec_dir = specs_dir / name
            if not self.file_system.is_directory(spec_dir):
                continue
            documents = {}
            for document in SPEC_DOCUMENTS:
                content = self._read_text_optional(spec_dir / f"{document}.md")
                if content is not None:
                    documents[document] = self._resolve_file_references(root, content)
            if documents:
                specs.append(KiroSpec(name=name, **documents))
            else:
                logger.warning(f"Skipping spec directory without documents: {spec_dir}")
        return specs

    def _resolve_file_references(self, root: Path, content: str) -> str:
        resolved_root = root.resolve()

        def substitute(match):
            reference = match.group(1).strip()
            target = (root / reference).resolve()
            try:
                target.relative_to(resolved_root)
            except ValueError:
                logger.warning(f"File reference outside project ignored: {reference}")
                return match.group(0)
            text = self._read_text_optional(target)
            if text is None:
                logger.warning(f"Unresolved file reference: {reference}")
                return match.group(0)
            return text

        return FILE_REFERENCE_PATTERN.sub(substitute, content)

    def _read_steering_dir(self, directory: Path) -> Optional[List[Dict[str, Any]]]:
        if not self.file_system.is_directory(directory):
            return None
        rules = []
        for path in self._list_files(directory, ('.md',)):
            content = self.file_system.read_file(path)
            try:
                rule = parse_steering_document(path.stem, content)
            except ValueError as e:
                logger.warning(f"Skipping steering file {path}: {e}")
                continue
            rules.append(rule.to_dict())
        return rules

    def _extract_steering(self, workspace_dir: Path, user_dir: Path) -> Optional[List[SteeringRule]]:
        merged = merge_named_records(self._read_steering_dir(workspace_dir),
                                     self._read_steering_dir(user_dir))
        if merged is None:
            return None
        return [SteeringRule.from_dict(item) for item in merged]

    def _extract_hooks(self, hooks_dir: Path) -> Optional[List[Hook]]:
        if not self.file_system.is_directory(hooks_dir):
            return None
        hooks = []
        for path in self._list_files(hooks_dir, ('.json', '.kiro.hook')):
            data = self._read_json_optional(path)
            if data is None:
                continue
            entries = data.get('hooks', [data]) if isinstance(data, dict) else data
            for entry in entries if isinstance(entries, list) else []:
                if not isinstance(entry, dict):
                    continue
                if not isinstance(entry.get('name'), str) or not entry['name']:
                    logger.warning(f"Skipping unnamed hook in {path}")
                    continue
                if not isinstance(entry.get('version'), str):
                    logger.warning(f"Skipping hook {entry['name']!r} without a version in {path}")
                    continue
                hook = Hook.from_dict(entry)
                if hook.description is None:
                    hook.description = f"Hook from {path.name}"
                hooks.append(hook)
        hooks.sort(key=lambda hook: (not hook.enabled, hook.name))
        return hooks

    def _extract_templates(self, templates_dir: Path) -> Optional[List[TaskTemplate]]:
        if not self.file_system.is_directory(templates_dir):
            return None
        templates = []
        for path in self._list_files(templates_dir, ('.json',)):
            data = self._read_dict_optional(path)
            if data is None:
                continue
            if not data.get('name') or not isinstance(data.get('tasks'), list):
                logger.warning(f"Skipping task template without name or tasks: {path}")
                continue
            templates.append(TaskTemplate.from_dict(data))
        return templates

    # -- normalize / convert -----------------------------------------------

    def normalize(self, raw: KiroConfig, name: Optional[str] = None) -> TaptikContext:
        if raw.specs is not None and raw.specs_path is None:
            raw = replace(raw, specs_path=SPECS_PATH)
        return super().normalize(raw, name)

    def section_payloads(self, raw: KiroConfig) -> Dict[Category, Any]:
        sections = {}
        if raw.specs:
            sections[Category.PROJECT] = ProjectData(kiro_specs=list(raw.specs))
        if raw.mcp_servers:
            sections[Category.TOOLS] = ToolData(mcp_servers=list(raw.mcp_servers))
        return sections

    def _complete_from_context(self, config: KiroConfig, context: TaptikContext) -> KiroConfig:
        project = context.section(Category.PROJECT)
        if config.specs is None and project is not None and project.data.kiro_specs:
            config.specs = list(project.data.kiro_specs)
        return config

    # -- validate -----------------------------------------------------------

    def _validate_structure(self, raw: KiroConfig, validation: ValidationResult):
        if not raw.specs and not raw.specs_path:
            validation.add_warning('specs', 'No Kiro specs found',
                                   suggestion='Add feature specs under .kiro/specs')
        if not raw.steering_rules:
            validation.add_warning('steering_rules', 'No steering rules found',
                                   suggestion='Add steering documents under .kiro/steering')

        for index, spec in enumerate(raw.specs or []):
            if not spec.name:
                validation.add_error(f"specs[{index}]", 'Spec must have a name', code='MISSING_NAME')
        for index, rule in enumerate(raw.steering_rules or []):
            if not rule.name:
                validation.add_error(f"steering_rules[{index}]", 'Steering rule must have a name',
                                     code='MISSING_NAME')
        for index, hook in enumerate(raw.hooks or []):
            path = f"hooks[{hook.name or index}]"
            if not hook.name:
                validation.add_error(path, 'Hook must have a name', code='MISSING_NAME')
            if not hook.version:
                validation.add_error(path, 'Hook must have a version', code='MISSING_VERSION')
        for index, template in enumerate(raw.task_templates or []):
            if not template.name:
                validation.add_error(f"task_templates[{index}]", 'Task template must have a name',
                                     code='MISSING_NAME')
        self._validate_mcp_servers(raw.mcp_servers, validation)

    def text_fields(self, raw: KiroConfig) -> List[Tuple[str, Any]]:
        fields = []
        for spec in raw.specs or []:
            for document in SPEC_DOCUMENTS:
                fields.append((f"specs.{spec.name}.{document}", getattr(spec, document)))
        for rule in raw.steering_rules or []:
            fields.append((f"steering.{rule.name}", render_steering_document(rule)))
        for hook in raw.hooks or []:
            fields.append((f"hooks.{hook.name}", hook.to_dict()))
        for template in raw.task_templates or []:
            fields.append((f"templates.{template.name}", template.to_dict()))
        fields.extend(mcp_text_fields(raw.mcp_servers))
        fields.append(('project_settings', raw.project_settings))
        return fields

    def ai_content(self, raw: KiroConfig) -> AIContent:
        rules = [RuleContent(id=rule.name, name=rule.name, content=render_steering_document(rule),
                             priority=rule.priority)
                 for rule in raw.steering_rules or []]
        contexts = [ContextContent(name=f"{spec.name}/{document}", content=getattr(spec, document))
                    for spec in raw.specs or [] for document in SPEC_DOCUMENTS
                    if getattr(spec, document)]
        prompts = [PromptContent(name=hook.name, content=hook.then.prompt)
                   for hook in raw.hooks or [] if hook.then.prompt]
        return AIContent(rules=rules, contexts=contexts, prompts=prompts)

    # -- render -------------------------------------------------------------

    def scaffold_directories(self) -> List[str]:
        return [KIRO_DIR, SPECS_PATH, '.kiro/steering', '.kiro/hooks', '.kiro/settings']

    def render_files(self, raw: KiroConfig) -> List[GeneratedFile]:
        files = []
        for spec in raw.specs or []:
            for document in SPEC_DOCUMENTS:
                content = getattr(spec, document)
                if content is not None:
                    files.append(GeneratedFile(f"{SPECS_PATH}/{spec.name}/{document}.md",
                                               content, component=f"specs.{spec.name}"))
        for rule in raw.steering_rules or []:
            files.append(GeneratedFile(f".kiro/steering/{slugify(rule.name)}.md",
                                       render_steering_document(rule),
                                       component=f"steering.{rule.name}"))
        for hook in raw.hooks or []:
            files.append(GeneratedFile(
                f".kiro/hooks/{slugify(hook.name)}.kiro.hook",
                hook.to_dict(),
                component=f"hooks.{hook.name}"))
        for template in raw.task_templates or []:
            files.append(GeneratedFile(f".kiro/templates/{slugify(template.name)}.json",
                                       template.to_dict(),
                                       component=f"templates.{template.name}"))
        if raw.mcp_servers is not None:
            files.append(GeneratedFile('.kiro/settings/mcp.json',
                                       mcp_servers_to_map(raw.mcp_servers), component='mcp'))
        if raw.project_settings is not None:
            files.append(GeneratedFile('.kiro/settings/project.json',
                                       dict(raw.project_settings), component='project_settings'))
        return files
