"""
Value transforms used by approximated feature mappings.

Every transform takes ``(value, source_config, context)``: the source
feature's value, the full source payload and the context being converted.
It returns the value for the target field, or None when nothing survives.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from core.canonical_models import (
    Category,
    CursorRule,
    Hook,
    HookAction,
    HookTrigger,
    KiroSpec,
    SteeringRule,
    TaptikContext,
)

SECTION_HEADING = re.compile(r'^##\s+(.+?)\s*$', re.MULTILINE)
TITLE_HEADING = re.compile(r'^#\s+(.+?)\s*$', re.MULTILINE)

CLAUDE_ONLY_SETTINGS = ('permissions', 'env', 'statusLine')


def _title(name: str) -> str:
    return name.replace('-', ' ').replace('_', ' ').strip().title()


def _rule_name(title: str) -> str:
    return re.sub(r'[^a-z0-9]+', '_', title.lower()).strip('_') or 'instructions'


def split_markdown_sections(markdown: str) -> List[Tuple[str, str]]:
    """
    Split a markdown document on its ``##`` headings.

    Returns (title, body) pairs. Text before the first ``##`` heading is
    kept as a section named after the ``#`` title, or "overview".
    """
    sections = []
    matches = list(SECTION_HEADING.finditer(markdown))
    preamble = markdown[:matches[0].start()] if matches else markdown
    title_match = TITLE_HEADING.search(preamble)
    preamble_body = TITLE_HEADING.sub('', preamble, count=1).strip()
    if preamble_body:
        sections.append((title_match.group(1) if title_match else 'overview', preamble_body))
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(markdown)
        sections.append((match.group(1), markdown[match.end():end].strip()))
    return sections


def _bullets(text: str) -> List[str]:
    return [line.strip()[2:].strip() for line in text.splitlines()
            if line.strip().startswith(('- ', '* '))]


def _first_sentence(text: str) -> str:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith(('#', '- ', '* ')):
            return stripped
    return ''


def _strip_title(content: str) -> str:
    """Drop a leading ``#`` heading so the body can be nested under a new one."""
    lines = content.strip().splitlines()
    if lines and lines[0].startswith('# '):
        lines = lines[1:]
    return '\n'.join(lines).strip()


def _steering_body(rule: SteeringRule) -> str:
    if rule.content:
        return _strip_title(rule.content)
    parts = [rule.description] if rule.description else []
    parts.extend(f"- {item}" for item in rule.rules)
    return '\n'.join(parts)


def _resolve_specs(value: Any, source: Any,
                   context: TaptikContext) -> Tuple[List[KiroSpec], Optional[str]]:
    """Spec records for a ``specs`` feature value, plus the specs path if only that is known."""
    if isinstance(value, list) and value:
        return value, None
    project = context.section(Category.PROJECT)
    if project is not None and project.data.kiro_specs:
        return list(project.data.kiro_specs), None
    if isinstance(value, str):
        return [], value
    return [], getattr(source, 'specs_path', None)


def _spec_markdown(spec: KiroSpec, level: int = 3) -> str:
    marker = '#' * level
    parts = []
    for label, text in (('Requirements', spec.requirements), ('Design', spec.design),
                        ('Tasks', spec.tasks)):
        if text:
            parts.append(f"{marker} {label}\n\n{_strip_title(text)}")
    return '\n\n'.join(parts)


# ---------------------------------------------------------------------------
# Kiro -> other platforms
# ---------------------------------------------------------------------------

def specs_to_instructions(value: Any, source: Any, context: TaptikContext) -> Optional[str]:
    specs, specs_path = _resolve_specs(value, source, context)
    if not specs and not specs_path:
        return None
    lines = ['# Project Instructions', '']
    if not specs:
        lines.append(f"Feature specs are maintained in `{specs_path}`.")
    for spec in specs:
        lines.extend([f"## {_title(spec.name)}", '', _spec_markdown(spec), ''])
    return '\n'.join(lines).rstrip() + '\n'


def steering_to_markdown(value: List[SteeringRule], source: Any, context: TaptikContext) -> str:
    lines = ['# Custom Instructions', '']
    for rule in sorted(value, key=lambda rule: -rule.priority):
        lines.extend([f"## {_title(rule.name)}", '', _steering_body(rule), ''])
    return '\n'.join(lines).rstrip() + '\n'


def _hook_instructions(hook: Hook) -> str:
    parts = [hook.description] if hook.description else []
    if hook.then.prompt:
        parts.append(hook.then.prompt)
    if hook.then.command:
        parts.append(f"Run `{hook.then.command}`.")
    if hook.when.patterns:
        parts.append(f"Originally triggered on {hook.when.type} for: {', '.join(hook.when.patterns)}")
    return '\n\n'.join(parts) + '\n'


def hooks_to_commands(value: List[Hook], source: Any, context: TaptikContext) -> Dict[str, str]:
    return {_rule_name(hook.name).replace('_', '-'): _hook_instructions(hook)
            for hook in value if hook.enabled}


def steering_to_cursor_rules(value: List[SteeringRule], source: Any,
                             context: TaptikContext) -> List[CursorRule]:
    rules = []
    for rule in value:
        globs = [rule.file_match_pattern] if rule.inclusion == 'fileMatch' and rule.file_match_pattern else []
        rules.append(CursorRule(
            name=rule.name,
            content=rule.content or _steering_body(rule),
            description=rule.description or None,
            globs=globs,
            always_apply=rule.inclusion == 'always',
        ))
    return rules


def specs_to_cursor_rules(value: Any, source: Any, context: TaptikContext) -> List[CursorRule]:
    specs, _ = _resolve_specs(value, source, context)
    return [CursorRule(name=f"spec-{spec.name}",
                       content=f"# {_title(spec.name)}\n\n{_spec_markdown(spec, level=2)}",
                       description=f"{_title(spec.name)} feature spec")
            for spec in specs]


def hooks_to_tasks(value: List[Hook], source: Any, context: TaptikContext) -> List[Dict[str, Any]]:
    return [{'label': hook.name, 'type': 'shell', 'command': hook.then.command}
            for hook in value if hook.then.command]


# ---------------------------------------------------------------------------
# Claude Code -> other platforms
# ---------------------------------------------------------------------------

def markdown_to_specs(value: str, source: Any, context: TaptikContext) -> List[KiroSpec]:
    return [KiroSpec(name='project', requirements=f"# Requirements\n\n{_strip_title(value)}\n")]


def markdown_to_steering_rules(value: str, source: Any,
                               context: TaptikContext) -> List[SteeringRule]:
    rules = []
    for title, body in split_markdown_sections(value):
        if not body:
            continue
        rules.append(SteeringRule(
            name=_rule_name(title),
            content=f"# {title}\n\n{body}",
            description=_first_sentence(body),
            rules=_bullets(body),
        ))
    return rules


def commands_to_hooks(value: Dict[str, str], source: Any, context: TaptikContext) -> List[Hook]:
    return [Hook(name=name,
                 description=f"Converted from Claude Code command /{name}",
                 when=HookTrigger(type='manual'),
                 then=HookAction(type='askAgent', prompt=text.strip()))
            for name, text in value.items()]


def settings_without_claude_only(value: Dict[str, Any], source: Any,
                                 context: TaptikContext) -> Dict[str, Any]:
    return {key: item for key, item in value.items() if key not in CLAUDE_ONLY_SETTINGS}


def claude_md_to_rules(value: str, source: Any, context: TaptikContext) -> List[CursorRule]:
    return [CursorRule(name='claude-instructions', content=value.strip(),
                       description='Project instructions from CLAUDE.md', always_apply=True)]


def claude_local_md_to_rules(value: str, source: Any, context: TaptikContext) -> List[CursorRule]:
    return [CursorRule(name='claude-local-instructions', content=value.strip(),
                       description='Personal instructions from CLAUDE.local.md', always_apply=True)]


# ---------------------------------------------------------------------------
# Cursor -> other platforms
# ---------------------------------------------------------------------------

def cursor_rules_to_steering(value: List[CursorRule], source: Any,
                             context: TaptikContext) -> List[SteeringRule]:
    rules = []
    for rule in value:
        if rule.always_apply:
            inclusion, pattern = 'always', None
        elif rule.globs:
            inclusion, pattern = 'fileMatch', ','.join(rule.globs)
        else:
            inclusion, pattern = 'manual', None
        rules.append(SteeringRule(
            name=rule.name,
            content=rule.content,
            description=rule.description or _first_sentence(rule.content),
            rules=_bullets(rule.content),
            inclusion=inclusion,
            file_match_pattern=pattern,
        ))
    return rules


def legacy_rules_to_steering(value: str, source: Any, context: TaptikContext) -> List[SteeringRule]:
    return [SteeringRule(name='cursor-rules', content=value.strip(),
                         description='Imported from .cursorrules', rules=_bullets(value))]


def tasks_to_hooks(value: List[Dict[str, Any]], source: Any, context: TaptikContext) -> List[Hook]:
    hooks = []
    for task in value:
        if not task.get('label') or not task.get('command'):
            continue
        command = ' '.join([str(task['command'])] + [str(arg) for arg in task.get('args') or []])
        hooks.append(Hook(name=str(task['label']),
                          description='Converted from a Cursor task',
                          when=HookTrigger(type='manual'),
                          then=HookAction(type='command', command=command)))
    return hooks


def cursor_rules_to_markdown(value: List[CursorRule], source: Any, context: TaptikContext) -> str:
    lines = ['# Project Rules', '']
    for rule in value:
        lines.extend([f"## {_title(rule.name)}", ''])
        if rule.description:
            lines.extend([rule.description, ''])
        if rule.globs and not rule.always_apply:
            lines.extend([f"Applies to files matching: {', '.join(rule.globs)}", ''])
        lines.extend([_strip_title(rule.content), ''])
    return '\n'.join(lines).rstrip() + '\n'


def legacy_rules_to_markdown(value: str, source: Any, context: TaptikContext) -> str:
    return f"# Cursor Rules\n\n{value.strip()}\n"


def copy_settings(value: Dict[str, Any], source: Any, context: TaptikContext) -> Dict[str, Any]:
    return dict(value)
