"""
Canonical data models for IDE configuration.

TaptikContext is the platform-neutral interchange document every builder
reads and writes and every converter maps between. It is organised into
category sections (ide, project, prompts, tools, personal); the ide section
holds one tagged payload per platform:

- KiroConfig: specs, steering rules, hooks, task templates, MCP servers
- ClaudeCodeConfig: settings, MCP servers, commands, CLAUDE.md documents
- CursorConfig: settings, .mdc rules, MCP servers, extensions, snippets,
  tasks and launch configurations
- PassthroughConfig: any other platform key, carried through unchanged

Optional fields use None for "absent" and an empty list/dict for "present
but empty". The two states are kept apart in memory and in to_dict().

Contexts are immutable. Every stage produces a new context through the
with_* methods instead of mutating the one it was given.
"""

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

CONTEXT_VERSION = '1.0.0'
SECTION_SPEC_VERSION = '1.0.0'
SUPPORTED_MAJOR_VERSION = 1
DEFAULT_SERVER_VERSION = '1.0.0'


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def is_supported_version(version: str) -> bool:
    """Check a semver string against the supported major version."""
    parts = str(version).split('.')
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return False
    return int(parts[0]) == SUPPORTED_MAJOR_VERSION


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None; empty collections are kept."""
    return {key: value for key, value in data.items() if value is not None}


class AIPlatform(str, Enum):
    """Platforms with a builder and converters."""
    KIRO = 'kiro'
    CLAUDE_CODE = 'claude-code'
    CURSOR = 'cursor'

    @property
    def config_key(self) -> str:
        """Key of this platform's payload inside the ide section."""
        return self.value.replace('-', '_')

    @property
    def display_name(self) -> str:
        return {
            AIPlatform.KIRO: 'Kiro',
            AIPlatform.CLAUDE_CODE: 'Claude Code',
            AIPlatform.CURSOR: 'Cursor',
        }[self]

    @classmethod
    def from_config_key(cls, key: str) -> Optional['AIPlatform']:
        for platform in cls:
            if platform.config_key == key:
                return platform
        return None


class Category(str, Enum):
    """Top-level context sections."""
    IDE = 'ide'
    PROJECT = 'project'
    PROMPTS = 'prompts'
    TOOLS = 'tools'
    PERSONAL = 'personal'


# ---------------------------------------------------------------------------
# Sub-records
# ---------------------------------------------------------------------------

@dataclass
class McpServer:
    """
    MCP server descriptor.

    A server is launched either locally through ``command`` (plus ``args``)
    or reached remotely through ``url``. Keys a platform writes that have no
    field here (autoApprove, headers, transport type, ...) are kept in
    ``config`` so they survive a round trip.
    """
    name: str
    command: Optional[str] = None
    url: Optional[str] = None
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    version: str = DEFAULT_SERVER_VERSION

    _KNOWN_KEYS = ('name', 'command', 'url', 'args', 'env', 'config',
                   'enabled', 'disabled', 'version')

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'name': self.name,
            'command': self.command,
            'url': self.url,
            'args': list(self.args),
            'env': dict(self.env),
            'config': copy.deepcopy(self.config),
            'enabled': self.enabled,
            'version': self.version,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: Optional[str] = None) -> 'McpServer':
        """
        Build a descriptor from a platform's JSON entry.

        Args:
            data: Server entry (``{command, args, env, ...}``)
            name: Name taken from the enclosing ``mcpServers`` key, if any

        Returns:
            McpServer; a missing name becomes an empty string for validation to report
        """
        config = dict(data.get('config') or {})
        for key, value in data.items():
            if key not in cls._KNOWN_KEYS:
                config[key] = value
        enabled = data.get('enabled', True) is not False and not data.get('disabled', False)
        return cls(
            name=name if name is not None else str(data.get('name') or ''),
            command=data.get('command'),
            url=data.get('url'),
            args=[str(arg) for arg in data.get('args') or []],
            env=dict(data.get('env') or {}),
            config=config,
            enabled=enabled,
            version=str(data.get('version') or DEFAULT_SERVER_VERSION),
        )


@dataclass
class HookTrigger:
    """When a hook fires: event type plus file patterns."""
    type: str = 'manual'
    patterns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'patterns': list(self.patterns)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'HookTrigger':
        data = data or {}
        return cls(type=str(data.get('type', 'manual')),
                   patterns=[str(p) for p in data.get('patterns') or []])


@dataclass
class HookAction:
    """What a hook does: ask the agent with a prompt or run a command."""
    type: str = 'askAgent'
    prompt: Optional[str] = None
    command: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'type': self.type, 'prompt': self.prompt, 'command': self.command})

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'HookAction':
        data = data or {}
        return cls(type=str(data.get('type', 'askAgent')),
                   prompt=data.get('prompt'),
                   command=data.get('command'))


@dataclass
class Hook:
    """Kiro agent hook."""
    name: str
    version: Optional[str] = DEFAULT_SERVER_VERSION
    enabled: bool = True
    description: Optional[str] = None
    when: HookTrigger = field(default_factory=HookTrigger)
    then: HookAction = field(default_factory=HookAction)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'name': self.name,
            'version': self.version,
            'enabled': self.enabled,
            'description': self.description,
            'when': self.when.to_dict(),
            'then': self.then.to_dict(),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Hook':
        version = data.get('version')
        return cls(
            name=str(data.get('name') or ''),
            version=str(version) if version is not None else None,
            enabled=data.get('enabled', True) is not False,
            description=data.get('description'),
            when=HookTrigger.from_dict(data.get('when')),
            then=HookAction.from_dict(data.get('then')),
        )


@dataclass
class SteeringRule:
    """Kiro steering document broken into its parts."""
    name: str
    content: str = ''
    description: str = ''
    rules: List[str] = field(default_factory=list)
    priority: int = 50
    inclusion: str = 'always'
    file_match_pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'name': self.name,
            'content': self.content,
            'description': self.description,
            'rules': list(self.rules),
            'priority': self.priority,
            'inclusion': self.inclusion,
            'file_match_pattern': self.file_match_pattern,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SteeringRule':
        return cls(
            name=str(data.get('name') or ''),
            content=str(data.get('content') or ''),
            description=str(data.get('description') or ''),
            rules=[str(rule) for rule in data.get('rules') or []],
            priority=int(data.get('priority', 50)),
            inclusion=str(data.get('inclusion') or 'always'),
            file_match_pattern=data.get('file_match_pattern'),
        )


@dataclass
class KiroSpec:
    """One feature spec directory: requirements, design and task list."""
    name: str
    requirements: Optional[str] = None
    design: Optional[str] = None
    tasks: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'name': self.name, 'requirements': self.requirements,
                         'design': self.design, 'tasks': self.tasks})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KiroSpec':
        return cls(name=str(data.get('name') or ''),
                   requirements=data.get('requirements'),
                   design=data.get('design'),
                   tasks=data.get('tasks'))


@dataclass
class TaskTemplate:
    name: str
    tasks: List[Any] = field(default_factory=list)
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'name': self.name, 'tasks': copy.deepcopy(self.tasks),
                         'description': self.description})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaskTemplate':
        return cls(name=str(data.get('name') or ''),
                   tasks=list(data.get('tasks') or []),
                   description=data.get('description'))


@dataclass
class CursorRule:
    """Cursor project rule (.cursor/rules/<name>.mdc)."""
    name: str
    content: str = ''
    description: Optional[str] = None
    globs: List[str] = field(default_factory=list)
    always_apply: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'name': self.name, 'content': self.content,
                         'description': self.description, 'globs': list(self.globs),
                         'always_apply': self.always_apply})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CursorRule':
        return cls(name=str(data.get('name') or ''),
                   content=str(data.get('content') or ''),
                   description=data.get('description'),
                   globs=[str(g) for g in data.get('globs') or []],
                   always_apply=bool(data.get('always_apply', False)))


# ---------------------------------------------------------------------------
# Platform payloads (tagged variants of the ide section)
# ---------------------------------------------------------------------------

class _FeatureAccess:
    """Feature discovery shared by the platform payloads."""

    FEATURES: Tuple[str, ...] = ()

    def feature_value(self, feature: str) -> Any:
        return getattr(self, feature, None)

    def present_features(self) -> List[str]:
        """Features holding a value (empty collections count as present)."""
        return [name for name in self.FEATURES if self.feature_value(name) is not None]

    def is_empty(self) -> bool:
        """True when no feature holds content; empty collections do not count."""
        return not any(self.feature_value(name) for name in self.FEATURES)


def _records_to_dicts(records: Optional[List[Any]]) -> Optional[List[Dict[str, Any]]]:
    if records is None:
        return None
    return [record.to_dict() for record in records]


def _records_from_dicts(cls, items: Optional[List[Dict[str, Any]]]) -> Optional[List[Any]]:
    if items is None:
        return None
    return [cls.from_dict(item) for item in items]


def _copy_optional(value: Any) -> Any:
    return copy.deepcopy(value) if value is not None else None


@dataclass
class KiroConfig(_FeatureAccess):
    specs_path: Optional[str] = None
    specs: Optional[List[KiroSpec]] = None
    steering_rules: Optional[List[SteeringRule]] = None
    hooks: Optional[List[Hook]] = None
    task_templates: Optional[List[TaskTemplate]] = None
    project_settings: Optional[Dict[str, Any]] = None
    mcp_servers: Optional[List[McpServer]] = None

    platform = AIPlatform.KIRO
    FEATURES = ('specs', 'steering_rules', 'hooks', 'mcp_servers',
                'project_settings', 'task_templates')

    def feature_value(self, feature: str) -> Any:
        if feature == 'specs':
            return self.specs if self.specs is not None else self.specs_path
        return super().feature_value(feature)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'specs_path': self.specs_path,
            'specs': _records_to_dicts(self.specs),
            'steering_rules': _records_to_dicts(self.steering_rules),
            'hooks': _records_to_dicts(self.hooks),
            'task_templates': _records_to_dicts(self.task_templates),
            'project_settings': _copy_optional(self.project_settings),
            'mcp_servers': _records_to_dicts(self.mcp_servers),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KiroConfig':
        return cls(
            specs_path=data.get('specs_path'),
            specs=_records_from_dicts(KiroSpec, data.get('specs')),
            steering_rules=_records_from_dicts(SteeringRule, data.get('steering_rules')),
            hooks=_records_from_dicts(Hook, data.get('hooks')),
            task_templates=_records_from_dicts(TaskTemplate, data.get('task_templates')),
            project_settings=_copy_optional(data.get('project_settings')),
            mcp_servers=_records_from_dicts(McpServer, data.get('mcp_servers')),
        )


@dataclass
class ClaudeCodeConfig(_FeatureAccess):
    settings: Optional[Dict[str, Any]] = None
    mcp_servers: Optional[List[McpServer]] = None
    commands: Optional[Dict[str, str]] = None
    claude_md: Optional[str] = None
    claude_local_md: Optional[str] = None

    platform = AIPlatform.CLAUDE_CODE
    FEATURES = ('claude_md', 'claude_local_md', 'settings', 'permissions', 'env',
                'status_line', 'mcp_servers', 'commands')

    # Features that live inside settings.json rather than in their own file
    SETTINGS_FEATURE_KEYS = {'permissions': 'permissions', 'env': 'env',
                             'status_line': 'statusLine'}

    def feature_value(self, feature: str) -> Any:
        if feature in self.SETTINGS_FEATURE_KEYS:
            if self.settings is None:
                return None
            return self.settings.get(self.SETTINGS_FEATURE_KEYS[feature])
        return super().feature_value(feature)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'settings': _copy_optional(self.settings),
            'mcp_servers': _records_to_dicts(self.mcp_servers),
            'commands': _copy_optional(self.commands),
            'claude_md': self.claude_md,
            'claude_local_md': self.claude_local_md,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClaudeCodeConfig':
        return cls(
            settings=_copy_optional(data.get('settings')),
            mcp_servers=_records_from_dicts(McpServer, data.get('mcp_servers')),
            commands=_copy_optional(data.get('commands')),
            claude_md=data.get('claude_md'),
            claude_local_md=data.get('claude_local_md'),
        )


@dataclass
class CursorConfig(_FeatureAccess):
    settings: Optional[Dict[str, Any]] = None
    project_settings: Optional[Dict[str, Any]] = None
    rules: Optional[List[CursorRule]] = None
    legacy_rules: Optional[str] = None
    mcp_servers: Optional[List[McpServer]] = None
    extensions: Optional[List[str]] = None
    snippets: Optional[Dict[str, Dict[str, Any]]] = None
    tasks: Optional[List[Dict[str, Any]]] = None
    launch: Optional[List[Dict[str, Any]]] = None

    platform = AIPlatform.CURSOR
    FEATURES = ('rules', 'legacy_rules', 'settings', 'project_settings', 'mcp_servers',
                'extensions', 'snippets', 'tasks', 'launch')

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'settings': _copy_optional(self.settings),
            'project_settings': _copy_optional(self.project_settings),
            'rules': _records_to_dicts(self.rules),
            'legacy_rules': self.legacy_rules,
            'mcp_servers': _records_to_dicts(self.mcp_servers),
            'extensions': _copy_optional(self.extensions),
            'snippets': _copy_optional(self.snippets),
            'tasks': _copy_optional(self.tasks),
            'launch': _copy_optional(self.launch),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CursorConfig':
        return cls(
            settings=_copy_optional(data.get('settings')),
            project_settings=_copy_optional(data.get('project_settings')),
            rules=_records_from_dicts(CursorRule, data.get('rules')),
            legacy_rules=data.get('legacy_rules'),
            mcp_servers=_records_from_dicts(McpServer, data.get('mcp_servers')),
            extensions=_copy_optional(data.get('extensions')),
            snippets=_copy_optional(data.get('snippets')),
            tasks=_copy_optional(data.get('tasks')),
            launch=_copy_optional(data.get('launch')),
        )


@dataclass
class PassthroughConfig(_FeatureAccess):
    """Payload for an ide key no builder knows; carried through verbatim."""
    platform_key: str
    data: Dict[str, Any] = field(default_factory=dict)

    platform = None

    def present_features(self) -> List[str]:
        return list(self.data.keys())

    def is_empty(self) -> bool:
        return not self.data

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.data)


PlatformConfig = Union[KiroConfig, ClaudeCodeConfig, CursorConfig, PassthroughConfig]

PLATFORM_CONFIG_TYPES = {
    AIPlatform.KIRO: KiroConfig,
    AIPlatform.CLAUDE_CODE: ClaudeCodeConfig,
    AIPlatform.CURSOR: CursorConfig,
}


def platform_config_from_dict(key: str, data: Dict[str, Any]) -> PlatformConfig:
    """Decode one ide entry, falling back to passthrough for unknown keys."""
    platform = AIPlatform.from_config_key(key)
    if platform is None:
        return PassthroughConfig(platform_key=key, data=copy.deepcopy(data))
    return PLATFORM_CONFIG_TYPES[platform].from_dict(data)


# ---------------------------------------------------------------------------
# Other section payloads
# ---------------------------------------------------------------------------

@dataclass
class ProjectData:
    kiro_specs: Optional[List[KiroSpec]] = None
    claude_instructions: Optional[str] = None
    cursor_rules: Optional[List[CursorRule]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'kiro_specs': _records_to_dicts(self.kiro_specs),
            'claude_instructions': self.claude_instructions,
            'cursor_rules': _records_to_dicts(self.cursor_rules),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectData':
        return cls(kiro_specs=_records_from_dicts(KiroSpec, data.get('kiro_specs')),
                   claude_instructions=data.get('claude_instructions'),
                   cursor_rules=_records_from_dicts(CursorRule, data.get('cursor_rules')))


@dataclass
class PromptData:
    custom_instructions: Optional[str] = None
    system_prompts: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'custom_instructions': self.custom_instructions,
                         'system_prompts': _copy_optional(self.system_prompts)})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PromptData':
        return cls(custom_instructions=data.get('custom_instructions'),
                   system_prompts=_copy_optional(data.get('system_prompts')))


@dataclass
class ToolData:
    mcp_servers: Optional[List[McpServer]] = None
    custom_commands: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'mcp_servers': _records_to_dicts(self.mcp_servers),
                         'custom_commands': _copy_optional(self.custom_commands)})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolData':
        return cls(mcp_servers=_records_from_dicts(McpServer, data.get('mcp_servers')),
                   custom_commands=_copy_optional(data.get('custom_commands')))


_SECTION_TYPES = {
    Category.PROJECT: ProjectData,
    Category.PROMPTS: PromptData,
    Category.TOOLS: ToolData,
}


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversionStamp:
    source: AIPlatform
    target: AIPlatform
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source.value, 'target': self.target.value,
                'timestamp': self.timestamp}


@dataclass(frozen=True)
class ContextMetadata:
    name: str
    created_at: str
    updated_at: str
    platforms: Tuple[AIPlatform, ...] = ()
    conversion: Optional[ConversionStamp] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'name': self.name,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'platforms': [platform.value for platform in self.platforms],
            'conversion': self.conversion.to_dict() if self.conversion else None,
            'description': self.description,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContextMetadata':
        conversion = data.get('conversion')
        now = utc_now_iso()
        return cls(
            name=str(data.get('name') or ''),
            created_at=str(data.get('created_at') or now),
            updated_at=str(data.get('updated_at') or now),
            platforms=tuple(AIPlatform(value) for value in data.get('platforms') or []),
            conversion=ConversionStamp(
                source=AIPlatform(conversion['source']),
                target=AIPlatform(conversion['target']),
                timestamp=str(conversion['timestamp']),
            ) if conversion else None,
            description=data.get('description'),
        )


@dataclass(frozen=True)
class ContextSection:
    """One category section; ``data`` type depends on the category."""
    data: Any
    spec_version: str = SECTION_SPEC_VERSION


@dataclass(frozen=True)
class TaptikContext:
    """
    Platform-neutral configuration document.

    Sections are optional: an absent category means the source had nothing
    for it, which is different from a present section with empty data.
    The ``sections`` dict is never mutated after construction.
    """
    metadata: ContextMetadata
    sections: Dict[Category, ContextSection] = field(default_factory=dict)
    version: str = CONTEXT_VERSION

    @classmethod
    def create(cls, name: str, platforms: Tuple[AIPlatform, ...] = (),
               description: Optional[str] = None) -> 'TaptikContext':
        """Start an empty context stamped with the current time."""
        now = utc_now_iso()
        metadata = ContextMetadata(name=name, created_at=now, updated_at=now,
                                   platforms=tuple(platforms), description=description)
        return cls(metadata=metadata)

    # -- queries ------------------------------------------------------------

    def section(self, category: Category) -> Optional[ContextSection]:
        return self.sections.get(category)

    def has_section(self, category: Category) -> bool:
        return category in self.sections

    def ide_configs(self) -> Dict[str, PlatformConfig]:
        section = self.sections.get(Category.IDE)
        if section is None:
            return {}
        return dict(section.data)

    def platform_config(self, platform: AIPlatform) -> Optional[PlatformConfig]:
        return self.ide_configs().get(platform.config_key)

    def has_source_configuration(self, platform: AIPlatform) -> bool:
        """True when the platform's ide payload exists and holds at least one feature."""
        config = self.platform_config(platform)
        return config is not None and not config.is_empty()

    # -- builders -----------------------------------------------------------

    def with_section(self, category: Category, data: Any,
                     spec_version: str = SECTION_SPEC_VERSION) -> 'TaptikContext':
        sections = dict(self.sections)
        sections[category] = ContextSection(data=data, spec_version=spec_version)
        return replace(self, sections=sections)

    def without_section(self, category: Category) -> 'TaptikContext':
        sections = {key: value for key, value in self.sections.items() if key != category}
        return replace(self, sections=sections)

    def with_platform_config(self, platform: AIPlatform,
                             config: PlatformConfig) -> 'TaptikContext':
        """New context whose ide section holds ``config`` for ``platform``."""
        ide = self.ide_configs()
        ide[platform.config_key] = config
        spec_version = self.sections[Category.IDE].spec_version \
            if Category.IDE in self.sections else SECTION_SPEC_VERSION
        return self.with_section(Category.IDE, ide, spec_version)

    def with_metadata(self, **changes) -> 'TaptikContext':
        changes.setdefault('updated_at', utc_now_iso())
        if 'platforms' in changes:
            changes['platforms'] = tuple(changes['platforms'])
        return replace(self, metadata=replace(self.metadata, **changes))

    # -- serialization ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        sections = {}
        for category in Category:
            section = self.sections.get(category)
            if section is None:
                continue
            if category == Category.IDE:
                data = {key: config.to_dict() for key, config in section.data.items()}
            elif category == Category.PERSONAL:
                data = copy.deepcopy(section.data)
            else:
                data = section.data.to_dict()
            sections[category.value] = {'spec_version': section.spec_version, 'data': data}
        return {
            'version': self.version,
            'metadata': self.metadata.to_dict(),
            'sections': sections,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaptikContext':
        """
        Decode the interchange document.

        Raises:
            ValueError: If the version is unsupported or a section is unknown
        """
        version = str(data.get('version', ''))
        if not is_supported_version(version):
            raise ValueError(f"Unsupported context version: {version!r}")

        sections = {}
        for name, raw in (data.get('sections') or {}).items():
            try:
                category = Category(name)
            except ValueError:
                raise ValueError(f"Unknown context section: {name}")
            payload = raw.get('data') or {}
            if category == Category.IDE:
                decoded = {key: platform_config_from_dict(key, value)
                           for key, value in payload.items()}
            elif category == Category.PERSONAL:
                decoded = copy.deepcopy(payload)
            else:
                decoded = _SECTION_TYPES[category].from_dict(payload)
            sections[category] = ContextSection(
                data=decoded,
                spec_version=str(raw.get('spec_version') or SECTION_SPEC_VERSION),
            )

        return cls(
            metadata=ContextMetadata.from_dict(data.get('metadata') or {}),
            sections=sections,
            version=version,
        )
