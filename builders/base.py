"""
Base class for platform builders.

A builder owns one platform's on-disk shape in both directions:

    detect -> extract -> normalize -> validate      (build)
    convert -> render_files -> deploy               (back to native files)

Subclasses implement the platform specifics; merge rules for workspace
versus user-level files, MCP document parsing and deployment live here so
every platform applies them the same way.
"""

import copy
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from core.canonical_models import (
    DEFAULT_SERVER_VERSION,
    AIPlatform,
    Category,
    McpServer,
    PlatformConfig,
    TaptikContext,
)
from core.content_security import (
    AIContent,
    findings_to_issues,
    scan_content,
    scan_structure,
    validate_content_budgets,
    validate_text_fields,
)
from core.errors import FileOperationFailed, NotAPlatformProject, ValidationFailed
from core.file_system import FileSystem
from core.file_writer import DeploymentFileWriter, GeneratedFile, MergePolicy
from core.results import (
    ConversionResult,
    DeploymentError,
    DeploymentResult,
    ValidationResult,
)
from core.security_patterns import ContentLimits

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def merge_settings(workspace: Optional[Dict[str, Any]],
                   user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Merge two variants of a settings file.

    Workspace values are the defaults and user values override them per
    top-level key. Returns None when neither file exists.
    """
    if workspace is None and user is None:
        return None
    merged = copy.deepcopy(workspace) if workspace else {}
    merged.update(copy.deepcopy(user) if user else {})
    return merged


def merge_named_records(workspace: Optional[List[Dict[str, Any]]],
                        user: Optional[List[Dict[str, Any]]],
                        key: str = 'name') -> Optional[List[Dict[str, Any]]]:
    """
    Merge two collections of named records.

    Records are deduplicated by ``key``. When a name occurs in both scopes
    the workspace record's fields win per field, and fields only the user
    record has are kept. Workspace records come first, then user-only ones.
    Returns None when neither collection exists.
    """
    if workspace is None and user is None:
        return None
    user_by_name = {record.get(key): record for record in user or []}
    merged = []
    seen = set()
    for record in workspace or []:
        name = record.get(key)
        if name in seen:
            continue
        seen.add(name)
        combined = copy.deepcopy(user_by_name.get(name, {}))
        combined.update(copy.deepcopy(record))
        merged.append(combined)
    for record in user or []:
        name = record.get(key)
        if name not in seen:
            seen.add(name)
            merged.append(copy.deepcopy(record))
    return merged


def parse_mcp_document(document: Any, source: str) -> List[Dict[str, Any]]:
    """
    Read server entries from an MCP registry file.

    Accepts ``{"mcpServers": {name: {...}}}`` and ``{"servers": [...]}``.
    Entries are returned as dicts with a ``name`` key.
    """
    if not isinstance(document, dict):
        logger.warning(f"Ignoring MCP file {source}: expected a JSON object")
        return []
    entries = []
    servers_map = document.get('mcpServers')
    if isinstance(servers_map, dict):
        for name, entry in servers_map.items():
            if isinstance(entry, dict):
                entries.append({**entry, 'name': name})
    servers = document.get('servers')
    if isinstance(servers, dict):
        servers = [{**entry, 'name': name} for name, entry in servers.items()
                   if isinstance(entry, dict)]
    if isinstance(servers, list):
        for entry in servers:
            if not isinstance(entry, dict):
                continue
            if not entry.get('name'):
                logger.warning(f"Skipping unnamed MCP server in {source}")
                continue
            entries.append(dict(entry))
    return entries


def mcp_servers_to_map(servers: List[McpServer]) -> Dict[str, Any]:
    """Render servers as ``{"mcpServers": {name: {...}}}``."""
    rendered = {}
    for server in servers:
        entry: Dict[str, Any] = {}
        if server.command is not None:
            entry['command'] = server.command
            entry['args'] = list(server.args)
        if server.url is not None:
            entry['url'] = server.url
        if server.env:
            entry['env'] = dict(server.env)
        if not server.enabled:
            entry['disabled'] = True
        for key, value in server.config.items():
            entry.setdefault(key, copy.deepcopy(value))
        if server.version != DEFAULT_SERVER_VERSION:
            entry['version'] = server.version
        rendered[server.name] = entry
    return {'mcpServers': rendered}


def mcp_text_fields(servers: Optional[List[McpServer]]) -> List[Tuple[str, Any]]:
    """Rendered server entries located as ``mcp_servers.<name>.<field>``."""
    if not servers:
        return []
    return [('mcp_servers', mcp_servers_to_map(servers)['mcpServers'])]


def slugify(name: str, separator: str = '-') -> str:
    """Lowercase file-safe name."""
    cleaned = []
    for char in name.strip().lower():
        if char.isalnum():
            cleaned.append(char)
        elif cleaned and cleaned[-1] != separator:
            cleaned.append(separator)
    return ''.join(cleaned).strip(separator) or 'untitled'


class PlatformBuilder(ABC):
    """
    Abstract builder for one platform.

    Args:
        file_system: Filesystem collaborator
        limits: Content budgets used for size warnings during validation
    """

    config_type = None
    marker_paths: Tuple[str, ...] = ()
    empty_configuration_suggestion: Optional[str] = None

    def __init__(self, file_system: FileSystem, limits: Optional[ContentLimits] = None):
        self.file_system = file_system
        self.limits = limits or ContentLimits()

    @property
    @abstractmethod
    def platform(self) -> AIPlatform:
        """Platform this builder handles."""
        pass

    # -- detection ----------------------------------------------------------

    def detect(self, root: PathLike) -> bool:
        """
        Check whether ``root`` holds this platform's configuration.

        Filesystem errors are treated as "not detected".
        """
        try:
            return self._detect(Path(root))
        except (OSError, FileOperationFailed) as e:
            logger.debug(f"{self.platform.display_name} detection failed for {root}: {e}")
            return False

    def _detect(self, root: Path) -> bool:
        return any(self.file_system.exists(root / marker) for marker in self.marker_paths)

    def _require_detected(self, root: Path):
        if not self.detect(root):
            raise NotAPlatformProject(self.platform.display_name, root)

    # -- pipeline stages ----------------------------------------------------

    @abstractmethod
    def extract(self, root: PathLike) -> PlatformConfig:
        """
        Read the platform's files under ``root`` and the user's home.

        Raises:
            NotAPlatformProject: If detect() is False for ``root``
            FileOperationFailed: If a present file cannot be read
        """
        pass

    def normalize(self, raw: PlatformConfig, name: Optional[str] = None) -> TaptikContext:
        """Map extracted data into a new canonical context (no I/O)."""
        context = TaptikContext.create(name or f"{self.platform.value}-project",
                                       platforms=(self.platform,))
        context = context.with_platform_config(self.platform, copy.deepcopy(raw))
        for category, data in self.section_payloads(raw).items():
            context = context.with_section(category, data)
        return context

    @abstractmethod
    def section_payloads(self, raw: PlatformConfig) -> Dict[Category, Any]:
        """Non-ide sections derived from the platform payload; only non-empty ones."""
        pass

    def validate(self, data: Union[PlatformConfig, TaptikContext]) -> ValidationResult:
        """
        Structural and security validation.

        Accepts extracted data or a canonical context holding this
        platform's payload.
        """
        if isinstance(data, TaptikContext):
            result = self.convert(data)
            if not result.success:
                validation = ValidationResult()
                validation.add_error(Category.IDE.value, result.error,
                                     code=result.error_code or 'INVALID')
                return validation
            data = result.data

        validation = ValidationResult()
        if data.is_empty():
            validation.add_warning('', f"No {self.platform.display_name} configuration found",
                                   code='EMPTY_CONFIGURATION',
                                   suggestion=self.empty_configuration_suggestion)
            return validation

        self._validate_structure(data, validation)
        validation.extend(validate_text_fields(self.text_fields(data)))
        validation.extend(validate_content_budgets(self.ai_content(data), self.limits))
        return validation

    @abstractmethod
    def _validate_structure(self, raw: PlatformConfig, validation: ValidationResult):
        pass

    @abstractmethod
    def text_fields(self, raw: PlatformConfig) -> List[Tuple[str, Any]]:
        """
        (location, value) pairs to run through the security pass.

        Values must be what render_files() writes, so a configuration that
        validates also passes the scan on deploy.
        """
        pass

    def ai_content(self, raw: PlatformConfig) -> AIContent:
        """Rules, contexts and prompts of ``raw`` for the size and count budgets."""
        return AIContent()

    def build(self, root: PathLike) -> TaptikContext:
        """
        Run detect -> extract -> normalize -> validate.

        Raises:
            NotAPlatformProject: If the platform is not detected
            ValidationFailed: If validation reports errors
        """
        root = Path(root)
        raw = self.extract(root)
        context = self.normalize(raw, name=root.resolve().name)
        validation = self.validate(raw)
        for warning in validation.warnings:
            logger.warning(f"{self.platform.display_name}: {warning}")
        if not validation.valid:
            raise ValidationFailed(validation.errors, self.platform.display_name)
        return context

    def convert(self, context: TaptikContext) -> ConversionResult:
        """Pull this platform's payload back out of a canonical context."""
        config = context.platform_config(self.platform)
        if config is None or not isinstance(config, self.config_type):
            return ConversionResult(
                success=False,
                error=f"No {self.platform.display_name} configuration found in context",
                error_code='NO_SOURCE_CONFIGURATION',
            )
        data = copy.deepcopy(config)
        # A converter always writes a complete payload; sections of a converted
        # context may still hold the source platform's data.
        if context.metadata.conversion is None:
            data = self._complete_from_context(data, context)
        return ConversionResult(success=True, data=data)

    def _complete_from_context(self, config: PlatformConfig,
                               context: TaptikContext) -> PlatformConfig:
        """Fill payload fields that normalize() moved to other sections."""
        return config

    # -- native output ------------------------------------------------------

    @abstractmethod
    def render_files(self, raw: PlatformConfig) -> List[GeneratedFile]:
        """Files for every present field, with paths relative to the project root."""
        pass

    @abstractmethod
    def scaffold_directories(self) -> List[str]:
        pass

    def deploy(self, context: TaptikContext, target_path: PathLike,
               merge_policy: MergePolicy = MergePolicy.REPLACE) -> DeploymentResult:
        """
        Write this platform's payload from ``context`` into ``target_path``.

        Generated content is scanned before anything touches the disk.
        Scaffolding directories are created first (retried once); a payload
        with no fields deploys the scaffolding and zero files.
        """
        result = self.convert(context)
        if not result.success:
            return DeploymentResult(success=False, errors=[DeploymentError(
                component='context', message=result.error, type='configuration',
                suggestion='Convert the context to this platform before deploying',
            )])

        files = self.render_files(result.data)
        security_errors = self._scan_generated(files)
        if security_errors:
            return DeploymentResult(success=False, errors=security_errors)

        root = Path(target_path)
        created = []
        for directory in self.scaffold_directories():
            path = root / directory
            try:
                self._ensure_directory(path)
            except FileOperationFailed as e:
                return DeploymentResult(success=False, created_directories=created,
                                        errors=[DeploymentError(
                                            component='scaffolding', message=str(e),
                                            path=directory, suggestion=e.suggestion)])
            created.append(directory)

        deployment = DeploymentFileWriter(self.file_system).write_all(root, files, merge_policy)
        deployment.created_directories = created
        logger.info(f"Deployed {len(deployment.deployed_files)} "
                    f"{self.platform.display_name} file(s) to {root}")
        return deployment

    def _ensure_directory(self, path: Path):
        try:
            self.file_system.ensure_directory(path)
        except FileOperationFailed as e:
            logger.warning(f"Retrying directory creation for {path}: {e}")
            self.file_system.ensure_directory(path)

    def _scan_generated(self, files: List[GeneratedFile]) -> List[DeploymentError]:
        findings = []
        for generated in files:
            if generated.is_json:
                findings.extend(scan_structure(generated.content, generated.path))
            else:
                findings.extend(scan_content(generated.content, generated.path))
        return [
            DeploymentError(component=issue.path, message=issue.message, type='security',
                            severity=issue.severity, suggestion=issue.suggestion)
            for issue in findings_to_issues(findings)
        ]

    # -- shared extraction helpers -----------------------------------------

    def _read_json_optional(self, path: Path) -> Optional[Any]:
        """JSON content of ``path``, or None if it is missing or malformed."""
        try:
            return self.file_system.read_json(path)
        except FileNotFoundError:
            return None
        except ValueError as e:
            logger.warning(f"Skipping malformed file: {e}")
            return None

    def _read_text_optional(self, path: Path) -> Optional[str]:
        try:
            return self.file_system.read_file(path)
        except FileNotFoundError:
            return None

    def _read_dict_optional(self, path: Path) -> Optional[Dict[str, Any]]:
        data = self._read_json_optional(path)
        if data is not None and not isinstance(data, dict):
            logger.warning(f"Skipping {path}: expected a JSON object")
            return None
        return data

    def _list_files(self, directory: Path, suffixes: Tuple[str, ...]) -> List[Path]:
        if not self.file_system.is_directory(directory):
            return []
        return [directory / name for name in self.file_system.read_directory(directory)
                if name.endswith(suffixes) and self.file_system.is_file(directory / name)]

    def _read_mcp_servers(self, workspace_paths: List[Path],
                          user_paths: List[Path]) -> Optional[List[McpServer]]:
        """Merge workspace and user MCP files into server descriptors."""
        def collect(paths):
            found = None
            for path in paths:
                document = self._read_json_optional(path)
                if document is None:
                    continue
                entries = parse_mcp_document(document, str(path))
                # Later files in the same scope do not override earlier ones
                found = merge_named_records(found or [], entries)
            return found

        merged = merge_named_records(collect(workspace_paths), collect(user_paths))
        if merged is None:
            return None
        return [McpServer.from_dict(entry) for entry in merged]

    def _validate_mcp_servers(self, servers: Optional[List[McpServer]],
                              validation: ValidationResult):
        for index, server in enumerate(servers or []):
            path = f"mcp_servers[{server.name or index}]"
            if not server.name:
                validation.add_error(path, 'MCP server must have a name', code='MISSING_NAME')
            if not server.command and not server.url:
                validation.add_error(path, 'MCP server must have either command or url',
                                     code='MISSING_COMMAND_OR_URL',
                                     suggestion='Add a "command" for local servers or a "url" for remote ones')
