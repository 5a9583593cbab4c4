"""
Feature mapping tables for every supported platform pair.

Each table classifies every feature the source platform can expose as a
direct mapping (lossless rename), an approximation (lossy, with a
confidence) or unsupported. The converters read these tables for both
conversion and compatibility scoring; nothing here is computed at runtime.

Approximation targets and direct-mapping targets name fields of the
target platform's payload.
"""

from core.canonical_models import AIPlatform
from core.results import Confidence, FeatureApproximation, FeatureMapping


def _approx(target: str, confidence: Confidence, notes: str) -> FeatureApproximation:
    return FeatureApproximation(target_approximation=target, confidence=confidence, notes=notes)


KIRO_TO_CLAUDE_CODE = FeatureMapping(
    direct_mappings={
        'mcp_servers': 'mcp_servers',
        'project_settings': 'settings',
    },
    approximations={
        'specs': _approx('claude_md', Confidence.HIGH,
                         'Specs converted to CLAUDE.md instructions'),
        'steering_rules': _approx('claude_local_md', Confidence.HIGH,
                                  'Steering rules converted to CLAUDE.local.md custom instructions'),
        'hooks': _approx('commands', Confidence.MEDIUM,
                         'Hooks become manually invoked commands; triggers are lost'),
    },
    unsupported={'task_templates'},
)

CLAUDE_CODE_TO_KIRO = FeatureMapping(
    direct_mappings={
        'mcp_servers': 'mcp_servers',
    },
    approximations={
        'claude_md': _approx('specs', Confidence.HIGH,
                             'CLAUDE.md becomes the requirements document of a Kiro spec'),
        'claude_local_md': _approx('steering_rules', Confidence.HIGH,
                                   'Each CLAUDE.local.md section becomes a steering rule'),
        'commands': _approx('hooks', Confidence.MEDIUM,
                            'Commands become manual hooks that ask the agent'),
        'settings': _approx('project_settings', Confidence.LOW,
                            'Only settings without a Kiro-specific meaning are kept'),
    },
    unsupported={'permissions', 'env', 'status_line'},
)

KIRO_TO_CURSOR = FeatureMapping(
    direct_mappings={
        'mcp_servers': 'mcp_servers',
    },
    approximations={
        'steering_rules': _approx('rules', Confidence.HIGH,
                                  'Steering rules become .mdc rules; inclusion maps to alwaysApply/globs'),
        'specs': _approx('rules', Confidence.MEDIUM,
                         'Specs become manually referenced rules'),
        'hooks': _approx('tasks', Confidence.LOW,
                         'Only command hooks become tasks; agent prompts are dropped'),
    },
    unsupported={'task_templates', 'project_settings'},
)

CURSOR_TO_KIRO = FeatureMapping(
    direct_mappings={
        'mcp_servers': 'mcp_servers',
    },
    approximations={
        'rules': _approx('steering_rules', Confidence.HIGH,
                         'Rules become steering documents; globs map to fileMatch inclusion'),
        'legacy_rules': _approx('steering_rules', Confidence.MEDIUM,
                                '.cursorrules becomes a single imported steering rule'),
        'tasks': _approx('hooks', Confidence.LOW,
                         'Shell tasks become manual command hooks'),
    },
    unsupported={'settings', 'project_settings', 'extensions', 'snippets', 'launch'},
)

CLAUDE_CODE_TO_CURSOR = FeatureMapping(
    direct_mappings={
        'mcp_servers': 'mcp_servers',
    },
    approximations={
        'claude_md': _approx('rules', Confidence.HIGH,
                             'CLAUDE.md becomes an always-applied project rule'),
        'claude_local_md': _approx('rules', Confidence.HIGH,
                                   'CLAUDE.local.md becomes an always-applied personal rule'),
        'settings': _approx('settings', Confidence.LOW,
                            'Claude settings are copied without permissions, env or statusLine'),
    },
    unsupported={'commands', 'permissions', 'env', 'status_line'},
)

CURSOR_TO_CLAUDE_CODE = FeatureMapping(
    direct_mappings={
        'mcp_servers': 'mcp_servers',
    },
    approximations={
        'rules': _approx('claude_md', Confidence.MEDIUM,
                         'Rules are merged into CLAUDE.md; glob scoping becomes a note'),
        'legacy_rules': _approx('claude_md', Confidence.MEDIUM,
                                '.cursorrules is appended to CLAUDE.md'),
        'settings': _approx('settings', Confidence.LOW,
                            'Cursor settings are copied; Claude ignores unknown keys'),
    },
    unsupported={'project_settings', 'extensions', 'snippets', 'tasks', 'launch'},
)

FEATURE_MAPPINGS = {
    (AIPlatform.KIRO, AIPlatform.CLAUDE_CODE): KIRO_TO_CLAUDE_CODE,
    (AIPlatform.CLAUDE_CODE, AIPlatform.KIRO): CLAUDE_CODE_TO_KIRO,
    (AIPlatform.KIRO, AIPlatform.CURSOR): KIRO_TO_CURSOR,
    (AIPlatform.CURSOR, AIPlatform.KIRO): CURSOR_TO_KIRO,
    (AIPlatform.CLAUDE_CODE, AIPlatform.CURSOR): CLAUDE_CODE_TO_CURSOR,
    (AIPlatform.CURSOR, AIPlatform.CLAUDE_CODE): CURSOR_TO_CLAUDE_CODE,
}

# Support level reported for partially supported features
SUPPORT_LEVELS = {
    Confidence.MEDIUM: 70,
    Confidence.LOW: 50,
}
