"""
Content security validator.

Pure functions that classify free text and structured configuration for:
- sensitive data (credentials, keys, personal data)
- malicious content (command/script/SQL injection, traversal, destructive ops)
- prompt injection aimed at AI assistants
- size and count budgets

Matched text is masked before it is stored in a finding, so a finding can
be logged or shown without leaking the secret it describes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from core.results import Severity, ValidationIssue, ValidationResult
from core.security_patterns import (
    COUNT_SEVERITY,
    INJECTION_RISK_WEIGHTS,
    MALICIOUS_CONTENT_PATTERNS,
    MASK_CHAR,
    MASK_FULL_THRESHOLD,
    MASK_MAX_STARS,
    MASK_VISIBLE_CHARS,
    MAX_LINE_LENGTH,
    MAX_RISK_SCORE,
    PROMPT_INJECTION_PATTERNS,
    SENSITIVE_DATA_PATTERNS,
    SIZE_SEVERITY,
    ContentLimits,
    SecurityPattern,
)

logger = logging.getLogger(__name__)


class FindingCategory(str, Enum):
    SENSITIVE_DATA = 'sensitive_data'
    MALICIOUS_CONTENT = 'malicious_content'
    INJECTION = 'injection'


@dataclass
class SecurityFinding:
    """One match of a security pattern; evidence is always masked."""
    category: FindingCategory
    severity: Severity
    pattern_name: str
    location: str
    redacted_evidence: str
    mitigation: str
    line: Optional[int] = None

    def describe(self) -> str:
        where = f"{self.location}:{self.line}" if self.line else self.location
        return f"{self.pattern_name} detected at {where} ({self.redacted_evidence})"


@dataclass
class InjectionScanResult:
    safe: bool
    injection_attempts: List[SecurityFinding] = field(default_factory=list)
    risk_score: int = 0


@dataclass
class SizeIssue:
    """Size or count budget violation."""
    type: str
    kind: str
    severity: Severity
    current: int
    limit: int
    location: str = ''

    @property
    def message(self) -> str:
        if self.type == 'count_exceeded':
            return f"Too many {self.kind}: {self.current} (limit {self.limit})"
        return f"{self.kind.capitalize()} content is {self.current} bytes (limit {self.limit})"


@dataclass
class RuleContent:
    id: Optional[str]
    name: Optional[str]
    content: str
    priority: Optional[int] = None


@dataclass
class ContextContent:
    name: str
    content: str


@dataclass
class PromptContent:
    name: str
    content: str
    variables: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class AIContent:
    """AI-facing content gathered from a configuration."""
    rules: List[RuleContent] = field(default_factory=list)
    contexts: List[ContextContent] = field(default_factory=list)
    prompts: List[PromptContent] = field(default_factory=list)
    system_prompt: Optional[str] = None


@dataclass
class ContentStatistics:
    total_size: int = 0
    rule_count: int = 0
    context_count: int = 0
    prompt_count: int = 0
    average_content_length: int = 0
    largest_content_size: int = 0
    security_patterns_found: int = 0
    encoding_issues: int = 0


@dataclass
class ContentValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    security_issues: List[SecurityFinding] = field(default_factory=list)
    size_issues: List[SizeIssue] = field(default_factory=list)
    statistics: ContentStatistics = field(default_factory=ContentStatistics)

    @property
    def valid(self) -> bool:
        return not self.errors and not self.security_issues and not self.size_issues


# ---------------------------------------------------------------------------
# Masking and scanning
# ---------------------------------------------------------------------------

def mask_sensitive_content(text: str) -> str:
    """
    Mask a matched value for storage.

    Values up to 10 characters become all stars. Longer values keep their
    first and last 3 characters around at most 10 stars.
    """
    if len(text) <= MASK_FULL_THRESHOLD:
        return MASK_CHAR * len(text)
    stars = min(MASK_MAX_STARS, len(text) - 2 * MASK_VISIBLE_CHARS)
    return text[:MASK_VISIBLE_CHARS] + MASK_CHAR * stars + text[-MASK_VISIBLE_CHARS:]


def _line_number(content: str, offset: int) -> int:
    return content.count('\n', 0, offset) + 1


def _scan(content: str, location: str, catalog: Sequence[SecurityPattern],
          category: FindingCategory) -> List[SecurityFinding]:
    findings = []
    if not content:
        return findings
    for pattern in catalog:
        for match in pattern.pattern.finditer(content):
            matched = match.group(0)
            if not matched:
                continue
            findings.append(SecurityFinding(
                category=category,
                severity=pattern.severity,
                pattern_name=pattern.name,
                location=location,
                redacted_evidence=mask_sensitive_content(matched),
                mitigation=pattern.mitigation,
                line=_line_number(content, match.start()),
            ))
    return findings


def scan_sensitive_data(content: str, location: str = '') -> List[SecurityFinding]:
    """Return one finding per sensitive-data match in ``content``."""
    return _scan(content, location, SENSITIVE_DATA_PATTERNS, FindingCategory.SENSITIVE_DATA)


def scan_malicious_content(content: str, location: str = '') -> List[SecurityFinding]:
    """Return one finding per malicious-content match in ``content``."""
    return _scan(content, location, MALICIOUS_CONTENT_PATTERNS, FindingCategory.MALICIOUS_CONTENT)


def scan_prompt_injection(content: str, location: str = '') -> InjectionScanResult:
    """
    Scan AI rule or prompt content for injection attempts.

    Each match adds its pattern's severity weight to the risk score, capped
    at 100. Content is safe only when nothing matched.
    """
    attempts = _scan(content, location, PROMPT_INJECTION_PATTERNS, FindingCategory.INJECTION)
    risk = sum(INJECTION_RISK_WEIGHTS[attempt.severity] for attempt in attempts)
    return InjectionScanResult(
        safe=not attempts,
        injection_attempts=attempts,
        risk_score=min(MAX_RISK_SCORE, risk),
    )


def scan_content(content: str, location: str = '',
                 include_injection: bool = True) -> List[SecurityFinding]:
    """Run every catalog over one piece of text."""
    findings = scan_sensitive_data(content, location)
    findings.extend(scan_malicious_content(content, location))
    if include_injection:
        findings.extend(scan_prompt_injection(content, location).injection_attempts)
    return findings


def _walk(data: Any, path: str) -> Iterable[Tuple[str, str]]:
    if isinstance(data, dict):
        for key, value in data.items():
            child = f"{path}.{key}" if path else str(key)
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                # Keep the key next to the value so key-named secrets match
                yield child, f"{key}: {value}"
            else:
                yield from _walk(value, child)
    elif isinstance(data, (list, tuple)):
        for index, item in enumerate(data):
            yield from _walk(item, f"{path}[{index}]")
    elif isinstance(data, str):
        yield path, data


def scan_structure(data: Any, location: str = '',
                   include_injection: bool = True) -> List[SecurityFinding]:
    """
    Scan every string in a nested JSON-like value.

    Findings are located by dotted path (``settings.env.API_KEY``).
    """
    findings = []
    for path, text in _walk(data, location):
        findings.extend(scan_content(text, path, include_injection))
    return findings


def findings_to_issues(findings: Iterable[SecurityFinding]) -> List[ValidationIssue]:
    """Convert findings into validation errors; findings are never warnings."""
    return [
        ValidationIssue(
            path=finding.location,
            message=finding.describe(),
            code=f"SECURITY_{finding.category.value.upper()}",
            severity=finding.severity,
            suggestion=finding.mitigation,
        )
        for finding in findings
    ]


# ---------------------------------------------------------------------------
# Size and count budgets
# ---------------------------------------------------------------------------

def content_size(content: str) -> int:
    return len(content.encode('utf-8'))


def validate_size(content: str, kind: str, limits: ContentLimits = ContentLimits(),
                  location: str = '') -> Optional[SizeIssue]:
    """
    Check one item against its per-kind byte limit.

    Args:
        content: Text to measure
        kind: 'rule', 'context' or 'prompt'
        limits: Budgets to apply
        location: Where the content came from

    Returns:
        SizeIssue if the limit is exceeded, None otherwise
    """
    limit = {
        'rule': limits.max_rule_bytes,
        'context': limits.max_context_bytes,
        'prompt': limits.max_prompt_bytes,
    }.get(kind)
    if limit is None:
        raise ValueError(f"Unknown content kind: {kind}")
    size = content_size(content)
    if size <= limit:
        return None
    return SizeIssue(type='size_exceeded', kind=kind, severity=SIZE_SEVERITY[kind],
                     current=size, limit=limit, location=location)


def validate_counts(rule_count: int, context_count: int, prompt_count: int,
                    limits: ContentLimits = ContentLimits()) -> List[SizeIssue]:
    issues = []
    for kind, current, limit in (('rules', rule_count, limits.max_rules),
                                 ('contexts', context_count, limits.max_contexts),
                                 ('prompts', prompt_count, limits.max_prompts)):
        if current > limit:
            issues.append(SizeIssue(type='count_exceeded', kind=kind,
                                    severity=COUNT_SEVERITY[kind],
                                    current=current, limit=limit))
    return issues


def _check_text_quality(content: str, location: str, result: ContentValidationResult):
    for number, line in enumerate(content.splitlines(), start=1):
        if len(line) > MAX_LINE_LENGTH:
            result.warnings.append(ValidationIssue(
                path=f"{location}:{number}",
                message=f"Line is {len(line)} characters long",
                code='LONG_LINE',
                severity=Severity.LOW,
                suggestion='Break long lines so the assistant can parse them reliably',
            ))
    if '�' in content or '\x00' in content:
        result.statistics.encoding_issues += 1
        result.warnings.append(ValidationIssue(
            path=location,
            message='Content contains replacement or NUL characters',
            code='ENCODING_ISSUE',
            severity=Severity.LOW,
            suggestion='Re-save the source file as UTF-8',
        ))


def _check_rule_metadata(rule: RuleContent, location: str, result: ContentValidationResult):
    if not rule.id:
        result.errors.append(ValidationIssue(location, 'Rule is missing an id',
                                             code='MISSING_RULE_ID'))
    if not rule.name:
        result.errors.append(ValidationIssue(location, 'Rule is missing a name',
                                             code='MISSING_RULE_NAME'))
    if rule.priority is not None and not 1 <= rule.priority <= 100:
        result.warnings.append(ValidationIssue(
            location, f"Rule priority {rule.priority} is outside 1-100",
            code='PRIORITY_OUT_OF_RANGE', severity=Severity.LOW))


def _check_prompt_variables(prompt: PromptContent, location: str,
                            result: ContentValidationResult):
    for index, variable in enumerate(prompt.variables):
        path = f"{location}.variables[{index}]"
        if not variable.get('name'):
            result.errors.append(ValidationIssue(path, 'Prompt variable is missing a name',
                                                 code='MISSING_VARIABLE_NAME'))
        if not variable.get('type'):
            result.errors.append(ValidationIssue(path, 'Prompt variable is missing a type',
                                                 code='MISSING_VARIABLE_TYPE'))
        if variable.get('type') in ('select', 'multiselect') and not variable.get('options'):
            result.errors.append(ValidationIssue(
                path, f"{variable.get('type')} variable needs options",
                code='MISSING_VARIABLE_OPTIONS'))


def _rule_location(rule: RuleContent, index: int) -> str:
    return f"rules[{rule.id or rule.name or index}]"


def _content_items(content: AIContent) -> List[Tuple[str, str, str]]:
    """(kind, location, text) for every item of ``content``."""
    items = [('rule', _rule_location(rule, index), rule.content)
             for index, rule in enumerate(content.rules)]
    items.extend(('context', f"contexts[{context.name}]", context.content)
                 for context in content.contexts)
    items.extend(('prompt', f"prompts[{prompt.name}]", prompt.content)
                 for prompt in content.prompts)
    if content.system_prompt:
        items.append(('prompt', 'system_prompt', content.system_prompt))
    return items


def check_budgets(content: AIContent,
                  limits: ContentLimits = ContentLimits()) -> List[SizeIssue]:
    """Per-item size, aggregate size and collection count issues."""
    issues = []
    total = 0
    for kind, location, text in _content_items(content):
        size_issue = validate_size(text, kind, limits, location)
        if size_issue:
            issues.append(size_issue)
        total += content_size(text)
    if total > limits.max_total_bytes:
        issues.append(SizeIssue(type='total_size_exceeded', kind='total',
                                severity=SIZE_SEVERITY['total'],
                                current=total, limit=limits.max_total_bytes))
    issues.extend(validate_counts(len(content.rules), len(content.contexts),
                                  len(content.prompts), limits))
    return issues


def validate_content_budgets(content: AIContent,
                             limits: ContentLimits = ContentLimits()) -> ValidationResult:
    """Budget issues as warnings coded SIZE_EXCEEDED or COUNT_EXCEEDED."""
    result = ValidationResult()
    for issue in check_budgets(content, limits):
        code = 'COUNT_EXCEEDED' if issue.type == 'count_exceeded' else 'SIZE_EXCEEDED'
        result.add_warning(issue.location, issue.message, code=code,
                           suggestion='Split the content or raise the limit in the configuration file')
    return result


def validate_ai_content(content: AIContent,
                        limits: ContentLimits = ContentLimits()) -> ContentValidationResult:
    """
    Validate all AI-facing content of a configuration.

    The result is valid only when there are no structural errors, no
    security findings and no size issues.
    """
    result = ContentValidationResult()
    stats = result.statistics

    for index, rule in enumerate(content.rules):
        _check_rule_metadata(rule, _rule_location(rule, index), result)
    for prompt in content.prompts:
        _check_prompt_variables(prompt, f"prompts[{prompt.name}]", result)

    sizes = []
    for kind, location, text in _content_items(content):
        sizes.append(content_size(text))
        result.security_issues.extend(scan_content(text, location))
        _check_text_quality(text, location, result)
    result.size_issues.extend(check_budgets(content, limits))

    stats.total_size = sum(sizes)
    stats.rule_count = len(content.rules)
    stats.context_count = len(content.contexts)
    stats.prompt_count = len(content.prompts)
    stats.largest_content_size = max(sizes) if sizes else 0
    stats.average_content_length = round(stats.total_size / len(sizes)) if sizes else 0
    stats.security_patterns_found = len(result.security_issues)

    for finding in result.security_issues:
        logger.warning(f"Security finding: {finding.describe()}")
    return result


def validate_text_fields(fields: Iterable[Tuple[str, Any]]) -> ValidationResult:
    """
    Security pass over a configuration's embedded text and structured values.

    Args:
        fields: (location, value) pairs; strings are scanned as text, dicts
                and lists are walked

    Returns:
        ValidationResult whose errors are the security findings
    """
    result = ValidationResult()
    for location, value in fields:
        if value is None:
            continue
        if isinstance(value, str):
            findings = scan_content(value, location)
        else:
            findings = scan_structure(value, location)
        result.errors.extend(findings_to_issues(findings))
    return result
