"""
Pattern catalogs and limits for the content security validator.

Catalogs are ordered; scanning reports findings in catalog order, then in
match order within a pattern.
"""

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

from core.results import Severity


@dataclass(frozen=True)
class SecurityPattern:
    name: str
    pattern: Pattern
    severity: Severity
    mitigation: str


def _pattern(name: str, regex: str, severity: Severity, mitigation: str,
             flags: int = re.IGNORECASE) -> SecurityPattern:
    return SecurityPattern(name, re.compile(regex, flags), severity, mitigation)


SENSITIVE_DATA_PATTERNS: Tuple[SecurityPattern, ...] = (
    _pattern('API Key',
             r'(?:api[_\-\s]?key|access[_\-\s]?token|secret[_\-\s]?key)["\']?\s*[:=\s]\s*["\']?[a-zA-Z0-9_\-]{10,}',
             Severity.CRITICAL,
             'Move API keys to environment variables or a secrets manager'),
    _pattern('Password',
             r'(?:password|passwd|pwd)["\s]*[:=]["\s]*["\']([^"\']{8,})["\']',
             Severity.CRITICAL,
             'Remove hardcoded passwords and read them from the environment'),
    _pattern('Private Key',
             r'-----BEGIN\s+(?:RSA\s+|EC\s+|OPENSSH\s+)?PRIVATE\s+KEY-----',
             Severity.CRITICAL,
             'Never embed private keys in configuration; reference a key file instead'),
    _pattern('JWT Token',
             r'eyJ[A-Za-z0-9_\-]*\.eyJ[A-Za-z0-9_\-]*\.[A-Za-z0-9_\-]*',
             Severity.HIGH,
             'Remove JWT tokens; they grant access until they expire',
             flags=0),
    _pattern('Credit Card',
             r'\b(?:\d{4}[\-\s]?){3}\d{4}\b',
             Severity.CRITICAL,
             'Remove payment card numbers'),
    _pattern('Email Address',
             r'\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b',
             Severity.MEDIUM,
             'Consider replacing personal email addresses with a team alias'),
    _pattern('Phone Number',
             r'(?<![\d\-])(?:\+?1[\-.\s]?)?\(?\d{3}\)?[\-.\s]\d{3}[\-.\s]\d{4}(?![\d\-])',
             Severity.LOW,
             'Remove personal phone numbers'),
    _pattern('IP Address',
             r'\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b',
             Severity.MEDIUM,
             'Replace internal IP addresses with host names or placeholders'),
    _pattern('Database Connection String',
             r'(?:mongodb(?:\+srv)?|mysql|postgres(?:ql)?|redis|sqlite)://[^\s"\'<>]+',
             Severity.HIGH,
             'Read connection strings from the environment'),
    _pattern('AWS Access Key',
             r'\bAKIA[0-9A-Z]{16}\b',
             Severity.CRITICAL,
             'Rotate the key and use IAM roles or environment credentials',
             flags=0),
    _pattern('GitHub Token',
             r'\bgh[pousr]_[A-Za-z0-9]{36,}\b',
             Severity.CRITICAL,
             'Revoke the token and read it from the environment',
             flags=0),
)

MALICIOUS_CONTENT_PATTERNS: Tuple[SecurityPattern, ...] = (
    _pattern('Command Injection',
             r'\b(?:exec|eval|system|shell_exec|passthru|proc_open|popen)\s*\(',
             Severity.CRITICAL,
             'Remove code that executes arbitrary commands'),
    _pattern('Script Injection',
             r'<script[^>]*>.*?</script>',
             Severity.HIGH,
             'Remove embedded script tags',
             flags=re.IGNORECASE | re.DOTALL),
    _pattern('SQL Injection',
             r'\b(?:union|select|insert|delete|update|drop|create|alter)\s+(?:all\s+)?(?:from|into|table)\b',
             Severity.HIGH,
             'Remove raw SQL statements from configuration content'),
    _pattern('Path Traversal',
             r'\.\./|\.\.\\',
             Severity.MEDIUM,
             'Use paths relative to the project root without parent traversal'),
    _pattern('Destructive File Operation',
             r'(?:rm\s+-rf\s|del\s+/[sq]|format\s+[cd]:)',
             Severity.CRITICAL,
             'Remove destructive shell commands'),
)

PROMPT_INJECTION_PATTERNS: Tuple[SecurityPattern, ...] = (
    _pattern('Ignore Previous Instructions',
             r'ignore\s+(?:all\s+)?(?:previous|prior|above)\s+(?:instructions|prompts|rules)',
             Severity.HIGH,
             'Remove instructions that tell the assistant to discard its configuration'),
    _pattern('Forget Instructions',
             r'forget\s+(?:everything|all\s+(?:previous\s+)?instructions)',
             Severity.HIGH,
             'Remove instructions that tell the assistant to discard its configuration'),
    _pattern('System Prompt Override',
             r'system\s+prompt\s+(?:override|injection)|new\s+system\s+prompt',
             Severity.HIGH,
             'Remove attempts to replace the system prompt'),
    _pattern('System Prompt Disclosure',
             r'(?:reveal|show|print|output)\s+(?:your\s+|the\s+)?system\s+prompt',
             Severity.HIGH,
             'Remove requests to disclose the system prompt'),
    _pattern('Safety Bypass',
             r'(?:bypass|override|disable)\s+(?:security|safety|guidelines|restrictions)',
             Severity.HIGH,
             'Remove instructions that disable safety behaviour'),
    _pattern('Jailbreak Marker',
             r'\bjailbreak\b|\bdan\s+mode\b',
             Severity.HIGH,
             'Remove jailbreak prompts'),
    _pattern('Role Manipulation',
             r'\b(?:act\s+as\s+if\s+you\s+are|pretend\s+(?:to\s+be|you\s+are))\b',
             Severity.MEDIUM,
             'Describe the assistant role plainly instead of through impersonation'),
    _pattern('Privileged Mode',
             r'\b(?:developer|sudo|god)\s+mode\b',
             Severity.MEDIUM,
             'Remove references to privileged assistant modes'),
    _pattern('Role Marker',
             r'\[(?:SYSTEM|ADMIN)\]|\brole\s*:\s*system\b',
             Severity.MEDIUM,
             'Remove role markers that imitate system messages'),
)

# Risk score weight per matched injection pattern, by severity
INJECTION_RISK_WEIGHTS = {
    Severity.CRITICAL: 50,
    Severity.HIGH: 40,
    Severity.MEDIUM: 20,
    Severity.LOW: 10,
}
MAX_RISK_SCORE = 100

# Evidence masking
MASK_CHAR = '*'
MASK_VISIBLE_CHARS = 3
MASK_FULL_THRESHOLD = 10
MASK_MAX_STARS = 10

MAX_LINE_LENGTH = 1000


@dataclass(frozen=True)
class ContentLimits:
    """
    Byte and count budgets for AI content.

    Per-item limits keep prompt < rule < context; the aggregate limit
    covers everything scanned in one validation.
    """
    max_rule_bytes: int = 10_000
    # Must stay below 15_000 so a 15 KB context is reported, which leaves it
    # only 1.2x the rule limit. Raise it in the configuration file for larger
    # context documents.
    max_context_bytes: int = 12_000
    max_prompt_bytes: int = 5_000
    max_total_bytes: int = 1_048_576
    max_rules: int = 100
    max_contexts: int = 50
    max_prompts: int = 200

    def __post_init__(self):
        if not (self.max_prompt_bytes < self.max_rule_bytes < self.max_context_bytes):
            raise ValueError("Content limits must keep prompt < rule < context")
        if self.max_total_bytes < self.max_context_bytes:
            raise ValueError("Total content limit must be at least the context limit")


# Severity of a size issue for each content kind
SIZE_SEVERITY = {
    'rule': Severity.MEDIUM,
    'context': Severity.HIGH,
    'prompt': Severity.MEDIUM,
    'total': Severity.HIGH,
}

COUNT_SEVERITY = {
    'rules': Severity.MEDIUM,
    'contexts': Severity.MEDIUM,
    'prompts': Severity.LOW,
}
