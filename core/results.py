"""
Result types returned by builders, converters and the file writer.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional


class Severity(str, Enum):
    CRITICAL = 'critical'
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'


class Confidence(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'


@dataclass
class ValidationIssue:
    """One validation error or warning."""
    path: str
    message: str
    code: str = 'INVALID'
    severity: Severity = Severity.HIGH
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, path: str, message: str, code: str = 'INVALID',
                  severity: Severity = Severity.HIGH,
                  suggestion: Optional[str] = None):
        self.errors.append(ValidationIssue(path, message, code, severity, suggestion))

    def add_warning(self, path: str, message: str, code: str = 'WARNING',
                    suggestion: Optional[str] = None):
        self.warnings.append(ValidationIssue(path, message, code, Severity.LOW, suggestion))

    def extend(self, other: 'ValidationResult'):
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


@dataclass(frozen=True)
class FeatureApproximation:
    target_approximation: str
    confidence: Confidence
    notes: str


@dataclass(frozen=True)
class FeatureMapping:
    """
    Static mapping table for one ordered platform pair.

    Every feature a source platform can expose lands in exactly one of the
    three partitions. Instances are read-only.
    """
    direct_mappings: Mapping[str, str]
    approximations: Mapping[str, FeatureApproximation]
    unsupported: FrozenSet[str]

    def __post_init__(self):
        object.__setattr__(self, 'direct_mappings',
                           MappingProxyType(dict(self.direct_mappings)))
        object.__setattr__(self, 'approximations',
                           MappingProxyType(dict(self.approximations)))
        object.__setattr__(self, 'unsupported', frozenset(self.unsupported))
        overlap = (set(self.direct_mappings) & set(self.approximations)) \
            | (set(self.direct_mappings) & self.unsupported) \
            | (set(self.approximations) & self.unsupported)
        if overlap:
            raise ValueError(f"Features classified more than once: {sorted(overlap)}")

    def classified_features(self) -> FrozenSet[str]:
        return frozenset(self.direct_mappings) | frozenset(self.approximations) | self.unsupported


@dataclass
class PartialSupport:
    feature: str
    support_level: int
    notes: str


@dataclass
class CompatibilityReport:
    compatible: bool
    score: int
    supported_features: List[str] = field(default_factory=list)
    unsupported_features: List[str] = field(default_factory=list)
    partial_support: List[PartialSupport] = field(default_factory=list)


@dataclass
class AppliedApproximation:
    """Record of an approximation actually used during a conversion."""
    source_feature: str
    target_feature: str
    confidence: Confidence
    notes: str


@dataclass
class ConversionResult:
    """
    Outcome of a conversion.

    ``context`` is set by converters, ``data`` by builder.convert (raw
    platform data ready for rendering).
    """
    success: bool
    context: Any = None
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    unsupported_features: List[str] = field(default_factory=list)
    approximations: List[AppliedApproximation] = field(default_factory=list)


@dataclass
class DeploymentError:
    component: str
    message: str
    path: Optional[str] = None
    type: str = 'file_operation'
    severity: Severity = Severity.HIGH
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.component}: {self.message}"


@dataclass
class DeploymentResult:
    """
    Outcome of writing generated files.

    A deployment with skipped components and no errors is partial, not failed.
    """
    success: bool
    deployed_files: List[str] = field(default_factory=list)
    errors: List[DeploymentError] = field(default_factory=list)
    skipped_components: List[str] = field(default_factory=list)
    created_directories: List[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.success and bool(self.skipped_components)

    def summary(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'deployed_files': list(self.deployed_files),
            'skipped_components': list(self.skipped_components),
            'errors': [str(error) for error in self.errors],
        }
