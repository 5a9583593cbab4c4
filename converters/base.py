"""
Base class for converter strategies.

A converter maps one platform's payload in a canonical context onto
another platform's payload. The pair's FeatureMapping table decides what
happens to each observed source feature:

- direct mapping: value copied unchanged into the target field
- approximation: value passed through the pair's transform for that feature
- unsupported: recorded in the result and dropped

The same table drives compatibility scoring.
"""

import copy
import logging
import math
from abc import ABC
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from builders.base import PlatformBuilder
from core.canonical_models import (
    AIPlatform,
    Category,
    ConversionStamp,
    PLATFORM_CONFIG_TYPES,
    PlatformConfig,
    TaptikContext,
    utc_now_iso,
)
from core.errors import NoSourceConfiguration
from core.file_writer import MergePolicy
from core.results import (
    AppliedApproximation,
    CompatibilityReport,
    Confidence,
    ConversionResult,
    DeploymentResult,
    FeatureMapping,
    PartialSupport,
)
from .feature_mappings import SUPPORT_LEVELS

logger = logging.getLogger(__name__)

COMPATIBILITY_THRESHOLD = 60

Transform = Callable[[Any, PlatformConfig, TaptikContext], Any]


def compatibility_score(supported: int, unsupported: int, partial_levels: List[int]) -> int:
    """
    Score how much of a source configuration survives conversion.

    Fully supported features count 100, partial ones their support level,
    unsupported ones 0; the denominator is the number of observed features.
    Halves round up.
    """
    total = supported + unsupported + len(partial_levels)
    if total == 0:
        return 0
    return int(math.floor((100 * supported + sum(partial_levels)) / total + 0.5))


def _combine(existing: Any, value: Any) -> Any:
    """Merge two values mapped onto the same target field."""
    if existing is None:
        return value
    if isinstance(existing, list) and isinstance(value, list):
        return existing + value
    if isinstance(existing, dict) and isinstance(value, dict):
        return {**existing, **value}
    if isinstance(existing, str) and isinstance(value, str):
        return f"{existing.rstrip()}\n\n{value}"
    return value


class ConverterStrategy(ABC):
    """
    Converter for one ordered platform pair.

    Subclasses set ``source_platform``, ``target_platform``,
    ``feature_mapping`` and ``transforms`` (approximated feature -> Transform).

    Args:
        target_builder: Builder of the target platform, used for deployment
    """

    source_platform: AIPlatform = None
    target_platform: AIPlatform = None
    feature_mapping: FeatureMapping = None
    transforms: Dict[str, Transform] = {}

    def __init__(self, target_builder: PlatformBuilder):
        if target_builder.platform != self.target_platform:
            raise ValueError(f"{type(self).__name__} needs a {self.target_platform.value} "
                             f"builder, got {target_builder.platform.value}")
        self.target_builder = target_builder

    @property
    def name(self) -> str:
        return f"{self.source_platform.value}->{self.target_platform.value}"

    def can_convert(self) -> bool:
        return True

    def get_feature_mapping(self) -> FeatureMapping:
        return self.feature_mapping

    def _source_config(self, context: TaptikContext) -> Optional[PlatformConfig]:
        config = context.platform_config(self.source_platform)
        if not isinstance(config, PLATFORM_CONFIG_TYPES[self.source_platform]):
            return None
        return config

    # -- compatibility ------------------------------------------------------

    def validate_compatibility(self, context: TaptikContext) -> CompatibilityReport:
        """Classify every observed source feature and score the result."""
        config = self._source_config(context)
        if config is None:
            return CompatibilityReport(
                compatible=False, score=0,
                unsupported_features=[f"No {self.source_platform.display_name} configuration found"])

        supported, unsupported, partial = [], [], []
        mapping = self.feature_mapping
        for feature in config.present_features():
            if feature in mapping.direct_mappings:
                supported.append(feature)
            elif feature in mapping.approximations:
                approximation = mapping.approximations[feature]
                if approximation.confidence == Confidence.HIGH:
                    supported.append(feature)
                else:
                    partial.append(PartialSupport(
                        feature=feature,
                        support_level=SUPPORT_LEVELS[approximation.confidence],
                        notes=approximation.notes,
                    ))
            else:
                unsupported.append(feature)

        score = compatibility_score(len(supported), len(unsupported),
                                    [item.support_level for item in partial])
        return CompatibilityReport(
            compatible=score >= COMPATIBILITY_THRESHOLD,
            score=score,
            supported_features=supported,
            unsupported_features=unsupported,
            partial_support=partial,
        )

    # -- conversion ---------------------------------------------------------

    def convert(self, context: TaptikContext) -> ConversionResult:
        """
        Build the target payload field by field from the mapping table.

        Fails without touching the context when the source payload is absent
        or empty.
        """
        config = self._source_config(context)
        if config is None or config.is_empty():
            error = NoSourceConfiguration(self.source_platform.display_name)
            return ConversionResult(success=False, error=error.message, error_code=error.code)

        mapping = self.feature_mapping
        values: Dict[str, Any] = {}
        warnings: List[str] = []
        unsupported: List[str] = []
        approximations: List[AppliedApproximation] = []
        target_name = self.target_platform.display_name

        for feature in config.present_features():
            value = config.feature_value(feature)
            if feature in mapping.direct_mappings:
                target_field = mapping.direct_mappings[feature]
                values[target_field] = _combine(values.get(target_field), copy.deepcopy(value))
            elif feature in mapping.approximations:
                approximation = mapping.approximations[feature]
                transformed = self.transforms[feature](copy.deepcopy(value), config, context)
                if transformed is not None:
                    target_field = approximation.target_approximation
                    values[target_field] = _combine(values.get(target_field), transformed)
                approximations.append(AppliedApproximation(
                    source_feature=feature,
                    target_feature=approximation.target_approximation,
                    confidence=approximation.confidence,
                    notes=approximation.notes,
                ))
                warnings.append(f"{feature} approximated as {approximation.target_approximation} "
                                f"({approximation.confidence.value} confidence): {approximation.notes}")
            else:
                unsupported.append(feature)
                warnings.append(f"{feature} is not supported by {target_name} and was dropped")

        target_config = PLATFORM_CONFIG_TYPES[self.target_platform](**values)
        converted = context.with_platform_config(self.target_platform, target_config)
        converted = self._merge_sections(converted, target_config)
        converted = converted.with_metadata(
            platforms=(self.target_platform,),
            conversion=ConversionStamp(self.source_platform, self.target_platform, utc_now_iso()),
        )
        for warning in warnings:
            logger.info(f"{self.name}: {warning}")
        return ConversionResult(success=True, context=converted, warnings=warnings,
                                unsupported_features=unsupported, approximations=approximations)

    def _merge_sections(self, context: TaptikContext, target_config: PlatformConfig) -> TaptikContext:
        """Fold the target's derived sections into the context's existing ones."""
        for category, data in self.target_builder.section_payloads(target_config).items():
            existing = context.section(category)
            if existing is not None and type(existing.data) is type(data):
                updates = {f.name: getattr(data, f.name) for f in fields(data)
                           if getattr(data, f.name) is not None}
                data = replace(existing.data, **updates)
            context = context.with_section(category, data)
        return context

    # -- deployment ---------------------------------------------------------

    def deploy(self, context: TaptikContext, target_path: Union[str, Path],
               merge_policy: MergePolicy = MergePolicy.REPLACE) -> DeploymentResult:
        """Write the converted target payload as native files."""
        return self.target_builder.deploy(context, target_path, merge_policy)
