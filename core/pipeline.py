"""
End-to-end conversion pipeline.

Drives one run through the stages

    Detected -> Extracted -> Normalized -> Validated -> Converted -> Deployed

and reports where it stopped. An invalid validation or a failed conversion
is terminal. A deployment that skipped existing files is partial, not
failed.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from core.canonical_models import AIPlatform, TaptikContext
from core.errors import (
    FileOperationFailed,
    NoSourceConfiguration,
    NotAPlatformProject,
    TaptikError,
    UnsupportedConversion,
    ValidationFailed,
)
from core.file_writer import MergePolicy
from core.registry import BuilderRegistry, ConverterRegistry
from core.results import (
    CompatibilityReport,
    ConversionResult,
    DeploymentResult,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    DETECTED = 'detected'
    EXTRACTED = 'extracted'
    NORMALIZED = 'normalized'
    VALIDATED = 'validated'
    CONVERTED = 'converted'
    DEPLOYED = 'deployed'


class StageStatus(str, Enum):
    OK = 'ok'
    INVALID = 'invalid'
    FAILED = 'failed'
    PARTIAL = 'partial'


@dataclass
class PipelineReport:
    """Where a run stopped and everything it produced on the way."""
    stage: PipelineStage
    status: StageStatus
    source: Optional[AIPlatform] = None
    target: Optional[AIPlatform] = None
    context: Optional[TaptikContext] = None
    validation: Optional[ValidationResult] = None
    compatibility: List[CompatibilityReport] = field(default_factory=list)
    conversions: List[ConversionResult] = field(default_factory=list)
    deployment: Optional[DeploymentResult] = None
    error: Optional[TaptikError] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (StageStatus.OK, StageStatus.PARTIAL)


class ConversionPipeline:
    """
    Runs builders and converters taken from injected registries.

    Args:
        builders: Builder registry
        converters: Converter registry
    """

    def __init__(self, builders: BuilderRegistry, converters: ConverterRegistry):
        self.builders = builders
        self.converters = converters

    def detect_source(self, root: Union[str, Path]) -> Optional[AIPlatform]:
        """First registered platform detected under ``root``."""
        detected = self.builders.detect_platforms(root)
        return detected[0] if detected else None

    def run(self, root: Union[str, Path], source: Optional[AIPlatform] = None,
            target: Optional[AIPlatform] = None,
            target_path: Optional[Union[str, Path]] = None,
            merge_policy: MergePolicy = MergePolicy.REPLACE,
            dry_run: bool = False) -> PipelineReport:
        """
        Run the pipeline for one project.

        Args:
            root: Project directory to read
            source: Source platform; auto-detected when None
            target: Target platform; no conversion when None or equal to source
            target_path: Directory to deploy into; nothing is written when None
            merge_policy: How deployment treats existing files
            dry_run: Stop after conversion even when target_path is given

        Returns:
            PipelineReport describing the last stage reached
        """
        root = Path(root)
        source = source or self.detect_source(root)
        if source is None:
            return PipelineReport(PipelineStage.DETECTED, StageStatus.FAILED,
                                  error=NotAPlatformProject('any supported platform', root))
        report = PipelineReport(PipelineStage.DETECTED, StageStatus.OK, source=source,
                                target=target)

        builder = self.builders.get_builder(source)
        if builder is None or not builder.detect(root):
            report.status = StageStatus.FAILED
            report.error = NotAPlatformProject(source.display_name, root)
            return report

        try:
            raw = builder.extract(root)
        except (NotAPlatformProject, FileOperationFailed) as e:
            return self._fail(report, PipelineStage.EXTRACTED, e)
        report.stage = PipelineStage.EXTRACTED

        context = builder.normalize(raw, name=root.resolve().name)
        report.stage = PipelineStage.NORMALIZED
        report.context = context

        report.validation = builder.validate(raw)
        report.stage = PipelineStage.VALIDATED
        if not report.validation.valid:
            report.status = StageStatus.INVALID
            report.error = ValidationFailed(report.validation.errors, source.display_name)
            logger.error(str(report.error))
            return report

        deployer = builder
        if target is not None and target != source:
            chain = self.converters.get_conversion_chain(source, target)
            if chain is None:
                return self._fail(report, PipelineStage.CONVERTED,
                                  UnsupportedConversion(source.value, target.value))
            for strategy in chain:
                report.compatibility.append(strategy.validate_compatibility(context))
                result = strategy.convert(context)
                report.conversions.append(result)
                if not result.success:
                    return self._fail(report, PipelineStage.CONVERTED,
                                      NoSourceConfiguration(strategy.source_platform.display_name))
                context = result.context
                deployer = strategy
            report.stage = PipelineStage.CONVERTED
            report.context = context

        if target_path is None or dry_run:
            return report

        deployment = deployer.deploy(context, target_path, merge_policy)
        report.stage = PipelineStage.DEPLOYED
        report.deployment = deployment
        if not deployment.success:
            report.status = StageStatus.FAILED
            first = deployment.errors[0] if deployment.errors else None
            if first is not None and first.type == 'security':
                report.error = ValidationFailed(deployment.errors,
                                                deployer.target_platform.display_name
                                                if deployer is not builder else source.display_name)
            else:
                report.error = FileOperationFailed(
                    Path(target_path) / (first.path or '') if first else Path(target_path),
                    'deploy', first.message if first else 'unknown error',
                    suggestion=first.suggestion if first else None)
        elif deployment.partial:
            report.status = StageStatus.PARTIAL
        return report

    def _fail(self, report: PipelineReport, stage: PipelineStage,
              error: TaptikError) -> PipelineReport:
        logger.error(str(error))
        report.stage = stage
        report.status = StageStatus.FAILED
        report.error = error
        return report
