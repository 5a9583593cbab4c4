"""
Unit tests for the end-to-end conversion pipeline.

Tests cover:
- Source detection (auto and explicit)
- Stage and status reporting for each terminal outcome
- Single and multi-hop conversions
- Dry-run and report-only runs
- Partial deployments under the skip policy
"""

import json

import pytest

from cli.main import setup_registries
from converters import ClaudeCodeToCursorConverter, KiroToClaudeCodeConverter
from core.canonical_models import AIPlatform
from core.file_system import FileSystem
from core.file_writer import MergePolicy
from core.pipeline import ConversionPipeline, PipelineStage, StageStatus
from core.registry import ConverterRegistry


@pytest.fixture
def registries(tmp_path):
    return setup_registries(FileSystem(home=tmp_path / 'home'))


@pytest.fixture
def pipeline(registries):
    return ConversionPipeline(*registries)


@pytest.fixture
def project(tmp_path):
    root = tmp_path / 'shop'
    (root / '.kiro' / 'steering').mkdir(parents=True)
    (root / '.kiro' / 'steering' / 'style.md').write_text('# Style\n\nKeep functions small.\n')
    (root / '.kiro' / 'settings').mkdir()
    (root / '.kiro' / 'settings' / 'mcp.json').write_text(json.dumps(
        {'mcpServers': {'fs': {'command': 'npx', 'args': ['-y', 'server-filesystem']}}}))
    return root


class TestDetection:
    """Tests for source detection."""

    def test_auto_detects_source(self, pipeline, project):
        assert pipeline.detect_source(project) == AIPlatform.KIRO

    def test_nothing_detected(self, pipeline, tmp_path):
        report = pipeline.run(tmp_path)
        assert report.stage == PipelineStage.DETECTED
        assert report.status == StageStatus.FAILED
        assert report.error.code == 'NOT_A_PLATFORM_PROJECT'

    def test_explicit_source_not_present(self, pipeline, project):
        report = pipeline.run(project, source=AIPlatform.CURSOR)
        assert report.status == StageStatus.FAILED
        assert report.error.code == 'NOT_A_PLATFORM_PROJECT'


class TestRun:
    """Tests for ConversionPipeline.run."""

    def test_convert_and_deploy(self, pipeline, project, tmp_path):
        target = tmp_path / 'out'
        report = pipeline.run(project, target=AIPlatform.CLAUDE_CODE, target_path=target)

        assert report.stage == PipelineStage.DEPLOYED
        assert report.status == StageStatus.OK
        assert report.succeeded
        assert report.source == AIPlatform.KIRO
        assert len(report.compatibility) == 1
        assert report.compatibility[0].compatible
        assert (target / 'CLAUDE.local.md').read_text().startswith('# Custom Instructions')
        assert json.loads((target / '.mcp.json').read_text())['mcpServers']['fs']['command'] == 'npx'

    def test_without_target_stops_after_validation(self, pipeline, project):
        report = pipeline.run(project)
        assert report.stage == PipelineStage.VALIDATED
        assert report.status == StageStatus.OK
        assert report.context.platform_config(AIPlatform.KIRO) is not None
        assert report.conversions == []

    def test_invalid_source(self, pipeline, project):
        (project / '.kiro' / 'settings' / 'mcp.json').write_text(json.dumps(
            {'mcpServers': {'broken': {'args': ['--port', '3000']}}}))
        report = pipeline.run(project, target=AIPlatform.CLAUDE_CODE)
        assert report.stage == PipelineStage.VALIDATED
        assert report.status == StageStatus.INVALID
        assert report.error.code == 'VALIDATION_FAILED'
        assert not report.succeeded

    def test_dry_run_writes_nothing(self, pipeline, project, tmp_path):
        target = tmp_path / 'out'
        report = pipeline.run(project, target=AIPlatform.CLAUDE_CODE, target_path=target,
                              dry_run=True)
        assert report.stage == PipelineStage.CONVERTED
        assert report.status == StageStatus.OK
        assert not target.exists()

    def test_unsupported_conversion(self, registries, project):
        builders, _ = registries
        pipeline = ConversionPipeline(builders, ConverterRegistry())
        report = pipeline.run(project, target=AIPlatform.CURSOR)
        assert report.stage == PipelineStage.CONVERTED
        assert report.status == StageStatus.FAILED
        assert report.error.code == 'UNSUPPORTED_CONVERSION'

    def test_multi_hop_conversion(self, registries, project, tmp_path):
        builders, _ = registries
        converters = ConverterRegistry()
        converters.register(KiroToClaudeCodeConverter(builders.get_builder(AIPlatform.CLAUDE_CODE)))
        converters.register(ClaudeCodeToCursorConverter(builders.get_builder(AIPlatform.CURSOR)))
        target = tmp_path / 'out'

        report = ConversionPipeline(builders, converters).run(
            project, target=AIPlatform.CURSOR, target_path=target)

        assert report.status == StageStatus.OK
        assert len(report.conversions) == 2
        assert report.context.metadata.conversion.source == AIPlatform.CLAUDE_CODE
        assert (target / '.cursor' / 'rules' / 'claude-local-instructions.mdc').exists()
        assert (target / '.cursor' / 'mcp.json').exists()

    def test_same_platform_redeploys(self, pipeline, project, tmp_path):
        target = tmp_path / 'copy'
        report = pipeline.run(project, target=AIPlatform.KIRO, target_path=target)
        assert report.stage == PipelineStage.DEPLOYED
        assert report.conversions == []
        assert (target / '.kiro' / 'steering' / 'style.md').exists()

    def test_skipped_files_are_partial(self, pipeline, project, tmp_path):
        target = tmp_path / 'out'
        target.mkdir()
        (target / 'CLAUDE.local.md').write_text('mine')
        report = pipeline.run(project, target=AIPlatform.CLAUDE_CODE, target_path=target,
                              merge_policy=MergePolicy.SKIP)
        assert report.status == StageStatus.PARTIAL
        assert report.succeeded
        assert report.deployment.skipped_components == ['claude_local_md']
        assert (target / 'CLAUDE.local.md').read_text() == 'mine'
