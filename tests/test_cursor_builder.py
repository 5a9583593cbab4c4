"""
Unit tests for the Cursor builder.

Tests cover:
- .mdc rule parsing and rendering
- Legacy .cursorrules
- Settings, extensions, snippets, tasks and launch configurations
- Validation of tasks, launch configurations and rules
- Deployment back to .cursor and .vscode files
"""

import json

import pytest

from builders import CursorBuilder
from builders.cursor import flatten_settings, parse_globs, parse_rule_document, render_rule_document
from core.canonical_models import Category, CursorConfig, CursorRule
from core.file_system import FileSystem


RULE = """---
description: Python conventions
globs: '*.py,tests/**/*.py'
alwaysApply: false
---
# Python

- Use type hints
"""


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


@pytest.fixture
def home(tmp_path):
    home = tmp_path / 'home'
    home.mkdir()
    return home


@pytest.fixture
def builder(home):
    return CursorBuilder(FileSystem(home=home))


@pytest.fixture
def project(tmp_path, home):
    root = tmp_path / 'web'
    (root / '.cursor' / 'rules').mkdir(parents=True)
    (root / '.cursor' / 'rules' / 'python.mdc').write_text(RULE)
    (root / '.cursorrules').write_text('Prefer composition over inheritance.\n')
    write_json(root / '.cursor' / 'settings.json', {'cursor.chat.model': 'default',
                                                    'editor.fontSize': 12})
    write_json(home / '.cursor' / 'settings.json', {'editor.fontSize': 14})
    write_json(root / '.cursor' / 'mcp.json', {'mcpServers': {
        'docs': {'url': 'https://docs.example.com/mcp'}}})

    vscode = root / '.vscode'
    write_json(vscode / 'settings.json', {'editor.tabSize': 4})
    write_json(vscode / 'extensions.json', {'recommendations': ['ms-python.python']})
    write_json(vscode / 'tasks.json', {'version': '2.0.0', 'tasks': [
        {'label': 'test', 'type': 'shell', 'command': 'pytest', 'args': ['-q']}]})
    write_json(vscode / 'launch.json', {'version': '0.2.0', 'configurations': [
        {'name': 'Debug app', 'type': 'python', 'request': 'launch'}]})
    write_json(vscode / 'python.code-snippets', {'Main guard': {
        'prefix': 'main', 'body': ["if __name__ == '__main__':", '    main()']}})
    return root


class TestRuleDocuments:
    """Tests for .mdc parsing helpers."""

    def test_parse_rule_document(self):
        rule = parse_rule_document('python', RULE)
        assert rule.description == 'Python conventions'
        assert rule.globs == ['*.py', 'tests/**/*.py']
        assert rule.always_apply is False
        assert rule.content == '# Python\n\n- Use type hints'

    def test_render_round_trip(self):
        rule = CursorRule(name='style', content='Be consistent.', globs=['*.ts'],
                          always_apply=True)
        assert parse_rule_document('style', render_rule_document(rule)) == rule

    def test_parse_globs(self):
        assert parse_globs(None) == []
        assert parse_globs(['*.py', ' ']) == ['*.py']
        assert parse_globs('a, b') == ['a', 'b']

    def test_flatten_settings(self):
        assert flatten_settings({'editor': {'tabSize': 2, 'rulers': [80]},
                                 'files.exclude': {}}) == \
            {'editor.tabSize': 2, 'editor.rulers': [80], 'files.exclude': {}}


class TestExtraction:
    """Tests for CursorBuilder.extract."""

    def test_detects_legacy_rules_only(self, builder, tmp_path):
        (tmp_path / '.cursorrules').write_text('Be brief.')
        assert builder.detect(tmp_path)

    def test_extract(self, builder, project):
        raw = builder.extract(project)
        assert [rule.name for rule in raw.rules] == ['python']
        assert raw.legacy_rules.startswith('Prefer composition')
        assert raw.settings == {'cursor.chat.model': 'default', 'editor.fontSize': 14}
        assert raw.project_settings == {'editor.tabSize': 4}
        assert raw.mcp_servers[0].url == 'https://docs.example.com/mcp'
        assert raw.extensions == ['ms-python.python']
        assert raw.tasks[0]['label'] == 'test'
        assert raw.launch[0]['name'] == 'Debug app'
        assert 'Main guard' in raw.snippets['python']

    def test_absent_vscode_files(self, builder, tmp_path):
        (tmp_path / '.cursor').mkdir()
        raw = builder.extract(tmp_path)
        assert raw.tasks is None
        assert raw.snippets is None
        assert raw.rules is None

    def test_sections(self, builder, project):
        context = builder.normalize(builder.extract(project))
        assert context.section(Category.PROJECT).data.cursor_rules[0].name == 'python'
        assert context.section(Category.PROMPTS).data.custom_instructions.startswith('Prefer')
        assert context.section(Category.TOOLS).data.mcp_servers[0].name == 'docs'


class TestValidation:
    """Tests for CursorBuilder.validate."""

    def test_valid_project(self, builder, project):
        assert builder.validate(builder.extract(project)).valid

    def test_task_needs_label(self, builder, project, caplog):
        write_json(project / '.vscode' / 'tasks.json', {'version': '2.0.0', 'tasks': [
            {'command': 'make'}, {'label': 'test', 'command': 'pytest'}]})
        with caplog.at_level('WARNING', logger='builders.cursor'):
            tasks = builder.extract(project).tasks
        assert tasks == [{'label': 'test', 'command': 'pytest'}]
        assert 'Skipping tasks[0] without a label' in caplog.text

    def test_launch_needs_name(self, builder, project, caplog):
        write_json(project / '.vscode' / 'launch.json', {'version': '0.2.0', 'configurations': [
            {'type': 'node'}, 'not-an-object', {'name': 'Debug app', 'type': 'python'}]})
        with caplog.at_level('WARNING', logger='builders.cursor'):
            launch = builder.extract(project).launch
        assert [configuration['name'] for configuration in launch] == ['Debug app']
        assert 'Skipping configurations[0] without a name' in caplog.text
        assert 'Skipping configurations[1] without a name' in caplog.text

    def test_unlabelled_task_in_memory_is_error(self, builder):
        result = builder.validate(CursorConfig(tasks=[{'command': 'make'}],
                                               launch=[{'type': 'node'}]))
        assert [error.path for error in result.errors] == ['tasks[0]', 'launch[0]']

    def test_oversized_rule_uses_rule_limit(self, builder):
        rule = CursorRule(name='big', content='Prefer small modules.\n' * 500, always_apply=True)
        result = builder.validate(CursorConfig(rules=[rule]))
        assert result.valid
        assert [(w.code, w.path) for w in result.warnings] == [('SIZE_EXCEEDED', 'rules[big]')]

    def test_rule_without_scope_warns(self, builder):
        result = builder.validate(CursorConfig(rules=[CursorRule(name='misc', content='Hi.')]))
        assert result.valid
        assert result.warnings[0].path == 'rules[misc]'

    def test_destructive_task_is_error(self, builder):
        result = builder.validate(CursorConfig(tasks=[
            {'label': 'clean', 'type': 'shell', 'command': 'rm -rf /'}]))
        assert not result.valid
        assert result.errors[0].code == 'SECURITY_MALICIOUS_CONTENT'
        assert result.errors[0].path == 'tasks[0].command'


class TestDeployment:
    """Tests for rendering and deployment."""

    def test_deploy_round_trip(self, builder, project, tmp_path):
        target = tmp_path / 'out'
        result = builder.deploy(builder.build(project), target)
        assert result.success
        assert set(result.created_directories) == {'.cursor', '.cursor/rules', '.vscode'}

        tasks = json.loads((target / '.vscode' / 'tasks.json').read_text())
        assert tasks['version'] == '2.0.0'
        launch = json.loads((target / '.vscode' / 'launch.json').read_text())
        assert launch['configurations'][0]['name'] == 'Debug app'

        copied = builder.extract(target)
        original = builder.extract(project)
        assert copied.rules == original.rules
        assert copied.mcp_servers == original.mcp_servers
        assert copied.snippets == original.snippets

    def test_project_settings_written_flat(self, builder, tmp_path):
        files = builder.render_files(CursorConfig(project_settings={'editor': {'tabSize': 2}}))
        assert files[0].path == '.vscode/settings.json'
        assert files[0].content == {'editor.tabSize': 2}
