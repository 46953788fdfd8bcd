"""Tests for CLI interface."""

import os

import pytest
from unittest.mock import AsyncMock, Mock, patch
from click.testing import CliRunner

from lfs_migrate.cli.main import cli, _apply_overrides, _load_config
from lfs_migrate.config.config import Config
from lfs_migrate.git.exceptions import DirtyWorkingTreeError, ForcePushError
from lfs_migrate.migration.engine import MigrationSummary
from lfs_migrate.models.objects import GitObject


def make_summary(**kwargs):
    defaults = {'repository': '.', 'patterns': ['*.png', '*.PNG']}
    defaults.update(kwargs)
    return MigrationSummary(**defaults)


class TestCLI:
    """Test CLI commands."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_cli_help(self):
        result = self.runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert 'LFS Migration Tool' in result.output
        for command in ['init', 'migrate', 'check', 'scan', 'status']:
            assert command in result.output

    def test_cli_version(self):
        result = self.runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert '0.1.0' in result.output

    def test_init_command(self, tmp_path):
        config_path = tmp_path / 'lfs.yaml'

        result = self.runner.invoke(cli, ['init', '--output', str(config_path)])

        assert result.exit_code == 0
        assert 'Configuration template created' in result.output
        content = config_path.read_text()
        assert 'migration:' in content
        assert 'patterns:' in content

    def test_init_command_default_output(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['init'])

            assert result.exit_code == 0
            assert os.path.exists('lfs-migrate.yaml')

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_command_success(self, mock_run_migration):
        mock_run_migration.return_value = make_summary(
            rules_added=['*.png'],
            attributes_commit='c' * 40,
            backup_branch='backup-before-lfs-20260101-120000',
            backup_commit='d' * 40,
            synced=True,
            rewritten=True,
            published=True,
        )

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate'])

        assert result.exit_code == 0, result.output
        assert 'Migration Summary' in result.output
        assert 'backup-before-lfs-20260101-120000' in result.output
        assert 'Migration completed successfully' in result.output
        mock_run_migration.assert_called_once()

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_options_override_config(self, mock_run_migration):
        mock_run_migration.return_value = make_summary(rewritten=True)

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(
                cli,
                [
                    'migrate',
                    '--patterns',
                    '*.psd, *.PSD',
                    '--no-push',
                    '--remote',
                    'upstream',
                    '--threshold-mb',
                    '50',
                    '--strict-sync',
                ],
            )

        assert result.exit_code == 0, result.output
        assert 'Publishing disabled' in result.output
        assert 'was not pushed' in result.output
        config, repo = mock_run_migration.call_args[0]
        assert config.migration.patterns == ['*.psd', '*.PSD']
        assert config.migration.push is False
        assert config.migration.remote == 'upstream'
        assert config.migration.size_threshold_mb == 50
        assert config.migration.strict_sync is True
        assert repo == '.'

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_command_dry_run(self, mock_run_migration):
        mock_run_migration.return_value = make_summary(
            dry_run=True, rules_added=['*.png', '*.PNG']
        )

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate', '--dry-run'])

        assert result.exit_code == 0
        assert 'dry-run mode' in result.output
        assert 'Dry Run Summary' in result.output
        config = mock_run_migration.call_args[0][0]
        assert config.migration.dry_run is True

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_failure_shows_hint(self, mock_run_migration):
        mock_run_migration.side_effect = DirtyWorkingTreeError(
            'Working tree has uncommitted changes: M logo.png',
            hint='Commit or stash your changes before migrating.',
        )

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate'])

        assert result.exit_code == 1
        assert 'uncommitted changes' in result.output
        assert 'Commit or stash' in result.output

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_push_rejected(self, mock_run_migration):
        mock_run_migration.side_effect = ForcePushError(
            'Force-push of branches to origin was rejected',
            hint='This is commonly caused by branch protection.',
        )

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate'])

        assert result.exit_code == 1
        assert 'branch protection' in result.output

    def test_migrate_empty_patterns_rejected(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate', '--patterns', ' , '])

        assert result.exit_code == 1
        assert 'Invalid options' in result.output

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_pattern_with_whitespace_rejected(self, mock_run_migration):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate', '--patterns', 'my file.png'])

        assert result.exit_code == 1
        assert 'Invalid options' in result.output
        mock_run_migration.assert_not_called()

    @patch('lfs_migrate.cli.main._run_migration')
    def test_migrate_option_like_remote_rejected(self, mock_run_migration):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['migrate', '--remote=-x'])

        assert result.exit_code == 1
        assert 'Invalid options' in result.output
        mock_run_migration.assert_not_called()

    @patch('lfs_migrate.cli.main.MigrationEngine')
    def test_check_invalid_remote_rejected(self, mock_engine_class):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['check', '--remote', 'my remote'])

        assert result.exit_code == 1
        mock_engine_class.assert_not_called()

    @patch('lfs_migrate.cli.main._run_migration')
    def test_loaded_config_file_is_ignored_by_clean_check(self, mock_run_migration):
        mock_run_migration.return_value = make_summary(dry_run=True)

        with self.runner.isolated_filesystem():
            with open('lfs-migrate.yaml', 'w') as f:
                f.write('logging:\n  file: logs/lfs-migrate.log\n')
            result = self.runner.invoke(cli, ['migrate', '--dry-run'])

        assert result.exit_code == 0, result.output
        assert mock_run_migration.call_args[1]['ignore_paths'] == [
            'lfs-migrate.yaml',
            'logs/lfs-migrate.log',
        ]

    def test_migrate_outside_repository(self, tmp_path):
        result = self.runner.invoke(cli, ['migrate', '--repo', str(tmp_path)])

        assert result.exit_code == 1
        assert 'not the root of a git repository' in result.output.replace('\n', ' ')

    def test_migrate_config_not_found(self):
        result = self.runner.invoke(
            cli, ['--config', '/nonexistent/lfs.yaml', 'migrate']
        )

        assert result.exit_code != 0

    def test_invalid_config_file_reported(self, tmp_path):
        config_path = tmp_path / 'bad.yaml'
        config_path.write_text('migration:\n  size_threshold_mb: -1\n')

        result = self.runner.invoke(cli, ['--config', str(config_path), 'status'])

        assert result.exit_code == 1
        assert 'Configuration error' in result.output

    @patch('lfs_migrate.cli.main.MigrationEngine')
    def test_check_command_success(self, mock_engine_class):
        mock_engine = Mock()
        mock_engine.check = AsyncMock(return_value=make_summary(dry_run=True))
        mock_engine_class.return_value = mock_engine

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['check'])

        assert result.exit_code == 0
        assert 'Working tree clean' in result.output
        assert 'Remote origin configured' in result.output

    @patch('lfs_migrate.cli.main.MigrationEngine')
    def test_scan_reports_oversized_blobs(self, mock_engine_class):
        mock_engine = Mock()
        mock_engine.scan = AsyncMock(
            return_value=[
                GitObject(
                    type='blob', sha='f' * 40, size=200 * 1024 * 1024, path='huge.psd'
                )
            ]
        )
        mock_engine_class.return_value = mock_engine

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['scan', '--threshold-mb', '150'])

        assert result.exit_code == 1
        assert 'huge.psd' in result.output
        assert '200.0' in result.output
        config = mock_engine_class.call_args[0][0]
        assert config.migration.size_threshold_mb == 150

    @patch('lfs_migrate.cli.main.MigrationEngine')
    def test_scan_clean_repository(self, mock_engine_class):
        mock_engine = Mock()
        mock_engine.scan = AsyncMock(return_value=[])
        mock_engine_class.return_value = mock_engine

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['scan'])

        assert result.exit_code == 0
        assert 'No blobs above 100 MB' in result.output

    def test_status_command(self, tmp_path):
        (tmp_path / '.gitattributes').write_text(
            '*.png filter=lfs diff=lfs merge=lfs -text\n'
        )

        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ['status', '--repo', str(tmp_path)])

        assert result.exit_code == 0
        assert 'Migration Configuration' in result.output
        assert 'Tracked by LFS: *.png' in result.output
        assert 'Not yet tracked: *.PNG' in result.output

    def test_config_file_option(self, tmp_path):
        config_path = tmp_path / 'lfs.yaml'
        config_path.write_text('migration:\n  patterns: "*.tga"\n  remote: upstream\n')

        result = self.runner.invoke(
            cli, ['--config', str(config_path), 'status', '--repo', str(tmp_path)]
        )

        assert result.exit_code == 0
        assert '*.tga' in result.output
        assert 'upstream' in result.output

    def test_verbose_flag(self):
        result = self.runner.invoke(cli, ['--verbose', '--help'])

        assert result.exit_code == 0


class TestConfigLoading:
    """Test configuration loading functions."""

    @patch('lfs_migrate.config.config.Config.from_file')
    def test_load_config_with_file(self, mock_from_file):
        mock_config = Mock(spec=Config)
        mock_from_file.return_value = mock_config

        mock_ctx = Mock()
        mock_ctx.obj = {'config_path': '/path/to/lfs-migrate.yaml'}

        with patch('pathlib.Path.exists', return_value=True):
            config = _load_config(mock_ctx)

        assert config == mock_config
        mock_from_file.assert_called_once_with('/path/to/lfs-migrate.yaml')

    def test_load_config_default_location(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / 'lfs-migrate.yaml').write_text('migration:\n  remote: mirror\n')

        mock_ctx = Mock()
        mock_ctx.obj = {}

        config = _load_config(mock_ctx)

        assert config.migration.remote == 'mirror'

    @patch('lfs_migrate.config.config.Config.from_env')
    def test_load_config_from_env(self, mock_from_env, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        mock_config = Mock(spec=Config)
        mock_from_env.return_value = mock_config

        mock_ctx = Mock()
        mock_ctx.obj = {}

        assert _load_config(mock_ctx) == mock_config
        mock_from_env.assert_called_once()


class TestApplyOverrides:
    """Test command-line overrides."""

    def test_no_options_keep_config(self):
        config = Config(migration={'patterns': '*.psd', 'push': True})

        _apply_overrides(config)

        assert config.migration.patterns == ['*.psd']
        assert config.migration.push is True

    def test_empty_patterns_rejected(self):
        with pytest.raises(ValueError):
            _apply_overrides(Config(), patterns=',')
