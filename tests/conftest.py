"""Shared fixtures for the test suite."""

import shutil
import subprocess

import pytest

from lfs_migrate.git.runner import GitRunner, CommandResult

HEAD_SHA = 'a' * 40


class FakeRunner(GitRunner):
    """GitRunner that records commands and replays scripted results."""

    def __init__(self, work_dir):
        super().__init__(work_dir)
        self.calls = []
        self.inputs = []
        self._responses = []

    def respond(self, *prefix, returncode=0, stdout='', stderr=''):
        """Script the result of every command starting with prefix.

        Later scripts take precedence over earlier ones.
        """
        self._responses.insert(0, (list(prefix), returncode, stdout, stderr))

    def called(self, *prefix):
        return [call for call in self.calls if call[: len(prefix)] == list(prefix)]

    async def _execute(self, cmd, input):
        self.calls.append(cmd)
        self.inputs.append(input)
        for prefix, returncode, stdout, stderr in self._responses:
            if cmd[: len(prefix)] == prefix:
                return CommandResult(
                    cmd=cmd, returncode=returncode, stdout=stdout, stderr=stderr
                )
        return CommandResult(cmd=cmd, returncode=0)


@pytest.fixture
def repo_dir(tmp_path):
    """A directory that looks like a repository root."""
    (tmp_path / '.git').mkdir()
    return tmp_path


@pytest.fixture
def fake_runner(repo_dir):
    """FakeRunner describing a clean repository on main with an origin remote."""
    runner = FakeRunner(repo_dir)
    runner.respond('git', 'lfs', 'version', stdout='git-lfs/3.4.0\n')
    runner.respond('git', 'remote', stdout='origin\n')
    runner.respond('git', 'rev-parse', '--abbrev-ref', 'HEAD', stdout='main\n')
    runner.respond('git', 'rev-parse', 'HEAD', stdout=HEAD_SHA + '\n')
    runner.respond(
        'git',
        'for-each-ref',
        stdout='backup-before-lfs-20260101-000000\ndevelop\nmain\n',
    )
    return runner


def _has_git_lfs():
    if not shutil.which('git'):
        return False
    result = subprocess.run(['git', 'lfs', 'version'], capture_output=True)
    return result.returncode == 0


requires_git_lfs = pytest.mark.skipif(
    not _has_git_lfs(), reason='git and git-lfs are required'
)
