"""Repository-level git operations used by the migration pipeline."""

from typing import Dict, Iterable, List, Optional

from loguru import logger

from .runner import GitRunner
from .exceptions import (
    MissingToolError,
    DirtyWorkingTreeError,
    MissingRemoteError,
    AttributesCommitError,
    BackupBranchError,
    SyncError,
    ForcePushError,
)


class GitOperations:
    """Wraps the git commands the pipeline needs, each with a scoped check."""

    def __init__(self, runner: GitRunner, config=None):
        """Initialize git operations.

        Args:
            runner: Command runner bound to the repository
            config: Git configuration (identity overrides)
        """
        self.runner = runner
        self.config = config
        self.logger = logger.bind(component='GitOperations')

    @property
    def repo_path(self):
        return self.runner.work_dir

    def is_repository_root(self) -> bool:
        """Check that the working directory holds a .git entry.

        A .git file counts too, which covers linked worktrees and submodules.
        """
        return (self.repo_path / '.git').exists()

    async def check_tools(self) -> None:
        """Ensure git and git-lfs are installed.

        Raises:
            MissingToolError: If either tool is unavailable
        """
        await self.runner.check(
            ['git', '--version'],
            error=MissingToolError,
            message='git is not installed or not on PATH',
            hint='Install git and retry.',
        )
        result = await self.runner.check(
            ['git', 'lfs', 'version'],
            error=MissingToolError,
            message='git-lfs is not installed or not on PATH',
            hint='Install Git LFS (https://git-lfs.com) and retry.',
        )
        self.logger.debug(f'Using {result.stdout.strip()}')

    async def status_lines(self) -> List[str]:
        result = await self.runner.check(
            ['git', 'status', '--porcelain', '--untracked-files=all'],
            message='Unable to read working tree status',
        )
        return result.lines

    async def ensure_clean(self, ignore: Optional[Iterable[str]] = None) -> None:
        """Refuse to continue with uncommitted or untracked changes.

        Args:
            ignore: Untracked paths, relative to the repository root, that
                do not count (the tool's own config and log files)

        Raises:
            DirtyWorkingTreeError: If git status reports anything else
        """
        ignored = set(ignore or [])
        changes = [
            line
            for line in await self.status_lines()
            if not (line.startswith('?? ') and line[3:] in ignored)
        ]
        if changes:
            preview = ', '.join(line.strip() for line in changes[:5])
            if len(changes) > 5:
                preview += f' and {len(changes) - 5} more'
            raise DirtyWorkingTreeError(
                f'Working tree has uncommitted changes: {preview}',
                hint='Commit or stash your changes before migrating.',
            )

    async def list_remotes(self) -> List[str]:
        result = await self.runner.check(
            ['git', 'remote'], message='Unable to list remotes'
        )
        return [line.strip() for line in result.lines]

    async def ensure_remote(self, name: str) -> None:
        """Raise unless the named remote is configured.

        Raises:
            MissingRemoteError: If the remote does not exist
        """
        remotes = await self.list_remotes()
        if name in remotes:
            return

        if remotes:
            message = (
                f"Remote '{name}' not found (available: {', '.join(remotes)})"
            )
            hint = 'Pass --remote with one of the available remotes.'
        else:
            message = 'Repository has no remote configured'
            hint = f'Add one with: git remote add {name} <url>'
        raise MissingRemoteError(message, hint=hint)

    async def current_branch(self) -> Optional[str]:
        """Return the checked-out branch name, or None on a detached HEAD."""
        result = await self.runner.check(
            ['git', 'rev-parse', '--abbrev-ref', 'HEAD'],
            message='Unable to determine current branch',
        )
        branch = result.stdout.strip()
        return None if branch == 'HEAD' else branch

    async def head_commit(self) -> str:
        result = await self.runner.check(
            ['git', 'rev-parse', 'HEAD'],
            message='Unable to resolve HEAD',
            hint='The repository needs at least one commit.',
        )
        return result.stdout.strip()

    async def commit_paths(self, paths: List[str], message: str) -> str:
        """Stage the given paths and commit them.

        Args:
            paths: Paths relative to the repository root
            message: Commit message

        Returns:
            New commit SHA

        Raises:
            AttributesCommitError: If staging or committing fails
        """
        await self.runner.check(
            ['git', 'add', '--'] + paths,
            error=AttributesCommitError,
            message=f'Failed to stage {", ".join(paths)}',
        )
        await self.runner.check(
            ['git'] + self._identity_args() + ['commit', '-m', message, '--'] + paths,
            error=AttributesCommitError,
            message='Failed to commit tracking rules',
            hint='Check your git identity (user.name / user.email) and hooks.',
        )
        sha = await self.head_commit()
        self.logger.info(f'Committed {", ".join(paths)} as {sha[:10]}')
        return sha

    async def create_branch(self, name: str, start_point: str) -> None:
        """Create a branch without checking it out.

        Raises:
            BackupBranchError: If the branch cannot be created
        """
        await self.runner.check(
            ['git', 'branch', name, start_point],
            error=BackupBranchError,
            message=f'Failed to create backup branch {name}',
            hint='Make sure a branch with that name does not already exist.',
        )
        self.logger.info(f'Created backup branch {name} at {start_point[:10]}')

    async def sync_with_remote(self, remote: str, branch: Optional[str]) -> bool:
        """Fetch and rebase onto the remote branch.

        A failed pull is reported, not raised; the caller decides whether it
        matters. A rebase the failure left half-done is aborted so HEAD is
        back on the branch.

        Returns:
            True if the pull succeeded

        Raises:
            SyncError: If the interrupted rebase cannot be aborted
        """
        cmd = ['git', 'pull', '--rebase', remote]
        if branch:
            cmd.append(branch)

        result = await self.runner.run(cmd)
        if result.success:
            self.logger.info(f'Synchronized with {remote}')
            return True

        self.logger.warning(
            f'Fetch and rebase from {remote} failed: {result.stderr.strip()}'
        )
        if self.rebase_in_progress():
            await self.runner.check(
                ['git', 'rebase', '--abort'],
                error=SyncError,
                message='Failed to abort the interrupted rebase',
                hint='Run git rebase --abort manually before migrating again.',
            )
            self.logger.info('Aborted the interrupted rebase')
        return False

    def rebase_in_progress(self) -> bool:
        git_dir = self.repo_path / '.git'
        return (git_dir / 'rebase-merge').exists() or (
            git_dir / 'rebase-apply'
        ).exists()

    async def list_branches(self) -> List[str]:
        result = await self.runner.check(
            ['git', 'for-each-ref', '--format=%(refname:short)', 'refs/heads'],
            message='Unable to list branches',
        )
        return [line.strip() for line in result.lines]

    async def branch_commits(self, pattern: str) -> Dict[str, str]:
        """Map branches matching a glob to the commits they point at."""
        result = await self.runner.check(
            [
                'git',
                'for-each-ref',
                '--format=%(refname:short) %(objectname)',
                f'refs/heads/{pattern}',
            ],
            message=f'Unable to list branches matching {pattern}',
        )
        commits = {}
        for line in result.lines:
            parts = line.split()
            if len(parts) == 2:
                commits[parts[0]] = parts[1]
        return commits

    async def restore_branch(self, name: str, sha: str) -> None:
        """Point a branch back at the given commit."""
        await self.runner.check(
            ['git', 'update-ref', f'refs/heads/{name}', sha],
            error=BackupBranchError,
            message=f'Failed to restore backup branch {name}',
        )

    async def force_push(
        self,
        remote: str,
        branches: List[str],
        backup_branch: Optional[str] = None,
    ) -> None:
        """Force-push the given branches and then every tag.

        Raises:
            ForcePushError: If the remote rejects either push
        """
        hint = self._push_fallback_hint(remote, backup_branch)

        self.logger.info(f'Force-pushing {len(branches)} branches to {remote}')
        await self.runner.check(
            ['git', 'push', '--force', remote]
            + [f'refs/heads/{b}:refs/heads/{b}' for b in branches],
            error=ForcePushError,
            message=f'Force-push of branches to {remote} was rejected',
            hint=hint,
        )

        self.logger.info(f'Force-pushing all tags to {remote}')
        await self.runner.check(
            ['git', 'push', '--force', '--tags', remote],
            error=ForcePushError,
            message=f'Force-push of tags to {remote} was rejected',
            hint=hint,
        )

    def _push_fallback_hint(self, remote: str, backup_branch: Optional[str]) -> str:
        hint = (
            'This is commonly caused by branch protection. Either allow force-pushes '
            'temporarily, or publish the rewritten history without overwriting '
            f'anything: git push {remote} HEAD:refs/heads/lfs-migrated'
        )
        if backup_branch:
            hint += f'. The pre-migration state is kept in {backup_branch}.'
        return hint

    def _identity_args(self) -> List[str]:
        args = []
        if self.config is not None:
            if getattr(self.config, 'user_name', None):
                args += ['-c', f'user.name={self.config.user_name}']
            if getattr(self.config, 'user_email', None):
                args += ['-c', f'user.email={self.config.user_email}']
        return args

