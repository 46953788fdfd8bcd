"""Migration engine - runs the LFS migration pipeline step by step."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field

from ..config.config import Config
from ..git.runner import GitRunner
from ..git.operations import GitOperations
from ..git.lfs import LFSHandler, GITATTRIBUTES
from ..git.objects import ObjectScanner
from ..git.exceptions import (
    LFSMigrationError,
    NotARepositoryError,
    SyncError,
    OversizedObjectsError,
)
from ..models.objects import GitObject

BACKUP_TIMESTAMP_FORMAT = '%Y%m%d-%H%M%S'


class MigrationStep(str, Enum):
    """Pipeline steps, in execution order."""

    VALIDATE_CONTEXT = 'validate_context'
    VALIDATE_STATE = 'validate_state'
    INSTALL_LFS = 'install_lfs'
    TRACK_PATTERNS = 'track_patterns'
    BACKUP = 'backup'
    SYNC = 'sync'
    REWRITE = 'rewrite'
    VERIFY = 'verify'
    PUBLISH = 'publish'

    @property
    def description(self) -> str:
        return STEP_DESCRIPTIONS[self]


STEP_DESCRIPTIONS = {
    MigrationStep.VALIDATE_CONTEXT: 'Checking repository and tools',
    MigrationStep.VALIDATE_STATE: 'Checking working tree and remote',
    MigrationStep.INSTALL_LFS: 'Initializing Git LFS',
    MigrationStep.TRACK_PATTERNS: 'Updating tracking rules',
    MigrationStep.BACKUP: 'Creating backup branch',
    MigrationStep.SYNC: 'Synchronizing with remote',
    MigrationStep.REWRITE: 'Rewriting history',
    MigrationStep.VERIFY: 'Verifying object sizes',
    MigrationStep.PUBLISH: 'Force-pushing branches and tags',
}

ProgressCallback = Callable[[MigrationStep], None]


class MigrationSummary(BaseModel):
    """Summary of a migration run."""

    repository: str = Field(..., description='Repository path')
    patterns: List[str] = Field(..., description='Patterns migrated to LFS')
    dry_run: bool = Field(default=False, description='Nothing was changed')

    rules_added: List[str] = Field(
        default_factory=list, description='Patterns appended to .gitattributes'
    )
    attributes_commit: Optional[str] = Field(
        default=None, description='Commit recording the new tracking rules'
    )
    backup_branch: Optional[str] = Field(default=None, description='Safety branch')
    backup_commit: Optional[str] = Field(
        default=None, description='Commit the safety branch points at'
    )
    synced: Optional[bool] = Field(
        default=None, description='Whether fetch and rebase succeeded'
    )
    rewritten: bool = Field(default=False, description='History was rewritten')
    oversized_objects: List[GitObject] = Field(
        default_factory=list, description='Blobs above the size threshold'
    )
    lfs_files: int = Field(default=0, description='Files stored in LFS after migration')
    published: bool = Field(default=False, description='Rewritten refs were pushed')
    steps: List[MigrationStep] = Field(
        default_factory=list, description='Steps started, in order'
    )

    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = Field(default=None)


class MigrationEngine:
    """Coordinates the migration of one repository into Git LFS."""

    def __init__(
        self,
        config: Config,
        repo_path: Union[str, Path] = '.',
        runner: Optional[GitRunner] = None,
        on_step: Optional[ProgressCallback] = None,
        ignore_paths: Optional[Iterable[Union[str, Path]]] = None,
    ):
        """Initialize migration engine.

        Args:
            config: Migration configuration
            repo_path: Repository root to migrate
            runner: Command runner (defaults to a GitRunner on repo_path)
            on_step: Called with each step right before it runs
            ignore_paths: Untracked files the clean-tree check skips, such as
                the loaded config file and the log file
        """
        self.config = config
        self.repo_path = Path(repo_path)
        self.runner = runner or GitRunner(self.repo_path, timeout=config.git.timeout)
        self.on_step = on_step
        self.ignore_paths = self._relative_paths(ignore_paths or [])
        self.logger = logger.bind(component='MigrationEngine')

        self.git = GitOperations(self.runner, config.git)
        self.lfs = LFSHandler(self.runner)
        self.scanner = ObjectScanner(self.runner, config.migration.size_threshold_mb)

    @property
    def patterns(self) -> List[str]:
        return self.config.migration.patterns

    @property
    def remote(self) -> str:
        return self.config.migration.remote

    def backup_branch_name(self, now: Optional[datetime] = None) -> str:
        """Timestamped name of the safety branch."""
        stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        return f'{self.config.migration.backup_prefix}-{stamp}'

    async def migrate(self) -> MigrationSummary:
        """Run the full pipeline, or a dry run if configured.

        Returns:
            Migration summary

        Raises:
            LFSMigrationError: On the first failing step
        """
        if self.config.migration.dry_run:
            return await self.dry_run()

        summary = MigrationSummary(
            repository=str(self.repo_path), patterns=self.patterns
        )
        self.logger.info(
            f'Starting LFS migration of {", ".join(self.patterns)} in {self.repo_path}'
        )

        try:
            await self._run_preflight(summary)

            self._step(summary, MigrationStep.INSTALL_LFS)
            await self.lfs.install()

            self._step(summary, MigrationStep.TRACK_PATTERNS)
            await self._track_patterns(summary)

            self._step(summary, MigrationStep.BACKUP)
            summary.backup_commit = await self.git.head_commit()
            summary.backup_branch = self.backup_branch_name()
            await self.git.create_branch(summary.backup_branch, summary.backup_commit)

            self._step(summary, MigrationStep.SYNC)
            await self._sync(summary)

            self._step(summary, MigrationStep.REWRITE)
            backups = await self.git.branch_commits(self._backup_globs()[0])
            backups[summary.backup_branch] = summary.backup_commit
            await self.lfs.migrate_import(self.patterns)
            # --everything rewrites every local branch, backups of earlier runs included
            for name, sha in backups.items():
                await self.git.restore_branch(name, sha)
            summary.rewritten = True

            self._step(summary, MigrationStep.VERIFY)
            await self._verify(summary)

            if self.config.migration.push:
                self._step(summary, MigrationStep.PUBLISH)
                branches = await self._publishable_branches()
                await self.git.force_push(self.remote, branches, summary.backup_branch)
                summary.published = True
            else:
                self.logger.info('Publishing skipped; rewritten history is local only')

        except LFSMigrationError as e:
            self.logger.error(f'Migration failed: {e}')
            if summary.backup_branch and e.hint is None:
                e.hint = f'The pre-migration state is kept in {summary.backup_branch}.'
            raise

        summary.completed_at = datetime.now()
        self.logger.info('Migration completed successfully')
        return summary

    async def dry_run(self) -> MigrationSummary:
        """Run the pre-flight checks and report what a migration would change."""
        summary = MigrationSummary(
            repository=str(self.repo_path), patterns=self.patterns, dry_run=True
        )
        self.logger.info('Starting LFS migration dry run')

        await self._run_preflight(summary)

        summary.rules_added = self.lfs.missing_patterns(self.patterns)
        summary.backup_branch = self.backup_branch_name()
        summary.backup_commit = await self.git.head_commit()
        summary.oversized_objects = await self.scanner.find_oversized(
            self._backup_globs()
        )

        summary.completed_at = datetime.now()
        self.logger.info('Dry run completed successfully')
        return summary

    async def check(self) -> MigrationSummary:
        """Run the pre-flight checks only."""
        summary = MigrationSummary(
            repository=str(self.repo_path), patterns=self.patterns, dry_run=True
        )
        await self._run_preflight(summary)
        summary.completed_at = datetime.now()
        return summary

    async def scan(self) -> List[GitObject]:
        """List blobs above the threshold on branches and tags (backups excluded)."""
        self._validate_repository()
        return await self.scanner.find_oversized(self._backup_globs())

    async def _run_preflight(self, summary: MigrationSummary) -> None:
        self._step(summary, MigrationStep.VALIDATE_CONTEXT)
        self._validate_repository()
        await self.git.check_tools()

        self._step(summary, MigrationStep.VALIDATE_STATE)
        await self.git.ensure_clean(self.ignore_paths)
        await self.git.ensure_remote(self.remote)

    def _validate_repository(self) -> None:
        if not self.git.is_repository_root():
            raise NotARepositoryError(
                f'{self.repo_path.resolve()} is not the root of a git repository',
                hint='Run from the top-level directory of the repository or pass --repo.',
            )

    async def _track_patterns(self, summary: MigrationSummary) -> None:
        added = self.lfs.ensure_tracking(self.patterns)
        summary.rules_added = [rule.pattern for rule in added]
        if not added:
            return

        message = self.config.migration.commit_message.replace(
            '{patterns}', ', '.join(summary.rules_added)
        )
        summary.attributes_commit = await self.git.commit_paths(
            [GITATTRIBUTES], message
        )

    async def _sync(self, summary: MigrationSummary) -> None:
        branch = await self.git.current_branch()
        summary.synced = await self.git.sync_with_remote(self.remote, branch)
        if summary.synced:
            return

        if self.config.migration.strict_sync:
            raise SyncError(
                f'Fetch and rebase from {self.remote} failed',
                hint='Resolve the divergence manually, or rerun without --strict-sync.',
            )
        self.logger.warning('Continuing without synchronizing with the remote')

    async def _verify(self, summary: MigrationSummary) -> None:
        oversized = await self.scanner.find_oversized(self._backup_globs())
        summary.oversized_objects = oversized
        if oversized:
            listing = ', '.join(
                f'{o.path or o.sha} ({o.size_mb:.1f} MB)' for o in oversized[:5]
            )
            if len(oversized) > 5:
                listing += f' and {len(oversized) - 5} more'
            raise OversizedObjectsError(
                f'{len(oversized)} objects above '
                f'{self.config.migration.size_threshold_mb} MB remain after migration: '
                f'{listing}',
                objects=oversized,
                hint='Add patterns covering these files and run the migration again. '
                f'The pre-migration state is kept in {summary.backup_branch}.',
            )

        summary.lfs_files = await self.lfs.count_lfs_files()

    async def _publishable_branches(self) -> List[str]:
        prefix = f'{self.config.migration.backup_prefix}-'
        return [b for b in await self.git.list_branches() if not b.startswith(prefix)]

    def _relative_paths(self, paths: Iterable[Union[str, Path]]) -> List[str]:
        root = self.repo_path.resolve()
        relative = []
        for path in paths:
            try:
                relative.append(Path(path).resolve().relative_to(root).as_posix())
            except ValueError:
                continue
        return relative

    def _backup_globs(self) -> List[str]:
        return [f'{self.config.migration.backup_prefix}-*']

    def _step(self, summary: MigrationSummary, step: MigrationStep) -> None:
        summary.steps.append(step)
        self.logger.info(step.description)
        if self.on_step:
            self.on_step(step)
