"""Git LFS (Large File Storage) operations."""

from typing import List

from loguru import logger

from .runner import GitRunner
from .exceptions import LFSInstallError, HistoryRewriteError
from ..models.objects import TrackingRule

GITATTRIBUTES = '.gitattributes'


class LFSHandler:
    """Handles Git LFS setup, tracking rules and the history rewrite."""

    def __init__(self, runner: GitRunner):
        """Initialize LFS handler.

        Args:
            runner: Command runner bound to the repository
        """
        self.runner = runner
        self.logger = logger.bind(component='LFSHandler')

    @property
    def attributes_path(self):
        return self.runner.work_dir / GITATTRIBUTES

    async def install(self) -> None:
        """Install the LFS hooks and filters into this repository.

        Raises:
            LFSInstallError: If git lfs install fails
        """
        await self.runner.check(
            ['git', 'lfs', 'install', '--local'],
            error=LFSInstallError,
            message='Failed to initialize Git LFS',
        )
        self.logger.info('Git LFS initialized')

    def read_rules(self) -> List[TrackingRule]:
        """Parse every rule in .gitattributes.

        Returns:
            Rules in file order (empty if the file does not exist)
        """
        if not self.attributes_path.exists():
            return []

        rules = []
        with open(self.attributes_path, 'r', encoding='utf-8') as f:
            for line in f:
                rule = TrackingRule.parse(line)
                if rule is not None:
                    rules.append(rule)
        return rules

    def tracked_patterns(self) -> List[str]:
        return [rule.pattern for rule in self.read_rules() if rule.is_lfs]

    def missing_patterns(self, patterns: List[str]) -> List[str]:
        """Patterns without an LFS rule, in the given order and de-duplicated."""
        tracked = set(self.tracked_patterns())
        missing = []
        for pattern in patterns:
            if pattern not in tracked and pattern not in missing:
                missing.append(pattern)
        return missing

    def ensure_tracking(self, patterns: List[str]) -> List[TrackingRule]:
        """Append one LFS rule per pattern that is not tracked yet.

        Args:
            patterns: Glob patterns to route through LFS

        Returns:
            Rules that were appended (empty when nothing changed)
        """
        rules = [TrackingRule(pattern=p) for p in self.missing_patterns(patterns)]
        if not rules:
            self.logger.info('All patterns are already tracked by LFS')
            return []

        prefix = ''
        if self.attributes_path.exists():
            content = self.attributes_path.read_text(encoding='utf-8')
            if content and not content.endswith('\n'):
                prefix = '\n'

        with open(self.attributes_path, 'a', encoding='utf-8') as f:
            f.write(prefix + ''.join(rule.render() + '\n' for rule in rules))

        self.logger.info(
            f'Added LFS tracking rules: {", ".join(r.pattern for r in rules)}'
        )
        return rules

    async def migrate_import(self, patterns: List[str]) -> None:
        """Rewrite all local history so matching files become LFS pointers.

        Raises:
            HistoryRewriteError: If git lfs migrate import fails
        """
        include = ','.join(patterns)
        self.logger.info(f'Rewriting history for {include}')

        await self.runner.check(
            ['git', 'lfs', 'migrate', 'import', '--everything', f'--include={include}'],
            error=HistoryRewriteError,
            message='History rewrite failed',
            hint='The repository was left as git lfs migrate left it; '
            'restore from the backup branch if needed.',
        )
        self.logger.info('History rewrite completed')

    async def count_lfs_files(self) -> int:
        """Count files stored in LFS across all refs.

        Informational only; a failure yields 0.
        """
        result = await self.runner.run(
            ['git', 'lfs', 'ls-files', '--all', '--name-only']
        )
        if not result.success:
            self.logger.warning(f'Failed to list LFS files: {result.stderr.strip()}')
            return 0
        return len(result.lines)
