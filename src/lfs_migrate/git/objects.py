"""Scanning repository history for oversized blobs."""

from typing import List, Optional

from loguru import logger

from .runner import GitRunner
from ..models.objects import GitObject, BYTES_PER_MB

BATCH_CHECK_FORMAT = '%(objecttype) %(objectname) %(objectsize) %(rest)'


class ObjectScanner:
    """Finds blobs above a size threshold reachable from branches and tags."""

    def __init__(self, runner: GitRunner, threshold_mb: int = 100):
        """Initialize object scanner.

        Args:
            runner: Command runner bound to the repository
            threshold_mb: Blobs strictly larger than this are reported
        """
        self.runner = runner
        self.threshold_bytes = threshold_mb * BYTES_PER_MB
        self.logger = logger.bind(component='ObjectScanner')

    async def find_oversized(
        self, exclude_branches: Optional[List[str]] = None
    ) -> List[GitObject]:
        """List blobs above the threshold, largest first.

        Args:
            exclude_branches: Branch globs left out of the walk (backup branches)

        Returns:
            Oversized blobs
        """
        cmd = ['git', 'rev-list', '--objects']
        for pattern in exclude_branches or []:
            cmd.append(f'--exclude={pattern}')
        cmd += ['--branches', '--tags']

        listing = await self.runner.check(cmd, message='Unable to list objects')
        if not listing.stdout.strip():
            return []

        batch = await self.runner.check(
            ['git', 'cat-file', f'--batch-check={BATCH_CHECK_FORMAT}'],
            message='Unable to read object sizes',
            input=listing.stdout,
        )

        oversized = []
        for line in batch.lines:
            obj = GitObject.from_batch_check(line)
            if obj and obj.type == 'blob' and obj.size > self.threshold_bytes:
                oversized.append(obj)

        oversized.sort(key=lambda o: o.size, reverse=True)
        self.logger.info(
            f'Found {len(oversized)} blobs above '
            f'{self.threshold_bytes // BYTES_PER_MB} MB'
        )
        return oversized
