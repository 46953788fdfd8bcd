"""Migration exceptions."""

from typing import List, Optional


class LFSMigrationError(Exception):
    """Base exception for migration failures."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        """Initialize migration error.

        Args:
            message: Error message
            command: Command that failed, if any
            returncode: Exit status of the failed command
            stderr: Error output of the failed command
            hint: Suggested next step for the operator
        """
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.hint = hint


class NotARepositoryError(LFSMigrationError):
    """Target directory is not a repository root."""

    pass


class MissingToolError(LFSMigrationError):
    """git or git-lfs is not installed."""

    pass


class DirtyWorkingTreeError(LFSMigrationError):
    """Working tree has uncommitted changes."""

    pass


class MissingRemoteError(LFSMigrationError):
    """Configured remote does not exist."""

    pass


class LFSInstallError(LFSMigrationError):
    """git lfs install failed."""

    pass


class AttributesCommitError(LFSMigrationError):
    """Committing the updated .gitattributes failed."""

    pass


class BackupBranchError(LFSMigrationError):
    """Safety branch could not be created."""

    pass


class SyncError(LFSMigrationError):
    """Fetch and rebase failed while strict sync is enabled."""

    pass


class HistoryRewriteError(LFSMigrationError):
    """git lfs migrate import failed."""

    pass


class OversizedObjectsError(LFSMigrationError):
    """Blobs above the size threshold survived the migration."""

    def __init__(self, message: str, objects=None, **kwargs):
        """Initialize oversized objects error.

        Args:
            message: Error message
            objects: Offending GitObject instances
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.objects = list(objects or [])


class ForcePushError(LFSMigrationError):
    """Remote rejected the rewritten history."""

    pass
