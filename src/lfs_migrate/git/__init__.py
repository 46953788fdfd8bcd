"""Git operations module for LFS migration."""

from .runner import GitRunner, CommandResult
from .operations import GitOperations
from .lfs import LFSHandler
from .objects import ObjectScanner

__all__ = ['GitRunner', 'CommandResult', 'GitOperations', 'LFSHandler', 'ObjectScanner']
