"""LFS Migration Tool

Moves large binary files of an existing git repository into Git LFS,
rewrites every branch and tag with git lfs migrate, verifies that nothing
oversized is left and force-publishes the result.
"""

__version__ = '0.1.0'

from .cli.main import main

__all__ = ['main']
