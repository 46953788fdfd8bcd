"""Data models for git objects and attribute rules."""

from .objects import GitObject, TrackingRule, LFS_ATTRIBUTES

__all__ = ['GitObject', 'TrackingRule', 'LFS_ATTRIBUTES']
