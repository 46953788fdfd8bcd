"""Configuration for the LFS migration tool."""

from .config import Config, MigrationConfig, GitConfig, LoggingConfig, parse_patterns

__all__ = ['Config', 'MigrationConfig', 'GitConfig', 'LoggingConfig', 'parse_patterns']
