"""Migration engine and pipeline steps."""

from .engine import MigrationEngine, MigrationStep, MigrationSummary

__all__ = ['MigrationEngine', 'MigrationStep', 'MigrationSummary']
