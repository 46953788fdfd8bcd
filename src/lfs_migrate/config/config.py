"""Configuration management for the LFS migration tool."""

from typing import Optional, Dict, Any, List
from pathlib import Path
import os

from pydantic import BaseModel, Field, validator
import yaml
from dotenv import load_dotenv

DEFAULT_PATTERNS = ['*.png', '*.PNG']


def parse_patterns(value) -> List[str]:
    """Normalize a comma-separated string or list of glob patterns.

    Entries are stripped, empty entries dropped and duplicates removed while
    keeping the first occurrence.
    """
    if isinstance(value, str):
        value = value.split(',')

    patterns = []
    for item in value:
        item = str(item).strip()
        if item and item not in patterns:
            patterns.append(item)
    return patterns


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class MigrationConfig(BaseModel):
    """Migration-specific configuration."""

    patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PATTERNS),
        description='Glob patterns to move into LFS',
    )
    size_threshold_mb: int = Field(
        default=100, description='Blobs larger than this must not survive migration'
    )
    remote: str = Field(
        default='origin', description='Remote to synchronize and publish to'
    )
    backup_prefix: str = Field(
        default='backup-before-lfs',
        description='Prefix of the timestamped safety branch',
    )
    push: bool = Field(default=True, description='Force-push rewritten history')
    strict_sync: bool = Field(
        default=False, description='Abort when fetch and rebase fails'
    )
    dry_run: bool = Field(default=False, description='Perform dry run without changes')
    commit_message: str = Field(
        default='Track {patterns} with Git LFS',
        description='Message of the .gitattributes commit',
    )

    @validator('patterns', pre=True)
    def validate_patterns(cls, v):
        """Accept comma-separated strings and reject empty pattern sets."""
        patterns = parse_patterns(v)
        if not patterns:
            raise ValueError('At least one pattern is required')
        for pattern in patterns:
            if any(ch.isspace() for ch in pattern):
                raise ValueError(f'Pattern must not contain whitespace: {pattern!r}')
        return patterns

    @validator('size_threshold_mb')
    def validate_threshold(cls, v):
        """Validate threshold is positive."""
        if v <= 0:
            raise ValueError('Size threshold must be positive')
        return v

    @validator('remote', 'backup_prefix')
    def validate_ref_name(cls, v):
        """Remote and branch prefix are plain ref name components."""
        v = v.strip()
        if not v or any(ch.isspace() for ch in v) or v.startswith('-'):
            raise ValueError(f'Invalid name: {v!r}')
        return v


class GitConfig(BaseModel):
    """Git operations configuration."""

    timeout: Optional[int] = Field(
        default=None, description='Per-command timeout in seconds (default: none)'
    )
    user_name: Optional[str] = Field(
        default=None, description='Committer name override for the attributes commit'
    )
    user_email: Optional[str] = Field(
        default=None, description='Committer email override for the attributes commit'
    )

    @validator('timeout')
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v is not None and v <= 0:
            raise ValueError('Git timeout must be positive')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Log format')

    @validator('level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for the LFS migration tool."""

    migration: MigrationConfig = Field(
        default_factory=MigrationConfig, description='Migration settings'
    )
    git: GitConfig = Field(
        default_factory=GitConfig, description='Git operations settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError(f'Configuration file must contain a mapping: {config_path}')

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        threshold = os.getenv('LFS_MIGRATE_THRESHOLD_MB')
        timeout = os.getenv('GIT_TIMEOUT')

        config_data = {
            'migration': {
                'patterns': os.getenv('LFS_MIGRATE_PATTERNS'),
                'remote': os.getenv('LFS_MIGRATE_REMOTE'),
                'backup_prefix': os.getenv('LFS_MIGRATE_BACKUP_PREFIX'),
                'size_threshold_mb': int(threshold) if threshold else None,
                'push': _env_bool('LFS_MIGRATE_PUSH'),
                'strict_sync': _env_bool('LFS_MIGRATE_STRICT_SYNC'),
            },
            'git': {
                'timeout': int(timeout) if timeout else None,
                'user_name': os.getenv('GIT_USER_NAME'),
                'user_email': os.getenv('GIT_USER_EMAIL'),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                self.dict(), f, default_flow_style=False, indent=2, sort_keys=False
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'migration': {
                'patterns': list(DEFAULT_PATTERNS),
                'size_threshold_mb': 100,
                'remote': 'origin',
                'backup_prefix': 'backup-before-lfs',
                'push': True,
                'strict_sync': False,
                'commit_message': 'Track {patterns} with Git LFS',
            },
            'git': {
                'timeout': None,
                'user_name': None,
                'user_email': None,
            },
            'logging': {
                'level': 'INFO',
                'file': None,
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )
