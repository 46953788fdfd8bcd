"""Git object and attribute rule models."""

from typing import List, Optional
from pydantic import BaseModel, Field, validator

LFS_ATTRIBUTES = ['filter=lfs', 'diff=lfs', 'merge=lfs', '-text']

BYTES_PER_MB = 1024 * 1024


class GitObject(BaseModel):
    """Object reported by git cat-file --batch-check."""

    type: str = Field(..., description='Object type (blob, tree, commit, tag)')
    sha: str = Field(..., description='Object name')
    size: int = Field(..., description='Object size in bytes')
    path: Optional[str] = Field(default=None, description='Path the object was seen at')

    @property
    def size_mb(self) -> float:
        return self.size / BYTES_PER_MB

    @classmethod
    def from_batch_check(cls, line: str) -> Optional['GitObject']:
        """Parse a '%(objecttype) %(objectname) %(objectsize) %(rest)' line.

        Returns None for lines that do not describe an object, such as
        'missing' entries.
        """
        parts = line.rstrip('\n').split(' ', 3)
        if len(parts) < 3 or not parts[2].isdigit():
            return None

        path = parts[3] if len(parts) == 4 and parts[3] else None
        return cls(type=parts[0], sha=parts[1], size=int(parts[2]), path=path)


class TrackingRule(BaseModel):
    """A .gitattributes line routing a pattern through Git LFS."""

    pattern: str = Field(..., description='Glob pattern')
    attributes: List[str] = Field(
        default_factory=lambda: list(LFS_ATTRIBUTES), description='Attribute tokens'
    )

    @validator('pattern')
    def validate_pattern(cls, v):
        """Patterns are single whitespace-free tokens."""
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError(f'Invalid pattern: {v!r}')
        return v

    @property
    def is_lfs(self) -> bool:
        return 'filter=lfs' in self.attributes

    def render(self) -> str:
        return ' '.join([self.pattern] + self.attributes)

    @classmethod
    def parse(cls, line: str) -> Optional['TrackingRule']:
        """Parse a .gitattributes line; blank lines and comments yield None."""
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            return None

        tokens = stripped.split()
        return cls(pattern=tokens[0], attributes=tokens[1:])
