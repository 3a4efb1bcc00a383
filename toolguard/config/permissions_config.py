"""PermissionConfig model."""

from pydantic import BaseModel, Field

from ..permissions.models import PermissionLevel, PermissionRule
from .defaults import (
    DEFAULT_BLOCKED_DIRS,
    DEFAULT_DANGEROUS_COMMANDS,
    DEFAULT_MAX_PATH_DEPTH,
    DEFAULT_SENSITIVE_PATTERNS,
)


class PermissionConfig(BaseModel):
    """Process-wide permission policy."""

    default_level: PermissionLevel = Field(
        default=PermissionLevel.READ,
        description="Permission level required when no rule matches",
    )
    rules: list[PermissionRule] = Field(
        default_factory=list,
        description="Ordered rules; the first structural match wins",
    )
    allowed_dirs: list[str] = Field(
        default_factory=list,
        description="Directories paths must live in (empty means anywhere not blocked)",
    )
    blocked_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_DIRS),
        description="Directories that are always denied, overriding allowed_dirs",
    )
    sensitive_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_PATTERNS),
        description="Extra regexes marking file names as sensitive",
    )
    dangerous_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DANGEROUS_COMMANDS),
        description="Extra regexes marking commands as dangerous",
    )
    allow_symlinks: bool = Field(
        default=False,
        description="Skip the symlink escape check",
    )
    max_path_depth: int = Field(
        default=DEFAULT_MAX_PATH_DEPTH,
        ge=1,
        description="Maximum number of path segments",
    )
    strict_mode: bool = Field(
        default=False,
        description="Deny elevated-risk actions instead of asking for confirmation",
    )
