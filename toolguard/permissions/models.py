"""Permission system models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class _OrderedLevel(str, Enum):
    """String enum whose members compare by declaration order, not alphabetically."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank >= other.rank


class RiskLevel(_OrderedLevel):
    """Severity of a finding or decision, in ascending order."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PermissionLevel(_OrderedLevel):
    """Privilege a tool needs, in ascending order."""

    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"
    ADMIN = "admin"


class DangerCategory(str, Enum):
    """Categories of dangerous operations."""

    FILE_DESTRUCTION = "file_destruction"
    PERMISSION_ESCALATION = "permission_escalation"
    CREDENTIAL_EXPOSURE = "credential_exposure"
    NETWORK_ATTACK = "network_attack"
    CODE_INJECTION = "code_injection"
    DATA_EXFILTRATION = "data_exfiltration"
    SYSTEM_MODIFICATION = "system_modification"
    PROCESS_MANIPULATION = "process_manipulation"


class SensitiveFileType(str, Enum):
    """Types of sensitive files."""

    ENVIRONMENT_FILE = "environment_file"
    CREDENTIALS_FILE = "credentials_file"
    PRIVATE_KEY = "private_key"
    CERTIFICATE = "certificate"
    PASSWORD_FILE = "password_file"
    TOKEN_FILE = "token_file"
    CONFIG_WITH_SECRETS = "config_with_secrets"
    DATABASE_FILE = "database_file"
    BACKUP_FILE = "backup_file"
    LOG_FILE = "log_file"


def max_risk(*levels: RiskLevel | None) -> RiskLevel:
    """Return the highest of the given risk levels (LOW when none are given)."""
    present = [level for level in levels if level is not None]
    return max(present, key=lambda level: level.rank, default=RiskLevel.LOW)


class PermissionRule(BaseModel):
    """Binds a tool (and optional target glob) to a required level and limits."""

    tool: str
    level: PermissionLevel = PermissionLevel.READ
    pattern: str | None = None  # glob over the request target
    require_confirmation: bool = False
    blocked_patterns: list[str] = Field(default_factory=list)  # regex strings
    description: str | None = None
    max_risk_level: RiskLevel | None = None


class UserContext(BaseModel):
    """Who is asking, as far as the decision is concerned."""

    user_id: str | None = None
    session_id: str | None = None
    user_level: PermissionLevel | None = None
    elevated: bool = False
    trusted_paths: list[str] = Field(default_factory=list)


class PermissionRequest(BaseModel):
    """A request to perform an action requiring permission."""

    tool: str
    action: str
    target: str | None = None  # path, command or URL
    details: dict[str, Any] = Field(default_factory=dict)
    user_context: UserContext | None = None


class PermissionResult(BaseModel):
    """Outcome of a permission check."""

    allowed: bool
    requires_confirmation: bool = False
    risk_level: RiskLevel = RiskLevel.LOW
    matched_rule: PermissionRule | None = None
    reason: str | None = None
    suggestions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _denial_is_terminal(self) -> "PermissionResult":
        # A denied action can never be confirmed into an allowed one
        if not self.allowed:
            self.requires_confirmation = False
        return self


class SensitiveFileResult(BaseModel):
    """Classification of a path by sensitive-content heuristics."""

    is_sensitive: bool
    sensitive_type: SensitiveFileType | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str | None = None
    recommendation: str | None = None


class PathValidationResult(BaseModel):
    """Result of validating one filesystem path."""

    valid: bool
    normalized_path: str | None = None
    reason: str | None = None
    is_sensitive: bool = False
    is_blocked: bool = False
    risk: RiskLevel = RiskLevel.LOW
    sensitive: SensitiveFileResult | None = None
    exists: bool | None = None  # None when not probed


class DangerousPattern(BaseModel):
    """A dangerous pattern detected in a command."""

    pattern: str  # the matched text
    category: DangerCategory
    description: str
    severity: RiskLevel
    position: int | None = None


class CommandAnalysisResult(BaseModel):
    """Result of scanning a command for dangerous patterns."""

    allowed: bool
    is_dangerous: bool
    risk_level: RiskLevel = RiskLevel.LOW
    detected_patterns: list[DangerousPattern] = Field(default_factory=list)
    reason: str | None = None
    safer_alternatives: list[str] = Field(default_factory=list)
