"""
toolguard: permission decisions for agent tool calls.

The PermissionManager is the entry point: hand it a PermissionConfig and an
event handler, then call check() with a PermissionRequest per tool action.
"""

from .permissions import (
    CommandAnalysisResult,
    CommandDangerAnalyzer,
    DangerCategory,
    PathValidationResult,
    PathValidator,
    PermissionLevel,
    PermissionManager,
    PermissionRequest,
    PermissionResult,
    PermissionRule,
    RiskLevel,
    SensitiveFileDetector,
    SensitiveFileResult,
    SensitiveFileType,
    UserContext,
)
from .config import PermissionConfig, load_permission_config
from .events import EventHandler, EventType, NullEventHandler, PermissionEvent
from .exceptions import ConfigError, InvalidPatternError, ToolGuardError
from .logging_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    # Entry point
    "PermissionManager",
    "PermissionConfig",
    "load_permission_config",
    # Components
    "PathValidator",
    "SensitiveFileDetector",
    "CommandDangerAnalyzer",
    # Models
    "RiskLevel",
    "PermissionLevel",
    "DangerCategory",
    "SensitiveFileType",
    "PermissionRule",
    "UserContext",
    "PermissionRequest",
    "PermissionResult",
    "PathValidationResult",
    "SensitiveFileResult",
    "CommandAnalysisResult",
    # Events
    "EventType",
    "PermissionEvent",
    "EventHandler",
    "NullEventHandler",
    # Errors
    "ToolGuardError",
    "ConfigError",
    "InvalidPatternError",
    # Logging
    "setup_logging",
]
