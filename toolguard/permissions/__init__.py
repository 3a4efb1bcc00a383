"""
Permission and path-safety decision engine.

Gates tool actions (file access, shell execution) with allow/deny/confirm
decisions backed by path validation, sensitive file detection and dangerous
command analysis.
"""

from .models import (
    CommandAnalysisResult,
    DangerCategory,
    DangerousPattern,
    PathValidationResult,
    PermissionLevel,
    PermissionRequest,
    PermissionResult,
    PermissionRule,
    RiskLevel,
    SensitiveFileResult,
    SensitiveFileType,
    UserContext,
    max_risk,
)
from .cache import ResultCache
from .dangerous import CommandDangerAnalyzer, PatternDefinition, extract_paths_from_command
from .locking import ReadWriteLock
from .manager import PermissionManager, TargetKind, classify_target, path_from_target
from .paths import PathValidator
from .patterns import compile_patterns, match_pattern
from .sensitive import SensitiveFileDetector, SensitivePattern
from .tools import (
    TOOL_PERMISSIONS,
    ToolCategory,
    ToolPermissionDef,
    get_all_permission_rules,
    get_code_execution_tools,
    get_file_modifying_tools,
    get_high_risk_tools,
    get_tool_permission,
    get_tool_permission_level,
    get_tool_permission_summary,
    get_tool_risk_level,
    get_tools_by_category,
    get_tools_by_permission_level,
    matches_dangerous_pattern,
    to_permission_rule,
    tool_requires_confirmation,
)

__all__ = [
    # Levels and categories
    "RiskLevel",
    "PermissionLevel",
    "DangerCategory",
    "SensitiveFileType",
    "TargetKind",
    "ToolCategory",
    # Models
    "PermissionRule",
    "UserContext",
    "PermissionRequest",
    "PermissionResult",
    "PathValidationResult",
    "SensitiveFileResult",
    "DangerousPattern",
    "CommandAnalysisResult",
    "ToolPermissionDef",
    "PatternDefinition",
    "SensitivePattern",
    # Classes
    "PermissionManager",
    "PathValidator",
    "SensitiveFileDetector",
    "CommandDangerAnalyzer",
    "ResultCache",
    "ReadWriteLock",
    # Functions
    "max_risk",
    "match_pattern",
    "compile_patterns",
    "classify_target",
    "path_from_target",
    "extract_paths_from_command",
    # Tool catalog
    "TOOL_PERMISSIONS",
    "get_tool_permission",
    "get_tool_permission_level",
    "tool_requires_confirmation",
    "get_tool_risk_level",
    "get_tools_by_category",
    "get_tools_by_permission_level",
    "to_permission_rule",
    "get_all_permission_rules",
    "matches_dangerous_pattern",
    "get_high_risk_tools",
    "get_file_modifying_tools",
    "get_code_execution_tools",
    "get_tool_permission_summary",
]
