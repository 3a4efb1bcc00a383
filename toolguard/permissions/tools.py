"""
Default permission mappings for known agent tools.

Hosts can turn the catalog into PermissionRules (see get_all_permission_rules)
or consult it directly when deciding how to treat a tool.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .models import PermissionLevel, PermissionRule, RiskLevel


class ToolCategory(str, Enum):
    """Categories of tool operations."""

    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    FILE_DELETE = "file_delete"
    FILE_CREATE = "file_create"
    COMMAND_EXECUTE = "command_execute"
    NETWORK_ACCESS = "network_access"
    PROCESS_CONTROL = "process_control"
    SYSTEM_INFO = "system_info"
    USER_INTERACTION = "user_interaction"
    CODE_EXECUTION = "code_execution"
    GIT_OPERATION = "git_operation"
    BROWSER_AUTOMATION = "browser_automation"
    API_ACCESS = "api_access"


class ToolPermissionDef(BaseModel):
    """Default permission settings for one tool."""

    level: PermissionLevel
    risk_level: RiskLevel
    requires_confirmation: bool = False
    description: str
    categories: list[ToolCategory] = Field(default_factory=list)
    dangerous_patterns: list[str] = Field(default_factory=list)  # regex strings


_L = PermissionLevel
_R = RiskLevel
_C = ToolCategory

TOOL_PERMISSIONS: dict[str, ToolPermissionDef] = {
    # File reading
    "Read": ToolPermissionDef(
        level=_L.READ,
        risk_level=_R.LOW,
        description="Read file contents",
        categories=[_C.FILE_READ],
        dangerous_patterns=[r"\.env$", r"\.pem$", r"\.key$", r"id_rsa", r"credentials", r"secrets"],
    ),
    "Glob": ToolPermissionDef(
        level=_L.READ,
        risk_level=_R.LOW,
        description="Search for files by pattern",
        categories=[_C.FILE_READ, _C.SYSTEM_INFO],
    ),
    "Grep": ToolPermissionDef(
        level=_L.READ,
        risk_level=_R.LOW,
        description="Search file contents",
        categories=[_C.FILE_READ],
    ),
    # File writing
    "Write": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.MEDIUM,
        description="Write or create files",
        categories=[_C.FILE_WRITE, _C.FILE_CREATE],
        dangerous_patterns=[
            r"^/etc/",
            r"^/var/",
            r"^/usr/",
            r"^/bin/",
            r"^/sbin/",
            r"\.env$",
            r"\.bashrc$",
            r"\.zshrc$",
            r"\.profile$",
        ],
    ),
    "Edit": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.MEDIUM,
        description="Edit existing files",
        categories=[_C.FILE_WRITE],
        dangerous_patterns=[r"^/etc/", r"^/var/", r"^/usr/", r"\.env$"],
    ),
    "NotebookEdit": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.MEDIUM,
        description="Edit Jupyter notebook cells",
        categories=[_C.FILE_WRITE, _C.CODE_EXECUTION],
    ),
    # Command execution
    "Bash": ToolPermissionDef(
        level=_L.EXECUTE,
        risk_level=_R.HIGH,
        requires_confirmation=True,
        description="Execute shell commands",
        categories=[_C.COMMAND_EXECUTE, _C.PROCESS_CONTROL],
        dangerous_patterns=[
            r"rm\s+-rf",
            r"\bsudo\b",
            r"chmod\s+777",
            r"curl.*\|.*sh",
            r"wget.*\|.*sh",
            r"dd\s+if=",
            r"\bmkfs\b",
            r">\s*/dev/sd",
        ],
    ),
    # Network
    "WebFetch": ToolPermissionDef(
        level=_L.READ,
        risk_level=_R.LOW,
        description="Fetch content from URLs",
        categories=[_C.NETWORK_ACCESS, _C.FILE_READ],
    ),
    "WebSearch": ToolPermissionDef(
        level=_L.READ,
        risk_level=_R.LOW,
        description="Search the web",
        categories=[_C.NETWORK_ACCESS],
    ),
    "browser_task": ToolPermissionDef(
        level=_L.EXECUTE,
        risk_level=_R.MEDIUM,
        requires_confirmation=True,
        description="Automate browser actions",
        categories=[_C.BROWSER_AUTOMATION, _C.NETWORK_ACCESS],
    ),
    # Agent bookkeeping
    "Task": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.LOW,
        description="Create and manage tasks",
        categories=[_C.USER_INTERACTION],
    ),
    "Skill": ToolPermissionDef(
        level=_L.EXECUTE,
        risk_level=_R.MEDIUM,
        description="Execute predefined skills",
        categories=[_C.CODE_EXECUTION],
    ),
    # Version control
    "git": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.MEDIUM,
        description="Git version control operations",
        categories=[_C.GIT_OPERATION, _C.FILE_WRITE],
        dangerous_patterns=[r"push.*--force", r"reset.*--hard", r"clean.*-f", r"branch.*-D"],
    ),
    "mcp__github__create_pull_request": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.LOW,
        description="Create GitHub pull requests",
        categories=[_C.API_ACCESS, _C.GIT_OPERATION],
    ),
    "mcp__github__merge_pull_request": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.MEDIUM,
        requires_confirmation=True,
        description="Merge GitHub pull requests",
        categories=[_C.API_ACCESS, _C.GIT_OPERATION],
    ),
    "mcp__github__delete_file": ToolPermissionDef(
        level=_L.WRITE,
        risk_level=_R.HIGH,
        requires_confirmation=True,
        description="Delete files on GitHub",
        categories=[_C.API_ACCESS, _C.FILE_DELETE],
    ),
    # Browser devtools
    "mcp__chrome-devtools__evaluate_script": ToolPermissionDef(
        level=_L.EXECUTE,
        risk_level=_R.HIGH,
        requires_confirmation=True,
        description="Execute JavaScript in browser",
        categories=[_C.CODE_EXECUTION, _C.BROWSER_AUTOMATION],
    ),
    "mcp__chrome-devtools__navigate_page": ToolPermissionDef(
        level=_L.EXECUTE,
        risk_level=_R.LOW,
        description="Navigate browser to URL",
        categories=[_C.BROWSER_AUTOMATION, _C.NETWORK_ACCESS],
    ),
}


def get_tool_permission(tool_name: str) -> ToolPermissionDef | None:
    """Get the permission definition for a tool, if known."""
    return TOOL_PERMISSIONS.get(tool_name)


def get_tool_permission_level(tool_name: str) -> PermissionLevel:
    """Get the required level for a tool. Unknown tools need EXECUTE."""
    definition = TOOL_PERMISSIONS.get(tool_name)
    return definition.level if definition else PermissionLevel.EXECUTE


def tool_requires_confirmation(tool_name: str) -> bool:
    """Check if a tool asks for confirmation. Unknown tools always do."""
    definition = TOOL_PERMISSIONS.get(tool_name)
    return definition.requires_confirmation if definition else True


def get_tool_risk_level(tool_name: str) -> RiskLevel:
    """Get the default risk of a tool. Unknown tools are HIGH."""
    definition = TOOL_PERMISSIONS.get(tool_name)
    return definition.risk_level if definition else RiskLevel.HIGH


def get_tools_by_category(category: ToolCategory) -> list[str]:
    return [name for name, d in TOOL_PERMISSIONS.items() if category in d.categories]


def get_tools_by_permission_level(level: PermissionLevel) -> list[str]:
    return [name for name, d in TOOL_PERMISSIONS.items() if d.level == level]


def to_permission_rule(tool_name: str) -> PermissionRule | None:
    """
    Convert a catalog entry into a PermissionRule.

    The tool's default risk becomes the rule's max_risk_level and its
    dangerous patterns become blocked_patterns.

    Args:
        tool_name: Catalog key

    Returns:
        The rule, or None for unknown tools
    """
    definition = TOOL_PERMISSIONS.get(tool_name)
    if definition is None:
        return None
    return PermissionRule(
        tool=tool_name,
        level=definition.level,
        require_confirmation=definition.requires_confirmation,
        blocked_patterns=list(definition.dangerous_patterns),
        description=definition.description,
        max_risk_level=definition.risk_level,
    )


def get_all_permission_rules() -> list[PermissionRule]:
    """Convert the whole catalog into rules, in catalog order."""
    return [to_permission_rule(name) for name in TOOL_PERMISSIONS]


def matches_dangerous_pattern(tool_name: str, target: str) -> bool:
    """Check a target against the tool's dangerous patterns (case-insensitive)."""
    definition = TOOL_PERMISSIONS.get(tool_name)
    if definition is None:
        return False
    return any(re.search(pattern, target, re.IGNORECASE) for pattern in definition.dangerous_patterns)


def get_high_risk_tools() -> list[str]:
    return [name for name, d in TOOL_PERMISSIONS.items() if d.risk_level >= RiskLevel.HIGH]


def get_file_modifying_tools() -> list[str]:
    """Tools that write, delete or create files (each listed once)."""
    categories = (ToolCategory.FILE_WRITE, ToolCategory.FILE_DELETE, ToolCategory.FILE_CREATE)
    return [name for name, d in TOOL_PERMISSIONS.items() if any(c in d.categories for c in categories)]


def get_code_execution_tools() -> list[str]:
    """Tools that run commands or code (each listed once)."""
    categories = (ToolCategory.COMMAND_EXECUTE, ToolCategory.CODE_EXECUTION)
    return [name for name, d in TOOL_PERMISSIONS.items() if any(c in d.categories for c in categories)]


def get_tool_permission_summary() -> list[dict[str, Any]]:
    """Summarize the catalog, one row per tool."""
    return [
        {
            "tool": name,
            "level": d.level,
            "risk": d.risk_level,
            "confirmation": d.requires_confirmation,
            "description": d.description,
        }
        for name, d in TOOL_PERMISSIONS.items()
    ]
