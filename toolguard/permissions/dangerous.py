"""
Dangerous command detection.

Commands are scanned as raw strings: every pattern runs over the whole text,
so substitutions, pipelines and chained commands are covered without trusting
a partial shell parse.
"""

import logging
import re
import shlex
from dataclasses import dataclass
from typing import Iterable

from .models import CommandAnalysisResult, DangerCategory, DangerousPattern, RiskLevel, max_risk
from .patterns import compile_patterns

logger = logging.getLogger(__name__)

_C = DangerCategory
_R = RiskLevel


@dataclass(frozen=True)
class PatternDefinition:
    """A dangerous command pattern and how to report it."""

    pattern: re.Pattern
    category: DangerCategory
    description: str
    severity: RiskLevel
    safer_alternative: str | None = None


def _d(
    regex: str,
    category: DangerCategory,
    description: str,
    severity: RiskLevel,
    safer_alternative: str | None = None,
) -> PatternDefinition:
    return PatternDefinition(re.compile(regex, re.IGNORECASE), category, description, severity, safer_alternative)


BUILTIN_PATTERNS: list[PatternDefinition] = [
    # File destruction
    _d(r"\brm\s+(-[a-z]*r[a-z]*f|--recursive\s+--force|-[a-z]*f[a-z]*r)\b", _C.FILE_DESTRUCTION,
       "Recursive force delete can destroy entire directory trees", _R.CRITICAL,
       "Use rm -ri for interactive deletion or move to trash"),
    _d(r"\brm\s+-rf\s+[/~]", _C.FILE_DESTRUCTION,
       "Force delete from root or home directory", _R.CRITICAL,
       "Specify exact paths and use -i flag for confirmation"),
    _d(r"\brm\s+-rf\s+\$\{?[a-z_][a-z0-9_]*\}?/?\s*$", _C.FILE_DESTRUCTION,
       "rm -rf with unquoted variable (could expand to dangerous path)", _R.CRITICAL,
       'Always quote variables: rm -rf "${VAR:?}"'),
    _d(r">\s*/dev/sd[a-z]", _C.FILE_DESTRUCTION, "Direct write to block device can destroy disk", _R.CRITICAL),
    _d(r"\bdd\s+.*\bof=/dev/sd[a-z]", _C.FILE_DESTRUCTION, "dd to block device can overwrite disk", _R.CRITICAL),
    _d(r"\bmkfs\b", _C.FILE_DESTRUCTION, "Filesystem creation destroys all data on device", _R.CRITICAL),
    _d(r"\bformat\s+[a-z]:", _C.FILE_DESTRUCTION, "Drive formatting destroys all data", _R.CRITICAL),
    # Permission escalation
    _d(r"\bsudo\s", _C.PERMISSION_ESCALATION, "Elevated privileges can bypass security controls", _R.HIGH,
       "Run without sudo if possible"),
    _d(r"\bsu\s+-(\s|$)", _C.PERMISSION_ESCALATION, "Switching to root user", _R.HIGH),
    _d(r"\bchmod\s+(-R\s+)?777\b", _C.PERMISSION_ESCALATION, "World-writable permissions are insecure", _R.HIGH,
       "Use chmod 755 or more restrictive permissions"),
    _d(r"\bchmod\s+[0-7]*7[0-7]*7\b", _C.PERMISSION_ESCALATION, "World-readable/writable permissions", _R.MEDIUM,
       "Restrict permissions to owner and group only"),
    _d(r"\bchown\s+.*:?root\b", _C.PERMISSION_ESCALATION, "Changing ownership to root", _R.MEDIUM),
    _d(r"\bsetuid\b|\bsetgid\b|\bchmod\s+[ug]\+s", _C.PERMISSION_ESCALATION,
       "Setting setuid/setgid bits enables privilege escalation", _R.CRITICAL),
    # Credential exposure
    _d(r"\b(password|passwd|pwd|secret|token|api[_-]?key|auth)\s*[=:]", _C.CREDENTIAL_EXPOSURE,
       "Potential credential in command line", _R.HIGH,
       "Use environment variables or secure credential storage"),
    _d(r"\becho\s+.*\b(password|secret|token|key)\b", _C.CREDENTIAL_EXPOSURE,
       "Echoing credentials may expose them in logs", _R.MEDIUM),
    _d(r"\bcat\s+.*\.(env|pem|key|credentials)\b", _C.CREDENTIAL_EXPOSURE,
       "Reading sensitive credential files", _R.MEDIUM),
    _d(r"^\s*(printenv|env)\s*$|\|\s*(printenv|env)\b|\bset\s*$", _C.CREDENTIAL_EXPOSURE,
       "Printing environment may expose secrets", _R.LOW),
    # Remote code execution
    _d(r"\bcurl\s+.*\|\s*(sudo\s+)?(ba|z)?sh\b", _C.CODE_INJECTION,
       "Piping curl to shell executes remote code", _R.CRITICAL,
       "Download first, inspect, then execute"),
    _d(r"\bwget\s+.*\|\s*(sudo\s+)?(ba|z)?sh\b", _C.CODE_INJECTION,
       "Piping wget to shell executes remote code", _R.CRITICAL,
       "Download first, inspect, then execute"),
    _d(r"\beval\s+\"?\$\(", _C.CODE_INJECTION, "eval with command substitution is dangerous", _R.HIGH,
       "Avoid eval; use direct execution or safer alternatives"),
    _d(r"\beval\s", _C.CODE_INJECTION, "eval can execute arbitrary code", _R.MEDIUM),
    # Network
    _d(r"\bnc\s+(-[a-z]*l|-[a-z]*e)", _C.NETWORK_ATTACK, "Netcat listener or command execution", _R.HIGH),
    _d(r"\btelnet\s", _C.NETWORK_ATTACK, "Telnet is unencrypted", _R.LOW),
    _d(r"\bssh\s+.*-o\s*StrictHostKeyChecking\s*=\s*no", _C.NETWORK_ATTACK,
       "Disabling SSH host key verification", _R.MEDIUM),
    # Data exfiltration
    _d(r"\bcurl\s+.*(-d|--data|--data-raw|--data-binary)\s+.*@", _C.DATA_EXFILTRATION,
       "Uploading file contents via curl", _R.MEDIUM),
    _d(r"\bscp\s+.*\s+[^:\s]+@[^:\s]+:", _C.DATA_EXFILTRATION, "Copying files to remote server", _R.LOW),
    _d(r"\brsync\s+.*\s+[^:\s]+@[^:\s]+:", _C.DATA_EXFILTRATION, "Syncing files to remote server", _R.LOW),
    # System modification
    _d(r"\bsystemctl\s+(stop|disable|mask)\b", _C.SYSTEM_MODIFICATION,
       "Stopping or disabling system services", _R.HIGH),
    _d(r"\bservice\s+\w+\s+stop\b", _C.SYSTEM_MODIFICATION, "Stopping system service", _R.HIGH),
    _d(r"\biptables\s+(-F|-X|--flush)", _C.SYSTEM_MODIFICATION, "Flushing firewall rules", _R.CRITICAL),
    _d(r"\bufw\s+(disable|reset)\b", _C.SYSTEM_MODIFICATION, "Disabling or resetting firewall", _R.CRITICAL),
    _d(r"\bsetenforce\s+0\b", _C.SYSTEM_MODIFICATION, "Disabling SELinux", _R.HIGH),
    _d(r">\s*/etc/", _C.SYSTEM_MODIFICATION, "Writing to system configuration directory", _R.HIGH),
    # Process manipulation
    _d(r"\bkill\s+-9\b|\bkillall\b|\bpkill\b", _C.PROCESS_MANIPULATION, "Force killing processes", _R.MEDIUM),
    _d(r":\(\)\s*\{\s*:\|:\s*&\s*\}\s*;\s*:", _C.PROCESS_MANIPULATION,
       "Fork bomb - will crash the system", _R.CRITICAL),
    _d(r"\bwhile\s+true\s*;\s*do\b", _C.PROCESS_MANIPULATION, "Infinite loop detected", _R.LOW),
    _d(r"\bnohup\s+.*&\s*$", _C.PROCESS_MANIPULATION, "Background process that survives logout", _R.LOW),
    # Database
    _d(r"\bDROP\s+(DATABASE|TABLE|SCHEMA)\b", _C.FILE_DESTRUCTION, "Dropping database objects", _R.CRITICAL,
       "Use DROP ... IF EXISTS and ensure backups"),
    _d(r"\bTRUNCATE\s+TABLE\b", _C.FILE_DESTRUCTION, "Truncating table removes all data", _R.HIGH),
    _d(r"\bDELETE\s+FROM\s+\w+\s*(;|$)", _C.FILE_DESTRUCTION,
       "DELETE without WHERE clause removes all rows", _R.CRITICAL,
       "Always use a WHERE clause with DELETE"),
    _d(r"\bUPDATE\s+\w+\s+SET\b(?!.*\bWHERE\b)", _C.FILE_DESTRUCTION,
       "UPDATE without WHERE clause affects all rows", _R.HIGH,
       "Always use a WHERE clause with UPDATE"),
    # Git
    _d(r"\bgit\s+push\b.*(--force(?!-with-lease)\b|\s-f\b)", _C.FILE_DESTRUCTION,
       "Force pushing can overwrite remote history", _R.HIGH,
       "Use --force-with-lease for safer force push"),
    _d(r"\bgit\s+reset\s+--hard\b", _C.FILE_DESTRUCTION,
       "Hard reset discards all uncommitted changes", _R.MEDIUM,
       "Stash changes first or use --soft"),
    _d(r"\bgit\s+clean\s+-[a-z]*f[a-z]*d", _C.FILE_DESTRUCTION,
       "git clean removes untracked files and directories", _R.MEDIUM,
       "Use git clean -n first to preview"),
]

# Fallback suggestions when the matching pattern has none of its own
CATEGORY_ALTERNATIVES: dict[DangerCategory, str] = {
    _C.FILE_DESTRUCTION: "Move files to a trash directory instead of deleting them",
    _C.PERMISSION_ESCALATION: "Run with the least privilege the task needs",
    _C.CREDENTIAL_EXPOSURE: "Read secrets from environment variables or a secret manager",
    _C.NETWORK_ATTACK: "Use encrypted, authenticated connections",
    _C.CODE_INJECTION: "Download scripts first, inspect them, then execute",
    _C.DATA_EXFILTRATION: "Review what leaves the machine before transferring it",
    _C.SYSTEM_MODIFICATION: "Try system changes in an isolated environment first",
    _C.PROCESS_MANIPULATION: "Stop processes gracefully with SIGTERM before forcing",
}

# Keyword hints used to categorize patterns that come from configuration
_CONFIGURED_CATEGORY_HINTS: list[tuple[re.Pattern, DangerCategory]] = [
    (re.compile(r"fork|:\\\(", re.IGNORECASE), _C.PROCESS_MANIPULATION),
    (re.compile(r"\b(rm|dd|mkfs|format|shred)\b|/dev/sd", re.IGNORECASE), _C.FILE_DESTRUCTION),
    (re.compile(r"\b(sudo|chmod|chown|su)\b", re.IGNORECASE), _C.PERMISSION_ESCALATION),
    (re.compile(r"\b(curl|wget|eval|exec)\b", re.IGNORECASE), _C.CODE_INJECTION),
]

CONFIGURED_PATTERN_SEVERITY = RiskLevel.HIGH


def _infer_category(regex: str) -> DangerCategory:
    # Blank out escapes like \b and \s so keywords stand on word boundaries
    text = re.sub(r"\\[a-zA-Z]", " ", regex)
    for hint, category in _CONFIGURED_CATEGORY_HINTS:
        if hint.search(text):
            return category
    return _C.SYSTEM_MODIFICATION


def configured_definitions(regexes: Iterable[str]) -> list[PatternDefinition]:
    """
    Turn configured regex strings into pattern definitions.

    Raises:
        InvalidPatternError: If a regex does not compile
    """
    regexes = list(regexes)
    compiled = compile_patterns(regexes, "dangerous command")
    return [
        PatternDefinition(
            pattern=pattern,
            category=_infer_category(regex),
            description=f"Command matches configured dangerous pattern '{regex}'",
            severity=CONFIGURED_PATTERN_SEVERITY,
        )
        for regex, pattern in zip(regexes, compiled)
    ]


def extract_paths_from_command(command: str) -> list[str]:
    """
    Extract arguments that look like file paths from a command string.

    Args:
        command: The command string to parse

    Returns:
        Path-like arguments in order of appearance
    """
    try:
        parts = shlex.split(command)
    except ValueError:
        # Unbalanced quotes; fall back to whitespace splitting
        parts = command.split()

    paths = []
    for part in parts[1:]:  # Skip the command itself
        if part.startswith("-") or "://" in part:
            continue
        if "/" in part or part.startswith(".") or part.startswith("~"):
            paths.append(part)
        elif "." in part or part.startswith("id_"):
            paths.append(part)
    return paths


class CommandDangerAnalyzer:
    """
    Scores shell commands against tables of dangerous patterns.

    A command is refused when any match is critical, or, in strict mode, when
    any match is high or above.
    """

    def __init__(
        self,
        extra_patterns: Iterable[str] = (),
        custom_patterns: Iterable[PatternDefinition] = (),
        strict_mode: bool = False,
    ):
        """
        Initialize the analyzer.

        Args:
            extra_patterns: Configured regex strings (e.g. PermissionConfig.dangerous_commands)
            custom_patterns: Fully specified definitions appended after the built-in table
            strict_mode: Refuse high-severity matches as well as critical ones
        """
        self._patterns: list[PatternDefinition] = list(BUILTIN_PATTERNS)
        self._custom: list[PatternDefinition] = [*configured_definitions(extra_patterns), *custom_patterns]
        self.strict_mode = strict_mode

    @classmethod
    def from_config(cls, config) -> "CommandDangerAnalyzer":
        """Build an analyzer from a PermissionConfig."""
        return cls(extra_patterns=config.dangerous_commands, strict_mode=config.strict_mode)

    def _all_patterns(self) -> list[PatternDefinition]:
        return [*self._patterns, *self._custom]

    def analyze(self, command: str) -> CommandAnalysisResult:
        """
        Analyze a command for dangerous patterns.

        Args:
            command: Raw command string

        Returns:
            CommandAnalysisResult with every match, the overall risk and suggestions
        """
        detected: list[DangerousPattern] = []
        alternatives: list[str] = []

        for definition in self._all_patterns():
            match = definition.pattern.search(command)
            if not match:
                continue
            logger.debug("Matched %s at position %d", definition.pattern.pattern, match.start())
            detected.append(
                DangerousPattern(
                    pattern=match.group(0),
                    category=definition.category,
                    description=definition.description,
                    severity=definition.severity,
                    position=match.start(),
                )
            )
            alternative = definition.safer_alternative or CATEGORY_ALTERNATIVES.get(definition.category)
            if alternative and alternative not in alternatives:
                alternatives.append(alternative)

        risk = max_risk(*(p.severity for p in detected))
        threshold = RiskLevel.HIGH if self.strict_mode else RiskLevel.CRITICAL
        allowed = not any(p.severity >= threshold for p in detected)

        if detected:
            reason = f"Detected {len(detected)} dangerous pattern(s): " + "; ".join(
                p.description for p in detected
            )
        else:
            reason = "No dangerous patterns detected"

        return CommandAnalysisResult(
            allowed=allowed,
            is_dangerous=bool(detected),
            risk_level=risk,
            detected_patterns=detected,
            reason=reason,
            safer_alternatives=alternatives,
        )

    def is_dangerous(self, command: str) -> bool:
        """Check if a command contains any dangerous pattern."""
        return self.analyze(command).is_dangerous

    def get_risk_level(self, command: str) -> RiskLevel:
        """Get the overall risk level of a command."""
        return self.analyze(command).risk_level

    def add_pattern(self, definition: PatternDefinition) -> None:
        """Append a custom pattern definition."""
        self._custom.append(definition)
        logger.debug("Added custom dangerous pattern: %s", definition.pattern.pattern)

    def has_category(self, command: str, category: DangerCategory) -> bool:
        """Check whether any match in a command belongs to a category."""
        return any(p.category == category for p in self.analyze(command).detected_patterns)

    def get_categories(self, command: str) -> list[DangerCategory]:
        """Get the distinct categories matched by a command, in match order."""
        categories: list[DangerCategory] = []
        for p in self.analyze(command).detected_patterns:
            if p.category not in categories:
                categories.append(p.category)
        return categories

    def validate(self, command: str) -> tuple[bool, CommandAnalysisResult]:
        """
        Validate a command.

        Returns:
            Tuple of (valid, analysis)
        """
        analysis = self.analyze(command)
        return analysis.allowed, analysis

    def get_pattern_stats(self) -> dict[DangerCategory, int]:
        """Count pattern definitions per category."""
        stats: dict[DangerCategory, int] = {}
        for definition in self._all_patterns():
            stats[definition.category] = stats.get(definition.category, 0) + 1
        return stats
