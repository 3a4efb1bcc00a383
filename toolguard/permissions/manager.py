"""
Permission manager.

Top-level decision authority: matches requests against rules, runs targets
through the path validator or the command analyzer, applies the default and
strict policies, caches decisions and reports every decision to the event
handler.
"""

import logging
import re
from enum import Enum
from typing import Hashable
from urllib.parse import urlsplit

from ..config.defaults import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS
from ..config.permissions_config import PermissionConfig
from ..events import EventHandler, EventType, NullEventHandler, PermissionEvent, event_type_for
from ..logging_config import log_timing
from .cache import ResultCache
from .dangerous import CommandDangerAnalyzer, extract_paths_from_command
from .locking import ReadWriteLock
from .models import (
    CommandAnalysisResult,
    PathValidationResult,
    PermissionLevel,
    PermissionRequest,
    PermissionResult,
    PermissionRule,
    RiskLevel,
    max_risk,
)
from .paths import PathValidator
from .patterns import compile_patterns, match_pattern
from .sensitive import SensitiveFileDetector
from .tools import ToolCategory, get_tool_permission

logger = logging.getLogger(__name__)


class TargetKind(str, Enum):
    """How a request target is analyzed."""

    PATH = "path"
    COMMAND = "command"
    URL = "url"
    NONE = "none"


# Tool name words and actions that mark the target as a shell command
COMMAND_TOOL_WORDS = {"bash", "sh", "zsh", "shell", "exec", "command", "terminal", "cli"}
COMMAND_ACTIONS = {"execute", "exec", "run", "command"}

# Tool name words and catalog categories that mark a tool as fetching URLs
NETWORK_TOOL_WORDS = {"web", "http", "https", "url", "fetch", "download", "browser"}
NETWORK_CATEGORIES = {ToolCategory.NETWORK_ACCESS, ToolCategory.BROWSER_AUTOMATION}

URL_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
FILE_URL_PATTERN = re.compile(r"^file:", re.IGNORECASE)


def _tool_words(tool: str) -> set[str]:
    return set(re.split(r"[^a-z0-9]+", tool.lower()))


def _is_command_tool(request: PermissionRequest) -> bool:
    if _tool_words(request.tool) & COMMAND_TOOL_WORDS or request.action.lower() in COMMAND_ACTIONS:
        return True
    definition = get_tool_permission(request.tool)
    return definition is not None and ToolCategory.COMMAND_EXECUTE in definition.categories


def _is_network_tool(tool: str) -> bool:
    if _tool_words(tool) & NETWORK_TOOL_WORDS:
        return True
    definition = get_tool_permission(tool)
    return definition is not None and bool(NETWORK_CATEGORIES & set(definition.categories))


def path_from_target(target: str) -> str:
    """Filesystem path named by a target; ``file:`` URLs yield their path part."""
    if FILE_URL_PATTERN.match(target):
        # Percent-escapes are kept so encoded traversal is still detected
        return urlsplit(target).path
    return target


def classify_target(request: PermissionRequest) -> TargetKind:
    """
    Decide whether a request's target is a path, a command or a URL.

    An explicit ``details["target_kind"]`` wins. Tools or actions that name
    a shell are commands whatever the target looks like, since the shell
    runs the whole string. A URL only skips analysis for network tools and
    never when it is a ``file:`` URL. Everything else is treated as a path.
    """
    if not request.target:
        return TargetKind.NONE

    explicit = request.details.get("target_kind")
    if explicit:
        return TargetKind(explicit)

    if _is_command_tool(request):
        return TargetKind.COMMAND

    if (
        URL_PATTERN.match(request.target)
        and not FILE_URL_PATTERN.match(request.target)
        and _is_network_tool(request.tool)
    ):
        return TargetKind.URL

    return TargetKind.PATH


class PermissionManager:
    """
    Decides whether tool actions are allowed, denied or need confirmation.

    Safe to call from multiple threads. Rule and directory changes take the
    exclusive side of a reader/writer lock and clear the decision cache.
    """

    def __init__(
        self,
        config: PermissionConfig | None = None,
        on_event: EventHandler | None = None,
        *,
        base_dir: str | None = None,
        enable_cache: bool = True,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        cache_max_size: int = DEFAULT_CACHE_MAX_SIZE,
    ):
        """
        Initialize the permission manager.

        Args:
            config: Permission policy (default: PermissionConfig())
            on_event: Handler receiving a PermissionEvent for every decision
            base_dir: Base directory for relative paths (default: working directory)
            enable_cache: Cache decisions by (tool, action, target, user)
            cache_ttl: Seconds a cached decision stays valid
            cache_max_size: Maximum number of cached decisions

        Raises:
            ConfigError: If a configured regex is invalid
        """
        # Private copy so later changes go through this manager only
        self._config = (config or PermissionConfig()).model_copy(deep=True)
        self._on_event = on_event or NullEventHandler()
        self._lock = ReadWriteLock()
        self._rule_patterns = [self._compile_rule(rule) for rule in self._config.rules]

        self.sensitive_detector = SensitiveFileDetector(extra_patterns=self._config.sensitive_patterns)
        self.path_validator = PathValidator.from_config(
            self._config, base_dir=base_dir, sensitive_detector=self.sensitive_detector
        )
        self.command_analyzer = CommandDangerAnalyzer.from_config(self._config)
        self._cache = ResultCache(max_size=cache_max_size, ttl=cache_ttl) if enable_cache else None

        logger.info(
            "Permission manager ready: %d rules, strict_mode=%s, cache=%s",
            len(self._config.rules),
            self._config.strict_mode,
            enable_cache,
        )

    @staticmethod
    def _compile_rule(rule: PermissionRule) -> list[re.Pattern]:
        return compile_patterns(rule.blocked_patterns, f"blocked pattern for rule '{rule.tool}'")

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def check(self, request: PermissionRequest) -> PermissionResult:
        """
        Decide on a request.

        Never raises: internal errors become a high-risk denial.

        Args:
            request: The action to decide on

        Returns:
            PermissionResult; a denial never requires confirmation
        """
        key = self._cache_key(request)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s %s", request.tool, request.action)
                result = cached.model_copy(deep=True)
                self._emit(EventType.CHECK, request, result, cached=True)
                return result

        try:
            with self._lock.read_locked():
                with log_timing(logger, f"Permission check for {request.tool}"):
                    result = self._evaluate(request)
                if self._cache is not None:
                    self._cache.set(key, result.model_copy(deep=True))
        except Exception as e:
            logger.exception("Permission check failed for %s %s", request.tool, request.action)
            result = PermissionResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason=f"Internal error during permission check: {e}",
            )

        self._emit(event_type_for(result), request, result, cached=False)
        return result

    def is_allowed(self, request: PermissionRequest) -> bool:
        """Check if a request is allowed (possibly after confirmation)."""
        return self.check(request).allowed

    def validate_path(self, path: str) -> PathValidationResult:
        return self.path_validator.validate(path)

    def analyze_command(self, command: str) -> CommandAnalysisResult:
        return self.command_analyzer.analyze(command)

    @staticmethod
    def _cache_key(request: PermissionRequest) -> Hashable:
        context = request.user_context
        return (
            request.tool,
            request.action,
            request.target,
            request.details.get("target_kind"),
            context.user_level if context else None,
            context.elevated if context else False,
            tuple(context.trusted_paths) if context else (),
        )

    def _match_rule(self, request: PermissionRequest) -> tuple[PermissionRule | None, list[re.Pattern]]:
        """Ordered first-fit over the configured rules."""
        for rule, blocked in zip(self._config.rules, self._rule_patterns):
            if not match_pattern(rule.tool, request.tool):
                continue
            if rule.pattern is not None and not (request.target and match_pattern(rule.pattern, request.target)):
                continue
            return rule, blocked
        return None, []

    def _evaluate(self, request: PermissionRequest) -> PermissionResult:
        rule, blocked_patterns = self._match_rule(request)
        required = rule.level if rule else self._config.default_level
        context = request.user_context
        target = request.target

        risk = RiskLevel.LOW
        denials: list[str] = []
        warnings: list[str] = []
        suggestions: list[str] = []
        trusted = False

        kind = classify_target(request)
        if kind == TargetKind.PATH:
            validation = self.path_validator.validate(path_from_target(target))
            risk = max_risk(risk, validation.risk)
            if not validation.valid:
                denials.append(validation.reason)
            else:
                if validation.is_sensitive and validation.sensitive is not None:
                    warnings.append(f"Sensitive file: {validation.sensitive.reason}")
                    if validation.sensitive.recommendation:
                        suggestions.append(validation.sensitive.recommendation)
                if validation.exists is False:
                    warnings.append("Path does not exist yet")
                if context and context.trusted_paths:
                    trusted = any(
                        self.path_validator.is_within(validation.normalized_path, p) for p in context.trusted_paths
                    )
        elif kind == TargetKind.COMMAND:
            analysis = self.command_analyzer.analyze(target)
            risk = max_risk(risk, analysis.risk_level)
            if not analysis.allowed:
                denials.append(analysis.reason)
            elif analysis.is_dangerous:
                warnings.append(analysis.reason)
            suggestions.extend(analysis.safer_alternatives)

            for path in extract_paths_from_command(target):
                sensitive = self.sensitive_detector.is_sensitive(path)
                if sensitive.is_sensitive:
                    risk = max_risk(risk, self.sensitive_detector.risk_for(sensitive))
                    warnings.append(f"Command references sensitive file {path}: {sensitive.reason}")

        if context and context.user_level is not None and context.user_level < required:
            denials.append(
                f"Insufficient permission level: {request.tool} requires {required.value}, "
                f"user has {context.user_level.value}"
            )

        if rule and target:
            for pattern in blocked_patterns:
                if pattern.search(target):
                    risk = max_risk(risk, RiskLevel.HIGH)
                    denials.append(f"Target matches blocked pattern for {rule.tool}: {pattern.pattern}")
                    break

        if rule and rule.max_risk_level is not None and risk > rule.max_risk_level:
            denials.append(
                f"Risk level {risk.value} exceeds maximum {rule.max_risk_level.value} for {rule.tool}"
            )

        if self._config.strict_mode and not denials and risk >= RiskLevel.MEDIUM:
            denials.append(f"Strict mode denies {risk.value}-risk actions")

        if denials:
            logger.info("Denied %s %s: %s", request.tool, request.action, denials[0])
            return PermissionResult(
                allowed=False,
                risk_level=risk,
                matched_rule=rule,
                reason="; ".join(denials),
                suggestions=suggestions,
                warnings=warnings,
            )

        requires_confirmation = False
        if rule and rule.require_confirmation:
            requires_confirmation = True
            reason = f"Confirmation required by rule for {rule.tool}"
        elif risk >= RiskLevel.MEDIUM:
            # Elevated users and trusted paths skip confirmation for medium risk only
            waived = risk == RiskLevel.MEDIUM and ((context is not None and context.elevated) or trusted)
            requires_confirmation = not waived
            if waived:
                reason = "Medium-risk action allowed for elevated user or trusted path"
            else:
                reason = f"Confirmation required for {risk.value}-risk action"
        else:
            reason = f"Allowed by rule for {rule.tool}" if rule else "Allowed by default policy"

        return PermissionResult(
            allowed=True,
            requires_confirmation=requires_confirmation,
            risk_level=risk,
            matched_rule=rule,
            reason=reason,
            suggestions=suggestions,
            warnings=warnings,
        )

    def _emit(self, event_type: EventType, request: PermissionRequest, result: PermissionResult, cached: bool) -> None:
        """Report a decision. Handler failures never change the decision."""
        # Handlers get copies; the caller's request and result stay untouched
        request = request.model_copy(deep=True)
        event = PermissionEvent(
            event_type=event_type,
            request=request,
            result=result.model_copy(deep=True),
            user_context=request.user_context,
            metadata={"cached": cached},
        )
        try:
            self._on_event(event)
        except Exception as e:
            logger.warning("Permission event handler failed: %s", e)

    # ------------------------------------------------------------------
    # Configuration changes
    # ------------------------------------------------------------------

    def add_rule(self, rule: PermissionRule, index: int | None = None) -> None:
        """
        Add a rule.

        Args:
            rule: Rule to add
            index: Position in the ordered rule list (default: append)

        Raises:
            ConfigError: If one of the rule's blocked patterns is invalid
        """
        blocked = self._compile_rule(rule)
        with self._lock.write_locked():
            position = len(self._config.rules) if index is None else index
            self._config.rules.insert(position, rule)
            self._rule_patterns.insert(position, blocked)
            self._clear_cache()
        logger.info("Added permission rule for %s", rule.tool)

    def remove_rule(self, tool: str, pattern: str | None = None) -> bool:
        """
        Remove the first rule for a tool (and pattern, when given).

        Returns:
            True if a rule was removed
        """
        with self._lock.write_locked():
            for i, rule in enumerate(self._config.rules):
                if rule.tool == tool and (pattern is None or rule.pattern == pattern):
                    del self._config.rules[i]
                    del self._rule_patterns[i]
                    self._clear_cache()
                    logger.info("Removed permission rule for %s", tool)
                    return True
        return False

    def add_allowed_dir(self, directory: str) -> None:
        with self._lock.write_locked():
            self.path_validator.add_allowed_dir(directory)
            self._config.allowed_dirs = self.path_validator.get_allowed_dirs()
            self._clear_cache()

    def add_blocked_dir(self, directory: str) -> None:
        with self._lock.write_locked():
            self.path_validator.add_blocked_dir(directory)
            self._config.blocked_dirs = self.path_validator.get_blocked_dirs()
            self._clear_cache()

    def remove_allowed_dir(self, directory: str) -> bool:
        with self._lock.write_locked():
            removed = self.path_validator.remove_allowed_dir(directory)
            self._config.allowed_dirs = self.path_validator.get_allowed_dirs()
            self._clear_cache()
        return removed

    def remove_blocked_dir(self, directory: str) -> bool:
        with self._lock.write_locked():
            removed = self.path_validator.remove_blocked_dir(directory)
            self._config.blocked_dirs = self.path_validator.get_blocked_dirs()
            self._clear_cache()
        return removed

    def clear_cache(self) -> None:
        """Drop every cached decision."""
        with self._lock.write_locked():
            self._clear_cache()

    def _clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def get_cache_stats(self) -> dict | None:
        return self._cache.stats() if self._cache is not None else None

    def get_config(self) -> PermissionConfig:
        """Return a copy of the current configuration."""
        with self._lock.read_locked():
            return self._config.model_copy(deep=True)

    def get_required_level(self, request: PermissionRequest) -> PermissionLevel:
        """Level the matching rule (or the default policy) requires for a request."""
        with self._lock.read_locked():
            rule, _ = self._match_rule(request)
            return rule.level if rule else self._config.default_level
