"""
Path validation.

Validates filesystem paths against traversal, depth, allowed/blocked
directories and symlink escapes before any tool touches them.
"""

import logging
import os
import re
import stat
from typing import Iterable

from ..config.defaults import DEFAULT_MAX_PATH_DEPTH
from ..config.loader import get_working_directory
from .locking import ReadWriteLock
from .models import PathValidationResult, RiskLevel
from .sensitive import SensitiveFileDetector

logger = logging.getLogger(__name__)

# Checked against the raw input, before any decoding or normalization
TRAVERSAL_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(^|[/\\])\.\.([/\\]|$)",  # a whole ".." segment, either separator
        r"%2e%2e",
        r"%252e%252e",
        r"\.\.%2f|%2f\.\.",
        r"\.\.%5c|%5c\.\.",
        r"%2e\.|\.%2e",
        r"%252e\.|\.%252e",
        r"%c0%ae|%c0%af|%c1%9c|%c1%1c|%e0%80%ae",  # overlong UTF-8
    )
]


def is_within(path: str, directory: str) -> bool:
    """Check containment on a separator boundary. Both paths must be normalized."""
    if directory == os.sep:
        return path.startswith(os.sep)
    return path == directory or path.startswith(directory + os.sep)


class PathValidator:
    """
    Validates paths for security and access control.

    Checks run in a fixed order and the first failure wins: traversal,
    depth, blocked directories, allowed directories, symlink escapes. A path
    that passes is classified by the sensitive file detector.
    """

    def __init__(
        self,
        allowed_dirs: Iterable[str] = (),
        blocked_dirs: Iterable[str] = (),
        allow_symlinks: bool = False,
        max_path_depth: int = DEFAULT_MAX_PATH_DEPTH,
        base_dir: str | None = None,
        sensitive_detector: SensitiveFileDetector | None = None,
    ):
        """
        Initialize the validator.

        Args:
            allowed_dirs: Directories paths must live in (empty means anywhere not blocked)
            blocked_dirs: Directories that are always denied
            allow_symlinks: Skip the symlink escape check
            max_path_depth: Maximum number of path segments
            base_dir: Directory relative paths resolve against (default: working directory)
            sensitive_detector: Detector used to classify valid paths
        """
        self._lock = ReadWriteLock()
        self.base_dir = self._normalize(base_dir or get_working_directory(), os.sep)
        self.allow_symlinks = allow_symlinks
        self.max_path_depth = max_path_depth
        self.sensitive_detector = sensitive_detector or SensitiveFileDetector()
        # Insertion-ordered sets
        self._allowed_dirs: dict[str, None] = dict.fromkeys(self._normalize(d) for d in allowed_dirs)
        self._blocked_dirs: dict[str, None] = dict.fromkeys(self._normalize(d) for d in blocked_dirs)

    @classmethod
    def from_config(
        cls,
        config,
        base_dir: str | None = None,
        sensitive_detector: SensitiveFileDetector | None = None,
    ) -> "PathValidator":
        """
        Build a validator from a PermissionConfig.

        Args:
            config: PermissionConfig to read directories and limits from
            base_dir: Base directory for relative paths
            sensitive_detector: Detector to share; built from the config's patterns if omitted

        Raises:
            ConfigError: If a configured sensitive pattern is invalid
        """
        return cls(
            allowed_dirs=config.allowed_dirs,
            blocked_dirs=config.blocked_dirs,
            allow_symlinks=config.allow_symlinks,
            max_path_depth=config.max_path_depth,
            base_dir=base_dir,
            sensitive_detector=sensitive_detector
            or SensitiveFileDetector(extra_patterns=config.sensitive_patterns),
        )

    def _normalize(self, path: str, base_dir: str | None = None) -> str:
        """Pure path algebra: expand ~, anchor at the base directory, collapse."""
        if not path:
            raise ValueError("Empty path")
        if "\0" in path:
            raise ValueError("Path contains a null byte")

        expanded = os.path.expanduser(path)
        if not os.path.isabs(expanded):
            expanded = os.path.join(base_dir or self.base_dir, expanded)

        normalized = os.path.normpath(expanded)
        # POSIX keeps a leading double slash; treat it as root
        if normalized.startswith("//"):
            normalized = os.sep + normalized.lstrip("/")
        return normalized

    def validate(self, path: str) -> PathValidationResult:
        """
        Validate a path.

        Never raises: unexpected errors produce an invalid, high-risk result.

        Args:
            path: Raw, possibly attacker-controlled path

        Returns:
            PathValidationResult describing the first failed check, or the
            sensitivity of a valid path
        """
        try:
            with self._lock.read_locked():
                return self._validate(path)
        except Exception as e:
            logger.warning("Error validating path %r: %s", path, e)
            return PathValidationResult(
                valid=False,
                reason=f"Path validation error: {e}",
                risk=RiskLevel.HIGH,
            )

    def _validate(self, path: str) -> PathValidationResult:
        normalized = self._normalize(path)
        logger.debug("Validating %r -> %s", path, normalized)

        for check in (self._check_traversal, self._check_depth, self._check_blocked, self._check_allowed):
            failure = check(path, normalized)
            if failure is not None:
                return failure

        if not self.allow_symlinks:
            failure = self._check_symlinks(normalized)
            if failure is not None:
                return failure

        exists = os.path.lexists(normalized)
        sensitive = self.sensitive_detector.is_sensitive(normalized)
        if sensitive.is_sensitive:
            risk = self.sensitive_detector.risk_for(sensitive)
            reason = f"Sensitive file detected: {sensitive.reason}"
        else:
            risk = RiskLevel.LOW
            reason = "Path is valid and allowed"

        return PathValidationResult(
            valid=True,
            normalized_path=normalized,
            reason=reason,
            is_sensitive=sensitive.is_sensitive,
            risk=risk,
            sensitive=sensitive,
            exists=exists,
        )

    def _check_traversal(self, raw: str, normalized: str) -> PathValidationResult | None:
        for pattern in TRAVERSAL_PATTERNS:
            if pattern.search(raw):
                logger.info("Path traversal attempt detected in %r (%s)", raw, pattern.pattern)
                return PathValidationResult(
                    valid=False,
                    reason="Path traversal attempt detected",
                    risk=RiskLevel.CRITICAL,
                )

        if not os.path.isabs(os.path.expanduser(raw)) and not is_within(normalized, self.base_dir):
            return PathValidationResult(
                valid=False,
                normalized_path=normalized,
                reason="Path escapes base directory",
                is_blocked=True,
                risk=RiskLevel.CRITICAL,
            )
        return None

    def _check_depth(self, raw: str, normalized: str) -> PathValidationResult | None:
        depth = len([part for part in normalized.split(os.sep) if part])
        if depth > self.max_path_depth:
            return PathValidationResult(
                valid=False,
                normalized_path=normalized,
                reason=f"Path depth ({depth}) exceeds maximum ({self.max_path_depth})",
                risk=RiskLevel.MEDIUM,
            )
        return None

    def _check_blocked(self, raw: str, normalized: str) -> PathValidationResult | None:
        for blocked in self._blocked_dirs:
            if is_within(normalized, blocked):
                logger.debug("Path %s is in blocked directory %s", normalized, blocked)
                return PathValidationResult(
                    valid=False,
                    normalized_path=normalized,
                    reason=f"Path is in blocked directory: {blocked}",
                    is_blocked=True,
                    risk=RiskLevel.HIGH,
                )
        return None

    def _check_allowed(self, raw: str, normalized: str) -> PathValidationResult | None:
        if not self._allowed_dirs:
            return None
        if any(is_within(normalized, allowed) for allowed in self._allowed_dirs):
            return None
        return PathValidationResult(
            valid=False,
            normalized_path=normalized,
            reason="Path is not in any allowed directory",
            is_blocked=True,
            risk=RiskLevel.MEDIUM,
        )

    @staticmethod
    def _with_real_paths(dirs: Iterable[str]) -> list[str]:
        # Compare resolved targets against both spellings of each directory
        result = []
        for d in dirs:
            result.append(d)
            real = os.path.realpath(d)
            if real != d:
                result.append(real)
        return result

    def _check_symlinks(self, normalized: str) -> PathValidationResult | None:
        """
        Walk the path and its ancestors looking for escaping symlinks.

        Missing components are skipped so paths that do not exist yet still
        have their existing ancestors inspected. Probe errors other than
        "missing" end the walk without a finding.
        """
        current = normalized
        try:
            while True:
                try:
                    mode = os.lstat(current).st_mode
                except (FileNotFoundError, NotADirectoryError):
                    mode = None

                if mode is not None and stat.S_ISLNK(mode):
                    failure = self._check_link(normalized, current)
                    if failure is not None:
                        return failure

                parent = os.path.dirname(current)
                if parent == current:
                    return None
                current = parent
        except OSError as e:
            logger.debug("Cannot verify symlinks for %s: %s", normalized, e)
            return None

    def _check_link(self, normalized: str, link: str) -> PathValidationResult | None:
        real = os.path.realpath(link)
        logger.debug("Symlink found: %s -> %s", link, real)

        if any(is_within(real, blocked) for blocked in self._with_real_paths(self._blocked_dirs)):
            return PathValidationResult(
                valid=False,
                normalized_path=normalized,
                reason=f"Symlink points to blocked directory: {link} -> {real}",
                is_blocked=True,
                risk=RiskLevel.CRITICAL,
            )

        # Links above the allowed directories are part of the host layout
        if self._allowed_dirs and any(is_within(link, allowed) for allowed in self._allowed_dirs):
            allowed = self._with_real_paths(self._allowed_dirs)
            if not any(is_within(real, d) for d in allowed):
                return PathValidationResult(
                    valid=False,
                    normalized_path=normalized,
                    reason=f"Symlink escape detected: {link} -> {real}",
                    risk=RiskLevel.CRITICAL,
                )
        return None

    def is_allowed(self, path: str) -> bool:
        """Check if a path passes validation."""
        return self.validate(path).valid

    def validate_all(self, paths: Iterable[str]) -> dict[str, PathValidationResult]:
        """Validate several paths, keyed by the input path."""
        return {path: self.validate(path) for path in paths}

    def filter_valid(self, paths: Iterable[str]) -> list[str]:
        """Keep only the paths that pass validation."""
        return [path for path in paths if self.validate(path).valid]

    def get_real_path(self, path: str) -> PathValidationResult:
        """
        Validate a path, then validate what it resolves to on disk.

        Returns:
            The validation of the resolved path, or of the path itself when it
            is invalid, does not exist or resolves to itself
        """
        validation = self.validate(path)
        if not validation.valid or not validation.exists:
            return validation

        real = os.path.realpath(validation.normalized_path)
        if real == validation.normalized_path:
            return validation
        return self.validate(real)

    def is_within(self, path: str, directory: str) -> bool:
        """Check if a path lies in (or is) a directory, after normalization."""
        return is_within(self._normalize(path), self._normalize(directory))

    def get_relative_path(self, path: str) -> str | None:
        """Return a valid path relative to the base directory, or None."""
        validation = self.validate(path)
        if not validation.valid or validation.normalized_path is None:
            return None
        if not is_within(validation.normalized_path, self.base_dir):
            return None
        return os.path.relpath(validation.normalized_path, self.base_dir)

    def add_allowed_dir(self, directory: str) -> None:
        """Add an allowed directory."""
        normalized = self._normalize(directory)
        with self._lock.write_locked():
            self._allowed_dirs[normalized] = None
        logger.info("Added allowed directory: %s", normalized)

    def add_blocked_dir(self, directory: str) -> None:
        """Add a blocked directory."""
        normalized = self._normalize(directory)
        with self._lock.write_locked():
            self._blocked_dirs[normalized] = None
        logger.info("Added blocked directory: %s", normalized)

    def remove_allowed_dir(self, directory: str) -> bool:
        """Remove an allowed directory. Returns False if it was not present."""
        normalized = self._normalize(directory)
        with self._lock.write_locked():
            if normalized not in self._allowed_dirs:
                return False
            del self._allowed_dirs[normalized]
        logger.info("Removed allowed directory: %s", normalized)
        return True

    def remove_blocked_dir(self, directory: str) -> bool:
        """Remove a blocked directory. Returns False if it was not present."""
        normalized = self._normalize(directory)
        with self._lock.write_locked():
            if normalized not in self._blocked_dirs:
                return False
            del self._blocked_dirs[normalized]
        logger.info("Removed blocked directory: %s", normalized)
        return True

    def get_allowed_dirs(self) -> list[str]:
        with self._lock.read_locked():
            return list(self._allowed_dirs)

    def get_blocked_dirs(self) -> list[str]:
        with self._lock.read_locked():
            return list(self._blocked_dirs)

    def set_base_dir(self, base_dir: str) -> None:
        """Change the directory relative paths resolve against."""
        normalized = self._normalize(base_dir)
        with self._lock.write_locked():
            self.base_dir = normalized
        logger.info("Base directory set to: %s", normalized)
