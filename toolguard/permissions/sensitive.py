"""
Sensitive file detection.

Classifies paths that likely hold credentials, keys, environment settings or
other content that should not be read or modified without a second look.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Callable, Iterable

from ..exceptions import InvalidPatternError
from .models import RiskLevel, SensitiveFileResult, SensitiveFileType

logger = logging.getLogger(__name__)

SensitiveHandler = Callable[[str], SensitiveFileResult | None]

# Confidence given to patterns supplied through configuration
CONFIGURED_PATTERN_CONFIDENCE = 0.6


@dataclass(frozen=True)
class SensitivePattern:
    """One row of a detection table."""

    pattern: re.Pattern
    type: SensitiveFileType
    confidence: float
    description: str
    recommendation: str = "Verify this file does not contain sensitive data before processing."


def _p(
    regex: str,
    file_type: SensitiveFileType,
    confidence: float,
    description: str,
    recommendation: str,
    flags: int = 0,
) -> SensitivePattern:
    return SensitivePattern(re.compile(regex, flags), file_type, confidence, description, recommendation)


_T = SensitiveFileType
_I = re.IGNORECASE

# Matched against the basename, in order; the first match wins.
NAME_PATTERNS: list[SensitivePattern] = [
    # Private keys
    _p(r"^id_rsa$", _T.PRIVATE_KEY, 1.0, "RSA private key",
       "Keep permissions at 600. Never commit to version control."),
    _p(r"^id_ed25519$", _T.PRIVATE_KEY, 1.0, "Ed25519 private key",
       "Keep permissions at 600. Never commit to version control."),
    _p(r"^id_ecdsa$", _T.PRIVATE_KEY, 1.0, "ECDSA private key",
       "Keep permissions at 600. Never commit to version control."),
    _p(r"^id_dsa$", _T.PRIVATE_KEY, 1.0, "DSA private key (deprecated)",
       "Upgrade to Ed25519. Keep permissions at 600."),
    _p(r"\.ppk$", _T.PRIVATE_KEY, 1.0, "PuTTY private key", "Keep secure and never share.", _I),
    _p(r"\.pem$", _T.PRIVATE_KEY, 0.9, "PEM-encoded certificate or key file",
       "Store securely and restrict file permissions to 600.", _I),
    _p(r"\.key$", _T.PRIVATE_KEY, 0.9, "Private key file",
       "Never share. Store with restricted permissions.", _I),
    # Environment files
    _p(r"^\.env$", _T.ENVIRONMENT_FILE, 1.0, "Environment file containing configuration and secrets",
       "Never commit to version control. Use .env.example for templates."),
    _p(r"^\.env\.(example|sample|template)$", _T.CONFIG_WITH_SECRETS, 0.3,
       "Environment template (usually placeholders only)",
       "Check that no real values slipped into the template."),
    _p(r"^\.env\.[a-zA-Z0-9_.-]+$", _T.ENVIRONMENT_FILE, 1.0, "Environment-specific configuration file",
       "Keep out of version control. Use secret management for production."),
    # Credentials
    _p(r"^credentials\.(json|yaml|yml|xml|ini|conf)$", _T.CREDENTIALS_FILE, 1.0,
       "Credentials configuration file", "Use encrypted credential stores or secret managers.", _I),
    _p(r"^\.credentials$", _T.CREDENTIALS_FILE, 1.0, "Hidden credentials file",
       "Encrypt or use secure credential storage."),
    _p(r"^service[_-]?account[_-]?key\.json$", _T.CREDENTIALS_FILE, 1.0,
       "Service account key file (likely GCP)", "Use workload identity or secure key management.", _I),
    _p(r"^gcp[_-]?credentials\.json$", _T.CREDENTIALS_FILE, 1.0, "Google Cloud Platform credentials",
       "Use environment variables or secret manager.", _I),
    _p(r"^aws[_-]?credentials$", _T.CREDENTIALS_FILE, 1.0, "AWS credentials file",
       "Use IAM roles or AWS Secrets Manager.", _I),
    _p(r"^secrets?\.(json|yaml|yml|xml|ini|conf|txt)$", _T.CREDENTIALS_FILE, 0.95,
       "Secrets configuration file", "Use a secrets manager like Vault or AWS Secrets Manager.", _I),
    _p(r"^\.secrets?$", _T.CREDENTIALS_FILE, 0.95, "Hidden secrets file",
       "Move to secure secrets management."),
    # Certificates
    _p(r"\.p12$", _T.CERTIFICATE, 0.9, "PKCS#12 certificate bundle (may contain private key)",
       "Store securely with appropriate access controls.", _I),
    _p(r"\.pfx$", _T.CERTIFICATE, 0.9, "PFX certificate bundle (may contain private key)",
       "Store securely with appropriate access controls.", _I),
    _p(r"\.(keystore|jks)$", _T.CERTIFICATE, 0.85, "Java keystore file",
       "Protect with strong password and access controls.", _I),
    # Passwords
    _p(r"^\.htpasswd$", _T.PASSWORD_FILE, 1.0, "Apache password file",
       "Keep outside web root. Use strong hashing."),
    _p(r"^shadow$", _T.PASSWORD_FILE, 1.0, "Shadow password file",
       "System file - should not be accessible."),
    _p(r"passwords?\.(txt|csv|json|yaml|yml)$", _T.PASSWORD_FILE, 0.9, "Password list file",
       "Use a password manager instead.", _I),
    _p(r"^passwd$", _T.PASSWORD_FILE, 0.7, "Password file", "Ensure proper access restrictions."),
    # Tokens
    _p(r"^\.token$", _T.TOKEN_FILE, 0.95, "Authentication token file",
       "Use secure token storage and rotation."),
    _p(r"^\.api[_-]?key$", _T.TOKEN_FILE, 0.95, "API key file",
       "Use environment variables or secret managers.", _I),
    _p(r"^api[_-]?keys?\.(json|txt|yaml|yml)$", _T.TOKEN_FILE, 0.9, "API keys file",
       "Use environment variables or secret managers.", _I),
    _p(r"tokens?\.(json|txt|yaml|yml)$", _T.TOKEN_FILE, 0.85, "Token storage file",
       "Use encrypted token storage.", _I),
    # Configuration that tends to embed secrets
    _p(r"^\.netrc$", _T.CONFIG_WITH_SECRETS, 0.95, "Network credentials file",
       "Ensure file permissions are 600."),
    _p(r"^\.pypirc$", _T.CONFIG_WITH_SECRETS, 0.9, "PyPI configuration with credentials",
       "Use keyring or environment variables."),
    _p(r"^\.dockercfg$", _T.CONFIG_WITH_SECRETS, 0.9, "Docker registry credentials",
       "Use docker credential helpers."),
    _p(r"^kubeconfig$", _T.CONFIG_WITH_SECRETS, 0.9, "Kubernetes configuration file",
       "Store securely with restricted access.", _I),
    _p(r"^\.npmrc$", _T.CONFIG_WITH_SECRETS, 0.8, "NPM configuration (may contain registry tokens)",
       "Use npm login and environment variables for tokens."),
    _p(r"^config\.json$", _T.CONFIG_WITH_SECRETS, 0.5, "Configuration file (may contain secrets)",
       "Separate secrets from configuration.", _I),
    # Databases
    _p(r"\.sqlite3?$", _T.DATABASE_FILE, 0.7, "SQLite database file",
       "May contain sensitive data. Restrict access.", _I),
    _p(r"\.mdb$", _T.DATABASE_FILE, 0.7, "Microsoft Access database",
       "May contain sensitive data. Consider encryption.", _I),
    _p(r"\.db$", _T.DATABASE_FILE, 0.6, "Database file",
       "May contain sensitive data. Restrict access.", _I),
    # Shell and client histories
    _p(r"^\.(mysql|psql)_history$", _T.LOG_FILE, 0.8, "Database client command history",
       "May contain queries with sensitive data."),
    _p(r"^\.(bash|zsh)_history$", _T.LOG_FILE, 0.7, "Shell command history",
       "May contain commands with inline credentials."),
    # Backups
    _p(r"\.(bak|backup|old|orig)$", _T.BACKUP_FILE, 0.6, "Backup file",
       "May contain sensitive data from original file.", _I),
    _p(r"~$", _T.BACKUP_FILE, 0.5, "Backup file (tilde suffix)", "Clean up backup files regularly."),
    _p(r"\.swp$", _T.BACKUP_FILE, 0.4, "Vim swap file", "May contain unsaved sensitive content."),
    # Logs
    _p(r"^debug\.log$", _T.LOG_FILE, 0.5, "Debug log file",
       "May contain verbose output including secrets.", _I),
    _p(r"\.(log|logs)$", _T.LOG_FILE, 0.4, "Log file (may contain sensitive information)",
       "Ensure logs do not contain credentials or PII.", _I),
]

# Matched against the full normalized path; wins over a name match only when
# strictly more confident.
PATH_PATTERNS: list[SensitivePattern] = [
    _p(r"[/\\]\.ssh[/\\]", _T.PRIVATE_KEY, 0.9, "File in SSH directory", ""),
    _p(r"[/\\]\.gnupg[/\\]", _T.PRIVATE_KEY, 0.9, "File in GnuPG directory", ""),
    _p(r"[/\\]\.kube[/\\]config$", _T.CONFIG_WITH_SECRETS, 0.95,
       "Kubernetes configuration with cluster credentials", ""),
    _p(r"[/\\]\.aws[/\\]", _T.CREDENTIALS_FILE, 0.85, "File in AWS configuration directory", ""),
    _p(r"[/\\]\.kube[/\\]", _T.CONFIG_WITH_SECRETS, 0.85, "File in Kubernetes configuration directory", ""),
    _p(r"[/\\]\.docker[/\\]", _T.CONFIG_WITH_SECRETS, 0.8, "File in Docker configuration directory", ""),
    _p(r"[/\\]secrets?[/\\]", _T.CREDENTIALS_FILE, 0.7, "File in secrets directory", "", _I),
    _p(r"[/\\]credentials?[/\\]", _T.CREDENTIALS_FILE, 0.7, "File in credentials directory", "", _I),
    _p(r"[/\\]private[/\\]", _T.PRIVATE_KEY, 0.6, "File in private directory", "", _I),
]

# Keyword hints used to type patterns that come from configuration
_CONFIGURED_TYPE_HINTS: list[tuple[re.Pattern, SensitiveFileType]] = [
    (re.compile(r"id_|\.pem|\.key|\.ppk", _I), _T.PRIVATE_KEY),
    (re.compile(r"\.p12|\.pfx|keystore|\.jks", _I), _T.CERTIFICATE),
    (re.compile(r"passw|htpasswd|shadow", _I), _T.PASSWORD_FILE),
    (re.compile(r"token|api.?key", _I), _T.TOKEN_FILE),
    (re.compile(r"credential|secret", _I), _T.CREDENTIALS_FILE),
    (re.compile(r"env", _I), _T.ENVIRONMENT_FILE),
    (re.compile(r"rc\b|rc\$|config", _I), _T.CONFIG_WITH_SECRETS),
]

RISK_BY_TYPE: dict[SensitiveFileType, RiskLevel] = {
    _T.PRIVATE_KEY: RiskLevel.CRITICAL,
    _T.CREDENTIALS_FILE: RiskLevel.CRITICAL,
    _T.PASSWORD_FILE: RiskLevel.CRITICAL,
    _T.TOKEN_FILE: RiskLevel.CRITICAL,
    _T.ENVIRONMENT_FILE: RiskLevel.HIGH,
    _T.CERTIFICATE: RiskLevel.HIGH,
    _T.CONFIG_WITH_SECRETS: RiskLevel.HIGH,
    _T.DATABASE_FILE: RiskLevel.MEDIUM,
    _T.BACKUP_FILE: RiskLevel.MEDIUM,
    _T.LOG_FILE: RiskLevel.LOW,
}


def _infer_configured_type(regex: str) -> SensitiveFileType:
    for hint, file_type in _CONFIGURED_TYPE_HINTS:
        if hint.search(regex):
            return file_type
    return _T.CREDENTIALS_FILE


def configured_patterns(regexes: Iterable[str]) -> list[SensitivePattern]:
    """
    Turn configured regex strings into detection rows.

    Args:
        regexes: Regex strings matched case-insensitively against basenames

    Returns:
        Detection rows with a generic, lower confidence

    Raises:
        InvalidPatternError: If a regex does not compile
    """
    rows = []
    for regex in regexes:
        try:
            compiled = re.compile(regex, re.IGNORECASE)
        except re.error as e:
            raise InvalidPatternError(regex, "sensitive file", str(e)) from e
        rows.append(
            SensitivePattern(
                pattern=compiled,
                type=_infer_configured_type(regex),
                confidence=CONFIGURED_PATTERN_CONFIDENCE,
                description=f"File name matches configured sensitive pattern '{regex}'",
            )
        )
    return rows


class SensitiveFileDetector:
    """
    Detects sensitive files by name, extension and directory.

    Lookup order: exclusions, per-extension handlers, the built-in name table,
    then configured patterns; a sensitive directory component overrides the
    name finding when it is strictly more confident.
    """

    def __init__(
        self,
        extra_patterns: Iterable[str] = (),
        additional_patterns: Iterable[SensitivePattern] = (),
        exclude_patterns: Iterable[re.Pattern] = (),
    ):
        """
        Initialize the detector.

        Args:
            extra_patterns: Configured regex strings (e.g. PermissionConfig.sensitive_patterns)
            additional_patterns: Fully specified rows appended after the built-in table
            exclude_patterns: Regexes whose matches are never sensitive
        """
        self._patterns: list[SensitivePattern] = [*NAME_PATTERNS, *additional_patterns]
        self._configured: list[SensitivePattern] = configured_patterns(extra_patterns)
        self._path_patterns: list[SensitivePattern] = list(PATH_PATTERNS)
        self._exclusions: list[re.Pattern] = list(exclude_patterns)
        self._handlers: dict[str, SensitiveHandler] = {}

    def is_sensitive(self, path: str) -> SensitiveFileResult:
        """
        Classify a path.

        Args:
            path: File path (ideally already normalized)

        Returns:
            SensitiveFileResult; confidence is 0.0 when nothing matched
        """
        full_path = os.path.normpath(path) if path else path
        file_name = os.path.basename(full_path)

        for exclusion in self._exclusions:
            if exclusion.search(file_name) or exclusion.search(full_path):
                logger.debug("Excluded from sensitivity checks by %s: %s", exclusion.pattern, path)
                return SensitiveFileResult(is_sensitive=False, confidence=1.0, reason="Excluded by pattern")

        handler = self._handlers.get(os.path.splitext(file_name)[1].lower())
        if handler is not None:
            handled = handler(full_path)
            if handled is not None:
                return handled

        best = self._first_match(file_name, [*self._patterns, *self._configured])
        by_path = self._first_match(full_path, self._path_patterns)
        if by_path is not None and (best is None or by_path.confidence > best.confidence):
            best = by_path

        if best is None:
            return SensitiveFileResult(
                is_sensitive=False,
                confidence=0.0,
                reason="No sensitive patterns matched",
            )

        logger.debug("Sensitive file %s: %s (%.2f)", path, best.type.value, best.confidence)
        return SensitiveFileResult(
            is_sensitive=True,
            sensitive_type=best.type,
            confidence=best.confidence,
            reason=best.description,
            recommendation=best.recommendation,
        )

    @staticmethod
    def _first_match(value: str, table: list[SensitivePattern]) -> SensitivePattern | None:
        for row in table:
            if row.pattern.search(value):
                return row
        return None

    def get_file_type(self, path: str) -> SensitiveFileType | None:
        """Return the sensitive file type of a path, or None."""
        result = self.is_sensitive(path)
        return result.sensitive_type if result.is_sensitive else None

    def get_risk_level(self, path: str) -> RiskLevel:
        """Return the risk of touching a path, derived from its sensitive type."""
        return self.risk_for(self.is_sensitive(path))

    @staticmethod
    def risk_for(result: SensitiveFileResult) -> RiskLevel:
        """Map a classification to a risk level."""
        if not result.is_sensitive:
            return RiskLevel.LOW
        if result.sensitive_type is None:
            return RiskLevel.MEDIUM
        return RISK_BY_TYPE[result.sensitive_type]

    def add_pattern(self, pattern: SensitivePattern) -> None:
        """Append a detection row after the built-in table."""
        self._patterns.append(pattern)
        logger.debug("Added sensitive pattern: %s", pattern.pattern.pattern)

    def add_exclusion(self, pattern: re.Pattern) -> None:
        """Never report matches of this regex as sensitive."""
        self._exclusions.append(pattern)
        logger.debug("Added sensitive exclusion: %s", pattern.pattern)

    def register_handler(self, extension: str, handler: SensitiveHandler) -> None:
        """
        Register a custom classifier for one file extension.

        Args:
            extension: Extension including the dot (e.g. ".yaml")
            handler: Returns a result, or None to fall through to the tables
        """
        self._handlers[extension.lower()] = handler

    def filter_sensitive(self, paths: Iterable[str]) -> list[tuple[str, SensitiveFileResult]]:
        """Return (path, result) pairs for the sensitive paths only."""
        results = ((path, self.is_sensitive(path)) for path in paths)
        return [(path, result) for path, result in results if result.is_sensitive]

    def get_patterns_by_type(self, file_type: SensitiveFileType) -> list[SensitivePattern]:
        """Return every name-table row of the given type."""
        return [p for p in [*self._patterns, *self._configured] if p.type == file_type]

    def get_stats(self) -> dict[SensitiveFileType, int]:
        """Count detection rows per type."""
        stats: dict[SensitiveFileType, int] = {}
        for pattern in [*self._patterns, *self._configured, *self._path_patterns]:
            stats[pattern.type] = stats.get(pattern.type, 0) + 1
        return stats
