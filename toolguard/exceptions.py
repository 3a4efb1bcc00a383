"""
Engine exceptions.

Decisions never raise: structural rejections and internal faults are reported
through result objects. These exceptions only surface at construction time,
when a configuration cannot be turned into a working engine.
"""


class ToolGuardError(Exception):
    """Base exception for all engine errors."""

    pass


class ConfigError(ToolGuardError):
    """Raised when a permission configuration is invalid."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class InvalidPatternError(ConfigError):
    """Raised when a configured regex pattern does not compile."""

    def __init__(self, pattern: str, source: str, detail: str):
        self.pattern = pattern
        self.source = source
        super().__init__(f"Invalid {source} pattern {pattern!r}: {detail}", [detail])
