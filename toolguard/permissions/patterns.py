"""Pattern matching helpers for permission rules."""

import fnmatch
import re
from typing import Iterable

from ..exceptions import InvalidPatternError


def match_pattern(pattern: str, value: str) -> bool:
    """
    Check if a value matches a glob pattern.

    Supports:
    - Exact matches: "fs.write" matches "fs.write"
    - Prefix wildcards: "git *" matches "git status", "git commit", etc.
    - Glob patterns: "/home/*/project/*" or "fs.*"

    Args:
        pattern: The pattern to match against (supports * and ? wildcards)
        value: The value to check

    Returns:
        True if value matches pattern, False otherwise
    """
    if pattern == "*":
        return True

    if pattern.endswith(" *"):
        return value.startswith(pattern[:-2])

    # fnmatchcase keeps tool names and paths case-sensitive on every platform
    return fnmatch.fnmatchcase(value, pattern)


def compile_patterns(regexes: Iterable[str], source: str, flags: int = re.IGNORECASE) -> list[re.Pattern]:
    """
    Compile configured regex strings.

    Args:
        regexes: Regex strings
        source: What the patterns configure, used in error messages
        flags: Regex flags applied to every pattern

    Returns:
        Compiled patterns in input order

    Raises:
        InvalidPatternError: On the first regex that does not compile
    """
    compiled = []
    for regex in regexes:
        try:
            compiled.append(re.compile(regex, flags))
        except re.error as e:
            raise InvalidPatternError(regex, source, str(e)) from e
    return compiled
