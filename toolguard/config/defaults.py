"""Default configuration values."""

# System directories no tool may touch unless a host explicitly unblocks them
DEFAULT_BLOCKED_DIRS = [
    "/etc",
    "/var",
    "/usr",
    "/bin",
    "/sbin",
    "/root",
    "/sys",
    "/proc",
]

# Regex strings matched against file basenames (case-insensitive)
DEFAULT_SENSITIVE_PATTERNS = [
    r"\.env$",
    r"\.env\.[^/]+$",
    r"credentials\.[^/]+$",
    r"secrets?\.[^/]+$",
    r"\.pem$",
    r"\.key$",
    r"id_rsa",
    r"id_ed25519",
    r"\.p12$",
    r"\.pfx$",
    r"password",
    r"\.htpasswd$",
    r"token",
    r"\.npmrc$",
    r"\.pypirc$",
    r"\.netrc$",
]

# Regex strings matched against whole command strings (case-insensitive)
DEFAULT_DANGEROUS_COMMANDS = [
    r"\brm\s+-rf\b",
    r"\bchmod\s+777\b",
    r"\bsudo\b",
    r"\bcurl\b.*\|\s*(ba)?sh\b",
    r"\bwget\b.*\|\s*(ba)?sh\b",
    r"\beval\b",
    r">\s*/dev/sd",
    r"\bdd\s+if=",
    r"\bmkfs\b",
    r"\bformat\b",
    r":\(\)\s*\{\s*:\|:\s*&\s*\}\s*;\s*:",
    r"fork bomb",
]

DEFAULT_MAX_PATH_DEPTH = 20

# Result cache
DEFAULT_CACHE_TTL_SECONDS = 60.0
DEFAULT_CACHE_MAX_SIZE = 1000

# Environment variable consulted for the base directory of relative paths
WORKING_DIR_ENV = "WORKING_DIR"
