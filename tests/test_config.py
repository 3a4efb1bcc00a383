"""
Tests for the configuration system.
"""

import io
import logging

import pytest

from toolguard import ConfigError, setup_logging
from toolguard.config import (
    DEFAULT_BLOCKED_DIRS,
    DEFAULT_DANGEROUS_COMMANDS,
    DEFAULT_SENSITIVE_PATTERNS,
    PermissionConfig,
    get_working_directory,
    load_permission_config,
    merge_configs,
)
from toolguard.logging_config import PACKAGE_LOGGER, log_timing
from toolguard.permissions import PermissionLevel


class TestMergeConfigs:
    """Test deep merging of configuration dicts."""

    def test_simple_merge(self):
        """Test that override keys replace base keys."""
        assert merge_configs({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        """Test that nested dicts are merged key by key."""
        base = {"outer": {"x": 1, "y": 2}}
        override = {"outer": {"y": 3}}
        assert merge_configs(base, override) == {"outer": {"x": 1, "y": 3}}

    def test_lists_replaced(self):
        """Test that lists are replaced, not appended."""
        assert merge_configs({"dirs": ["/a"]}, {"dirs": ["/b"]}) == {"dirs": ["/b"]}

    def test_base_not_mutated(self):
        """Test that the base dict is left untouched."""
        base = {"outer": {"x": 1}}
        merge_configs(base, {"outer": {"x": 2}})
        assert base == {"outer": {"x": 1}}


class TestPermissionConfig:
    """Test the PermissionConfig model."""

    def test_defaults(self):
        """Test default policy values."""
        config = PermissionConfig()
        assert config.default_level == PermissionLevel.READ
        assert config.rules == []
        assert config.allowed_dirs == []
        assert config.blocked_dirs == DEFAULT_BLOCKED_DIRS
        assert config.sensitive_patterns == DEFAULT_SENSITIVE_PATTERNS
        assert config.dangerous_commands == DEFAULT_DANGEROUS_COMMANDS
        assert config.allow_symlinks is False
        assert config.max_path_depth == 20
        assert config.strict_mode is False

    def test_default_lists_independent(self):
        """Test that instances do not share default lists."""
        first = PermissionConfig()
        first.blocked_dirs.append("/opt")
        assert "/opt" not in PermissionConfig().blocked_dirs
        assert "/opt" not in DEFAULT_BLOCKED_DIRS

    def test_blocked_defaults(self):
        """Test the system directories blocked by default."""
        assert set(DEFAULT_BLOCKED_DIRS) == {"/etc", "/var", "/usr", "/bin", "/sbin", "/root", "/sys", "/proc"}


class TestLoadPermissionConfig:
    """Test building configs from overrides."""

    def test_no_overrides(self):
        """Test that no overrides yields the defaults."""
        assert load_permission_config() == PermissionConfig()

    def test_overrides(self):
        """Test applying overrides."""
        config = load_permission_config(
            {
                "strict_mode": True,
                "allowed_dirs": ["/srv/app"],
                "rules": [{"tool": "Bash", "level": "execute", "require_confirmation": True}],
            }
        )
        assert config.strict_mode is True
        assert config.allowed_dirs == ["/srv/app"]
        assert config.rules[0].level == PermissionLevel.EXECUTE
        assert config.blocked_dirs == DEFAULT_BLOCKED_DIRS

    def test_replace_blocked_dirs(self):
        """Test that list overrides replace the defaults."""
        assert load_permission_config({"blocked_dirs": []}).blocked_dirs == []

    def test_unknown_key(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ConfigError) as exc_info:
            load_permission_config({"strict": True})
        assert exc_info.value.errors == ["strict"]

    def test_invalid_value(self):
        """Test that invalid values raise ConfigError with details."""
        with pytest.raises(ConfigError) as exc_info:
            load_permission_config({"max_path_depth": 0, "default_level": "root"})
        assert len(exc_info.value.errors) == 2
        assert any(e.startswith("max_path_depth") for e in exc_info.value.errors)


class TestWorkingDirectory:
    """Test working directory resolution."""

    def test_env_override(self, monkeypatch, temp_dir):
        """Test that WORKING_DIR takes precedence."""
        monkeypatch.setenv("WORKING_DIR", str(temp_dir))
        assert get_working_directory() == str(temp_dir)

    def test_cwd_default(self, monkeypatch, temp_dir):
        """Test falling back to the current directory."""
        monkeypatch.delenv("WORKING_DIR", raising=False)
        monkeypatch.chdir(temp_dir)
        assert get_working_directory() == str(temp_dir)


class TestLogging:
    """Test logging helpers."""

    @pytest.fixture
    def package_logger(self):
        """Restore the toolguard logger after setup_logging calls."""
        logger = logging.getLogger(PACKAGE_LOGGER)
        saved = logger.handlers[:], logger.level, logger.propagate
        yield logger
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]

    def test_setup_logging_level(self, monkeypatch, package_logger):
        """Test level selection from the argument and the environment."""
        monkeypatch.delenv("TOOLGUARD_LOG_LEVEL", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert setup_logging() is package_logger
        assert package_logger.level == logging.DEBUG

        monkeypatch.setenv("TOOLGUARD_LOG_LEVEL", "error")
        setup_logging()
        assert package_logger.level == logging.ERROR

        setup_logging("warning")
        assert package_logger.level == logging.WARNING

        setup_logging("verbose")
        assert package_logger.level == logging.INFO

    def test_setup_logging_scoped(self, package_logger):
        """Test that only the package logger is configured, once."""
        root = logging.getLogger()
        root_handlers = root.handlers[:]
        stream = io.StringIO()

        setup_logging("info", stream=stream)
        setup_logging("info", stream=stream)

        assert root.handlers == root_handlers
        assert sum(1 for h in package_logger.handlers if getattr(h, "stream", None) is stream) == 1

        logging.getLogger("toolguard.permissions.manager").info("Denied %s", "Bash")
        assert "Denied Bash" in stream.getvalue()
        assert stream.getvalue().count("Denied Bash") == 1

    def test_log_timing(self, caplog):
        """Test that log_timing reports the duration."""
        logger = logging.getLogger("toolguard.test")
        with caplog.at_level(logging.DEBUG, logger="toolguard.test"):
            with log_timing(logger, "Sample operation"):
                pass
        assert "Sample operation completed in" in caplog.text

    def test_log_timing_disabled_level(self, caplog):
        """Test that nothing is logged when the level is disabled."""
        logger = logging.getLogger("toolguard.test.quiet")
        with caplog.at_level(logging.INFO, logger="toolguard.test.quiet"):
            with log_timing(logger, "Quiet operation"):
                pass
        assert "Quiet operation" not in caplog.text
