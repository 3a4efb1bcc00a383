"""Tests for path validation."""

import os
from pathlib import Path

import pytest

from toolguard import PermissionConfig
from toolguard.permissions import PathValidator, RiskLevel, SensitiveFileType


@pytest.fixture
def validator(workspace: Path, blocked_dir: Path) -> PathValidator:
    """Validator with an empty allow-list."""
    return PathValidator(blocked_dirs=[str(blocked_dir)], base_dir=str(workspace))


@pytest.fixture
def scoped_validator(workspace: Path, blocked_dir: Path) -> PathValidator:
    """Validator that only allows the workspace."""
    return PathValidator(
        allowed_dirs=[str(workspace)],
        blocked_dirs=[str(blocked_dir)],
        base_dir=str(workspace),
    )


class TestNormalization:
    """Tests for path normalization."""

    def test_relative_path_resolved_against_base(self, validator, workspace):
        """Test that relative paths resolve against the base directory."""
        result = validator.validate("src/main.py")
        assert result.valid
        assert result.normalized_path == str(workspace / "src" / "main.py")

    def test_collapses_dots_and_separators(self, validator, workspace):
        """Test that ./ and repeated separators are collapsed."""
        result = validator.validate(f"{workspace}//src/./main.py/")
        assert result.normalized_path == str(workspace / "src" / "main.py")

    def test_home_expansion(self, validator, monkeypatch, temp_dir):
        """Test that ~ expands to the home directory."""
        monkeypatch.setenv("HOME", str(temp_dir / "home"))
        result = validator.validate("~/notes.txt")
        assert result.normalized_path == str(temp_dir / "home" / "notes.txt")

    def test_null_byte(self, validator):
        """Test that a null byte is a high-risk failure, not an exception."""
        result = validator.validate("src/main.py\0.txt")
        assert not result.valid
        assert result.risk == RiskLevel.HIGH
        assert result.reason.startswith("Path validation error:")

    def test_empty_path(self, validator):
        """Test that an empty path is rejected."""
        result = validator.validate("")
        assert not result.valid
        assert result.risk == RiskLevel.HIGH


class TestTraversal:
    """Tests for traversal detection."""

    @pytest.mark.parametrize(
        "path",
        [
            "../etc/passwd",
            "src/../../etc/passwd",
            "/home/user/project/../../etc/passwd",
            "..",
            "src\\..\\..\\secrets",
            "%2e%2e/etc/passwd",
            "%2E%2E%2Fetc",
            "%252e%252e/etc/passwd",
            "..%2fetc%2fpasswd",
            "src%2f..%2fetc",
            "..%5cwindows",
            ".%2e/etc/passwd",
            "%2e./etc/passwd",
            "%c0%ae%c0%ae/etc/passwd",
        ],
    )
    def test_traversal_rejected(self, validator, path):
        """Test that raw and encoded traversal is critical."""
        result = validator.validate(path)
        assert not result.valid
        assert result.risk == RiskLevel.CRITICAL
        assert "traversal" in result.reason.lower()

    def test_traversal_beats_allow_list(self, scoped_validator, workspace):
        """Test that traversal inside an allowed directory is still rejected."""
        result = scoped_validator.validate(f"{workspace}/src/../src/main.py")
        assert not result.valid
        assert result.risk == RiskLevel.CRITICAL

    def test_dotted_names_allowed(self, validator):
        """Test that names merely containing dots are fine."""
        assert validator.validate("src/main.test.py").valid
        assert validator.validate(".config/settings.json").valid

    @pytest.mark.parametrize("path", ["..cache/x.txt", "notes../x.txt", "src/...", "build/..old/out.log"])
    def test_double_dot_names_allowed(self, validator, path):
        """Test that names starting or ending with two dots are not traversal."""
        result = validator.validate(path)
        assert result.valid
        assert result.risk == RiskLevel.LOW

    def test_double_dot_directory_on_disk(self, temp_dir):
        """Test that an existing "..name" directory validates."""
        cache_dir = temp_dir / "..cache"
        cache_dir.mkdir()
        (cache_dir / "x.txt").write_text("cached\n")
        result = PathValidator(blocked_dirs=[]).validate(str(cache_dir / "x.txt"))
        assert result.valid
        assert result.exists


class TestDepth:
    """Tests for the depth limit."""

    def test_depth_exceeded(self, temp_dir):
        """Test that 25 segments exceed a limit of 20, regardless of lists."""
        validator = PathValidator(allowed_dirs=["/"], blocked_dirs=[], max_path_depth=20, base_dir=str(temp_dir))
        deep = "/" + "/".join(f"d{i}" for i in range(25))
        result = validator.validate(deep)
        assert not result.valid
        assert result.risk == RiskLevel.MEDIUM
        assert result.reason == "Path depth (25) exceeds maximum (20)"

    def test_depth_at_limit(self, temp_dir):
        """Test that exactly max_path_depth segments pass."""
        validator = PathValidator(max_path_depth=5, base_dir=str(temp_dir))
        assert validator.validate("/a/b/c/d/e").valid
        assert not validator.validate("/a/b/c/d/e/f").valid

    def test_depth_checked_before_blocked(self, blocked_dir, temp_dir):
        """Test that the depth check runs before the blocked check."""
        validator = PathValidator(blocked_dirs=[str(blocked_dir)], max_path_depth=2, base_dir=str(temp_dir))
        result = validator.validate(str(blocked_dir / "passwd"))
        assert "depth" in result.reason
        assert not result.is_blocked


class TestBlockedAndAllowed:
    """Tests for blocked and allowed directories."""

    def test_blocked_directory(self, validator, blocked_dir):
        """Test that paths in a blocked directory are high-risk rejections."""
        result = validator.validate(str(blocked_dir / "passwd"))
        assert not result.valid
        assert result.is_blocked
        assert result.risk == RiskLevel.HIGH

    def test_blocked_directory_itself(self, validator, blocked_dir):
        """Test that the blocked directory itself is blocked."""
        assert validator.validate(str(blocked_dir)).is_blocked

    def test_sibling_prefix_not_blocked(self, validator, blocked_dir):
        """Test that containment is on separator boundaries, not string prefixes."""
        sibling = str(blocked_dir) + "-backup/file.txt"
        assert validator.validate(sibling).valid

    def test_block_beats_allow(self, workspace, temp_dir):
        """Test that blocked wins even when the directory is also allowed."""
        validator = PathValidator(
            allowed_dirs=[str(workspace)],
            blocked_dirs=[str(workspace / "src")],
            base_dir=str(workspace),
        )
        result = validator.validate(str(workspace / "src" / "main.py"))
        assert not result.valid
        assert result.is_blocked

    def test_outside_allow_list(self, scoped_validator, outside_dir):
        """Test that paths outside the allow-list are rejected."""
        result = scoped_validator.validate(str(outside_dir / "notes.txt"))
        assert not result.valid
        assert result.is_blocked
        assert result.risk == RiskLevel.MEDIUM
        assert result.reason == "Path is not in any allowed directory"

    def test_empty_allow_list_allows(self, validator, outside_dir):
        """Test that an empty allow-list allows anything not blocked."""
        result = validator.validate(str(outside_dir / "notes.txt"))
        assert result.valid
        assert result.risk == RiskLevel.LOW
        assert result.reason == "Path is valid and allowed"

    def test_default_blocked_dirs(self, temp_dir):
        """Test the default system directory block list."""
        validator = PathValidator.from_config(PermissionConfig(), base_dir=str(temp_dir))
        for path in ["/etc/passwd", "/usr/bin/env", "/proc/self/environ"]:
            result = validator.validate(path)
            assert not result.valid, path
            assert result.is_blocked


class TestSymlinks:
    """Tests for symlink escape detection."""

    def test_symlink_escape(self, scoped_validator, workspace, outside_dir):
        """Test that a link out of the allowed directories is critical."""
        link = workspace / "escape"
        link.symlink_to(outside_dir)
        result = scoped_validator.validate(str(link / "notes.txt"))
        assert not result.valid
        assert result.risk == RiskLevel.CRITICAL
        assert "Symlink escape" in result.reason

    def test_symlink_into_blocked(self, validator, workspace, blocked_dir):
        """Test that a link into a blocked directory is critical."""
        link = workspace / "sys"
        link.symlink_to(blocked_dir)
        result = validator.validate(str(link / "passwd"))
        assert not result.valid
        assert result.is_blocked
        assert result.risk == RiskLevel.CRITICAL

    def test_symlinks_allowed(self, workspace, outside_dir, blocked_dir):
        """Test that the same escape passes when symlinks are allowed."""
        validator = PathValidator(
            allowed_dirs=[str(workspace)],
            blocked_dirs=[str(blocked_dir)],
            allow_symlinks=True,
            base_dir=str(workspace),
        )
        link = workspace / "escape"
        link.symlink_to(outside_dir)
        assert validator.validate(str(link / "notes.txt")).valid

    def test_symlink_within_allowed(self, scoped_validator, workspace):
        """Test that links staying inside the allowed directories are fine."""
        link = workspace / "source"
        link.symlink_to(workspace / "src")
        assert scoped_validator.validate(str(link / "main.py")).valid

    def test_missing_file_under_escaping_link(self, scoped_validator, workspace, outside_dir):
        """Test that a not-yet-created file under an escaping link is rejected."""
        link = workspace / "escape"
        link.symlink_to(outside_dir)
        result = scoped_validator.validate(str(link / "new" / "file.txt"))
        assert not result.valid
        assert result.risk == RiskLevel.CRITICAL

    def test_dangling_link(self, scoped_validator, workspace, temp_dir):
        """Test that a dangling link pointing outside is still an escape."""
        link = workspace / "dangling"
        link.symlink_to(temp_dir / "does-not-exist")
        assert not scoped_validator.validate(str(link)).valid


class TestExistence:
    """Tests for paths that do not exist yet."""

    def test_missing_file_in_allowed_dir(self, scoped_validator, workspace):
        """Test that a new file inside an allowed directory validates."""
        result = scoped_validator.validate(str(workspace / "new_dir" / "new_file.py"))
        assert result.valid
        assert result.exists is False

    def test_existing_file(self, scoped_validator, workspace):
        """Test that existing files are marked as such."""
        assert scoped_validator.validate(str(workspace / "src" / "main.py")).exists is True


class TestSensitivity:
    """Tests for sensitivity attached to valid paths."""

    def test_sensitive_path(self, validator, workspace):
        """Test that a valid sensitive path carries the detector's risk."""
        result = validator.validate(".env")
        assert result.valid
        assert result.is_sensitive
        assert result.risk == RiskLevel.HIGH
        assert result.sensitive.sensitive_type == SensitiveFileType.ENVIRONMENT_FILE
        assert result.reason.startswith("Sensitive file detected:")

    def test_ssh_key(self, validator, monkeypatch, temp_dir):
        """Test that ~/.ssh/id_rsa is a critical private key."""
        monkeypatch.setenv("HOME", str(temp_dir / "home"))
        result = validator.validate("~/.ssh/id_rsa")
        assert result.valid
        assert result.is_sensitive
        assert result.sensitive.sensitive_type == SensitiveFileType.PRIVATE_KEY
        assert result.sensitive.confidence >= 0.9
        assert result.risk == RiskLevel.CRITICAL


class TestProperties:
    """Tests for general guarantees."""

    def test_idempotent(self, scoped_validator, workspace):
        """Test that validating twice yields identical results."""
        for path in ["src/main.py", "../x", str(workspace / ".env"), "/elsewhere"]:
            assert scoped_validator.validate(path) == scoped_validator.validate(path)

    def test_validate_all_and_filter(self, scoped_validator, workspace):
        """Test bulk helpers."""
        paths = ["src/main.py", "../escape", "/elsewhere/file"]
        results = scoped_validator.validate_all(paths)
        assert set(results) == set(paths)
        assert scoped_validator.filter_valid(paths) == ["src/main.py"]
        assert scoped_validator.is_allowed("src/main.py")


class TestHelpers:
    """Tests for directory management and path helpers."""

    def test_add_and_remove_dirs(self, validator, outside_dir):
        """Test runtime changes to the directory sets."""
        validator.add_blocked_dir(str(outside_dir))
        assert not validator.validate(str(outside_dir / "notes.txt")).valid
        assert str(outside_dir) in validator.get_blocked_dirs()

        assert validator.remove_blocked_dir(str(outside_dir))
        assert not validator.remove_blocked_dir(str(outside_dir))
        assert validator.validate(str(outside_dir / "notes.txt")).valid

    def test_add_allowed_dir(self, validator, workspace, outside_dir):
        """Test that adding the first allowed directory scopes validation."""
        validator.add_allowed_dir(str(workspace))
        assert not validator.validate(str(outside_dir / "notes.txt")).valid
        assert validator.get_allowed_dirs() == [str(workspace)]
        assert validator.remove_allowed_dir(str(workspace))
        assert validator.validate(str(outside_dir / "notes.txt")).valid

    def test_is_within(self, validator, workspace):
        """Test containment helper."""
        assert validator.is_within("src/main.py", str(workspace))
        assert not validator.is_within(str(workspace) + "2/file", str(workspace))

    def test_relative_path(self, validator, workspace, outside_dir):
        """Test relative path helper."""
        assert validator.get_relative_path(str(workspace / "src" / "main.py")) == os.path.join("src", "main.py")
        assert validator.get_relative_path(str(outside_dir / "notes.txt")) is None

    def test_real_path(self, validator, workspace):
        """Test resolving a path through a symlink that stays in bounds."""
        link = workspace / "main_link.py"
        link.symlink_to(workspace / "src" / "main.py")
        result = validator.get_real_path(str(link))
        assert result.valid
        assert result.normalized_path == str(workspace / "src" / "main.py")

    def test_set_base_dir(self, validator, outside_dir):
        """Test changing the base directory."""
        validator.set_base_dir(str(outside_dir))
        assert validator.validate("notes.txt").normalized_path == str(outside_dir / "notes.txt")

    def test_from_config(self, workspace_config, workspace):
        """Test building a validator from configuration."""
        validator = PathValidator.from_config(workspace_config, base_dir=str(workspace))
        assert validator.get_allowed_dirs() == [str(workspace)]
        assert validator.max_path_depth == 20
        assert validator.allow_symlinks is False
