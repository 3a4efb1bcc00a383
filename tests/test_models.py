"""Tests for permission models."""

import pytest

from toolguard.permissions.models import (
    PermissionLevel,
    PermissionResult,
    RiskLevel,
    SensitiveFileResult,
    max_risk,
)


class TestRiskLevel:
    """Tests for risk level ordering."""

    def test_ordering(self):
        """Test that levels compare by severity, not alphabetically."""
        assert RiskLevel.LOW < RiskLevel.MEDIUM < RiskLevel.HIGH < RiskLevel.CRITICAL
        assert RiskLevel.CRITICAL > RiskLevel.HIGH
        assert RiskLevel.MEDIUM >= RiskLevel.MEDIUM

    def test_sorted(self):
        """Test sorting a mix of levels."""
        levels = [RiskLevel.HIGH, RiskLevel.LOW, RiskLevel.CRITICAL, RiskLevel.MEDIUM]
        assert sorted(levels) == [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]

    def test_string_values(self):
        """Test that levels serialize as plain strings."""
        assert RiskLevel.CRITICAL.value == "critical"
        assert RiskLevel("medium") is RiskLevel.MEDIUM

    def test_max_risk(self):
        """Test folding several levels into the highest one."""
        assert max_risk(RiskLevel.LOW, RiskLevel.HIGH, RiskLevel.MEDIUM) == RiskLevel.HIGH
        assert max_risk(None, RiskLevel.MEDIUM) == RiskLevel.MEDIUM
        assert max_risk() == RiskLevel.LOW

    def test_cross_type_comparison_unsupported(self):
        """Test that risk and permission levels do not compare with each other."""
        with pytest.raises(TypeError):
            RiskLevel.LOW < PermissionLevel.ADMIN


class TestPermissionLevel:
    """Tests for permission level ordering."""

    def test_ordering(self):
        """Test read < write < execute < admin."""
        assert PermissionLevel.READ < PermissionLevel.WRITE
        assert PermissionLevel.WRITE < PermissionLevel.EXECUTE
        assert PermissionLevel.EXECUTE < PermissionLevel.ADMIN


class TestPermissionResult:
    """Tests for the permission result model."""

    def test_denial_is_never_confirmable(self):
        """Test that a denial drops the confirmation flag."""
        result = PermissionResult(allowed=False, requires_confirmation=True)
        assert result.allowed is False
        assert result.requires_confirmation is False

    def test_allowed_keeps_confirmation(self):
        """Test that an allowed result keeps the confirmation flag."""
        result = PermissionResult(allowed=True, requires_confirmation=True, risk_level=RiskLevel.HIGH)
        assert result.requires_confirmation is True

    def test_serialization(self):
        """Test JSON serialization of enums."""
        data = PermissionResult(allowed=True, risk_level=RiskLevel.MEDIUM).model_dump(mode="json")
        assert data["risk_level"] == "medium"
        assert data["suggestions"] == []


class TestSensitiveFileResult:
    """Tests for the sensitive file result model."""

    def test_confidence_bounds(self):
        """Test that confidence must stay within [0, 1]."""
        with pytest.raises(ValueError):
            SensitiveFileResult(is_sensitive=True, confidence=1.5)
        with pytest.raises(ValueError):
            SensitiveFileResult(is_sensitive=True, confidence=-0.1)
