"""Unit tests for config validators."""

import pytest

from mood_radar.config.validators import normalize_domain_list, validate_weights_sum


class TestValidateWeightsSum:
    """Tests for validate_weights_sum function."""

    def test_valid_sum_exact(self):
        """Test weights that sum to exactly 1.0."""
        validate_weights_sum({"relevance": 0.45, "recency": 0.35, "diversity": 0.2})

    def test_valid_sum_within_tolerance(self):
        """Test weights within tolerance."""
        validate_weights_sum({"a": 0.333, "b": 0.333, "c": 0.333})

    def test_invalid_sum_too_high(self):
        """Test weights that sum to more than 1.0."""
        with pytest.raises(ValueError, match="must sum to 1.0"):
            validate_weights_sum({"a": 0.5, "b": 0.6})

    def test_invalid_sum_too_low(self):
        """Test weights that sum to less than 1.0."""
        with pytest.raises(ValueError, match="must sum to 1.0"):
            validate_weights_sum({"a": 0.2, "b": 0.3})

    def test_custom_expected_sum(self):
        """Test with custom expected sum."""
        validate_weights_sum({"a": 1.0, "b": 1.0}, expected_sum=2.0)


class TestNormalizeDomainList:
    """Tests for normalize_domain_list function."""

    def test_none_returns_empty(self):
        """Test None input."""
        assert normalize_domain_list(None) == []

    def test_single_string(self):
        """Test a single domain string."""
        assert normalize_domain_list("Reddit.com") == ["reddit.com"]

    def test_strips_www_dots_and_duplicates(self):
        """Test normalization of messy entries."""
        result = normalize_domain_list([" www.X.com ", ".twitter.com.", "x.com", "", 42])

        assert result == ["x.com", "twitter.com"]

    def test_non_list_returns_empty(self):
        """Test unsupported input types."""
        assert normalize_domain_list({"x.com": True}) == []
