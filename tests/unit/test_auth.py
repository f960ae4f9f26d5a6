"""
Unit tests for API key authentication.
"""

from completion_queue.api.auth import validate_api_key


class TestValidateApiKey:
    """Tests for validate_api_key."""

    def test_disabled_when_no_key_configured(self):
        """Test any request is allowed when no key is configured."""
        assert validate_api_key(None, None) is True
        assert validate_api_key("anything", None) is True
        assert validate_api_key(None, "") is True

    def test_matching_key(self):
        """Test the configured key is accepted."""
        assert validate_api_key("secret", "secret") is True

    def test_wrong_key(self):
        """Test a different key is rejected."""
        assert validate_api_key("wrong", "secret") is False

    def test_missing_key(self):
        """Test a missing key is rejected when one is configured."""
        assert validate_api_key(None, "secret") is False
        assert validate_api_key("", "secret") is False
