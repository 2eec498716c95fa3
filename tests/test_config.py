"""
Tests for environment configuration and principal extraction.
"""

import pytest
from pydantic import ValidationError

from annotation_blocks.api.annotations_api.config import ApiConfig
from annotation_blocks.common_libraries.errors import UnauthorizedError
from annotation_blocks.common_libraries.user_auth import (
    extract_user_context,
    require_user_id,
)


class TestApiConfig:
    """Tests for ApiConfig."""

    def test_from_env(self, monkeypatch):
        """Test that environment variables populate the config."""
        monkeypatch.setenv("TABLE_NAME", "blocks-table")
        monkeypatch.setenv("S3_BUCKET_NAME", "blocks-bucket")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("BATCH_DELETE_MAX_ATTEMPTS", "3")

        config = ApiConfig.from_env()

        assert config.table_name == "blocks-table"
        assert config.bucket_name == "blocks-bucket"
        assert config.log_level == "DEBUG"
        assert config.batch_delete_max_attempts == 3
        assert config.batch_delete_backoff_ms == 100

    def test_block_prefix(self):
        """Test the per-block object prefix."""
        assert ApiConfig().block_prefix("b1") == "annotations/blocks/b1/"

    def test_prefix_template_needs_block_id(self):
        """Test that a template without {block_id} is rejected."""
        with pytest.raises(ValidationError):
            ApiConfig(block_prefix_template="annotations/")

    def test_invalid_log_level(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            ApiConfig(log_level="LOUD")

    def test_attempts_must_be_positive(self):
        """Test that at least one batch attempt is required."""
        with pytest.raises(ValidationError):
            ApiConfig(batch_delete_max_attempts=0)


class TestUserAuth:
    """Tests for principal extraction."""

    def test_claims_are_preferred(self):
        """Test that the authorizer sub wins over the header."""
        event = {
            "headers": {"X-User-Id": "header-user"},
            "requestContext": {
                "authorizer": {
                    "claims": {
                        "sub": "claims-user",
                        "cognito:username": "ann",
                        "email": "ann@example.com",
                    }
                }
            },
        }

        assert extract_user_context(event) == {
            "user_id": "claims-user",
            "username": "ann",
            "email": "ann@example.com",
        }

    def test_header_fallback_is_case_insensitive(self):
        """Test the x-user-id header when no claims are present."""
        event = {"headers": {"x-user-id": "header-user"}, "requestContext": {}}

        assert require_user_id(event) == "header-user"

    def test_missing_principal(self):
        """Test that an anonymous request is rejected."""
        with pytest.raises(UnauthorizedError):
            require_user_id({"headers": None, "requestContext": {"authorizer": None}})
