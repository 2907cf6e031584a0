"""
multicache - Error Hierarchy Tests
"""

import pytest

from multicache.errors import (
    CacheError,
    CacheExistsError,
    ConfigurationError,
    ErrorCode,
    MultiCacheError,
    NotFoundError,
    UnknownCacheError,
    ValidationError,
    extract_error_code,
)


class TestErrors:
    """Test suite for the exception hierarchy."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (ConfigurationError("bad"), ErrorCode.INVALID_CONFIGURATION),
            (ValidationError("bad"), ErrorCode.INVALID_ARGUMENT),
            (CacheError("bad"), ErrorCode.CACHE_FAILURE),
            (CacheExistsError("c"), ErrorCode.CACHE_EXISTS),
            (UnknownCacheError("c"), ErrorCode.CACHE_NOT_FOUND),
            (MultiCacheError("bad"), ErrorCode.INTERNAL_ERROR),
        ],
    )
    def test_error_codes(self, error: MultiCacheError, code: ErrorCode) -> None:
        """Test each error carries its code."""
        assert error.error_code == code
        assert extract_error_code(error) == code

    def test_unrelated_exception_code(self) -> None:
        """Test non-multicache exceptions map to INTERNAL_ERROR."""
        assert extract_error_code(KeyError("k")) == ErrorCode.INTERNAL_ERROR

    def test_hierarchy(self) -> None:
        """Test the subclass relationships callers rely on."""
        assert issubclass(CacheExistsError, CacheError)
        assert issubclass(UnknownCacheError, NotFoundError)
        assert issubclass(ValidationError, MultiCacheError)

    def test_to_dict(self) -> None:
        """Test structured representation."""
        error = CacheExistsError("users")
        assert error.to_dict() == {
            "error": "CacheExistsError",
            "error_code": "CACHE_EXISTS",
            "message": "Cache already exists: users",
            "details": {"cache_name": "users"},
        }

    def test_not_found_message(self) -> None:
        """Test the not-found message names the missing cache."""
        error = UnknownCacheError("users")
        assert str(error) == "Cache not found: users"
        assert error.details == {"resource": "Cache", "id": "users"}

    def test_details_default_to_empty(self) -> None:
        """Test details are never None."""
        assert ValidationError("bad").details == {}
