"""Tests for error types and codes."""

from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from forksync.core.errors import (
    AnalysisError,
    ConfigError,
    ErrorCode,
    ForkSyncError,
    InternalError,
    SyncError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_UNSUPPORTED_VERSION, 2000),
            (ErrorCode.VERSION_CONTROL_FAILURE, 3000),
            (ErrorCode.ORCHESTRATION_FAILED, 5000),
            (ErrorCode.ABORTED_BY_OPERATOR, 5000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        assert expected_range <= code.value < expected_range + 1000


class TestForkSyncError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = ForkSyncError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_human_readable(self) -> None:
        """Error string representation is human readable."""
        error = ForkSyncError(code=ErrorCode.INTERNAL_ERROR, message="Something broke")

        assert str(error) == "[9001] INTERNAL_ERROR: Something broke"

    def test_given_error_when_raised_then_catchable_as_exception(self) -> None:
        """Subclasses stay catchable through the base class."""
        with pytest.raises(ForkSyncError) as exc:
            raise SyncError.orchestration_failed("commit", "disk full")

        assert exc.value.error_name == "ORCHESTRATION_FAILED"


class TestConfigError:
    """ConfigError factory method tests."""

    @pytest.mark.parametrize(
        ("factory", "kwargs", "expected_code"),
        [
            ("parse_error", {"path": "/foo", "reason": "bad yaml"}, ErrorCode.CONFIG_PARSE_ERROR),
            (
                "invalid_value",
                {"field": "analysis.max_workers", "value": 0, "reason": "too small"},
                ErrorCode.CONFIG_INVALID_VALUE,
            ),
            (
                "missing_required",
                {"field": "boilerplate.url"},
                ErrorCode.CONFIG_MISSING_REQUIRED,
            ),
            ("file_not_found", {"path": "/missing"}, ErrorCode.CONFIG_FILE_NOT_FOUND),
            (
                "unsupported_version",
                {"path": "/store.json", "version": 7},
                ErrorCode.CONFIG_UNSUPPORTED_VERSION,
            ),
        ],
    )
    def test_given_factory_when_called_then_correct_code(
        self, factory: str, kwargs: dict[str, object], expected_code: ErrorCode
    ) -> None:
        """Factory methods produce errors with correct error codes."""
        error = getattr(ConfigError, factory)(**kwargs)

        assert error.code == expected_code
        assert isinstance(error, ConfigError)


class TestAnalysisError:
    def test_given_vcs_failure_when_created_then_retryable_with_path(self) -> None:
        # When
        error = AnalysisError.version_control_failure("src/app.py", "object missing")

        # Then
        assert error.retryable
        assert error.details == {"path": "src/app.py", "reason": "object missing"}
        assert "src/app.py" in error.message


class TestSyncError:
    """SyncError factory tests."""

    def test_given_unresolved_paths_when_created_then_counted(self) -> None:
        error = SyncError.conflicts_unresolved(["a.txt", "b.txt"])

        assert error.code == ErrorCode.CONFLICTS_UNRESOLVED
        assert error.message == "2 conflicted file(s) remain unresolved"
        assert error.details["paths"] == ["a.txt", "b.txt"]

    def test_given_abort_when_created_then_not_retryable(self) -> None:
        error = SyncError.aborted_by_operator(["a.txt"])

        assert error.code == ErrorCode.ABORTED_BY_OPERATOR
        assert not error.retryable


class TestInternalError:
    """InternalError tests."""

    def test_given_unexpected_error_when_created_then_includes_extras(self) -> None:
        """Unexpected error captures arbitrary extra details."""
        error = InternalError.unexpected("boom", path="src/app.py")

        assert error.details == {"path": "src/app.py"}
        assert error.code == ErrorCode.INTERNAL_ERROR


class TestRaisingThroughContextManagers:
    """Errors travel through @contextmanager blocks intact."""

    @staticmethod
    @contextmanager
    def _wrapping() -> Iterator[None]:
        yield

    @pytest.mark.parametrize(
        "error",
        [
            AnalysisError.version_control_failure("README.md", "ref not found"),
            ConfigError.parse_error("/tmp/store.json", "bad json"),
            SyncError.orchestration_failed("fetch boilerplate", "unreachable"),
        ],
        ids=["analysis", "config", "sync"],
    )
    def test_given_subclass_error_when_raised_in_context_manager_then_propagates(
        self, error: ForkSyncError
    ) -> None:
        # When / Then
        with pytest.raises(type(error)) as excinfo, self._wrapping():
            raise error

        assert excinfo.value is error
        assert excinfo.value.__traceback__ is not None

    def test_given_error_when_reraised_from_cause_then_cause_kept(self) -> None:
        with pytest.raises(SyncError) as excinfo:
            try:
                raise OSError("disk full")
            except OSError as e:
                raise SyncError.orchestration_failed("commit", str(e)) from e

        assert isinstance(excinfo.value.__cause__, OSError)
