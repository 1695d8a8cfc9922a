"""Tests for error handling system."""

from unittest.mock import patch

import click
from click.testing import CliRunner

from sqlite_to_s3.utils.errors import (
    ConfigurationError,
    DecryptionError,
    DownloadError,
    ErrorHandler,
    MissingKeyError,
    RestoreError,
    SqliteToS3Error,
    StorageError,
    UploadError,
    create_error_suggestions,
    format_validation_errors,
)


class TestSqliteToS3Error:
    """Test custom error classes."""

    def test_error_basic(self):
        """Test basic SqliteToS3Error functionality."""
        error = SqliteToS3Error("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details is None
        assert error.suggestions == []

    def test_error_with_details(self):
        """Test SqliteToS3Error with details and suggestions."""
        suggestions = ["Try this", "Or try that"]
        error = SqliteToS3Error("Test error", details="Detailed explanation", suggestions=suggestions)

        assert error.message == "Test error"
        assert error.details == "Detailed explanation"
        assert error.suggestions == suggestions

    def test_specific_error_types(self):
        """Test specific error type inheritance."""
        assert isinstance(ConfigurationError("Config error"), SqliteToS3Error)
        assert isinstance(DecryptionError("Bad key"), SqliteToS3Error)
        assert isinstance(MissingKeyError("No key"), SqliteToS3Error)
        assert isinstance(UploadError("Upload"), StorageError)
        assert isinstance(DownloadError("Download"), StorageError)

    def test_restore_error_unresolved_flag(self):
        """Test that restore errors carry the unresolved flag."""
        assert RestoreError("Restore failed").unresolved is False
        assert RestoreError("Restore failed", unresolved=True).unresolved is True


class TestErrorHandler:
    """Test error handler functionality."""

    def setup_method(self):
        """Setup test environment."""
        self.handler = ErrorHandler(verbose=False)
        self.verbose_handler = ErrorHandler(verbose=True)

    def test_handle_tool_error(self):
        """Test handling sqlite-to-s3 specific errors."""
        error = SqliteToS3Error(
            "Test error message",
            details="Error details",
            suggestions=["Suggestion 1", "Suggestion 2"],
        )

        with patch("click.echo") as mock_echo:
            self.handler.handle_error(error, "Test context")

            # Error, context, details, suggestions header and two suggestions
            assert mock_echo.call_count == 6

            messages = [call.args[0] for call in mock_echo.call_args_list]
            assert messages[0] == "✗ Test error message"
            assert "Context: Test context" in messages
            assert "Details: Error details" in messages
            assert "  • Suggestion 2" in messages

            # Everything goes to stderr
            assert all(call.kwargs.get("err") for call in mock_echo.call_args_list)

    def test_handle_generic_error_file_not_found(self):
        """Test handling FileNotFoundError."""
        error = FileNotFoundError("app.db not found")

        with patch("click.echo") as mock_echo:
            self.handler.handle_error(error)

            assert mock_echo.called
            error_message = str(mock_echo.call_args_list[0])
            assert "File not found" in error_message

    def test_handle_generic_error_permission_denied(self):
        """Test handling PermissionError."""
        error = PermissionError("Permission denied for file")

        with patch("click.echo") as mock_echo:
            self.handler.handle_error(error)

            assert mock_echo.called
            error_message = str(mock_echo.call_args_list[0])
            assert "Permission denied" in error_message

    def test_handle_generic_error_other(self):
        """Test handling an unexpected exception type."""
        with patch("click.echo") as mock_echo:
            self.handler.handle_error(ValueError("boom"))

            assert "ValueError: boom" in str(mock_echo.call_args_list[0])

    def test_handle_error_with_verbose(self):
        """Test error handling with verbose output."""
        error = SqliteToS3Error("Test error")

        with patch("click.echo"):
            with patch("traceback.print_exc") as mock_traceback:
                self.verbose_handler.handle_error(error)

                mock_traceback.assert_called_once()

    def test_exit_with_error(self):
        """Test exit_with_error functionality."""
        error = SqliteToS3Error("Fatal error")

        with patch("click.echo"):
            with patch("sys.exit") as mock_exit:
                self.handler.exit_with_error(error, exit_code=2)

                mock_exit.assert_called_once_with(2)

    def test_exit_with_error_default_code(self):
        """Test that fatal errors exit with status 1 by default."""
        with patch("click.echo"):
            with patch("sys.exit") as mock_exit:
                self.handler.exit_with_error(DecryptionError("Decryption failed"))

                mock_exit.assert_called_once_with(1)


class TestErrorUtilities:
    """Test error utility functions."""

    def test_create_error_suggestions_decryption(self):
        """Test decryption error suggestions."""
        suggestions = create_error_suggestions("decryption_failed")

        assert len(suggestions) > 0
        assert any("ENCRYPTION_KEY" in suggestion for suggestion in suggestions)

    def test_create_error_suggestions_restore_unresolved(self):
        """Test that unresolved restore suggestions name the database."""
        suggestions = create_error_suggestions("restore_unresolved", database_path="/data/app.db")

        assert any("/data/app.db.old" in suggestion for suggestion in suggestions)

    def test_create_error_suggestions_unknown(self):
        """Test suggestions for unknown error type."""
        suggestions = create_error_suggestions("unknown_error_type")

        assert suggestions == []

    def test_format_validation_errors_single(self):
        """Test formatting single validation error."""
        result = format_validation_errors(["S3_BUCKET env variable is required"])

        assert "Validation error:" in result
        assert "S3_BUCKET env variable is required" in result

    def test_format_validation_errors_multiple(self):
        """Test formatting multiple validation errors."""
        errors = [
            "S3_BUCKET env variable is required",
            "DATABASE_PATH env variable is required",
            "timeout_ms: 0 is less than the minimum of 1",
        ]

        result = format_validation_errors(errors)

        assert "Validation errors:" in result
        assert "1." in result
        assert "2." in result
        assert "3." in result

    def test_format_validation_errors_empty(self):
        """Test formatting empty validation errors."""
        assert format_validation_errors([]) == "No validation errors"


class TestClickIntegration:
    """Test error handling integration with Click commands."""

    def test_cli_error_handling(self):
        """Test error handling in Click command context."""

        @click.command()
        def test_command():
            ErrorHandler().exit_with_error(ConfigurationError("Test config error"), "Configuration")

        runner = CliRunner()
        result = runner.invoke(test_command)

        assert result.exit_code == 1
        assert "✗ Test config error" in result.output
